"""Choosing which question to ask next.

Two interchangeable selectors share the ``QuestionSelector`` protocol: a
deterministic local one, and one that defers to an external advisor and
falls back to the local ordering whenever the advisor cannot help.
"""
import logging
from typing import Collection, Dict, List, Optional, Protocol

from ddx_dialogue.application.ports import QuestionAdvisorPort
from ddx_dialogue.application.schemas import ScreeningContext
from ddx_dialogue.domain.belief import prior_beliefs, top_conditions
from ddx_dialogue.domain.models import (
    AssessmentSession,
    Condition,
    EngineConfig,
    KnowledgeBase,
    QuestionCategory,
    QuestionTemplate,
)


logger = logging.getLogger(__name__)


FALLBACK_TOPIC_ORDER = [
    "red_flag_screening",
    "pain_severity",
    "pain_location",
    "onset_mechanism",
    "aggravating_factors",
    "relieving_factors",
    "functional_impact",
    "previous_treatment",
    "medications",
]

CATEGORY_ORDER = [
    QuestionCategory.RED_FLAG_SCREENING,
    QuestionCategory.PAIN,
    QuestionCategory.NEUROLOGICAL,
    QuestionCategory.RANGE_OF_MOTION,
    QuestionCategory.MOTOR,
    QuestionCategory.OBJECTIVE,
    QuestionCategory.FUNCTIONAL,
    QuestionCategory.HISTORY,
]


class QuestionSelector(Protocol):
    def select_next(self, session: AssessmentSession) -> Optional[QuestionTemplate]:
        ...

    def select_batch(self, session: AssessmentSession, n: int) -> List[QuestionTemplate]:
        ...


class DiscriminativeQuestionSelector:
    """Local selector: safety questions first, then the best separator of the leading conditions."""

    def __init__(self, knowledge_base: KnowledgeBase, top_k: int = 3):
        self.knowledge_base = knowledge_base
        self.top_k = top_k
        self._order: Dict[str, int] = {q.id: i for i, q in enumerate(knowledge_base.questions)}

    def available_questions(self, session: AssessmentSession, exclude: Collection[str] = ()) -> List[QuestionTemplate]:
        region = session.body_region
        return [
            q for q in self.knowledge_base.questions
            if not session.has_answered(q.id) and q.id not in exclude and q.applies_to_region(region)
        ]

    def safety_question(self, session: AssessmentSession, exclude: Collection[str] = ()) -> Optional[QuestionTemplate]:
        """Unanswered red-flag question in a category the findings already implicate."""
        implicated = session.findings.implicated_categories()
        if not implicated:
            return None
        candidates = [
            q for q in self.available_questions(session, exclude)
            if q.red_flag and q.finding_category in implicated
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda q: (-q.priority, self._order[q.id]))

    def leading_conditions(self, session: AssessmentSession) -> List[Condition]:
        posteriors = session.posteriors or prior_beliefs(self.knowledge_base)
        leaders = top_conditions(posteriors, self.top_k)
        return [c for c in (self.knowledge_base.condition(cid) for cid, _ in leaders) if c is not None]

    @staticmethod
    def spread(question: QuestionTemplate, conditions: List[Condition]) -> float:
        """Largest gap in likelihood weight across ``conditions`` for any evidence the question can yield."""
        if len(conditions) < 2:
            return 0.0
        best = 0.0
        for key in question.evidence_keys():
            weights = [c.likelihood(key) for c in conditions]
            best = max(best, max(weights) - min(weights))
        return round(best, 9)

    def discriminative_question(
        self, session: AssessmentSession, candidates: List[QuestionTemplate]
    ) -> Optional[QuestionTemplate]:
        if not session.answered_question_ids or not candidates:
            return None
        leaders = self.leading_conditions(session)
        scored = [(self.spread(q, leaders), q) for q in candidates]
        spread, best = max(
            scored,
            key=lambda item: (item[0], item[1].priority, item[1].discriminative_power, -self._order[item[1].id]),
        )
        if spread <= 0:
            return None
        return best

    def fallback_question(self, candidates: List[QuestionTemplate]) -> Optional[QuestionTemplate]:
        """Fixed clinical ordering used when there is no discriminative signal yet."""
        if not candidates:
            return None

        def rank(question: QuestionTemplate):
            topic_rank = (
                FALLBACK_TOPIC_ORDER.index(question.topic)
                if question.topic in FALLBACK_TOPIC_ORDER
                else len(FALLBACK_TOPIC_ORDER)
            )
            return (topic_rank, CATEGORY_ORDER.index(question.category), -question.priority, self._order[question.id])

        return min(candidates, key=rank)

    def select_excluding(self, session: AssessmentSession, exclude: Collection[str] = ()) -> Optional[QuestionTemplate]:
        candidates = self.available_questions(session, exclude)
        if not candidates:
            return None
        return (
            self.safety_question(session, exclude)
            or self.discriminative_question(session, candidates)
            or self.fallback_question(candidates)
        )

    def select_next(self, session: AssessmentSession) -> Optional[QuestionTemplate]:
        return self.select_excluding(session)

    def select_batch(self, session: AssessmentSession, n: int) -> List[QuestionTemplate]:
        batch: List[QuestionTemplate] = []
        chosen: List[str] = []
        while len(batch) < n:
            question = self.select_excluding(session, chosen)
            if question is None:
                break
            batch.append(question)
            chosen.append(question.id)
        return batch


def build_screening_context(
    session: AssessmentSession, candidates: List[QuestionTemplate], top_k: int = 3
) -> ScreeningContext:
    duration = 0
    if session.history:
        duration = int((session.history[-1].answered_at - session.started_at).total_seconds())
    return ScreeningContext(
        session_id=session.session_id,
        body_region=session.body_region,
        collected_responses=dict(session.responses),
        answered_question_ids=list(session.answered_question_ids),
        red_flags_detected=list(session.red_flags),
        session_duration=max(duration, 0),
        top_conditions=dict(top_conditions(session.posteriors, top_k)),
        candidate_question_ids=[q.id for q in candidates],
    )


class AdvisedQuestionSelector:
    """Asks an external advisor for the next question, falling back to the local selector."""

    def __init__(self, advisor: QuestionAdvisorPort, fallback: DiscriminativeQuestionSelector):
        self.advisor = advisor
        self.fallback = fallback

    def _advised(self, session: AssessmentSession, exclude: Collection[str] = ()) -> Optional[QuestionTemplate]:
        candidates = self.fallback.available_questions(session, exclude)
        if not candidates:
            return None
        context = build_screening_context(session, candidates, self.fallback.top_k)
        try:
            question_id = self.advisor.recommend_next_question(context)
        except Exception as e:
            logger.warning("Question advisor unavailable, using local ordering: %s", e)
            return None

        if question_id is None:
            return None
        question = next((q for q in candidates if q.id == question_id), None)
        if question is None:
            logger.info("Advisor recommended '%s', which is unknown or already answered; ignoring", question_id)
        return question

    def select_next(self, session: AssessmentSession) -> Optional[QuestionTemplate]:
        # Safety questions are never delegated
        safety = self.fallback.safety_question(session)
        if safety is not None:
            return safety
        return self._advised(session) or self.fallback.select_next(session)

    def select_batch(self, session: AssessmentSession, n: int) -> List[QuestionTemplate]:
        if n <= 0:
            return []
        first = self.select_next(session)
        if first is None:
            return []
        batch = [first]
        while len(batch) < n:
            question = self.fallback.select_excluding(session, [q.id for q in batch])
            if question is None:
                break
            batch.append(question)
        return batch


def build_question_selector(
    knowledge_base: KnowledgeBase,
    config: Optional[EngineConfig] = None,
    advisor: Optional[QuestionAdvisorPort] = None,
) -> QuestionSelector:
    config = config or EngineConfig()
    local = DiscriminativeQuestionSelector(knowledge_base, top_k=config.top_k)
    if advisor is None:
        return local
    return AdvisedQuestionSelector(advisor, local)
