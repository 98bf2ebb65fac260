import logging
from typing import Any, List, Optional

from ddx_dialogue.application.errors import InvalidSessionStateError, UnknownQuestionError
from ddx_dialogue.application.question_selection import QuestionSelector
from ddx_dialogue.application.reporting import build_diagnosis, build_referral, build_snapshot
from ddx_dialogue.application.schemas import (
    DiagnosisResult,
    DiagnosticsSnapshot,
    DialogueState,
    Outcome,
    ReferralResult,
    TurnKind,
    TurnResult,
)
from ddx_dialogue.domain.answers import interpret_answer
from ddx_dialogue.domain.belief import prior_beliefs, update_beliefs
from ddx_dialogue.domain.completeness import evaluate
from ddx_dialogue.domain.models import (
    AssessmentSession,
    CompletenessResult,
    EngineConfig,
    KnowledgeBase,
    QuestionTemplate,
)
from ddx_dialogue.domain.rules import RedFlagMonitor, max_urgency, requires_referral


logger = logging.getLogger(__name__)


class ConversationManager:
    """Drives one assessment dialogue from the first question to a diagnosis or a referral."""

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        selector: QuestionSelector,
        config: Optional[EngineConfig] = None,
        session_id: Optional[str] = None,
    ):
        self.knowledge_base = knowledge_base
        self.selector = selector
        self.config = config or EngineConfig()
        self.monitor = RedFlagMonitor(knowledge_base.red_flag_patterns)
        self.session = self._new_session(session_id)
        self.state = DialogueState.INIT
        self.outcome: Optional[Outcome] = None
        self.pending_question_ids: List[str] = []
        self.diagnosis: Optional[DiagnosisResult] = None
        self.referral: Optional[ReferralResult] = None

    def _new_session(self, session_id: Optional[str]) -> AssessmentSession:
        session = AssessmentSession(session_id=session_id) if session_id else AssessmentSession()
        session.posteriors = prior_beliefs(self.knowledge_base)
        session.insufficient_data = True
        return session

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def is_terminated(self) -> bool:
        return self.state == DialogueState.TERMINATED

    def start(self) -> Optional[QuestionTemplate]:
        """Select the first question and start waiting for answers."""
        if self.state != DialogueState.INIT:
            raise InvalidSessionStateError(
                f"Session '{self.session_id}' has already started (state {self.state.value}); reset it first"
            )

        question = self.selector.select_next(self.session)
        if question is None:
            logger.warning("Knowledge base offers no first question; concluding session %s", self.session_id)
            self._terminate_with_diagnosis()
            return None

        self.pending_question_ids = [question.id]
        self.state = DialogueState.AWAITING_ANSWER
        logger.info("Session %s started with question %s", self.session_id, question.id)
        return question

    def submit_answer(self, question_id: str, answer: Any) -> TurnResult:
        """Apply one patient answer and decide where the dialogue goes next."""
        if self.is_terminated:
            raise InvalidSessionStateError(
                f"Session '{self.session_id}' is terminated ({self.outcome.value}); reset it or start a new session"
            )
        if self.state == DialogueState.INIT:
            raise InvalidSessionStateError(f"Session '{self.session_id}' has not been started")
        if question_id not in self.pending_question_ids:
            raise UnknownQuestionError(self.session_id, question_id, self.pending_question_ids)

        question = self.knowledge_base.question(question_id)
        session = self.session

        # Record the raw answer and whatever findings it yields
        parsed = interpret_answer(question, answer)
        session.record_response(question_id, answer)
        if not parsed.parseable:
            session.unparseable_question_ids.append(question_id)
            logger.warning("Session %s: answer to %s could not be parsed: %r", self.session_id, question_id, answer)
        for finding in parsed.findings:
            session.findings.record(question.finding_category, finding)

        self._scan_red_flags(question, answer)

        belief = update_beliefs(session.findings, self.knowledge_base)
        session.posteriors = belief.posteriors
        session.insufficient_data = belief.insufficient_data
        session.low_confidence = session.low_confidence or belief.low_confidence

        completeness = self.evaluate_completeness()
        session.completion_percentage = completeness.score
        session.missing_critical = list(completeness.missing_critical)
        session.turn += 1

        if requires_referral(session.urgency):
            return self._terminate_with_referral()
        if completeness.is_complete:
            return self._terminate_with_diagnosis()

        next_question = self.selector.select_next(session)
        if next_question is None:
            return self._terminate_with_diagnosis()

        remaining = [qid for qid in self.pending_question_ids if not session.has_answered(qid)]
        self.pending_question_ids = [next_question.id] + [qid for qid in remaining if qid != next_question.id]
        return TurnResult(
            session_id=self.session_id,
            kind=TurnKind.QUESTION,
            question=next_question,
            completion_percentage=session.completion_percentage,
        )

    def next_batch(self, n: int) -> List[QuestionTemplate]:
        """Offer up to ``n`` questions at once; any of them may be answered next."""
        if self.state != DialogueState.AWAITING_ANSWER:
            raise InvalidSessionStateError(f"Session '{self.session_id}' is not awaiting answers")
        batch = self.selector.select_batch(self.session, n)
        for question in batch:
            if question.id not in self.pending_question_ids:
                self.pending_question_ids.append(question.id)
        return batch

    def evaluate_completeness(self) -> CompletenessResult:
        return evaluate(self.session, self.knowledge_base, self.config)

    def diagnostics(self) -> DiagnosticsSnapshot:
        return build_snapshot(self.session, self.knowledge_base, self.state, self.outcome, self.config.top_k)

    def reset(self) -> None:
        """Clear all session state in place and return to INIT under the same session id."""
        self.session = self._new_session(self.session_id)
        self.state = DialogueState.INIT
        self.outcome = None
        self.pending_question_ids = []
        self.diagnosis = None
        self.referral = None
        logger.info("Session %s reset", self.session_id)

    def _scan_red_flags(self, question: QuestionTemplate, answer: Any) -> None:
        session = self.session
        found = self.monitor.scan(answer, question.category, question=question)
        fresh = self.monitor.new_flags(found, session.red_flags)
        if not fresh:
            return
        session.red_flags.extend(fresh)
        # Urgency only ever rises within a session
        session.urgency = max_urgency(session.urgency, self.monitor.aggregate_urgency(fresh))
        logger.warning("Session %s: red flag(s) %s detected, urgency now %s",
                       self.session_id, ", ".join(fresh), session.urgency.value)

    def _terminate_with_referral(self) -> TurnResult:
        self.referral = build_referral(self.session, self.knowledge_base, self.monitor)
        self.state = DialogueState.TERMINATED
        self.outcome = Outcome.REFERRAL
        self.pending_question_ids = []
        logger.warning("Session %s terminated with %s referral after %d question(s)",
                       self.session_id, self.referral.urgency.value, self.session.questions_asked)
        return TurnResult(
            session_id=self.session_id,
            kind=TurnKind.REFERRAL,
            referral=self.referral,
            completion_percentage=self.session.completion_percentage,
        )

    def _terminate_with_diagnosis(self) -> TurnResult:
        self.diagnosis = build_diagnosis(self.session, self.knowledge_base)
        self.state = DialogueState.TERMINATED
        self.outcome = Outcome.DIAGNOSIS
        self.pending_question_ids = []
        logger.info("Session %s concluded after %d question(s): %s",
                    self.session_id, self.session.questions_asked, self.diagnosis.summary)
        return TurnResult(
            session_id=self.session_id,
            kind=TurnKind.DIAGNOSIS,
            diagnosis=self.diagnosis,
            completion_percentage=self.session.completion_percentage,
        )
