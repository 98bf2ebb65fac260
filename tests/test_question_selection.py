"""Unit tests for next-question selection."""
import pytest

from ddx_dialogue.application.question_selection import (
    AdvisedQuestionSelector,
    DiscriminativeQuestionSelector,
    build_question_selector,
    build_screening_context,
)
from ddx_dialogue.domain.answers import interpret_answer
from ddx_dialogue.domain.belief import prior_beliefs, update_beliefs
from ddx_dialogue.domain.models import AssessmentSession, EngineConfig


def _session(kb, **answers):
    session = AssessmentSession(posteriors=prior_beliefs(kb))
    for question_id, answer in answers.items():
        question = kb.question(question_id)
        session.record_response(question_id, answer)
        for finding in interpret_answer(question, answer).findings:
            session.findings.record(question.finding_category, finding)
    session.posteriors = update_beliefs(session.findings, kb).posteriors
    return session


@pytest.fixture
def selector(default_kb):
    return DiscriminativeQuestionSelector(default_kb, top_k=3)


class TestDiscriminativeSelector:
    """Local selection order: safety, discrimination, fallback."""

    def test_first_question_is_general_screen(self, selector, default_kb):
        assert selector.select_next(_session(default_kb)).id == "rf_general_screen"

    def test_location_separates_leading_conditions(self, selector, default_kb):
        session = _session(default_kb, rf_general_screen=["none"])
        assert selector.select_next(session).id == "pain_location"

    def test_never_repeats_answered_questions(self, selector, default_kb):
        session = _session(default_kb, rf_general_screen=["none"], pain_location="knee")
        question = selector.select_next(session)
        assert question.id not in session.answered_question_ids

    def test_region_gating(self, selector, default_kb):
        session = _session(default_kb, rf_general_screen=["none"], pain_location="knee")
        available = {q.id for q in selector.available_questions(session)}
        assert "obj_clicking" in available
        assert "rom_neck_rotation" not in available
        assert "rf_bowel_bladder" not in available

    def test_region_questions_hidden_until_region_known(self, selector, default_kb):
        available = {q.id for q in selector.available_questions(_session(default_kb))}
        assert "rom_lumbar_flexion" not in available
        assert "pain_night" in available

    def test_safety_question_for_implicated_category(self, selector, default_kb):
        session = _session(default_kb, rf_general_screen=["none"], pain_location="lumbar_spine",
                           neuro_numbness="yes")
        question = selector.select_next(session)
        assert question.red_flag
        assert question.id in {"rf_bowel_bladder", "rf_saddle_numbness", "neuro_progressive_weakness"}

    def test_spread(self, default_kb):
        leaders = [default_kb.condition("nonspecific_low_back_pain"), default_kb.condition("knee_osteoarthritis")]
        spread = DiscriminativeQuestionSelector.spread(default_kb.question("pain_location"), leaders)
        assert spread == pytest.approx(3.95)
        assert DiscriminativeQuestionSelector.spread(default_kb.question("pain_location"), leaders[:1]) == 0.0

    def test_fallback_follows_topic_order(self, selector, default_kb):
        candidates = [default_kb.question(qid) for qid in ("hx_medications", "pain_severity", "onset_mechanism")]
        assert selector.fallback_question(candidates).id == "pain_severity"

    def test_batch_has_distinct_questions(self, selector, default_kb):
        session = _session(default_kb, rf_general_screen=["none"])
        batch = selector.select_batch(session, 4)
        assert len(batch) == 4
        assert len({q.id for q in batch}) == 4
        assert batch[0].id == "pain_location"

    def test_nothing_left(self, two_condition_kb):
        selector = DiscriminativeQuestionSelector(two_condition_kb)
        session = _session(two_condition_kb, q_screen="no", q_night="yes", q_notes="fine")
        assert selector.select_next(session) is None
        assert selector.select_batch(session, 3) == []


class DummyAdvisor:
    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.contexts = []

    def recommend_next_question(self, context):
        self.contexts.append(context)
        if self.error:
            raise self.error
        return self.answer


class TestAdvisedSelector:
    """Remote advice with local fallback."""

    def test_uses_advice(self, selector, default_kb):
        advisor = DummyAdvisor(answer="hx_medications")
        advised = AdvisedQuestionSelector(advisor, selector)
        session = _session(default_kb, rf_general_screen=["none"])
        assert advised.select_next(session).id == "hx_medications"
        assert "hx_medications" in advisor.contexts[0].candidate_question_ids

    def test_falls_back_on_error(self, selector, default_kb):
        advised = AdvisedQuestionSelector(DummyAdvisor(error=ConnectionError("down")), selector)
        session = _session(default_kb, rf_general_screen=["none"])
        assert advised.select_next(session).id == "pain_location"

    def test_ignores_answered_or_unknown_ids(self, selector, default_kb):
        session = _session(default_kb, rf_general_screen=["none"])
        for bad in ("rf_general_screen", "no_such_question"):
            advised = AdvisedQuestionSelector(DummyAdvisor(answer=bad), selector)
            assert advised.select_next(session).id == "pain_location"

    def test_safety_questions_are_not_delegated(self, selector, default_kb):
        advisor = DummyAdvisor(answer="hx_medications")
        advised = AdvisedQuestionSelector(advisor, selector)
        session = _session(default_kb, rf_general_screen=["none"], pain_location="lumbar_spine",
                           neuro_numbness="yes")
        assert advised.select_next(session).red_flag
        assert advisor.contexts == []

    def test_batch_starts_with_advice(self, selector, default_kb):
        advised = AdvisedQuestionSelector(DummyAdvisor(answer="hx_medications"), selector)
        batch = advised.select_batch(_session(default_kb, rf_general_screen=["none"]), 3)
        assert batch[0].id == "hx_medications"
        assert len({q.id for q in batch}) == 3


def test_screening_context_uses_camel_case(default_kb):
    session = _session(default_kb, rf_general_screen=["none"], pain_location="shoulder")
    context = build_screening_context(session, [default_kb.question("rom_painful_arc")])
    payload = context.model_dump(by_alias=True)
    assert payload["sessionId"] == session.session_id
    assert payload["bodyRegion"] == "shoulder"
    assert payload["answeredQuestionIds"] == ["rf_general_screen", "pain_location"]
    assert payload["candidateQuestionIds"] == ["rom_painful_arc"]
    assert len(payload["topConditions"]) == 3


def test_build_question_selector(default_kb):
    assert isinstance(build_question_selector(default_kb), DiscriminativeQuestionSelector)
    advised = build_question_selector(default_kb, EngineConfig(top_k=2), advisor=DummyAdvisor())
    assert isinstance(advised, AdvisedQuestionSelector)
    assert advised.fallback.top_k == 2
