"""Unit tests for the completeness evaluator."""
from ddx_dialogue.domain.completeness import evaluate
from ddx_dialogue.domain.models import AssessmentSession, EngineConfig, QuestionCategory


REQUIRED = {
    QuestionCategory.RED_FLAG_SCREENING,
    QuestionCategory.PAIN,
    QuestionCategory.NEUROLOGICAL,
    QuestionCategory.FUNCTIONAL,
    QuestionCategory.HISTORY,
}


def _answered(*question_ids, unparseable=()):
    session = AssessmentSession()
    for qid in question_ids:
        session.record_response(qid, "x")
    session.unparseable_question_ids.extend(unparseable)
    return session


def test_empty_session_is_incomplete(default_kb):
    result = evaluate(AssessmentSession(), default_kb, EngineConfig())
    assert not result.is_complete
    assert result.score == 0.0
    assert set(result.missing_critical) == REQUIRED


def test_full_coverage_is_complete(default_kb):
    session = _answered(
        "rf_general_screen", "rf_cancer_history",
        "pain_severity", "pain_location", "pain_night",
        "neuro_numbness",
        "functional_impact",
        "hx_age_over_50",
    )
    result = evaluate(session, default_kb, EngineConfig())
    assert result.score == 100.0
    assert result.is_complete
    assert result.missing_critical == []


def test_partial_coverage_is_weighted(default_kb):
    # One of two screening questions and one of three pain questions
    session = _answered("rf_general_screen", "pain_severity")
    result = evaluate(session, default_kb, EngineConfig())
    assert result.score == round(100 * (0.25 * 0.5 + 0.25 / 3), 1)
    assert QuestionCategory.RED_FLAG_SCREENING in result.missing_critical
    assert QuestionCategory.PAIN in result.missing_critical
    assert not result.is_complete


def test_unparseable_answers_do_not_count(default_kb):
    session = _answered("neuro_numbness", unparseable=["neuro_numbness"])
    result = evaluate(session, default_kb, EngineConfig())
    assert result.score == 0.0
    assert QuestionCategory.NEUROLOGICAL in result.missing_critical


def test_question_cap_completes(default_kb):
    session = _answered("pain_night", "pain_quality")
    result = evaluate(session, default_kb, EngineConfig(max_questions=2))
    assert result.is_complete
    assert result.reached_question_cap
    assert result.score < 80


def test_requirement_capped_by_catalog(two_condition_kb):
    # Only one screening question and no functional or history questions exist
    session = _answered("q_screen", "q_night", "q_notes")
    result = evaluate(session, two_condition_kb, EngineConfig())
    assert result.score == 100.0
    assert result.missing_critical == []


def test_threshold_is_configurable(default_kb):
    session = _answered("rf_general_screen", "rf_cancer_history", "hx_age_over_50")
    assert not evaluate(session, default_kb, EngineConfig()).is_complete
    assert evaluate(session, default_kb, EngineConfig(completion_threshold=40)).is_complete
