"""Unit tests for posterior belief updates."""
import math

import pytest

from ddx_dialogue.domain.belief import (
    confidence_label,
    diagnostic_confidence,
    prior_beliefs,
    rank_conditions,
    supporting_findings,
    top_conditions,
    update_beliefs,
)
from ddx_dialogue.domain.models import (
    BooleanFinding,
    ChoiceFinding,
    ClinicalFindings,
    Condition,
    FindingCategory,
    KnowledgeBase,
    PromptType,
    QuestionCategory,
    QuestionTemplate,
    ScaleFinding,
    SymptomCombination,
    TextFinding,
)


def _findings(*entries):
    findings = ClinicalFindings()
    for category, finding in entries:
        findings.record(category, finding)
    return findings


def _night_pain(present=True):
    return FindingCategory.PAIN, BooleanFinding(key="pain_night", question_id="q_night", present=present)


class TestPriors:
    """Beliefs before any evidence."""

    def test_priors_are_normalized(self):
        kb = KnowledgeBase(
            conditions=[Condition(id="a", name="A", prior=3), Condition(id="b", name="B", prior=1)],
            questions=[QuestionTemplate(id="q", category=QuestionCategory.PAIN, prompt="?",
                                        prompt_type=PromptType.YES_NO, target_finding_keys=["x"])],
        )
        priors = prior_beliefs(kb)
        assert priors == pytest.approx({"a": 0.75, "b": 0.25})

    def test_zero_priors_fall_back_to_uniform(self):
        kb = KnowledgeBase(
            conditions=[Condition(id="a", name="A", prior=0), Condition(id="b", name="B", prior=0)],
            questions=[QuestionTemplate(id="q", category=QuestionCategory.PAIN, prompt="?",
                                        prompt_type=PromptType.YES_NO, target_finding_keys=["x"])],
        )
        assert prior_beliefs(kb) == pytest.approx({"a": 0.5, "b": 0.5})

    def test_no_findings_is_insufficient_data(self, two_condition_kb):
        state = update_beliefs(ClinicalFindings(), two_condition_kb)
        assert state.insufficient_data
        assert state.posteriors == pytest.approx({"C1": 0.6, "C2": 0.4})

    def test_text_findings_carry_no_evidence(self, two_condition_kb):
        findings = _findings((FindingCategory.NEUROLOGICAL, TextFinding(key="notes", question_id="q_notes", text="hi")))
        state = update_beliefs(findings, two_condition_kb)
        assert state.insufficient_data


class TestUpdate:
    """Naive-Bayes updates over recorded findings."""

    def test_night_pain_favours_c1(self, two_condition_kb):
        state = update_beliefs(_findings(_night_pain()), two_condition_kb)
        assert state.posteriors["C1"] > state.posteriors["C2"]
        # 0.6 * 0.9 / (0.6 * 0.9 + 0.4 * 0.1)
        assert state.posteriors["C1"] == pytest.approx(0.54 / 0.58)
        assert not state.insufficient_data

    def test_absent_night_pain_favours_c2(self, two_condition_kb):
        state = update_beliefs(_findings(_night_pain(present=False)), two_condition_kb)
        assert state.posteriors["C2"] > state.posteriors["C1"]

    def test_posteriors_sum_to_one(self, default_kb):
        findings = _findings(
            (FindingCategory.PAIN, ChoiceFinding(key="pain_location", question_id="pain_location", values=["knee"])),
            (FindingCategory.PAIN, ScaleFinding(key="pain_intensity", question_id="pain_severity", value=7)),
            (FindingCategory.HISTORY, BooleanFinding(key="age_over_50", question_id="hx_age_over_50", present=True)),
        )
        state = update_beliefs(findings, default_kb)
        assert math.fsum(state.posteriors.values()) == pytest.approx(1.0)
        assert set(state.posteriors) == {c.id for c in default_kb.conditions}

    def test_unknown_evidence_is_neutral(self, two_condition_kb):
        findings = _findings(
            (FindingCategory.MOTOR, BooleanFinding(key="never_heard_of_it", question_id="q", present=True)),
        )
        state = update_beliefs(findings, two_condition_kb)
        assert state.posteriors == pytest.approx({"C1": 0.6, "C2": 0.4})

    def test_collapse_falls_back_to_uniform(self):
        kb = KnowledgeBase(
            conditions=[
                Condition(id="a", name="A", prior=0.5, likelihoods={"x": 0.0}),
                Condition(id="b", name="B", prior=0.5, likelihoods={"x": 0.0}),
            ],
            questions=[QuestionTemplate(id="q", category=QuestionCategory.PAIN, prompt="?",
                                        prompt_type=PromptType.YES_NO, target_finding_keys=["x"])],
        )
        findings = _findings((FindingCategory.PAIN, BooleanFinding(key="x", question_id="q", present=True)))
        state = update_beliefs(findings, kb)
        assert state.low_confidence
        assert state.posteriors == pytest.approx({"a": 0.5, "b": 0.5})

    def test_symptom_combination_boosts_condition(self, two_condition_kb):
        boosted = two_condition_kb.model_copy(update={
            "combinations": [SymptomCombination(condition_id="C2", finding_keys=["pain_night"], weight=20.0)],
        })
        plain = update_beliefs(_findings(_night_pain()), two_condition_kb)
        combined = update_beliefs(_findings(_night_pain()), boosted)
        assert combined.posteriors["C2"] > plain.posteriors["C2"]
        assert math.fsum(combined.posteriors.values()) == pytest.approx(1.0)


class TestRankingAndConfidence:
    def test_rank_breaks_ties_by_id(self):
        ranked = rank_conditions({"b": 0.4, "a": 0.4, "c": 0.2})
        assert [cid for cid, _ in ranked] == ["a", "b", "c"]

    def test_top_conditions(self):
        assert top_conditions({"a": 0.1, "b": 0.6, "c": 0.3}, 2) == [("b", 0.6), ("c", 0.3)]

    def test_confidence_is_zero_for_uniform(self):
        assert diagnostic_confidence({"a": 0.5, "b": 0.5}) == pytest.approx(0.0)

    def test_confidence_is_one_for_certainty(self):
        assert diagnostic_confidence({"a": 1.0, "b": 0.0}) == pytest.approx(1.0)

    @pytest.mark.parametrize("probability,label", [
        (0.9, "Very High"), (0.7, "High"), (0.5, "Moderate"), (0.3, "Low"), (0.1, "Very Low"),
    ])
    def test_confidence_labels(self, probability, label):
        assert confidence_label(probability) == label


def test_supporting_findings(default_kb):
    radiculopathy = default_kb.condition("lumbar_radiculopathy")
    evidence = ["pain_radiation=below_knee", "numbness_tingling", "relieving=rest"]
    supporting = supporting_findings(radiculopathy, evidence, default_kb.conditions)
    assert "pain_radiation=below_knee" in supporting
    assert "numbness_tingling" in supporting
    assert "relieving=rest" not in supporting
