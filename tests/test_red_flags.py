"""Unit tests for the red flag monitor."""
import pytest

from ddx_dialogue.domain.models import QuestionCategory, UrgencyLevel
from ddx_dialogue.domain.rules import RedFlagMonitor, max_urgency, requires_referral


@pytest.fixture
def monitor(default_kb):
    return RedFlagMonitor(default_kb.red_flag_patterns)


class TestTextScan:
    """Keyword and regex matching over free text."""

    def test_numbness_and_tingling(self, monitor):
        found = monitor.scan("numbness and tingling in my leg", QuestionCategory.NEUROLOGICAL)
        assert found == ["numbness"]
        assert monitor.aggregate_urgency(found) == UrgencyLevel.MODERATE

    def test_bladder_text_is_urgent(self, monitor):
        found = monitor.scan("I've become incontinent since yesterday", QuestionCategory.HISTORY)
        assert "bowel_bladder" in found
        assert monitor.aggregate_urgency(found) == UrgencyLevel.URGENT

    def test_trauma_regex_uses_word_boundaries(self, monitor):
        assert "trauma" in monitor.scan("I fell off my bike", QuestionCategory.HISTORY)
        assert "trauma" not in monitor.scan("the fellowship of physios", QuestionCategory.HISTORY)
        assert "trauma" not in monitor.scan("the pain feels dull", QuestionCategory.HISTORY)

    def test_category_scoped_pattern(self, monitor):
        # Progressive weakness only applies to neurological and motor questions
        assert "progressive_weakness" in monitor.scan("my leg is getting weaker", QuestionCategory.NEUROLOGICAL)
        assert "progressive_weakness" not in monitor.scan("my leg is getting weaker", QuestionCategory.FUNCTIONAL)

    def test_benign_text(self, monitor):
        assert monitor.scan("ibuprofen", QuestionCategory.HISTORY) == []
        assert monitor.scan("", QuestionCategory.HISTORY) == []


class TestStructuredScan:
    """Red flags raised by answers to structured questions."""

    def test_yes_to_red_flag_question(self, monitor, default_kb):
        question = default_kb.question("rf_bowel_bladder")
        assert monitor.scan("yes", question.category, question=question) == ["bowel_bladder"]

    def test_no_to_red_flag_question(self, monitor, default_kb):
        question = default_kb.question("rf_bowel_bladder")
        assert monitor.scan("no", question.category, question=question) == []

    def test_selected_option_fires_pattern(self, monitor, default_kb):
        question = default_kb.question("rf_general_screen")
        found = monitor.scan(["fever", "unexplained_weight_loss"], question.category, question=question)
        assert found == ["fever", "weight_loss"]
        assert monitor.aggregate_urgency(found) == UrgencyLevel.HIGH

    def test_structured_text_is_not_keyword_scanned(self, monitor, default_kb):
        # A "no" that mentions a keyword must not be read as a red flag
        question = default_kb.question("rf_cancer_history")
        assert monitor.scan("no, never had cancer", question.category, question=question) == []

    def test_free_text_question_is_scanned(self, monitor, default_kb):
        question = default_kb.question("neuro_symptom_description")
        found = monitor.scan("numbness and tingling in my leg", question.category, question=question)
        assert found == ["numbness"]


class TestUrgency:
    def test_new_flags_skips_already_detected(self):
        assert RedFlagMonitor.new_flags(["a", "b", "a", "c"], ["b"]) == ["a", "c"]

    def test_max_urgency(self):
        assert max_urgency(None, UrgencyLevel.LOW, UrgencyLevel.HIGH, UrgencyLevel.MODERATE) == UrgencyLevel.HIGH
        assert max_urgency(None) is None

    @pytest.mark.parametrize("urgency,expected", [
        (None, False),
        (UrgencyLevel.LOW, False),
        (UrgencyLevel.MODERATE, False),
        (UrgencyLevel.HIGH, True),
        (UrgencyLevel.URGENT, True),
    ])
    def test_requires_referral(self, urgency, expected):
        assert requires_referral(urgency) is expected

    def test_triggering_patterns_only_include_referral_level(self, monitor):
        triggering = monitor.triggering_patterns(["numbness", "fever", "night_pain"])
        assert [p.id for p in triggering] == ["fever"]
