"""Unit tests for answer interpretation."""
import pytest

from ddx_dialogue.domain.answers import (
    interpret_answer,
    parse_number,
    parse_multi_choice,
    parse_scale,
    parse_single_choice,
    parse_yes_no,
)
from ddx_dialogue.domain.models import BooleanFinding, ChoiceFinding, ScaleFinding, TextFinding


class TestYesNo:
    @pytest.mark.parametrize("answer", [True, 1, "yes", "Yes, sometimes", "yeah", " Y "])
    def test_yes(self, answer):
        assert parse_yes_no(answer) is True

    @pytest.mark.parametrize("answer", [False, 0, "no", "No.", "never", "nope not really"])
    def test_no(self, answer):
        assert parse_yes_no(answer) is False

    @pytest.mark.parametrize("answer", ["maybe", "", None, 5, ["yes"]])
    def test_unparseable(self, answer):
        assert parse_yes_no(answer) is None


class TestScale:
    def test_number_in_range(self):
        assert parse_scale(7) == 7.0
        assert parse_scale("about 4 I guess") == 4.0

    def test_words(self):
        assert parse_scale("it's moderate") == 5.0
        assert parse_scale("very bad") == 9.0
        assert parse_scale("the worst ever") == 10.0

    def test_out_of_range(self):
        assert parse_scale(11) is None
        assert parse_scale(-1) is None

    def test_gibberish(self):
        assert parse_scale("purple") is None


class TestChoice:
    def test_single_choice_by_value_or_label(self, default_kb):
        options = default_kb.question("pain_location").options
        assert parse_single_choice("knee", options) == "knee"
        assert parse_single_choice("Lower back", options) == "lumbar_spine"
        assert parse_single_choice("mostly my neck really", options) == "cervical_spine"

    def test_single_choice_no_match(self, default_kb):
        options = default_kb.question("pain_location").options
        assert parse_single_choice("elbow", options) is None

    def test_multi_choice_list(self, default_kb):
        options = default_kb.question("aggravating_factors").options
        assert parse_multi_choice(["sitting", "stairs"], options) == ["sitting", "stairs"]

    def test_multi_choice_text(self, default_kb):
        options = default_kb.question("aggravating_factors").options
        assert parse_multi_choice("walking and standing", options) == ["walking", "standing"]

    def test_multi_choice_none(self, default_kb):
        options = default_kb.question("rf_general_screen").options
        assert parse_multi_choice("none of those", options) == ["none"]
        assert parse_multi_choice([], options) == ["none"]


class TestInterpretAnswer:
    """Findings derived from answers."""

    def test_yes_no_finding(self, default_kb):
        parsed = interpret_answer(default_kb.question("pain_night"), "yes")
        assert parsed.parseable
        assert parsed.findings == [BooleanFinding(key="pain_night", question_id="pain_night", present=True)]
        assert parsed.findings[0].evidence_keys() == ["pain_night"]

    def test_negative_yes_no_evidence(self, default_kb):
        parsed = interpret_answer(default_kb.question("pain_night"), "no")
        assert parsed.findings[0].evidence_keys() == ["pain_night=no"]

    def test_scale_bucket_evidence(self, default_kb):
        parsed = interpret_answer(default_kb.question("pain_severity"), 8)
        finding = parsed.findings[0]
        assert isinstance(finding, ScaleFinding)
        assert finding.bucket == "severe"
        assert finding.evidence_keys() == ["pain_intensity=severe"]

    def test_choice_evidence(self, default_kb):
        parsed = interpret_answer(default_kb.question("pain_location"), "Knee")
        finding = parsed.findings[0]
        assert isinstance(finding, ChoiceFinding)
        assert finding.evidence_keys() == ["pain_location=knee"]
        assert parsed.selected_values == ["knee"]

    def test_free_text_is_stored(self, default_kb):
        parsed = interpret_answer(default_kb.question("hx_medications"), "  ibuprofen  ")
        assert parsed.text == "ibuprofen"
        assert isinstance(parsed.findings[0], TextFinding)
        assert parsed.findings[0].evidence_keys() == []

    @pytest.mark.parametrize("question_id,answer", [
        ("pain_night", "perhaps"),
        ("pain_severity", "dunno"),
        ("pain_location", "my elbow"),
        ("hx_medications", "   "),
    ])
    def test_unparseable_answers_never_raise(self, default_kb, question_id, answer):
        parsed = interpret_answer(default_kb.question(question_id), answer)
        assert not parsed.parseable
        assert parsed.findings == []


class TestScreeningText:
    """Typed answers to the screening checklist."""

    @pytest.mark.parametrize("answer", ["no changes", "only my back pain", "I have not lost weight"])
    def test_single_shared_word_selects_nothing(self, default_kb, answer):
        parsed = interpret_answer(default_kb.question("rf_general_screen"), answer)
        assert not parsed.parseable
        assert parsed.selected_values == []

    def test_option_named_in_full(self, default_kb):
        options = default_kb.question("rf_general_screen").options
        assert parse_multi_choice("chest pain and a fever", options) == ["fever", "chest_pain"]
        assert parse_multi_choice("some weight loss", options) == ["unexplained_weight_loss"]

    def test_denied_options_are_not_selected(self, default_kb):
        options = default_kb.question("rf_general_screen").options
        assert parse_multi_choice("no fever or chest pain", options) == ["none"]
        assert parse_multi_choice("no fever, but chest pain", options) == ["chest_pain"]

    def test_negated_single_choice(self, default_kb):
        options = default_kb.question("pain_location").options
        assert parse_single_choice("not my neck, my lower back", options) == "lumbar_spine"


@pytest.mark.parametrize("answer", ["not sure", "Not certain", "I don't know", "unsure", "no idea", "not much"])
def test_uncertain_yes_no_is_unparseable(default_kb, answer):
    assert parse_yes_no(answer) is None
    parsed = interpret_answer(default_kb.question("rf_bowel_bladder"), answer)
    assert not parsed.parseable
    assert parsed.findings == []


@pytest.mark.parametrize("answer", ["not", "not really", "Not at all."])
def test_plain_not_is_a_no(answer):
    assert parse_yes_no(answer) is False


def test_huge_numbers_are_unparseable():
    assert parse_number(10 ** 400) is None
    assert parse_scale(10 ** 400) is None
    assert parse_number("9" * 400) is None
