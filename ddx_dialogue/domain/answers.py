"""Turn raw patient answers into typed findings."""
import math
import re
from typing import Any, List, Optional

from pydantic import BaseModel

from .models import (
    AnswerOption,
    BooleanFinding,
    ChoiceFinding,
    Finding,
    NEGATIVE_CHOICES,
    NumericFinding,
    PromptType,
    QuestionTemplate,
    ScaleFinding,
    TextFinding,
)


YES_WORDS = {"yes", "y", "yeah", "yep", "yup", "true", "definitely", "sometimes", "often"}
NO_WORDS = {"no", "n", "nope", "false", "not", "never", "none", "nah"}
NO_PHRASES = ("not really", "not at all", "not that i know of", "not that i've noticed")
UNSURE_PHRASES = (
    "not sure", "unsure", "not certain", "uncertain", "don't know", "dont know", "do not know",
    "no idea", "can't say", "cannot say", "can't remember", "don't remember", "maybe", "possibly",
)

# Words that cancel an option mentioned after them in the same clause
NEGATION_WORDS = {"no", "not", "never", "without", "nor", "none", "denies", "deny", "haven't", "hasn't",
                  "don't", "didn't", "dont", "didnt", "havent", "hasnt"}
_CLAUSE_RE = re.compile(r"[,;.!?]+|\bbut\b")
_WORD_RE = re.compile(r"[a-z0-9_']+")

# Longest phrases are matched first so "very bad" wins over "bad"
SCALE_WORDS = {
    "no pain": 0, "zero": 0, "none": 0,
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "slight": 2, "mild": 2,
    "moderate": 5, "medium": 5,
    "bad": 7, "severe": 8,
    "very bad": 9, "terrible": 9,
    "worst": 10, "extreme": 10, "unbearable": 10,
}

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


class ParsedAnswer(BaseModel):
    question_id: str
    parseable: bool
    findings: List[Finding] = []
    selected_values: List[str] = []
    text: Optional[str] = None


def _normalize_text(answer: Any) -> Optional[str]:
    if not isinstance(answer, str):
        return None
    text = answer.strip().lower()
    return text or None


def parse_yes_no(answer: Any) -> Optional[bool]:
    if isinstance(answer, bool):
        return answer
    if isinstance(answer, (int, float)):
        if answer in (0, 1):
            return bool(answer)
        return None
    text = _normalize_text(answer)
    if text is None:
        return None
    if any(phrase in text for phrase in UNSURE_PHRASES):
        return None
    if text.startswith(NO_PHRASES):
        return False
    words = re.split(r"[\s,.!;:]+", text)
    first_word = words[0]
    if first_word in YES_WORDS:
        return True
    # A bare "not" is a no; "not <something>" is too vague to record
    if first_word == "not" and any(words[1:]):
        return None
    if first_word in NO_WORDS:
        return False
    return None


def parse_number(answer: Any) -> Optional[float]:
    if isinstance(answer, bool):
        return None
    if isinstance(answer, (int, float)):
        try:
            return float(answer) if math.isfinite(answer) else None
        except OverflowError:
            return None
    text = _normalize_text(answer)
    if text is None:
        return None
    match = _NUMBER_RE.search(text)
    if not match:
        return None
    value = float(match.group())
    return value if math.isfinite(value) else None


def parse_scale(answer: Any, scale_min: float = 0, scale_max: float = 10) -> Optional[float]:
    value = parse_number(answer)
    if value is None:
        text = _normalize_text(answer)
        if text is not None:
            for phrase in sorted(SCALE_WORDS, key=len, reverse=True):
                if re.search(rf"\b{re.escape(phrase)}\b", text):
                    value = float(SCALE_WORDS[phrase])
                    break
    if value is None or value < scale_min or value > scale_max:
        return None
    return value


def _option_terms(option: AnswerOption) -> List[str]:
    terms = [option.value.lower(), option.value.replace("_", " ").lower()]
    if option.label:
        terms.append(option.label.lower())
    return terms


def _phrase_position(words: List[str], phrase: str) -> Optional[int]:
    target = _WORD_RE.findall(phrase)
    if not target:
        return None
    for i in range(len(words) - len(target) + 1):
        if words[i:i + len(target)] == target:
            return i
    return None


def _mention_position(words: List[str], option: AnswerOption, strict: bool) -> Optional[int]:
    """
    Index of the first word where ``option`` is mentioned in a clause, or None.

    A whole value or label counts as a mention. Failing that, enough of the
    option's significant words must appear as whole words: at least half of
    them, or more than half when ``strict``.
    """
    positions = [p for p in (_phrase_position(words, t) for t in _option_terms(option)) if p is not None]
    if positions:
        return min(positions)
    significant = [w for w in _WORD_RE.findall(option.display.lower()) if len(w) > 2]
    found = [words.index(w) for w in significant if w in words]
    if not significant or not found:
        return None
    enough = len(found) * 2 > len(significant) if strict else len(found) * 2 >= len(significant)
    return min(found) if enough else None


def _mentioned_options(text: str, options: List[AnswerOption], strict: bool):
    """Split the answer into clauses and sort mentioned options into affirmed and negated."""
    affirmed: List[str] = []
    negated: List[str] = []
    for clause in _CLAUSE_RE.split(text):
        words = _WORD_RE.findall(clause)
        for option in options:
            position = _mention_position(words, option, strict)
            if position is None:
                continue
            bucket = negated if NEGATION_WORDS.intersection(words[:position]) else affirmed
            if option.value not in bucket:
                bucket.append(option.value)
    return affirmed, [v for v in negated if v not in affirmed]


def parse_single_choice(answer: Any, options: List[AnswerOption]) -> Optional[str]:
    text = _normalize_text(answer)
    if text is None:
        return None

    # Exact value or label
    for option in options:
        if text in _option_terms(option):
            return option.value

    affirmed, _ = _mentioned_options(text, options, strict=False)
    return affirmed[0] if len(affirmed) == 1 else None


def parse_multi_choice(answer: Any, options: List[AnswerOption]) -> Optional[List[str]]:
    none_option = next((o.value for o in options if o.value in NEGATIVE_CHOICES), None)

    if isinstance(answer, (list, tuple, set)):
        if not answer:
            return [none_option] if none_option else []
        selected: List[str] = []
        for item in answer:
            value = parse_single_choice(item, options)
            if value is not None and value not in selected:
                selected.append(value)
        return selected or None

    text = _normalize_text(answer)
    if text is None:
        return None
    if text in NEGATIVE_CHOICES or text.startswith(("none", "nothing")):
        return [none_option] if none_option else []

    affirmed, negated = _mentioned_options(text, options, strict=True)
    affirmed = [v for v in affirmed if v != none_option]
    if affirmed:
        return affirmed
    if negated:
        # Every option mentioned was denied
        return [none_option] if none_option else []
    return None


def interpret_answer(question: QuestionTemplate, answer: Any) -> ParsedAnswer:
    """
    Convert a raw answer into findings for every target finding key.

    Args:
        question: Template the answer responds to
        answer: Raw value from the caller (bool, number, option value(s) or text)

    Returns:
        ParsedAnswer. Unparseable answers come back with ``parseable=False`` and
        no findings; nothing here raises.
    """
    def unparseable() -> ParsedAnswer:
        return ParsedAnswer(question_id=question.id, parseable=False)

    keys = question.target_finding_keys
    prompt_type = question.prompt_type

    if prompt_type == PromptType.YES_NO:
        present = parse_yes_no(answer)
        if present is None:
            return unparseable()
        findings = [BooleanFinding(key=k, question_id=question.id, present=present) for k in keys]
        return ParsedAnswer(question_id=question.id, parseable=True, findings=findings)

    if prompt_type == PromptType.NUMERIC_SCALE:
        value = parse_scale(answer, question.scale_min, question.scale_max)
        if value is None:
            return unparseable()
        findings = [
            ScaleFinding(key=k, question_id=question.id, value=value,
                         scale_min=question.scale_min, scale_max=question.scale_max)
            for k in keys
        ]
        return ParsedAnswer(question_id=question.id, parseable=True, findings=findings)

    if prompt_type == PromptType.SINGLE_CHOICE:
        value = parse_single_choice(answer, question.options)
        if value is None:
            return unparseable()
        findings = [ChoiceFinding(key=k, question_id=question.id, values=[value]) for k in keys]
        return ParsedAnswer(question_id=question.id, parseable=True, findings=findings, selected_values=[value])

    if prompt_type == PromptType.MULTI_CHOICE:
        values = parse_multi_choice(answer, question.options)
        if values is None:
            return unparseable()
        findings = [ChoiceFinding(key=k, question_id=question.id, values=values) for k in keys]
        return ParsedAnswer(question_id=question.id, parseable=True, findings=findings, selected_values=values)

    if prompt_type == PromptType.NUMERIC:
        number = parse_number(answer)
        if number is None:
            return unparseable()
        findings = [NumericFinding(key=k, question_id=question.id, value=number) for k in keys]
        return ParsedAnswer(question_id=question.id, parseable=True, findings=findings)

    # Free text
    if answer is None or isinstance(answer, (list, dict)):
        return unparseable()
    text = str(answer).strip()
    if not text:
        return unparseable()
    findings = [TextFinding(key=k, question_id=question.id, text=text) for k in keys]
    return ParsedAnswer(question_id=question.id, parseable=True, findings=findings, text=text)
