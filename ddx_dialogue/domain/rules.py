from typing import Any, Iterable, List, Optional

from .answers import interpret_answer
from .models import PromptType, QuestionCategory, QuestionTemplate, RedFlagPattern, UrgencyLevel


# Aggregate urgency at or above this level ends the dialogue with a referral
REFERRAL_URGENCY = UrgencyLevel.HIGH


def max_urgency(*levels: Optional[UrgencyLevel]) -> Optional[UrgencyLevel]:
    present = [level for level in levels if level is not None]
    if not present:
        return None
    return max(present, key=lambda level: level.rank)


def requires_referral(urgency: Optional[UrgencyLevel]) -> bool:
    return urgency is not None and urgency.rank >= REFERRAL_URGENCY.rank


class RedFlagMonitor:
    """Scans answers for safety-critical patterns, independent of diagnostic belief."""

    def __init__(self, patterns: Iterable[RedFlagPattern]):
        self.patterns = {p.id: p for p in patterns}

    def scan(
        self,
        response: Any,
        question_category: Optional[QuestionCategory],
        question: Optional[QuestionTemplate] = None,
    ) -> List[str]:
        """
        Return the ids of every red flag pattern the response triggers.

        Free text is matched against keyword and regex sets of the patterns
        scoped to ``question_category``. When ``question`` is given, a "yes" to a
        red-flag question fires the patterns bound to its finding keys and any
        chosen option carrying a red flag fires that pattern.
        """
        triggered: List[str] = []

        if question is not None:
            triggered.extend(self._scan_structured(question, response))

        if isinstance(response, str) and (question is None or question.prompt_type == PromptType.FREE_TEXT):
            triggered.extend(self.scan_text(response, question_category))

        return self.new_flags(triggered, [])

    def scan_text(self, text: str, question_category: Optional[QuestionCategory] = None) -> List[str]:
        if not text or not text.strip():
            return []
        return [
            pattern.id
            for pattern in self.patterns.values()
            if pattern.applies_to(question_category) and pattern.matches_text(text)
        ]

    def _scan_structured(self, question: QuestionTemplate, response: Any) -> List[str]:
        parsed = interpret_answer(question, response)
        if not parsed.parseable:
            return []

        triggered: List[str] = []
        if question.red_flag and question.prompt_type == PromptType.YES_NO:
            if any(f.positive for f in parsed.findings):
                keys = set(question.target_finding_keys)
                triggered.extend(p.id for p in self.patterns.values() if p.finding_key in keys)

        for value in parsed.selected_values:
            option = question.option(value)
            if option is not None and option.red_flag in self.patterns:
                triggered.append(option.red_flag)
        return triggered

    @staticmethod
    def new_flags(found: Iterable[str], already_detected: Iterable[str]) -> List[str]:
        seen = set(already_detected)
        fresh: List[str] = []
        for flag in found:
            if flag not in seen:
                seen.add(flag)
                fresh.append(flag)
        return fresh

    def aggregate_urgency(self, pattern_ids: Iterable[str]) -> Optional[UrgencyLevel]:
        return max_urgency(*(self.patterns[pid].urgency for pid in pattern_ids if pid in self.patterns))

    def triggering_patterns(self, pattern_ids: Iterable[str]) -> List[RedFlagPattern]:
        """Detected patterns that on their own warrant a referral."""
        return [
            self.patterns[pid]
            for pid in pattern_ids
            if pid in self.patterns and requires_referral(self.patterns[pid].urgency)
        ]
