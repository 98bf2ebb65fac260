import logging
import os
from typing import Any

from ddx_dialogue.application.schemas import DiagnosisResult, ReferralResult, TurnKind
from ddx_dialogue.domain.models import CHOICE_PROMPTS, PromptType, QuestionTemplate
from ddx_dialogue.infrastructure.bootstrap import build_assessment_service


logger = logging.getLogger(__name__)


DISCLAIMER = (
    "DISCLAIMER: This is NOT medical advice and NOT a diagnosis. "
    "It is a screening aid for educational purposes only. "
    "If you experience emergency symptoms, seek immediate care (call your local emergency number)."
)


def render_question(question: QuestionTemplate) -> str:
    lines = [question.prompt]
    if question.prompt_type in CHOICE_PROMPTS:
        for i, option in enumerate(question.options, start=1):
            lines.append(f"  {i}. {option.display}")
        if question.prompt_type == PromptType.MULTI_CHOICE:
            lines.append("  (separate several choices with commas)")
    elif question.prompt_type == PromptType.NUMERIC_SCALE:
        lines.append(f"  ({question.scale_min}-{question.scale_max})")
    elif question.prompt_type == PromptType.YES_NO:
        lines.append("  (yes/no)")
    return "\n".join(lines)


def read_answer(question: QuestionTemplate, raw: str) -> Any:
    """Map option numbers typed at the prompt to option values; everything else passes through as text."""
    raw = raw.strip()
    if question.prompt_type not in CHOICE_PROMPTS:
        return raw

    values = []
    for part in raw.split(","):
        part = part.strip()
        if part.isdigit() and 1 <= int(part) <= len(question.options):
            values.append(question.options[int(part) - 1].value)
        elif part:
            values.append(part)
    if question.prompt_type == PromptType.SINGLE_CHOICE:
        return values[0] if values else raw
    return values


def render_diagnosis(diagnosis: DiagnosisResult) -> str:
    lines = ["", diagnosis.summary, f"Evidence: {diagnosis.evidence_quality}", ""]
    for ranked in diagnosis.ranked_conditions[:3]:
        lines.append(f"- {ranked.name}: {ranked.posterior:.0%} ({ranked.confidence_label})")
    if diagnosis.recommendations is not None:
        lines.extend(["", diagnosis.recommendations.message])
        lines.extend(f"  * {step}" for step in diagnosis.recommendations.next_steps)
    return "\n".join(lines)


def render_referral(referral: ReferralResult) -> str:
    lines = ["", f"[{referral.urgency.value}] {referral.message}"]
    lines.extend(f"- {action}" for action in referral.actions)
    return "\n".join(lines)


def main():
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))

    service = build_assessment_service()
    print(DISCLAIMER)
    session_id, question = service.start_session()

    while question is not None:
        print()
        print(render_question(question))
        try:
            raw = input("> ")
        except EOFError:
            print()
            break

        turn = service.submit_answer(session_id, question.id, read_answer(question, raw))
        if turn.kind == TurnKind.REFERRAL:
            print(render_referral(turn.referral))
            break
        if turn.kind == TurnKind.DIAGNOSIS:
            print(render_diagnosis(turn.diagnosis))
            break
        question = turn.question

    service.end_session(session_id)


if __name__ == "__main__":
    main()
