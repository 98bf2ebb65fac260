import json
import logging
from typing import Optional

from ddx_dialogue.application.ports import LLMPort
from ddx_dialogue.application.schemas import ScreeningContext
from ddx_dialogue.domain.models import KnowledgeBase


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are a physiotherapy screening assistant choosing the next question in a structured "
    "assessment. You never diagnose. Pick exactly one question from the candidate list that "
    "best separates the leading conditions, preferring safety screening when unsure. "
    "Return a strict JSON object matching the schema provided."
)


def build_schema_instructions() -> str:
    return (
        "You MUST return ONLY a valid JSON object. Do NOT include any markdown, code fences, or explanations. "
        "JSON keys: question_id (string, one of the candidate ids), reasoning (string).\n"
        "Start your response with { and end with }. Return valid JSON only."
    )


def build_user_prompt(context: ScreeningContext, knowledge_base: KnowledgeBase) -> str:
    lines = [
        "Body region: " + str(context.body_region or "unknown"),
        "Answers so far: " + json.dumps(context.collected_responses, default=str),
        "Red flags detected: " + (", ".join(context.red_flags_detected) or "none"),
        "Leading conditions: " + (
            ", ".join(f"{cid} ({p:.0%})" for cid, p in context.top_conditions.items()) or "unknown"
        ),
        "Candidate questions:",
    ]
    for question_id in context.candidate_question_ids:
        question = knowledge_base.question(question_id)
        if question is not None:
            lines.append(f"- {question.id} [{question.category.value}]: {question.prompt}")
    return "\n".join(lines)


def extract_json_object(raw: str) -> str:
    raw = raw.strip()
    # Models sometimes wrap the object in prose or code fences
    if not raw.startswith('{'):
        start_idx = raw.find('{')
        if start_idx != -1:
            raw = raw[start_idx:]
    if not raw.endswith('}'):
        end_idx = raw.rfind('}')
        if end_idx != -1:
            raw = raw[:end_idx + 1]
    return raw


class LLMQuestionAdvisor:
    """Recommends the next question by prompting a language model."""

    def __init__(self, llm: LLMPort, knowledge_base: KnowledgeBase):
        self.llm = llm
        self.knowledge_base = knowledge_base

    def recommend_next_question(self, context: ScreeningContext) -> Optional[str]:
        if not context.candidate_question_ids:
            return None

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_schema_instructions()},
            {"role": "user", "content": build_user_prompt(context, self.knowledge_base)},
        ]
        raw = self.llm.generate_json(messages)

        try:
            data = json.loads(extract_json_object(raw))
        except json.JSONDecodeError as e:
            logger.warning("Advisor reply was not valid JSON: %s. Raw: %s", e, raw[:200])
            return None

        question_id = data.get("question_id") if isinstance(data, dict) else None
        if question_id not in context.candidate_question_ids:
            logger.info("Advisor chose '%s', which is not a candidate", question_id)
            return None
        return question_id
