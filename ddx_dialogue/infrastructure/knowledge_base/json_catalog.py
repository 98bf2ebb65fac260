"""Loading knowledge bases from JSON files.

Two layouts are understood: the native one (a serialised ``KnowledgeBase``)
and the probability-table layout used by older screening tools, where each
condition carries ``symptom_probabilities`` and questions live in a separate
``{"questions": {...}}`` document.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ddx_dialogue.application.errors import KnowledgeBaseError
from ddx_dialogue.domain.models import (
    AnswerOption,
    Condition,
    KnowledgeBase,
    PromptType,
    QuestionCategory,
    QuestionTemplate,
    REGION_FINDING_KEY,
    RedFlagPattern,
    UrgencyLevel,
    evidence_key,
)


logger = logging.getLogger(__name__)


# Probability tables treat 0.5 as "no information"; likelihood weights use 1.0
TABLE_NEUTRAL_PROBABILITY = 0.5

PHASE_CATEGORIES = {
    "safety": QuestionCategory.RED_FLAG_SCREENING,
    "context": QuestionCategory.HISTORY,
    "region": QuestionCategory.PAIN,
    "functional": QuestionCategory.FUNCTIONAL,
    "differential": QuestionCategory.PAIN,
    "source_identification": QuestionCategory.NEUROLOGICAL,
}

PHASE_TOPICS = {
    "safety": "red_flag_screening",
    "region": "pain_location",
    "functional": "functional_impact",
}


def _read_json(path: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise KnowledgeBaseError(f"Cannot read catalog file '{path}': {e}") from e
    except json.JSONDecodeError as e:
        raise KnowledgeBaseError(f"Catalog file '{path}' is not valid JSON: {e}") from e


def _to_weight(probability: Any) -> Optional[float]:
    if isinstance(probability, bool) or not isinstance(probability, (int, float)):
        return None
    return float(probability) / TABLE_NEUTRAL_PROBABILITY


def convert_probability_tables(cpt_data: Dict[str, Any]) -> List[Condition]:
    conditions: List[Condition] = []
    for condition_id, entry in (cpt_data.get("cpt_tables") or {}).items():
        likelihoods: Dict[str, float] = {}
        for symptom_id, table in (entry.get("symptom_probabilities") or {}).items():
            if not isinstance(table, dict):
                continue
            if "present" in table:
                present, absent = _to_weight(table.get("present")), _to_weight(table.get("absent"))
                if present is not None:
                    likelihoods[evidence_key(symptom_id)] = present
                if absent is not None:
                    likelihoods[evidence_key(symptom_id, "no")] = absent
                continue
            for value, probability in table.items():
                weight = _to_weight(probability)
                if weight is not None:
                    likelihoods[evidence_key(symptom_id, value)] = weight

        conditions.append(Condition(
            id=condition_id,
            name=entry.get("name") or condition_id,
            prior=float(entry.get("base_probability", 0.0)),
            body_region=entry.get("body_region", "general"),
            likelihoods=likelihoods,
        ))
    return conditions


def convert_questions(question_data: Dict[str, Any], regions: List[str]) -> List[QuestionTemplate]:
    raw_questions = question_data.get("questions") or {}
    if isinstance(raw_questions, dict):
        raw_questions = [dict(q, id=q.get("id", qid)) for qid, q in raw_questions.items()]

    questions: List[QuestionTemplate] = []
    for raw in raw_questions:
        phase = raw.get("phase", "differential")
        kind = raw.get("type", "yes_no")
        options = [
            AnswerOption(value=str(o["value"]), label=o.get("text"))
            for o in raw.get("options") or []
        ]
        keys = list(raw.get("tests_symptoms") or [])

        if kind == "body_selection":
            prompt_type = PromptType.SINGLE_CHOICE
            keys = [REGION_FINDING_KEY]
            options = options or [AnswerOption(value=r) for r in regions]
        elif kind == "multiple_choice":
            prompt_type = PromptType.SINGLE_CHOICE
        else:
            prompt_type = PromptType.YES_NO

        questions.append(QuestionTemplate(
            id=raw["id"],
            category=PHASE_CATEGORIES.get(phase, QuestionCategory.PAIN),
            prompt=raw.get("text", raw["id"]),
            prompt_type=prompt_type,
            target_finding_keys=keys or [raw["id"].lower()],
            priority=float(raw.get("diagnostic_weight", 1.0)),
            discriminative_power=int(round(float(raw.get("information_gain_potential") or 0))),
            red_flag=bool(raw.get("red_flag", False)),
            topic=PHASE_TOPICS.get(phase),
            options=options,
            body_regions=list(raw.get("body_regions") or []),
        ))
    return questions


def red_flag_patterns_for(questions: List[QuestionTemplate]) -> List[RedFlagPattern]:
    """A "yes" to any red-flag yes/no question warrants referral."""
    patterns: List[RedFlagPattern] = []
    for question in questions:
        if not question.red_flag or question.prompt_type != PromptType.YES_NO:
            continue
        patterns.append(RedFlagPattern(
            id=question.id.lower(),
            name=question.prompt,
            urgency=UrgencyLevel.HIGH,
            finding_key=question.target_finding_keys[0],
        ))
    return patterns


def knowledge_base_from_tables(cpt_data: Dict[str, Any], question_data: Dict[str, Any]) -> KnowledgeBase:
    conditions = convert_probability_tables(cpt_data)
    regions = sorted({c.body_region for c in conditions if c.body_region != "general"})
    questions = convert_questions(question_data, regions)
    return KnowledgeBase(
        conditions=conditions,
        questions=questions,
        red_flag_patterns=red_flag_patterns_for(questions),
    )


def load_knowledge_base(path: str, questions_path: Optional[str] = None) -> KnowledgeBase:
    """
    Load a knowledge base from ``path``.

    Args:
        path: Native catalog JSON, or a probability-table document
        questions_path: Question document accompanying a probability-table file

    Raises:
        KnowledgeBaseError: the file is unreadable or the catalog is invalid
    """
    data = _read_json(path)
    try:
        if isinstance(data, dict) and "cpt_tables" in data:
            if questions_path is None:
                raise KnowledgeBaseError(f"Probability-table catalog '{path}' needs a questions file")
            knowledge_base = knowledge_base_from_tables(data, _read_json(questions_path))
        else:
            knowledge_base = KnowledgeBase.model_validate(data)
    except ValidationError as e:
        raise KnowledgeBaseError(f"Catalog '{path}' failed validation: {e}") from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise KnowledgeBaseError(f"Catalog '{path}' is malformed: {e!r}") from e

    logger.info("Loaded catalog %s: %d conditions, %d questions, %d red flag patterns",
                Path(path).name, len(knowledge_base.conditions), len(knowledge_base.questions),
                len(knowledge_base.red_flag_patterns))
    return knowledge_base


def save_knowledge_base(knowledge_base: KnowledgeBase, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(knowledge_base.model_dump(mode="json"), f, indent=2)
