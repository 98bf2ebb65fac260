from collections import Counter
from typing import List

from .models import AssessmentSession, CompletenessResult, EngineConfig, KnowledgeBase, QuestionCategory


def evaluate(session: AssessmentSession, knowledge_base: KnowledgeBase, config: EngineConfig) -> CompletenessResult:
    """
    Score how much of the required clinical picture has been gathered.

    Each required category contributes ``weight * min(answered / required, 1)``.
    A category's requirement is capped at the number of catalog questions it
    has, so a sparse catalog can still reach a full score. Unparseable answers
    do not count towards coverage and always list their category as missing.
    """
    answered: Counter = Counter()
    unparseable: List[QuestionCategory] = []
    for question_id in session.answered_question_ids:
        question = knowledge_base.question(question_id)
        if question is None:
            continue
        if question_id in session.unparseable_question_ids:
            if question.category not in unparseable:
                unparseable.append(question.category)
            continue
        answered[question.category] += 1

    total_weight = 0.0
    weighted = 0.0
    missing: List[QuestionCategory] = []
    for category, requirement in config.category_requirements.items():
        required = min(requirement.required, len(knowledge_base.questions_in(category)))
        coverage = 1.0 if required == 0 else min(answered[category] / required, 1.0)
        total_weight += requirement.weight
        weighted += requirement.weight * coverage
        if answered[category] < required:
            missing.append(category)

    for category in unparseable:
        if category not in missing:
            missing.append(category)

    score = 100.0 * weighted / total_weight if total_weight > 0 else 100.0
    score = round(min(score, 100.0), 1)
    reached_cap = session.questions_asked >= config.max_questions

    return CompletenessResult(
        is_complete=score >= config.completion_threshold or reached_cap,
        score=score,
        missing_critical=missing,
        answered=session.questions_asked,
        reached_question_cap=reached_cap,
    )
