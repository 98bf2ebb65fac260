"""Shared fixtures for engine tests."""
import pytest

from ddx_dialogue.application.conversation import ConversationManager
from ddx_dialogue.application.question_selection import DiscriminativeQuestionSelector
from ddx_dialogue.domain.models import (
    Condition,
    EngineConfig,
    KnowledgeBase,
    PromptType,
    QuestionCategory,
    QuestionTemplate,
    RedFlagPattern,
    UrgencyLevel,
)
from ddx_dialogue.infrastructure.knowledge_base.default_catalog import build_default_knowledge_base


@pytest.fixture(scope="session")
def default_kb():
    return build_default_knowledge_base()


@pytest.fixture
def two_condition_kb():
    """C1 (prior 0.6) and C2 (prior 0.4) separated by night pain."""
    return KnowledgeBase(
        conditions=[
            Condition(id="C1", name="Condition one", prior=0.6, likelihoods={"pain_night": 0.9, "pain_night=no": 0.1}),
            Condition(id="C2", name="Condition two", prior=0.4, likelihoods={"pain_night": 0.1, "pain_night=no": 0.9}),
        ],
        questions=[
            QuestionTemplate(
                id="q_night",
                category=QuestionCategory.PAIN,
                prompt="Does the pain wake you at night?",
                prompt_type=PromptType.YES_NO,
                target_finding_keys=["pain_night"],
            ),
            QuestionTemplate(
                id="q_screen",
                category=QuestionCategory.RED_FLAG_SCREENING,
                prompt="Any loss of bladder control?",
                prompt_type=PromptType.YES_NO,
                target_finding_keys=["bladder"],
                red_flag=True,
                topic="red_flag_screening",
            ),
            QuestionTemplate(
                id="q_notes",
                category=QuestionCategory.NEUROLOGICAL,
                prompt="Describe any other symptoms.",
                prompt_type=PromptType.FREE_TEXT,
                target_finding_keys=["notes"],
            ),
        ],
        red_flag_patterns=[
            RedFlagPattern(id="bladder", name="Bladder dysfunction", urgency=UrgencyLevel.URGENT,
                           finding_key="bladder"),
            RedFlagPattern(id="numbness", name="Numbness", urgency=UrgencyLevel.MODERATE,
                           keywords=["numb", "tingl"]),
        ],
    )


@pytest.fixture
def make_manager():
    def _make(knowledge_base, **config):
        engine_config = EngineConfig(**config)
        selector = DiscriminativeQuestionSelector(knowledge_base, top_k=engine_config.top_k)
        return ConversationManager(knowledge_base, selector, engine_config)
    return _make


def benign_answer(question):
    """An answer that never raises a red flag."""
    if question.prompt_type == PromptType.YES_NO:
        return "no"
    if question.prompt_type == PromptType.NUMERIC_SCALE:
        return 3
    if question.prompt_type == PromptType.NUMERIC:
        return 1
    if question.prompt_type == PromptType.FREE_TEXT:
        return "ibuprofen"
    safe = next(o.value for o in question.options if o.red_flag is None)
    if question.prompt_type == PromptType.MULTI_CHOICE:
        return [safe]
    return safe


@pytest.fixture
def benign():
    return benign_answer
