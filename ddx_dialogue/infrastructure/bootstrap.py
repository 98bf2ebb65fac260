import logging
from typing import Optional

from ddx_dialogue.application.advisors import LLMQuestionAdvisor
from ddx_dialogue.application.ports import QuestionAdvisorPort
from ddx_dialogue.application.use_cases import AssessmentService
from ddx_dialogue.domain.models import KnowledgeBase
from ddx_dialogue.infrastructure.advisory.http_advisor import HttpQuestionAdvisor
from ddx_dialogue.infrastructure.config import Settings
from ddx_dialogue.infrastructure.knowledge_base.default_catalog import build_default_knowledge_base
from ddx_dialogue.infrastructure.knowledge_base.json_catalog import load_knowledge_base
from ddx_dialogue.infrastructure.llm.mistral_client import MistralLLMAdapter


logger = logging.getLogger(__name__)


def load_configured_knowledge_base(settings: Settings) -> KnowledgeBase:
    if settings.catalog_path:
        return load_knowledge_base(settings.catalog_path)
    return build_default_knowledge_base()


def build_question_advisor(settings: Settings, knowledge_base: KnowledgeBase) -> Optional[QuestionAdvisorPort]:
    """Remote service first, then the language model, else local ordering only."""
    if settings.advisory_url:
        logger.info("Using remote question advisor at %s", settings.advisory_url)
        return HttpQuestionAdvisor(settings)
    if settings.mistral_api_key:
        llm = MistralLLMAdapter(settings)
        if llm.available:
            logger.info("Using Mistral question advisor (%s)", llm.model)
            return LLMQuestionAdvisor(llm, knowledge_base)
    logger.info("No question advisor configured; using local question ordering")
    return None


def build_assessment_service(settings: Settings | None = None) -> AssessmentService:
    settings = settings or Settings()
    knowledge_base = load_configured_knowledge_base(settings)
    return AssessmentService(
        knowledge_base,
        config=settings.engine_config(),
        advisor=build_question_advisor(settings, knowledge_base),
    )
