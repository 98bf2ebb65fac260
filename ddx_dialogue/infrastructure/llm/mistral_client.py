import logging
from typing import Any, List, Optional

from mistralai import Mistral

from ddx_dialogue.application.ports import LLMPort
from ddx_dialogue.infrastructure.config import Settings


logger = logging.getLogger(__name__)


class MistralLLMAdapter(LLMPort):
    """Chat completions in JSON mode, returned as the raw reply text."""

    def __init__(self, settings: Settings | None = None, client: Optional[Any] = None, temperature: float = 0.0):
        self.settings = settings or Settings()
        self.model = self.settings.mistral_model
        self.temperature = temperature
        self._client = client if client is not None else self._connect(self.settings.mistral_api_key)

    @staticmethod
    def _connect(api_key: Optional[str]) -> Optional[Mistral]:
        if not api_key:
            logger.warning("MISTRAL_API_KEY is not set; Mistral question advice is disabled")
            return None
        return Mistral(api_key=api_key)

    @property
    def available(self) -> bool:
        return self._client is not None

    def generate_json(self, messages: List[dict]) -> str:
        if self._client is None:
            raise RuntimeError("Mistral client is not configured")
        response = self._client.chat.complete(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
        if not content:
            raise ValueError(f"{self.model} returned an empty reply")
        logger.debug("%s replied with %d characters", self.model, len(content))
        return content
