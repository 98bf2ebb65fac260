import logging
from typing import Optional

import requests
from pydantic import ValidationError

from ddx_dialogue.application.ports import QuestionAdvisorPort
from ddx_dialogue.application.schemas import NextQuestionAdvice, ScreeningContext
from ddx_dialogue.infrastructure.config import Settings


logger = logging.getLogger(__name__)


NEXT_QUESTION_PATH = "/screening-ai/next-question"


class HttpQuestionAdvisor(QuestionAdvisorPort):
    def __init__(self, settings: Settings | None = None, base_url: str | None = None,
                 timeout: float | None = None, session: requests.Session | None = None):
        self.settings = settings or Settings()
        self.base_url = (base_url or self.settings.advisory_url or "").rstrip("/")
        self.timeout = timeout if timeout is not None else self.settings.advisory_timeout
        self._http = session or requests.Session()

    def recommend_next_question(self, context: ScreeningContext) -> Optional[str]:
        if not self.base_url:
            logger.warning("Advisory URL missing; remote question advice disabled.")
            return None

        url = self.base_url + NEXT_QUESTION_PATH
        payload = context.model_dump(by_alias=True, mode="json")
        # Transport errors propagate so the selector can fall back to local ordering
        resp = self._http.post(url, json=payload, timeout=self.timeout)
        resp.raise_for_status()
        body = resp.json()

        if not isinstance(body, dict) or not body.get("success"):
            logger.info("Advisory service declined to recommend a question: %s",
                        body.get("error") if isinstance(body, dict) else body)
            return None

        try:
            advice = NextQuestionAdvice.model_validate(body.get("data") or {})
        except ValidationError as e:
            logger.warning("Advisory response missing a question id: %s", e)
            return None

        logger.debug("Advisory service recommends %s (%s)", advice.question_id, advice.reasoning)
        return advice.question_id
