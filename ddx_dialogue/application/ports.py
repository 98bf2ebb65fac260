from typing import List, Optional, Protocol

from ddx_dialogue.application.schemas import ScreeningContext


class QuestionAdvisorPort(Protocol):
    def recommend_next_question(self, context: ScreeningContext) -> Optional[str]:
        """
        Returns the id of the question an external service recommends asking next,
        or None when it has no recommendation.
        """
        ...


class LLMPort(Protocol):
    def generate_json(self, messages: List[dict]) -> str:
        """
        Accepts chat-style messages and returns the model's reply, expected to be a JSON object.
        """
        ...
