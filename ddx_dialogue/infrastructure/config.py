import os
import logging

from ddx_dialogue.domain.models import EngineConfig


logger = logging.getLogger(__name__)


def get_setting(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _get_int(name: str, default: int) -> int:
    raw = get_setting(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %s", name, raw, default)
        return default


def _get_float(name: str, default: float) -> float:
    raw = get_setting(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default


class Settings:
    @property
    def completion_threshold(self) -> float:
        return _get_float("DDX_COMPLETION_THRESHOLD", 80.0)

    @property
    def max_questions(self) -> int:
        return _get_int("DDX_MAX_QUESTIONS", 12)

    @property
    def top_k(self) -> int:
        return _get_int("DDX_TOP_K", 3)

    @property
    def catalog_path(self) -> str | None:
        return get_setting("DDX_CATALOG_PATH")

    @property
    def advisory_url(self) -> str | None:
        url = get_setting("DDX_ADVISORY_URL")
        return url.rstrip("/") if url else None

    @property
    def advisory_timeout(self) -> float:
        return _get_float("DDX_ADVISORY_TIMEOUT", 5.0)

    @property
    def mistral_api_key(self) -> str | None:
        return get_setting("MISTRAL_API_KEY")

    @property
    def mistral_model(self) -> str:
        return get_setting("MISTRAL_MODEL", "mistral-large-latest") or "mistral-large-latest"

    def engine_config(self) -> EngineConfig:
        return EngineConfig(
            completion_threshold=self.completion_threshold,
            max_questions=self.max_questions,
            top_k=self.top_k,
        )
