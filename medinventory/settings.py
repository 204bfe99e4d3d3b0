import os
from collections.abc import Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # Gemini Configuration
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.0-flash", alias="GEMINI_MODEL")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_BASE_URL",
    )
    gemini_timeout: float = Field(default=30.0, alias="GEMINI_TIMEOUT")

    # Resilience Configuration
    ai_cache_ttl_minutes: int = Field(default=30, alias="AI_CACHE_TTL_MINUTES")
    queue_delay_ms: int = Field(default=100, alias="AI_QUEUE_DELAY_MS")
    circuit_failure_threshold: int = Field(
        default=5, alias="AI_CIRCUIT_FAILURE_THRESHOLD"
    )
    circuit_reset_seconds: int = Field(default=60, alias="AI_CIRCUIT_RESET_SECONDS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build settings from env vars (or any mapping of them)."""
    source = os.environ if env is None else env
    return Settings.model_validate(dict(source))


global_settings = load_settings()
