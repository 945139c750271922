"""Environment-driven settings for the inference pipeline.

Values are read from environment variables and validated with Pydantic.
Invalid values surface as ConfigurationError so the caller sees the same
error type as an unresolvable prompt version.

Environment Variables:
    PROMPT_VERSION: Prompt schema version (V1 or V2). Defaults to V1.
    ANTHROPIC_MODEL: Model used for replies.
    CONTEXT_MODEL: Model used for user-context extraction.
        Falls back to ANTHROPIC_MODEL.
    MODEL_MAX_TOKENS: Output token cap per model call.
    MODEL_TIMEOUT_MS / CONTEXT_TIMEOUT_MS: Per-call deadlines.
    MODEL_RETRIES, MODEL_RETRY_BASE_DELAY_MS, MODEL_RETRY_MAX_DELAY_MS:
        Reply-path retry policy.
    CONTEXT_INTERVAL: Inbound messages between context extractions.
    TRANSCRIPT_MAX_TURNS: Turns included in the reply-path transcript.
"""

import logging
import os
from functools import lru_cache

from pydantic import BaseModel, Field, ValidationError

from textcoach.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"

# env var name -> settings field
_ENV_FIELDS: dict[str, str] = {
    "PROMPT_VERSION": "prompt_version",
    "ANTHROPIC_MODEL": "model",
    "MODEL_MAX_TOKENS": "max_tokens",
    "MODEL_TIMEOUT_MS": "model_timeout_ms",
    "MODEL_RETRIES": "model_retries",
    "MODEL_RETRY_BASE_DELAY_MS": "retry_base_delay_ms",
    "MODEL_RETRY_MAX_DELAY_MS": "retry_max_delay_ms",
    "CONTEXT_MODEL": "context_model",
    "CONTEXT_TIMEOUT_MS": "context_timeout_ms",
    "CONTEXT_INTERVAL": "context_interval",
    "TRANSCRIPT_MAX_TURNS": "transcript_max_turns",
}


class InferenceSettings(BaseModel):
    """Validated pipeline settings."""

    prompt_version: str = "V1"
    model: str = DEFAULT_MODEL
    max_tokens: int = Field(default=1024, gt=0)

    model_timeout_ms: int = Field(default=45_000, gt=0)
    model_retries: int = Field(default=2, ge=0)
    retry_base_delay_ms: int = Field(default=300, ge=0)
    retry_max_delay_ms: int = Field(default=3_000, ge=0)

    context_model: str | None = None
    context_timeout_ms: int = Field(default=30_000, gt=0)
    context_retries: int = Field(default=3, ge=0)
    context_interval: int = Field(default=30, gt=0)

    transcript_max_turns: int = Field(default=50, gt=0)

    @property
    def effective_context_model(self) -> str:
        """Model used for context extraction."""
        return self.context_model or self.model


def load_settings(environ: dict[str, str] | None = None) -> InferenceSettings:
    """Build settings from environment variables.

    Empty values are treated as unset.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        Validated InferenceSettings.

    Raises:
        ConfigurationError: If any value fails validation.
    """
    env = os.environ if environ is None else environ
    values: dict[str, str] = {}
    for env_name, field_name in _ENV_FIELDS.items():
        raw = env.get(env_name, "").strip()
        if raw:
            values[field_name] = raw

    try:
        return InferenceSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


@lru_cache(maxsize=1)
def get_settings() -> InferenceSettings:
    """Return process-wide settings, loaded once from os.environ."""
    settings = load_settings()
    logger.info(
        "Loaded settings: prompt_version=%s model=%s timeout_ms=%d interval=%d",
        settings.prompt_version,
        settings.model,
        settings.model_timeout_ms,
        settings.context_interval,
    )
    return settings
