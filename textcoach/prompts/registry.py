"""Prompt strategy resolution by prompt version and payment tier.

The supported (version, tier) combinations form a closed table mapping to
a PromptVariant; each variant maps to the module that implements it.
Resolved strategies live in a process-wide cache:

- populated lazily on the first resolve() for a (version, tier) key
- never invalidated while the process runs (strategies are stateless)
- safe under concurrent first resolution: both callers build equal
  strategies and the first one stored wins

Example:
    strategy = resolve(PaymentTier.from_has_paid(conversation.has_paid))
    parts = strategy.build_prompt(transcript, conversation.user_context)
"""

import importlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from textcoach.config import get_settings
from textcoach.errors import ConfigurationError
from textcoach.prompts.base import PromptParts

logger = logging.getLogger(__name__)


class PromptVersion(str, Enum):
    """Prompt schema versions selectable via PROMPT_VERSION."""

    V1 = "V1"
    V2 = "V2"


class PaymentTier(str, Enum):
    """Conversation payment tier."""

    paid = "paid"
    unpaid = "unpaid"

    @classmethod
    def from_has_paid(cls, has_paid: bool) -> "PaymentTier":
        return cls.paid if has_paid else cls.unpaid


class PromptVariant(str, Enum):
    """Concrete prompt implementations. Values are persisted as prompt_version."""

    V1 = "V1"
    V2_UNPAID = "V2-unpaid"
    V2_PAID = "V2-paid"


_VARIANT_TABLE: dict[tuple[PromptVersion, PaymentTier], PromptVariant] = {
    (PromptVersion.V1, PaymentTier.unpaid): PromptVariant.V1,
    (PromptVersion.V1, PaymentTier.paid): PromptVariant.V1,
    (PromptVersion.V2, PaymentTier.unpaid): PromptVariant.V2_UNPAID,
    (PromptVersion.V2, PaymentTier.paid): PromptVariant.V2_PAID,
}

_VARIANT_MODULES: dict[PromptVariant, str] = {
    PromptVariant.V1: "textcoach.prompts.v1",
    PromptVariant.V2_UNPAID: "textcoach.prompts.v2_unpaid",
    PromptVariant.V2_PAID: "textcoach.prompts.v2_paid",
}


@dataclass(frozen=True)
class PromptStrategy:
    """A resolved prompt implementation.

    Attributes:
        variant: Which implementation this is.
        build_prompt: (transcript, user_context) -> PromptParts. Stateless.
        no_reply_sentinel: Exact reply text meaning "do not reply".
        assistant_label: Label for coach turns in the rendered transcript.
    """

    variant: PromptVariant
    build_prompt: Callable[[str, str | None], PromptParts]
    no_reply_sentinel: str
    assistant_label: str

    @property
    def version_tag(self) -> str:
        """Tag stored on each outbound row for rollout tracking."""
        return self.variant.value


_STRATEGY_CACHE: dict[tuple[PromptVersion, PaymentTier], PromptStrategy] = {}


def parse_prompt_version(value: str) -> PromptVersion:
    """Parse a PROMPT_VERSION string.

    Raises:
        ConfigurationError: If the version is not supported.
    """
    try:
        return PromptVersion(value.strip().upper())
    except ValueError as e:
        supported = ", ".join(v.value for v in PromptVersion)
        raise ConfigurationError(
            f"Unknown prompt version '{value}' (supported: {supported})"
        ) from e


def _load_strategy(variant: PromptVariant) -> PromptStrategy:
    module_path = _VARIANT_MODULES.get(variant)
    if module_path is None:
        raise ConfigurationError(f"No prompt module registered for '{variant.value}'")

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ConfigurationError(
            f"Failed to load prompt '{variant.value}' ({module_path}): {e}"
        ) from e

    return PromptStrategy(
        variant=variant,
        build_prompt=module.build_prompt,
        no_reply_sentinel=module.NO_REPLY_SENTINEL,
        assistant_label=module.ASSISTANT_LABEL,
    )


def resolve(tier: PaymentTier, version: str | None = None) -> PromptStrategy:
    """Resolve the prompt strategy for a tier under a prompt version.

    Args:
        tier: Conversation payment tier.
        version: Prompt version string. Defaults to settings.prompt_version.

    Returns:
        Cached PromptStrategy for the (version, tier) key.

    Raises:
        ConfigurationError: If the version or combination is unsupported.
    """
    parsed = parse_prompt_version(
        version if version is not None else get_settings().prompt_version
    )
    key = (parsed, tier)

    cached = _STRATEGY_CACHE.get(key)
    if cached is not None:
        return cached

    variant = _VARIANT_TABLE.get(key)
    if variant is None:
        raise ConfigurationError(
            f"No prompt registered for version '{parsed.value}' and tier '{tier}'"
        )

    strategy = _STRATEGY_CACHE.setdefault(key, _load_strategy(variant))
    logger.debug("Resolved prompt %s for tier=%s", strategy.version_tag, tier.value)
    return strategy


def get_no_reply_sentinel(has_paid: bool, version: str | None = None) -> str:
    """No-reply sentinel for a conversation's tier."""
    return resolve(PaymentTier.from_has_paid(has_paid), version).no_reply_sentinel


def get_prompt_version(has_paid: bool, version: str | None = None) -> str:
    """Prompt version tag stored on outbound rows (V1, V2-unpaid, V2-paid)."""
    return resolve(PaymentTier.from_has_paid(has_paid), version).version_tag


def clear_prompt_cache() -> None:
    """Drop all cached strategies. Only tests reset the cache."""
    _STRATEGY_CACHE.clear()
