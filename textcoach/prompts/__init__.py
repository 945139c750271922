"""Prompt strategies for the SMS coach and the context extraction prompt."""

from textcoach.prompts.base import PromptParts
from textcoach.prompts.registry import (
    PaymentTier,
    PromptStrategy,
    PromptVariant,
    PromptVersion,
    clear_prompt_cache,
    get_no_reply_sentinel,
    get_prompt_version,
    resolve,
)
from textcoach.prompts.transcript import TranscriptTurn, render_transcript

__all__ = [
    "PromptParts",
    "PromptStrategy",
    "PromptVariant",
    "PromptVersion",
    "PaymentTier",
    "resolve",
    "get_no_reply_sentinel",
    "get_prompt_version",
    "clear_prompt_cache",
    "TranscriptTurn",
    "render_transcript",
]
