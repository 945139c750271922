"""User-context extraction from a conversation's full transcript.

Runs detached from the reply path (see InferenceProcessor), every
CONTEXT_INTERVAL inbound messages. It reads the whole delivered history on
its own session, asks the model for a bullet summary of the user, and
stores it on the conversation for the paid prompt to use.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from textcoach.config import InferenceSettings
from textcoach.prompts.context_extraction import (
    ASSISTANT_LABEL,
    NO_CONTEXT_MARKER,
    build_context_extraction_prompt,
)
from textcoach.prompts.transcript import render_transcript
from textcoach.services.model_client import ModelClient, call_model
from textcoach.services.queries import load_full_transcript, save_user_context
from textcoach.services.retry import RetryPolicy

logger = logging.getLogger(__name__)


class ContextExtractor:
    """Loads a transcript, summarizes the user, and stores the summary.

    Attributes:
        _session_factory: Source of short-lived sessions.
        _model_client: Model boundary.
        _settings: Context model, timeout, and retry settings.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model_client: ModelClient,
        settings: InferenceSettings,
    ) -> None:
        self._session_factory = session_factory
        self._model_client = model_client
        self._settings = settings
        self._policy = RetryPolicy(
            retries=settings.context_retries,
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
        )

    async def _load_transcript(self, conversation_id: str) -> str:
        async with self._session_factory() as session:
            turns = await load_full_transcript(session, conversation_id)
        return render_transcript(turns, ASSISTANT_LABEL)

    async def _summarize(self, transcript: str) -> str | None:
        parts = build_context_extraction_prompt(transcript)
        response = await call_model(
            self._model_client,
            model=self._settings.effective_context_model,
            instructions=parts.instructions,
            input_text=parts.input,
            timeout_ms=self._settings.context_timeout_ms,
            policy=self._policy,
        )
        text = response.text.strip()
        if not text or text == NO_CONTEXT_MARKER:
            return None
        return text

    async def extract(self, conversation_id: str) -> str | None:
        """Extract and store the user summary for a conversation.

        Args:
            conversation_id: Conversation UUID.

        Returns:
            The stored summary, or None when the transcript is empty or the
            model found nothing worth keeping (nothing is written then).

        Raises:
            NotFoundError: Conversation does not exist.
            ModelTimeoutError / ModelCallError: Model call failed.
        """
        transcript = await self._load_transcript(conversation_id)
        if not transcript.strip():
            logger.info(
                "[user-context] No transcript for conversation=%s, skipping.",
                conversation_id,
            )
            return None

        logger.info("[user-context] Extracting context for conversation=%s", conversation_id)
        context = await self._summarize(transcript)

        if context is None:
            logger.info(
                "[user-context] No useful context found for conversation=%s",
                conversation_id,
            )
            return None

        async with self._session_factory() as session:
            async with session.begin():
                await save_user_context(session, conversation_id, context)
        logger.info("[user-context] Saved context for conversation=%s", conversation_id)
        return context
