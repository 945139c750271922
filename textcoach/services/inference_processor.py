"""Job batch processor: queued inbound messages in, persisted replies out.

One call to InferenceProcessor.process() handles a batch of jobs for a
single conversation in three strictly ordered phases:

1. Read: one short session loads the inbound message anchoring the last
   job, the conversation, and the recent transcript, then is closed so
   no pooled connection is held during the model call.
2. Model: resolve the prompt for the conversation's payment tier and
   call the model under a deadline with bounded retries.
3. Write: one transaction inserts a row per reply segment and marks
   every job succeeded. Either all of it commits or none of it does.

After commit a detached task checks whether the batch crossed a
context-extraction boundary and, if so, refreshes the user summary. That
task can neither delay nor fail the call that scheduled it.

Example:
    processor = get_default_processor()
    result = await processor.process([JobRef(id=job_id, conversation_id=cid)])
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from textcoach.config import InferenceSettings, get_settings
from textcoach.db.models import Conversation, InboundMessage
from textcoach.errors import TransactionError
from textcoach.prompts.registry import PaymentTier, resolve
from textcoach.prompts.transcript import TranscriptTurn, render_transcript
from textcoach.services.background import BackgroundTaskRunner
from textcoach.services.context_extraction import ContextExtractor
from textcoach.services.model_client import (
    AnthropicModelClient,
    ModelClient,
    ModelResponse,
    call_model,
)
from textcoach.services.queries import (
    count_inbound_messages,
    insert_outbound_message,
    load_conversation,
    load_inbound_message_for_job,
    load_recent_transcript,
    mark_jobs_succeeded,
)
from textcoach.services.retry import RetryPolicy
from textcoach.services.sampling import should_trigger

logger = logging.getLogger(__name__)

# Segments are separated by a tab or by one or more newlines
_SEGMENT_SEPARATOR = re.compile(r"\t|\n+")


class JobHandle(Protocol):
    """What the processor needs from a job: InferenceJob rows qualify."""

    id: str
    conversation_id: str


@dataclass(frozen=True)
class JobRef:
    """Minimal job reference handed over by the queue front end."""

    id: str
    conversation_id: str


@dataclass(frozen=True)
class InferenceResult:
    """Outcome of one processed batch.

    Attributes:
        inbound_provider_sid: Provider sid of the inbound message the reply threads to.
        inserted_outbound_ids: Ids of newly inserted segments, in sequence order.
        no_reply: True when the model returned the tier's no-reply sentinel.
    """

    inbound_provider_sid: str
    inserted_outbound_ids: list[str] = field(default_factory=list)
    no_reply: bool = False


@dataclass(frozen=True)
class _ReadSnapshot:
    inbound: InboundMessage
    conversation: Conversation
    turns: list[TranscriptTurn]


def split_reply(text: str) -> list[str]:
    """Split model output into trimmed, non-empty segments."""
    return [s.strip() for s in _SEGMENT_SEPARATOR.split(text) if s.strip()]


class InferenceProcessor:
    """Turns a batch of jobs into persisted outbound replies.

    Attributes:
        _session_factory: Source of short-lived sessions, one per phase.
        _model_client: Model boundary.
        _settings: Prompt version, model, timeout, retry, and interval settings.
        _background: Runner for the detached context-extraction task.
        _extractor: Context extraction task.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model_client: ModelClient,
        settings: InferenceSettings | None = None,
        background: BackgroundTaskRunner | None = None,
        extractor: ContextExtractor | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._model_client = model_client
        self._settings = settings or get_settings()
        self._background = background or BackgroundTaskRunner()
        self._extractor = extractor or ContextExtractor(
            session_factory, model_client, self._settings,
        )
        self._policy = RetryPolicy(
            retries=self._settings.model_retries,
            base_delay_ms=self._settings.retry_base_delay_ms,
            max_delay_ms=self._settings.retry_max_delay_ms,
        )

    @property
    def background(self) -> BackgroundTaskRunner:
        """Runner holding detached post-commit work."""
        return self._background

    async def process(self, jobs: Sequence[JobHandle]) -> InferenceResult:
        """Process a batch of jobs for one conversation.

        The last job is the most recent inbound message and anchors the
        reply thread. Every job in the batch is marked succeeded.

        Args:
            jobs: Non-empty, oldest-first jobs of one conversation.

        Returns:
            InferenceResult for the batch.

        Raises:
            ValueError: Empty batch.
            NotFoundError: Anchoring inbound message or conversation missing.
            ConfigurationError: Prompt version/tier cannot be resolved.
            ModelTimeoutError: Model deadline expired.
            ModelCallError: Model failed on every attempt.
            TransactionError: Write phase failed and was rolled back.
        """
        if not jobs:
            raise ValueError("jobs must be a non-empty sequence")

        last_job = jobs[-1]
        conversation_id = last_job.conversation_id

        snapshot = await self._read_phase(last_job)
        tier = PaymentTier.from_has_paid(snapshot.conversation.has_paid)

        response = await self._model_phase(snapshot, tier)

        # Tier cannot change within a call, so this matches the model phase
        strategy = resolve(tier, self._settings.prompt_version)
        no_reply = response.text.strip() == strategy.no_reply_sentinel
        segments = [] if no_reply else split_reply(response.text)

        inserted = await self._write_phase(
            conversation_id=conversation_id,
            inbound=snapshot.inbound,
            segments=segments,
            prompt_version=strategy.version_tag,
            model=response.model,
            job_ids=[job.id for job in jobs],
        )

        if no_reply:
            logger.info(
                "No reply for conversation=%s (%d job(s) completed)",
                conversation_id, len(jobs),
            )
        else:
            logger.info(
                "Stored %d/%d segment(s) for conversation=%s inbound=%s",
                len(inserted), len(segments), conversation_id,
                snapshot.inbound.provider_message_sid,
            )

        self._background.submit(
            self._maybe_extract_context(conversation_id, len(jobs)),
            name=f"user-context:{conversation_id}",
        )

        return InferenceResult(
            inbound_provider_sid=snapshot.inbound.provider_message_sid,
            inserted_outbound_ids=inserted,
            no_reply=no_reply,
        )

    async def _read_phase(self, last_job: JobHandle) -> _ReadSnapshot:
        async with self._session_factory() as session:
            inbound = await load_inbound_message_for_job(session, last_job.id)
            conversation = await load_conversation(session, last_job.conversation_id)
            turns = await load_recent_transcript(
                session,
                last_job.conversation_id,
                self._settings.transcript_max_turns,
            )
        return _ReadSnapshot(inbound=inbound, conversation=conversation, turns=turns)

    async def _model_phase(
        self, snapshot: _ReadSnapshot, tier: PaymentTier,
    ) -> ModelResponse:
        strategy = resolve(tier, self._settings.prompt_version)
        transcript = render_transcript(snapshot.turns, strategy.assistant_label)
        parts = strategy.build_prompt(transcript, snapshot.conversation.user_context)
        logger.debug(
            "Calling %s for conversation=%s prompt=%s turns=%d",
            self._settings.model, snapshot.conversation.id,
            strategy.version_tag, len(snapshot.turns),
        )
        return await call_model(
            self._model_client,
            model=self._settings.model,
            instructions=parts.instructions,
            input_text=parts.input,
            timeout_ms=self._settings.model_timeout_ms,
            policy=self._policy,
        )

    async def _write_phase(
        self,
        *,
        conversation_id: str,
        inbound: InboundMessage,
        segments: list[str],
        prompt_version: str,
        model: str,
        job_ids: list[str],
    ) -> list[str]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    inserted: list[str] = []
                    for sequence_number, body in enumerate(segments):
                        outbound_id = await insert_outbound_message(
                            session,
                            conversation_id=conversation_id,
                            inbound=inbound,
                            body=body,
                            sequence_number=sequence_number,
                            prompt_version=prompt_version,
                            model=model,
                        )
                        if outbound_id:
                            inserted.append(outbound_id)
                    await mark_jobs_succeeded(session, job_ids)
        except Exception as e:
            logger.error(
                "Write phase rolled back for conversation=%s: %s", conversation_id, e,
            )
            raise TransactionError(conversation_id, str(e)) from e
        return inserted

    async def _maybe_extract_context(self, conversation_id: str, batch_size: int) -> None:
        async with self._session_factory() as session:
            count = await count_inbound_messages(session, conversation_id)
        if not should_trigger(count, batch_size, self._settings.context_interval):
            return
        await self._extractor.extract(conversation_id)


_default_processor: InferenceProcessor | None = None


def get_default_processor() -> InferenceProcessor:
    """Process-wide processor bound to the default engine and Anthropic client."""
    global _default_processor
    if _default_processor is None:
        from textcoach.db.connection import AsyncSessionLocal

        settings = get_settings()
        _default_processor = InferenceProcessor(
            AsyncSessionLocal,
            AnthropicModelClient(max_tokens=settings.max_tokens),
            settings,
        )
    return _default_processor


async def run_inference(jobs: Sequence[JobHandle]) -> InferenceResult:
    """Process a batch with the default processor."""
    return await get_default_processor().process(jobs)
