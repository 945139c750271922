"""Storage queries used by the inference pipeline.

Every function takes the caller's AsyncSession and never commits: the
caller owns the transaction boundary, which is what lets the write phase
insert reply segments and complete jobs as one atomic unit.
"""

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from textcoach.db.models import (
    Conversation,
    InboundMessage,
    InferenceJob,
    JobStatus,
    OutboundMessage,
    OutboundStatus,
    generate_uuid,
    utc_now_iso,
)
from textcoach.errors import NotFoundError
from textcoach.prompts.transcript import TranscriptTurn

# Outbound rows the user has (or is about to have) actually received
_DELIVERED_STATUSES = (OutboundStatus.sent.value, OutboundStatus.sending.value)

_OUTBOUND_DEDUP_COLUMNS = ("conversation_id", "inbound_message_id", "sequence_number")


async def load_inbound_message_for_job(
    session: AsyncSession, job_id: str,
) -> InboundMessage:
    """Load the inbound message a job was queued for.

    Raises:
        NotFoundError: If the job or its inbound message does not exist.
    """
    stmt = (
        select(InboundMessage)
        .join(InferenceJob, InferenceJob.inbound_message_id == InboundMessage.id)
        .where(InferenceJob.id == job_id)
    )
    inbound = (await session.execute(stmt)).scalar_one_or_none()
    if inbound is None:
        raise NotFoundError("Inbound message for job", job_id)
    return inbound


async def load_conversation(
    session: AsyncSession, conversation_id: str,
) -> Conversation:
    """Load a conversation by id.

    Raises:
        NotFoundError: If the conversation does not exist.
    """
    conversation = await session.get(Conversation, conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation", conversation_id)
    return conversation


def _merge_timeline(
    inbound: list[InboundMessage], outbound: list[OutboundMessage],
) -> list[TranscriptTurn]:
    turns = [
        TranscriptTurn("inbound", m.body, m.received_at) for m in inbound
    ] + [
        TranscriptTurn("outbound", m.body, m.created_at) for m in outbound
    ]
    # Stable sort: on equal timestamps the inbound message comes first
    turns.sort(key=lambda t: (t.timestamp, t.direction != "inbound"))
    return turns


async def load_recent_transcript(
    session: AsyncSession, conversation_id: str, max_turns: int,
) -> list[TranscriptTurn]:
    """Load the most recent turns of a conversation for a reply.

    Includes every inbound message and every outbound segment except
    those the sender marked failed, so replies still queued for delivery
    are visible to the next inference.

    Args:
        session: Open session.
        conversation_id: Conversation UUID.
        max_turns: Maximum number of turns returned.

    Returns:
        Up to max_turns turns in chronological order.
    """
    inbound_stmt = (
        select(InboundMessage)
        .where(InboundMessage.conversation_id == conversation_id)
        .order_by(InboundMessage.received_at.desc())
        .limit(max_turns)
    )
    outbound_stmt = (
        select(OutboundMessage)
        .where(
            OutboundMessage.conversation_id == conversation_id,
            OutboundMessage.status != OutboundStatus.failed.value,
        )
        .order_by(OutboundMessage.created_at.desc(), OutboundMessage.sequence_number.desc())
        .limit(max_turns)
    )
    inbound = list((await session.execute(inbound_stmt)).scalars())
    outbound = list((await session.execute(outbound_stmt)).scalars())
    return _merge_timeline(inbound, outbound)[-max_turns:]


async def load_full_transcript(
    session: AsyncSession, conversation_id: str,
) -> list[TranscriptTurn]:
    """Load a conversation's whole delivered history.

    Inbound messages from the user's number and outbound segments to it
    that reached sending/sent. When the conversation has no user_number,
    addresses are not filtered.

    Raises:
        NotFoundError: If the conversation does not exist.
    """
    conversation = await load_conversation(session, conversation_id)

    inbound_stmt = (
        select(InboundMessage)
        .where(InboundMessage.conversation_id == conversation_id)
        .order_by(InboundMessage.received_at.asc())
    )
    outbound_stmt = (
        select(OutboundMessage)
        .where(
            OutboundMessage.conversation_id == conversation_id,
            OutboundMessage.status.in_(_DELIVERED_STATUSES),
        )
        .order_by(OutboundMessage.created_at.asc(), OutboundMessage.sequence_number.asc())
    )
    if conversation.user_number:
        inbound_stmt = inbound_stmt.where(
            InboundMessage.from_address == conversation.user_number
        )
        outbound_stmt = outbound_stmt.where(
            OutboundMessage.to_address == conversation.user_number
        )

    inbound = list((await session.execute(inbound_stmt)).scalars())
    outbound = list((await session.execute(outbound_stmt)).scalars())
    return _merge_timeline(inbound, outbound)


def _dialect_insert(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Outbound dedup insert not supported on '{dialect}'")


async def insert_outbound_message(
    session: AsyncSession,
    *,
    conversation_id: str,
    inbound: InboundMessage,
    body: str,
    sequence_number: int,
    prompt_version: str,
    model: str,
) -> str | None:
    """Insert one reply segment unless it already exists.

    The reply goes back to the sender of the inbound message over the same
    provider. A segment already stored for the same (conversation, inbound
    message, sequence number) is left alone.

    Returns:
        The new row id, or None when the duplicate guard skipped the insert.
    """
    insert = _dialect_insert(session)
    table = OutboundMessage.__table__
    stmt = (
        insert(table)
        .values(
            id=generate_uuid(),
            conversation_id=conversation_id,
            inbound_message_id=inbound.id,
            provider=inbound.provider,
            from_address=inbound.to_address,
            to_address=inbound.from_address,
            body=body,
            sequence_number=sequence_number,
            prompt_version=prompt_version,
            model=model,
            provider_inbound_sid=inbound.provider_message_sid,
            status=OutboundStatus.queued.value,
            created_at=utc_now_iso(),
        )
        .on_conflict_do_nothing(index_elements=list(_OUTBOUND_DEDUP_COLUMNS))
        .returning(table.c.id)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def mark_jobs_succeeded(session: AsyncSession, job_ids: list[str]) -> int:
    """Move jobs to succeeded. Jobs already succeeded are not touched.

    Returns:
        Number of jobs transitioned by this call.
    """
    if not job_ids:
        return 0
    stmt = (
        update(InferenceJob)
        .where(
            InferenceJob.id.in_(job_ids),
            InferenceJob.status != JobStatus.succeeded.value,
        )
        .values(status=JobStatus.succeeded.value, completed_at=utc_now_iso())
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount


async def count_inbound_messages(session: AsyncSession, conversation_id: str) -> int:
    """Total inbound messages recorded for a conversation."""
    stmt = (
        select(func.count())
        .select_from(InboundMessage)
        .where(InboundMessage.conversation_id == conversation_id)
    )
    return int((await session.execute(stmt)).scalar_one())


async def save_user_context(
    session: AsyncSession, conversation_id: str, context: str,
) -> None:
    """Store an extracted user summary on the conversation."""
    stmt = (
        update(Conversation)
        .where(Conversation.id == conversation_id)
        .values(user_context=context, updated_at=utc_now_iso())
        .execution_options(synchronize_session=False)
    )
    await session.execute(stmt)
