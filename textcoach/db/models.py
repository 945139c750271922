"""SQLAlchemy ORM models for the conversation state database.

This module defines conversations, inbound and outbound messages, and the
inference job queue table. Uses SQLAlchemy 2.0 style with Mapped and
mapped_column.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
)


def generate_uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


# Enums matching the database schema constraints


class JobStatus(str, Enum):
    """Status values for queued inference jobs.

    Lifecycle: pending -> processing -> succeeded/failed
    Only the reply write transaction moves a job to succeeded.
    """

    pending = "pending"
    processing = "processing"
    succeeded = "succeeded"
    failed = "failed"


class OutboundStatus(str, Enum):
    """Delivery status of an outbound reply segment.

    Rows are created as queued; the downstream sender owns every
    later transition.
    """

    queued = "queued"
    sending = "sending"
    sent = "sent"
    failed = "failed"


# SQLAlchemy Base


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Models


class Conversation(Base):
    """One end user's thread with the coach.

    Attributes:
        id: UUID primary key.
        channel: Transport channel (e.g. 'sms').
        user_number: End user's address; transcripts are filtered on it.
        has_paid: Payment tier flag, selects the prompt variant.
        user_context: Summary written by context extraction.
        created_at: ISO8601 creation timestamp.
        updated_at: ISO8601 last-update timestamp.
    """

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    channel: Mapped[str] = mapped_column(String(20), nullable=False, default="sms")
    user_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    has_paid: Mapped[bool] = mapped_column(nullable=False, default=False)
    user_context: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id!r}, has_paid={self.has_paid!r})>"


class InboundMessage(Base):
    """Message received from the end user. Written by ingestion only."""

    __tablename__ = "inbound_messages"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    provider: Mapped[str] = mapped_column(String(30), nullable=False)
    provider_message_sid: Mapped[str] = mapped_column(String(100), nullable=False)
    from_address: Mapped[str] = mapped_column(String(64), nullable=False)
    to_address: Mapped[str] = mapped_column(String(64), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    received_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    __table_args__ = (
        Index("idx_inbound_conversation_received", "conversation_id", "received_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<InboundMessage(id={self.id!r}, "
            f"sid={self.provider_message_sid!r})>"
        )


class OutboundMessage(Base):
    """One reply segment queued for the downstream sender.

    The unique constraint on (conversation_id, inbound_message_id,
    sequence_number) is the duplicate-insert guard that keeps a
    reprocessed batch from creating a second set of segments.

    Attributes:
        sequence_number: 0-based position of the segment within its reply.
        prompt_version: Prompt variant tag that produced the reply.
        model: Model identifier reported by the provider.
        provider_inbound_sid: Provider sid of the anchoring inbound message.
    """

    __tablename__ = "outbound_messages"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    inbound_message_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("inbound_messages.id", ondelete="CASCADE"),
        nullable=False,
    )
    provider: Mapped[str] = mapped_column(String(30), nullable=False)
    from_address: Mapped[str] = mapped_column(String(64), nullable=False)
    to_address: Mapped[str] = mapped_column(String(64), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    prompt_version: Mapped[str] = mapped_column(String(20), nullable=False)
    model: Mapped[str] = mapped_column(String(120), nullable=False)
    provider_inbound_sid: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OutboundStatus.queued.value
    )
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    __table_args__ = (
        UniqueConstraint(
            "conversation_id",
            "inbound_message_id",
            "sequence_number",
            name="uq_outbound_inbound_sequence",
        ),
        Index("idx_outbound_conversation_created", "conversation_id", "created_at"),
        Index("idx_outbound_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<OutboundMessage(id={self.id!r}, "
            f"seq={self.sequence_number}, status={self.status!r})>"
        )


class InferenceJob(Base):
    """Queued unit of inbound work awaiting a reply.

    Created by ingestion. The inference pipeline only ever moves a job
    to succeeded, inside the reply write transaction.
    """

    __tablename__ = "inference_jobs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    inbound_message_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("inbound_messages.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JobStatus.pending.value
    )
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    completed_at: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_inference_jobs_status", "status"),
        Index("idx_inference_jobs_conversation", "conversation_id"),
    )

    def __repr__(self) -> str:
        return f"<InferenceJob(id={self.id!r}, status={self.status!r})>"
