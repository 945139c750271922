"""Database module for conversation state and the inference job table."""

from textcoach.db.connection import (
    AsyncSessionLocal,
    async_engine,
    async_init_db,
    close_async_db,
    create_engine_for_url,
    create_session_factory,
    get_async_db_context,
)
from textcoach.db.models import (
    Base,
    Conversation,
    InboundMessage,
    InferenceJob,
    JobStatus,
    OutboundMessage,
    OutboundStatus,
)

__all__ = [
    # Models
    "Base",
    "Conversation",
    "InboundMessage",
    "OutboundMessage",
    "InferenceJob",
    # Enums
    "JobStatus",
    "OutboundStatus",
    # Connection
    "async_engine",
    "AsyncSessionLocal",
    "create_engine_for_url",
    "create_session_factory",
    "get_async_db_context",
    "async_init_db",
    "close_async_db",
]
