"""Root-level pytest fixtures for all tests.

Provides shared fixtures:
- File-based SQLite database (aiosqlite) per test
- Conversation/inbound/job seeding helpers
- Test settings with millisecond retry delays
"""

from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from textcoach.config import InferenceSettings
from textcoach.db.connection import create_engine_for_url, create_session_factory
from textcoach.db.models import (
    Base,
    Conversation,
    InboundMessage,
    InferenceJob,
    OutboundMessage,
)
from textcoach.prompts.registry import clear_prompt_cache
from tests.helpers import COACH_NUMBER, USER_NUMBER, ts

# ============================================================================
# Prompt cache isolation
# ============================================================================


@pytest.fixture(autouse=True)
def _reset_prompt_cache():
    """Each test resolves prompts from a cold cache."""
    clear_prompt_cache()
    yield
    clear_prompt_cache()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-based SQLite engine with all tables created."""
    engine = create_engine_for_url(f"sqlite:///{tmp_path / 'textcoach-test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return create_session_factory(engine)


@pytest.fixture
def settings() -> InferenceSettings:
    """Settings with fast retries and the V2 prompt schema."""
    return InferenceSettings(
        prompt_version="V2",
        model="test-model",
        model_timeout_ms=2_000,
        model_retries=2,
        retry_base_delay_ms=1,
        retry_max_delay_ms=5,
        context_model="test-context-model",
        context_timeout_ms=2_000,
        context_retries=0,
        context_interval=30,
    )


# ============================================================================
# Seeding
# ============================================================================


@pytest.fixture
def seed_conversation(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable:
    """Factory creating a conversation with inbound messages and pending jobs.

    Returns an async callable returning (conversation_id, job_ids, inbound_ids).
    """

    async def _seed(
        *,
        inbound_bodies: list[str] | None = None,
        has_paid: bool = False,
        user_context: str | None = None,
        user_number: str | None = USER_NUMBER,
    ) -> tuple[str, list[str], list[str]]:
        bodies = inbound_bodies if inbound_bodies is not None else ["hey"]
        async with session_factory() as session:
            conversation = Conversation(
                has_paid=has_paid,
                user_context=user_context,
                user_number=user_number,
            )
            session.add(conversation)
            await session.flush()

            job_ids: list[str] = []
            inbound_ids: list[str] = []
            for i, body in enumerate(bodies):
                inbound = InboundMessage(
                    conversation_id=conversation.id,
                    provider="twilio",
                    provider_message_sid=f"SM{i:04d}",
                    from_address=USER_NUMBER,
                    to_address=COACH_NUMBER,
                    body=body,
                    received_at=ts(i * 2),
                )
                session.add(inbound)
                await session.flush()
                job = InferenceJob(
                    conversation_id=conversation.id,
                    inbound_message_id=inbound.id,
                )
                session.add(job)
                await session.flush()
                inbound_ids.append(inbound.id)
                job_ids.append(job.id)

            await session.commit()
            return conversation.id, job_ids, inbound_ids

    return _seed


@pytest.fixture
def add_outbound(session_factory: async_sessionmaker[AsyncSession]) -> Callable:
    """Factory inserting an outbound row directly (as a past reply)."""

    async def _add(
        conversation_id: str,
        inbound_id: str,
        body: str,
        *,
        second: int,
        status: str = "sent",
        sequence_number: int = 0,
        to_address: str = USER_NUMBER,
    ) -> str:
        async with session_factory() as session:
            row = OutboundMessage(
                conversation_id=conversation_id,
                inbound_message_id=inbound_id,
                provider="twilio",
                from_address=COACH_NUMBER,
                to_address=to_address,
                body=body,
                sequence_number=sequence_number,
                prompt_version="V2-unpaid",
                model="test-model",
                provider_inbound_sid="SM-prev",
                status=status,
                created_at=ts(second),
            )
            session.add(row)
            await session.commit()
            return row.id

    return _add
