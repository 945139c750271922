"""Tests for user-context extraction.

Covers:
- Transcript selection (delivered replies only, user's number only)
- NO_CONTEXT and empty outputs leave the stored summary untouched
- Context model and retry settings
"""

import pytest
from sqlalchemy import select

from textcoach.db.models import Conversation, InboundMessage
from textcoach.errors import ModelCallError, NotFoundError
from textcoach.services.context_extraction import ContextExtractor
from tests.helpers import COACH_NUMBER, MockModelClient, ts


async def _stored_context(session_factory, conversation_id: str) -> str | None:
    async with session_factory() as session:
        conversation = await session.get(Conversation, conversation_id)
        return conversation.user_context


class TestContextExtractor:
    """Verify extraction end to end against the test database."""

    @pytest.mark.asyncio
    async def test_stores_summary(
        self, session_factory, settings, seed_conversation, add_outbound,
    ) -> None:
        """Model output is saved on the conversation."""
        cid, _, inbound_ids = await seed_conversation(inbound_bodies=["hey", "im mike"])
        await add_outbound(cid, inbound_ids[0], "hey who is this?", second=1)
        client = MockModelClient("- Name: Mike")

        context = await ContextExtractor(session_factory, client, settings).extract(cid)

        assert context == "- Name: Mike"
        assert await _stored_context(session_factory, cid) == "- Name: Mike"
        call = client.calls[0]
        assert call.model == "test-context-model"
        assert call.input_text.startswith("=== CONVERSATION ===")
        assert "USER: hey\nSLASH: hey who is this?\nUSER: im mike" in call.input_text

    @pytest.mark.asyncio
    async def test_undelivered_replies_excluded(
        self, session_factory, settings, seed_conversation, add_outbound,
    ) -> None:
        """Queued and failed replies are not part of the extraction transcript."""
        cid, _, inbound_ids = await seed_conversation(inbound_bodies=["hey"])
        await add_outbound(cid, inbound_ids[0], "delivered", second=1, status="sent")
        await add_outbound(
            cid, inbound_ids[0], "in flight", second=2, status="sending", sequence_number=1,
        )
        await add_outbound(
            cid, inbound_ids[0], "waiting", second=3, status="queued", sequence_number=2,
        )
        await add_outbound(
            cid, inbound_ids[0], "bounced", second=4, status="failed", sequence_number=3,
        )
        client = MockModelClient("- Name: unknown")

        await ContextExtractor(session_factory, client, settings).extract(cid)

        text = client.calls[0].input_text
        assert "SLASH: delivered" in text
        assert "SLASH: in flight" in text
        assert "waiting" not in text
        assert "bounced" not in text

    @pytest.mark.asyncio
    async def test_other_numbers_excluded(
        self, session_factory, settings, seed_conversation, add_outbound,
    ) -> None:
        """Messages not to or from the user's number are filtered out."""
        cid, _, inbound_ids = await seed_conversation(inbound_bodies=["hey"])
        await add_outbound(
            cid, inbound_ids[0], "wrong recipient", second=1, to_address="+15550002222",
        )
        async with session_factory() as session:
            session.add(InboundMessage(
                conversation_id=cid,
                provider="twilio",
                provider_message_sid="SM-other",
                from_address="+15550002222",
                to_address=COACH_NUMBER,
                body="someone else",
                received_at=ts(5),
            ))
            await session.commit()
        client = MockModelClient("- Name: unknown")

        await ContextExtractor(session_factory, client, settings).extract(cid)

        text = client.calls[0].input_text
        assert "USER: hey" in text
        assert "wrong recipient" not in text
        assert "someone else" not in text

    @pytest.mark.asyncio
    async def test_no_user_number_keeps_all_messages(
        self, session_factory, settings, seed_conversation,
    ) -> None:
        """Without a user_number no address filter applies."""
        cid, _, _ = await seed_conversation(inbound_bodies=["hey"], user_number=None)
        client = MockModelClient("- Name: unknown")

        await ContextExtractor(session_factory, client, settings).extract(cid)

        assert "USER: hey" in client.calls[0].input_text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("output", ["NO_CONTEXT", "  NO_CONTEXT\n", "", "   "])
    async def test_no_context_leaves_summary_untouched(
        self, session_factory, settings, seed_conversation, output: str,
    ) -> None:
        """NO_CONTEXT or blank output writes nothing."""
        cid, _, _ = await seed_conversation(user_context="- Name: Mike")

        context = await ContextExtractor(
            session_factory, MockModelClient(output), settings,
        ).extract(cid)

        assert context is None
        assert await _stored_context(session_factory, cid) == "- Name: Mike"

    @pytest.mark.asyncio
    async def test_empty_transcript_skips_model(
        self, session_factory, settings, seed_conversation,
    ) -> None:
        """A conversation without messages never calls the model."""
        cid, _, _ = await seed_conversation(inbound_bodies=[])
        client = MockModelClient("- Name: Mike")

        assert await ContextExtractor(session_factory, client, settings).extract(cid) is None
        assert client.call_count == 0

    @pytest.mark.asyncio
    async def test_unknown_conversation(self, session_factory, settings) -> None:
        """Extraction for a missing conversation raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await ContextExtractor(
                session_factory, MockModelClient("x"), settings,
            ).extract("missing")

    @pytest.mark.asyncio
    async def test_uses_context_retry_budget(
        self, session_factory, settings, seed_conversation,
    ) -> None:
        """Extraction retries follow context_retries, not model_retries."""
        cid, _, _ = await seed_conversation()
        client = MockModelClient(RuntimeError("down"))
        extractor = ContextExtractor(
            session_factory, client, settings.model_copy(update={"context_retries": 1}),
        )

        with pytest.raises(ModelCallError):
            await extractor.extract(cid)

        assert client.call_count == 2

    @pytest.mark.asyncio
    async def test_context_model_falls_back_to_reply_model(
        self, session_factory, settings, seed_conversation,
    ) -> None:
        """Without CONTEXT_MODEL the reply model is used."""
        cid, _, _ = await seed_conversation()
        client = MockModelClient("- Name: Mike")
        extractor = ContextExtractor(
            session_factory, client, settings.model_copy(update={"context_model": None}),
        )

        await extractor.extract(cid)

        assert client.calls[0].model == "test-model"

    @pytest.mark.asyncio
    async def test_inbound_rows_unchanged(
        self, session_factory, settings, seed_conversation,
    ) -> None:
        """Extraction only writes the conversation's user_context."""
        cid, _, _ = await seed_conversation(inbound_bodies=["a", "b"])

        await ContextExtractor(
            session_factory, MockModelClient("- Goal: lose 20 lbs"), settings,
        ).extract(cid)

        async with session_factory() as session:
            bodies = list((await session.execute(
                select(InboundMessage.body)
                .where(InboundMessage.conversation_id == cid)
                .order_by(InboundMessage.received_at)
            )).scalars())
        assert bodies == ["a", "b"]
