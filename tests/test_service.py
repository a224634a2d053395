import asyncio
from datetime import datetime, timezone

import openai
import pytest

from api.features.chat.entities.message import Sender
from api.features.chat.exceptions import (
    InvalidInputError,
    MessageTooLongError,
    RateLimitedError,
)
from api.features.chat.generator import ReplyGenerator
from api.features.chat.service import (
    ConversationManager,
    SessionLocks,
    generate_conversation_id,
)
from tests.conftest import FALLBACK_MODEL, PRIMARY_MODEL
from tests.mocks import MockCompletionProvider, MockHistoryStore, openai_status_error


class TestProcessMessage:
    @pytest.mark.asyncio
    async def test_new_session_creates_one_conversation(
        self, manager: ConversationManager, store: MockHistoryStore
    ):
        result = await manager.process_message("What is your return policy?")

        assert result.session_id
        assert result.session_id.startswith("conv_")
        assert list(store.conversations) == [result.session_id]
        assert result.reply == "Happy to help with that!"

    @pytest.mark.asyncio
    async def test_each_new_session_is_distinct(self, manager: ConversationManager):
        ids = {(await manager.process_message(f"hello {i}")).session_id for i in range(5)}
        assert len(ids) == 5

    @pytest.mark.asyncio
    async def test_existing_session_is_reused(
        self, manager: ConversationManager, store: MockHistoryStore
    ):
        first = await manager.process_message("Hi")
        second = await manager.process_message("Do you sell cables?", first.session_id)

        assert second.session_id == first.session_id
        assert len(store.conversations) == 1
        assert len(store.messages[first.session_id]) == 4

    @pytest.mark.asyncio
    async def test_unknown_session_starts_new_conversation(
        self, manager: ConversationManager, store: MockHistoryStore
    ):
        result = await manager.process_message("Hi", "conv_does_not_exist")

        assert result.session_id != "conv_does_not_exist"
        assert "conv_does_not_exist" not in store.conversations
        assert list(store.conversations) == [result.session_id]

    @pytest.mark.asyncio
    async def test_persistence_order(
        self, manager: ConversationManager, store: MockHistoryStore
    ):
        await manager.process_message("Hi")
        assert store.calls == [
            "create_conversation",
            "create_message",
            "get_messages",
            "create_message",
            "update_conversation",
        ]

    @pytest.mark.asyncio
    async def test_messages_are_trimmed_and_alternate(
        self, manager: ConversationManager, store: MockHistoryStore
    ):
        result = await manager.process_message("   Where is my order?  ")
        messages = store.messages[result.session_id]

        assert [m.sender for m in messages] == [Sender.USER, Sender.AI]
        assert messages[0].text == "Where is my order?"
        assert messages[1].text == result.reply

    @pytest.mark.asyncio
    async def test_history_passed_to_generator_includes_new_message(
        self, store: MockHistoryStore, provider: MockCompletionProvider, manager: ConversationManager
    ):
        first = await manager.process_message("First question")
        await manager.process_message("Second question", first.session_id)

        prompt = provider.prompts[-1]
        assert "Customer: First question" in prompt
        assert "Support Agent: Happy to help with that!" in prompt
        assert prompt.endswith("Customer: Second question\nSupport Agent:")

    @pytest.mark.asyncio
    async def test_updated_at_is_bumped(
        self, manager: ConversationManager, store: MockHistoryStore
    ):
        session_id = (await manager.process_message("Hi")).session_id
        stale = datetime(2020, 1, 1, tzinfo=timezone.utc)
        store.conversations[session_id] = store.conversations[session_id].model_copy(
            update={"created_at": stale, "updated_at": stale}
        )

        await manager.process_message("Still there?", session_id)

        conversation = store.conversations[session_id]
        assert conversation.created_at == stale
        assert conversation.updated_at > stale


class TestProcessMessageValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", ["", "    ", "\n\n\t"])
    async def test_empty_message_is_rejected_without_persistence(
        self, manager: ConversationManager, store: MockHistoryStore, message: str
    ):
        with pytest.raises(InvalidInputError):
            await manager.process_message(message)
        assert store.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("length", [2001, 2500, 10000])
    async def test_too_long_message_reports_length(
        self, manager: ConversationManager, store: MockHistoryStore, length: int
    ):
        with pytest.raises(MessageTooLongError) as exc_info:
            await manager.process_message("a" * length)

        assert "too long" in exc_info.value.message
        assert str(length) in exc_info.value.message
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_length_is_measured_after_trimming(
        self, manager: ConversationManager
    ):
        result = await manager.process_message("  " + "a" * 2000 + "  ")
        assert result.session_id


class TestGenerationFailure:
    @pytest.mark.asyncio
    async def test_user_message_survives_failed_generation(self, store: MockHistoryStore):
        provider = MockCompletionProvider(
            [openai_status_error(openai.RateLimitError, 429, "slow down")]
        )
        generator = ReplyGenerator(
            provider, primary_model=PRIMARY_MODEL, fallback_model=FALLBACK_MODEL
        )
        manager = ConversationManager(store, generator)

        with pytest.raises(RateLimitedError):
            await manager.process_message("Is anyone there?")

        (conversation_id,) = store.conversations
        messages = store.messages[conversation_id]
        assert [(m.sender, m.text) for m in messages] == [(Sender.USER, "Is anyone there?")]
        assert "update_conversation" not in store.calls


class TestGetHistory:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("session_id", [None, "", "conv_unknown"])
    async def test_missing_or_unknown_session_is_empty(
        self, manager: ConversationManager, session_id
    ):
        assert await manager.get_history(session_id) == []

    @pytest.mark.asyncio
    async def test_returns_exchange_in_order(self, manager: ConversationManager):
        result = await manager.process_message("What is your return policy?")
        history = await manager.get_history(result.session_id)

        assert len(history) == 2
        assert history[0].sender == Sender.USER
        assert history[0].text == "What is your return policy?"
        assert history[1].sender == Sender.AI
        assert history[0].timestamp <= history[1].timestamp

    @pytest.mark.asyncio
    async def test_reads_are_idempotent(
        self, manager: ConversationManager, store: MockHistoryStore
    ):
        result = await manager.process_message("Hi")
        writes = store.write_count

        first = await manager.get_history(result.session_id)
        second = await manager.get_history(result.session_id)

        assert first == second
        assert store.write_count == writes


class TestSessionSerialization:
    @staticmethod
    def _pairs(store: MockHistoryStore, session_id: str):
        return [m.sender for m in store.messages[session_id]]

    @pytest.mark.asyncio
    async def test_unguarded_writes_can_interleave(self, store: MockHistoryStore):
        provider = MockCompletionProvider(delay=0.01)
        generator = ReplyGenerator(
            provider, primary_model=PRIMARY_MODEL, fallback_model=FALLBACK_MODEL
        )
        manager = ConversationManager(store, generator)
        session_id = (await manager.process_message("start")).session_id

        await asyncio.gather(
            manager.process_message("one", session_id),
            manager.process_message("two", session_id),
        )

        assert self._pairs(store, session_id)[2:] == [
            Sender.USER,
            Sender.USER,
            Sender.AI,
            Sender.AI,
        ]

    @pytest.mark.asyncio
    async def test_serialized_writes_keep_pairs_together(self, store: MockHistoryStore):
        provider = MockCompletionProvider(delay=0.01)
        generator = ReplyGenerator(
            provider, primary_model=PRIMARY_MODEL, fallback_model=FALLBACK_MODEL
        )
        manager = ConversationManager(store, generator, serialize_session_writes=True)
        session_id = (await manager.process_message("start")).session_id

        await asyncio.gather(
            *(manager.process_message(f"msg {i}", session_id) for i in range(4))
        )

        senders = self._pairs(store, session_id)
        assert senders == [Sender.USER, Sender.AI] * 5
        assert len(manager.session_locks) == 0

    @pytest.mark.asyncio
    async def test_locks_are_per_session(self):
        locks = SessionLocks()
        order = []

        async def hold(key: str, label: str):
            async with locks.hold(key):
                order.append(f"{label}-in")
                await asyncio.sleep(0.01)
                order.append(f"{label}-out")

        await asyncio.gather(hold("a", "a1"), hold("b", "b1"))
        assert order[:2] == ["a1-in", "b1-in"]
        assert len(locks) == 0


def test_conversation_ids_are_unique():
    ids = {generate_conversation_id() for _ in range(100)}
    assert len(ids) == 100
