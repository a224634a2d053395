"""Conversation service: session lifecycle and message exchange.

``ConversationManager.process_message`` runs one exchange as a strictly
sequential pipeline: validate, resolve the session, store the customer
message, load history, generate, store the reply, bump the conversation.
The customer message is stored before the provider is called, so a failed
generation never loses it.

An unknown session id silently starts a new conversation instead of being
rejected. Steps after session resolution are independent store calls; two
concurrent requests on one session may interleave unless
``serialize_session_writes`` is enabled.
"""
from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional

import structlog

from api.features.chat.entities.message import Sender
from api.features.chat.generator import ReplyGenerator
from api.features.chat.models import ChatMessage, ChatReply
from api.features.chat.repository import HistoryStore
from api.features.chat.validators import DEFAULT_MAX_MESSAGE_LENGTH, MessageValidator

logger = structlog.get_logger("chat.service")


def generate_conversation_id() -> str:
    return f"conv_{int(time.time() * 1000)}_{uuid.uuid4()}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionLocks:
    """Per-conversation ``asyncio.Lock`` registry, scoped to one process."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class ConversationManager:
    """Owns session identity and orchestrates store and generator."""

    def __init__(
        self,
        store: HistoryStore,
        generator: ReplyGenerator,
        *,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
        serialize_session_writes: bool = False,
    ):
        self.store = store
        self.generator = generator
        self.validator = MessageValidator(max_message_length)
        self.session_locks: Optional[SessionLocks] = (
            SessionLocks() if serialize_session_writes else None
        )

    async def process_message(
        self, message: str, session_id: Optional[str] = None
    ) -> ChatReply:
        text = self.validator.validate(message)
        conversation_id = await self._resolve_session(session_id)

        if self.session_locks is None:
            reply = await self._exchange(conversation_id, text)
        else:
            async with self.session_locks.hold(conversation_id):
                reply = await self._exchange(conversation_id, text)

        return ChatReply(reply=reply, session_id=conversation_id)

    async def get_history(self, session_id: Optional[str]) -> List[ChatMessage]:
        if not session_id:
            return []
        conversation = await self.store.get_conversation(session_id)
        if conversation is None:
            return []
        return await self.store.get_messages(session_id)

    async def _resolve_session(self, session_id: Optional[str]) -> str:
        if session_id:
            conversation = await self.store.get_conversation(session_id)
            if conversation is not None:
                return conversation.id
            logger.info("conversation.unknown_session", session_id=session_id)

        conversation_id = generate_conversation_id()
        await self.store.create_conversation(conversation_id)
        return conversation_id

    async def _exchange(self, conversation_id: str, text: str) -> str:
        await self.store.create_message(
            conversation_id=conversation_id,
            sender=Sender.USER,
            text=text,
            timestamp=_utcnow(),
        )

        history = await self.store.get_messages(conversation_id)
        reply = await self.generator.generate_reply(text, history)

        await self.store.create_message(
            conversation_id=conversation_id,
            sender=Sender.AI,
            text=reply,
            timestamp=_utcnow(),
        )
        await self.store.update_conversation(conversation_id)

        logger.info(
            "conversation.exchange_completed",
            conversation_id=conversation_id,
            history_size=len(history),
            model=self.generator.current_model,
        )
        return reply
