"""Repository for conversation persistence operations.

``HistoryStore`` is the narrow capability set the conversation manager relies
on; ``SqlHistoryStore`` implements it over the async SQLAlchemy engine. Every
call opens its own session and commits on its own, so an exchange is a series
of independent writes rather than one transaction.
"""
from __future__ import annotations

import secrets
import string
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional, Protocol

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.entities.conversation import Conversation as ConversationEntity
from api.features.chat.entities.message import Message as MessageEntity, Sender
from api.features.chat.models import ChatMessage, ConversationModel
from api.shared.exceptions import DatabaseError
from infra.resources import DatabaseResource

logger = structlog.get_logger("chat.repository")

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_message_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"msg_{int(time.time() * 1000)}_{suffix}"


class HistoryStore(Protocol):
    """Conversation and message storage used by the conversation manager."""

    async def create_conversation(self, conversation_id: str) -> None: ...

    async def get_conversation(
        self, conversation_id: str
    ) -> Optional[ConversationModel]: ...

    async def update_conversation(self, conversation_id: str) -> None: ...

    async def create_message(
        self,
        *,
        conversation_id: str,
        sender: Sender,
        text: str,
        timestamp: datetime,
    ) -> str: ...

    async def get_messages(self, conversation_id: str) -> List[ChatMessage]: ...


class SqlHistoryStore:
    """``HistoryStore`` backed by PostgreSQL through SQLAlchemy's async ORM."""

    def __init__(self, database: DatabaseResource):
        self.database = database

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        session = self.database.get_session()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("history_store.failed", operation=operation, error=str(e))
            raise DatabaseError(
                f"Failed to {operation.replace('_', ' ')}",
                {"operation": operation},
            ) from e
        finally:
            await session.close()

    async def create_conversation(self, conversation_id: str) -> None:
        now = datetime.now(timezone.utc)
        async with self._session("create_conversation") as session:
            session.add(
                ConversationEntity(id=conversation_id, created_at=now, updated_at=now)
            )
            await session.commit()
        logger.info("conversation.created", conversation_id=conversation_id)

    async def get_conversation(
        self, conversation_id: str
    ) -> Optional[ConversationModel]:
        async with self._session("get_conversation") as session:
            stmt = select(ConversationEntity).where(
                ConversationEntity.id == conversation_id
            )
            result = await session.execute(stmt)
            entity = result.scalar_one_or_none()
            return ConversationModel.from_entity(entity) if entity else None

    async def update_conversation(self, conversation_id: str) -> None:
        async with self._session("update_conversation") as session:
            stmt = (
                update(ConversationEntity)
                .where(ConversationEntity.id == conversation_id)
                .values(updated_at=datetime.now(timezone.utc))
            )
            await session.execute(stmt)
            await session.commit()

    async def create_message(
        self,
        *,
        conversation_id: str,
        sender: Sender,
        text: str,
        timestamp: datetime,
    ) -> str:
        message_id = generate_message_id()
        async with self._session("create_message") as session:
            session.add(
                MessageEntity(
                    id=message_id,
                    conversation_id=conversation_id,
                    sender=Sender(sender).value,
                    text=text,
                    timestamp=timestamp,
                )
            )
            await session.commit()
        return message_id

    async def get_messages(self, conversation_id: str) -> List[ChatMessage]:
        async with self._session("get_messages") as session:
            stmt = (
                select(MessageEntity)
                .where(MessageEntity.conversation_id == conversation_id)
                .order_by(MessageEntity.timestamp.asc())
            )
            result = await session.execute(stmt)
            return [ChatMessage.from_entity(m) for m in result.scalars().all()]
