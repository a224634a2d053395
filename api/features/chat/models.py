"""Domain models for the Chat feature."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from api.features.chat.entities.conversation import Conversation as ConversationEntity
from api.features.chat.entities.message import Message as MessageEntity, Sender


class ConversationModel(BaseModel):
    """Domain model for Conversation."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Conversation identifier")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")

    @classmethod
    def from_entity(cls, entity: ConversationEntity) -> "ConversationModel":
        """Create model from database entity."""
        return cls(
            id=entity.id,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class ChatMessage(BaseModel):
    """Domain model for a stored message."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Message identifier")
    conversation_id: str = Field(description="Owning conversation identifier")
    sender: Sender = Field(description="Message author: user or ai")
    text: str = Field(description="Message text")
    timestamp: datetime = Field(description="When the message was stored")

    @classmethod
    def from_entity(cls, entity: MessageEntity) -> "ChatMessage":
        """Create model from database entity."""
        return cls(
            id=entity.id,
            conversation_id=entity.conversation_id,
            sender=Sender(entity.sender),
            text=entity.text,
            timestamp=entity.timestamp,
        )


class ChatReply(BaseModel):
    """Result of processing one user message."""

    reply: str = Field(description="Agent reply text")
    session_id: str = Field(description="Resolved conversation identifier")
