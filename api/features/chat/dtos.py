"""DTOs for the Chat feature."""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from api.features.chat.entities.message import Sender
from api.shared.dtos import BaseDTO


class SendMessageRequest(BaseDTO):
    """Request to send a customer message.

    Length and emptiness are checked by the conversation manager so the
    rejection can report the actual character count.
    """

    message: str = Field(description="Customer message text")
    session_id: Optional[str] = Field(
        default=None, description="Existing conversation identifier"
    )


class SendMessageResponse(BaseDTO):
    """Agent reply plus the conversation it belongs to."""

    reply: str = Field(description="Agent reply text")
    session_id: str = Field(description="Conversation identifier to reuse")


class MessageDTO(BaseDTO):
    """Conversation message DTO."""

    id: str = Field(description="Message identifier")
    conversation_id: str = Field(description="Owning conversation identifier")
    sender: Sender = Field(description="Message author: user or ai")
    text: str = Field(description="Message text")
    timestamp: datetime = Field(description="When the message was stored")


class HistoryResponse(BaseDTO):
    """Messages of a conversation in chronological order."""

    messages: List[MessageDTO] = Field(description="Messages, oldest first")
