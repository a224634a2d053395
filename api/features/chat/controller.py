"""Controller for the Chat feature."""
import logging

from fastapi import HTTPException

from api.features.chat.dtos import (
    HistoryResponse,
    MessageDTO,
    SendMessageRequest,
    SendMessageResponse,
)
from api.features.chat.exceptions import (
    AuthError,
    ChatValidationError,
    GenerationError,
    GenerationTimeoutError,
    RateLimitedError,
)
from api.features.chat.service import ConversationManager
from api.shared.exceptions import DatabaseError

logger = logging.getLogger("chat.controller")

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again."
AI_UNAVAILABLE_MESSAGE = "AI service is temporarily unavailable. Please try again in a moment."


class ChatController:
    """Controller for message exchange and history lookups."""

    def __init__(self, conversation_manager: ConversationManager):
        self.conversation_manager = conversation_manager

    async def send_message(self, request: SendMessageRequest) -> SendMessageResponse:
        try:
            result = await self.conversation_manager.process_message(
                request.message, request.session_id
            )
            return SendMessageResponse(reply=result.reply, session_id=result.session_id)
        except ChatValidationError as e:
            logger.info(f"Message rejected: {e.message}")
            raise HTTPException(status_code=400, detail=e.message)
        except AuthError as e:
            logger.error(f"Provider authentication failed: {e.message} {e.details}")
            raise HTTPException(
                status_code=500,
                detail="Service configuration error. Please contact support.",
            )
        except RateLimitedError as e:
            logger.warning(f"Provider rate limited: {e.message} {e.details}")
            raise HTTPException(
                status_code=503,
                detail=(
                    "Service is temporarily unavailable due to high demand. "
                    "Please try again in a moment."
                ),
            )
        except GenerationTimeoutError as e:
            logger.warning(f"Provider timed out: {e.message} {e.details}")
            raise HTTPException(
                status_code=504,
                detail="Request timed out. Please check your connection and try again.",
            )
        except GenerationError as e:
            logger.error(f"Reply generation failed [{e.error_code}]: {e.message} {e.details}")
            raise HTTPException(status_code=503, detail=AI_UNAVAILABLE_MESSAGE)
        except DatabaseError as e:
            logger.error(f"Storage failure while processing message: {e.message}")
            raise HTTPException(status_code=500, detail=UNEXPECTED_ERROR_MESSAGE)
        except Exception:
            logger.exception("Unexpected error processing message")
            raise HTTPException(status_code=500, detail=UNEXPECTED_ERROR_MESSAGE)

    async def get_history(self, session_id: str) -> HistoryResponse:
        try:
            messages = await self.conversation_manager.get_history(session_id)
            return HistoryResponse(
                messages=[MessageDTO.model_validate(m.model_dump()) for m in messages]
            )
        except Exception:
            logger.exception(f"Failed to fetch history for session {session_id}")
            raise HTTPException(
                status_code=500, detail="Failed to fetch conversation history"
            )
