"""Reply generation for support conversations.

The generator renders a bounded window of the conversation into a single
prompt and asks the completion provider for one non-streaming reply. A
failure classified as "model not found" triggers exactly one attempt on the
fallback model; once that succeeds, the fallback becomes the model tried
first for the rest of the generator's life. Provider failures are
classified here into the chat exception taxonomy and nowhere else.
"""
from __future__ import annotations

import asyncio
import re
from typing import List, Optional, Protocol

import openai
import structlog

from api.features.chat.exceptions import (
    AuthError,
    EmptyResponseError,
    GenerationError,
    GenerationFailedError,
    GenerationTimeoutError,
    ModelUnavailableError,
    RateLimitedError,
)
from api.features.chat.models import ChatMessage
from api.features.chat.prompts import build_reply_prompt, format_history, window_history
from api.features.chat.validators import DEFAULT_MAX_MESSAGE_LENGTH, MessageValidator

logger = structlog.get_logger("chat.generator")

DEFAULT_HISTORY_WINDOW = 10

_AUTH_PATTERN = re.compile(r"api[ _]?key|unauthori[sz]ed|invalid authentication")
_RATE_LIMIT_PATTERN = re.compile(r"rate limit|quota|too many requests")
_TIMEOUT_PATTERN = re.compile(r"timeout|timed out")
_NOT_FOUND_PATTERN = re.compile(r"not found|404|does not exist|no such model")


class CompletionProvider(Protocol):
    """Anything that can complete a prompt with a given model."""

    async def complete_prompt(self, prompt: str, model_id: str) -> str: ...


def _status_code(error: BaseException) -> Optional[int]:
    for attr in ("status_code", "status", "http_status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _error_text(error: BaseException) -> str:
    return (str(error) or type(error).__name__).lower()


def is_model_not_found(error: BaseException) -> bool:
    if isinstance(error, openai.NotFoundError) or _status_code(error) == 404:
        return True
    return bool(_NOT_FOUND_PATTERN.search(_error_text(error)))


def classify_provider_error(error: BaseException, model: str) -> GenerationError:
    """Map a raw provider exception onto the chat exception taxonomy."""
    if isinstance(error, GenerationError):
        return error

    status = _status_code(error)
    text = _error_text(error)
    details = {"provider_error": type(error).__name__}
    if status is not None:
        details["status_code"] = status

    if (
        isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError))
        or status in (401, 403)
        or _AUTH_PATTERN.search(text)
    ):
        return AuthError(model, details)
    if (
        isinstance(error, openai.RateLimitError)
        or status == 429
        or _RATE_LIMIT_PATTERN.search(text)
    ):
        return RateLimitedError(model, details)
    if isinstance(error, (openai.APITimeoutError, asyncio.TimeoutError)) or (
        _TIMEOUT_PATTERN.search(text)
    ):
        return GenerationTimeoutError(model, details)
    if is_model_not_found(error):
        return ModelUnavailableError(model, details)
    return GenerationFailedError(str(error) or type(error).__name__, model, details)


class ReplyGenerator:
    """Produces support agent replies through a completion provider."""

    def __init__(
        self,
        provider: CompletionProvider,
        *,
        primary_model: str,
        fallback_model: str,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    ):
        self.provider = provider
        self.primary_model = primary_model
        self.fallback_model = fallback_model
        self.history_window = history_window
        self.validator = MessageValidator(max_message_length)
        # Only written after a fallback call has succeeded
        self.current_model = primary_model

    def build_prompt(self, user_message: str, history: List[ChatMessage]) -> str:
        window = window_history(history, self.history_window)
        return build_reply_prompt(
            history_text=format_history(window), user_message=user_message
        )

    async def generate_reply(
        self, user_message: str, history: List[ChatMessage]
    ) -> str:
        message = self.validator.validate(user_message)
        prompt = self.build_prompt(message, history)

        model = self.current_model
        try:
            text = await self.provider.complete_prompt(prompt, model)
        except Exception as primary_error:
            wants_fallback = isinstance(
                classify_provider_error(primary_error, model), ModelUnavailableError
            )
            if model == self.fallback_model or not wants_fallback:
                raise self._classified(primary_error, model) from primary_error

            logger.warning(
                "reply_generator.model_not_found",
                model=model,
                fallback_model=self.fallback_model,
            )
            try:
                text = await self.provider.complete_prompt(prompt, self.fallback_model)
            except Exception as fallback_error:
                logger.error(
                    "reply_generator.fallback_failed",
                    model=self.fallback_model,
                    error_type=type(fallback_error).__name__,
                    error=str(fallback_error),
                )
                raise self._classified(primary_error, model) from fallback_error

            self.current_model = self.fallback_model
            model = self.fallback_model
            logger.info("reply_generator.model_switched", model=model)

        reply = (text or "").strip()
        if not reply:
            logger.error("reply_generator.empty_response", model=model)
            raise EmptyResponseError(model)
        return reply

    def _classified(self, error: Exception, model: str) -> GenerationError:
        classified = classify_provider_error(error, model)
        logger.error(
            "reply_generator.failed",
            model=model,
            error_code=classified.error_code,
            error_type=type(error).__name__,
            status_code=_status_code(error),
            error=str(error),
        )
        return classified
