"""Exceptions for the Chat feature.

Validation errors are raised before anything is persisted or sent to the
provider. Generation errors are classified once, by the reply generator, and
propagate untouched through the conversation manager.
"""
from typing import Any, Dict, Optional

from api.shared.exceptions import SupportChatException, ValidationError


class ChatValidationError(ValidationError):
    """Base for local, non-retryable message validation failures."""

    pass


class InvalidInputError(ChatValidationError):
    """Raised when a message is empty or whitespace only."""

    def __init__(self, message: str = "Message cannot be empty"):
        super().__init__(message, "INVALID_INPUT")


class MessageTooLongError(ChatValidationError):
    """Raised when a message exceeds the maximum length."""

    def __init__(self, length: int, max_length: int):
        message = (
            f"Message is too long. Maximum length is {max_length} characters. "
            f"Your message has {length} characters."
        )
        super().__init__(
            message,
            "MESSAGE_TOO_LONG",
            {"length": length, "max_length": max_length},
        )


class GenerationError(SupportChatException):
    """Base for reply generation failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "GENERATION_FAILED",
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details: Dict[str, Any] = {}
        if model:
            error_details["model"] = model
        if details:
            error_details.update(details)
        super().__init__(message, error_code, error_details)


class EmptyResponseError(GenerationError):
    """Raised when the provider returns blank text."""

    def __init__(self, model: Optional[str] = None):
        super().__init__("Empty response from LLM", "EMPTY_RESPONSE", model)


class AuthError(GenerationError):
    """Raised when the provider rejects the configured credentials."""

    def __init__(self, model: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "Invalid API key. Please check the OPENAI_API_KEY setting.",
            "AUTH_ERROR",
            model,
            details,
        )


class RateLimitedError(GenerationError):
    """Raised when the provider rate limit or quota is exceeded."""

    def __init__(self, model: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "API rate limit exceeded. Please try again in a moment.",
            "RATE_LIMITED",
            model,
            details,
        )


class GenerationTimeoutError(GenerationError):
    """Raised when the provider request times out."""

    def __init__(self, model: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "Request timed out. Please try again.", "TIMEOUT", model, details
        )


class ModelUnavailableError(GenerationError):
    """Raised when the model cannot be found, even after the fallback."""

    def __init__(self, model: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Model '{model}' not available. Please check the model name.",
            "MODEL_UNAVAILABLE",
            model,
            details,
        )


class GenerationFailedError(GenerationError):
    """Catch-all for any other provider failure."""

    def __init__(
        self,
        reason: str,
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            f"Failed to generate reply: {reason}. Please try again.",
            "GENERATION_FAILED",
            model,
            details,
        )
