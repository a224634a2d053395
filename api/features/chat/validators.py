"""Validators for chat messages."""
from api.features.chat.exceptions import InvalidInputError, MessageTooLongError

DEFAULT_MAX_MESSAGE_LENGTH = 2000


class MessageValidator:
    """Checks customer messages before they are stored or sent to the provider."""

    def __init__(self, max_length: int = DEFAULT_MAX_MESSAGE_LENGTH):
        self.max_length = max_length

    def validate(self, message: str) -> str:
        """Return the trimmed message, or raise if it is empty or too long."""
        trimmed = (message or "").strip()
        if not trimmed:
            raise InvalidInputError()
        if len(trimmed) > self.max_length:
            raise MessageTooLongError(len(trimmed), self.max_length)
        return trimmed
