from tests.mocks.llm import (
    MockCompletionProvider,
    model_not_found_error,
    openai_status_error,
    openai_timeout_error,
)
from tests.mocks.storage import MockHistoryStore

__all__ = [
    "MockCompletionProvider",
    "MockHistoryStore",
    "model_not_found_error",
    "openai_status_error",
    "openai_timeout_error",
]
