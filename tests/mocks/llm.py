import asyncio
from typing import List, Optional, Tuple, Union

import httpx
import openai

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def openai_status_error(cls, status_code: int, message: str):
    """Build an ``openai.APIStatusError`` subclass the way the SDK raises it."""
    return cls(message, response=httpx.Response(status_code, request=_REQUEST), body=None)


def model_not_found_error(model: str = "gpt-4o-mini") -> openai.NotFoundError:
    return openai_status_error(
        openai.NotFoundError, 404, f"The model `{model}` does not exist"
    )


def openai_timeout_error() -> openai.APITimeoutError:
    return openai.APITimeoutError(request=_REQUEST)


class MockCompletionProvider:
    """Replays scripted outcomes and records every (prompt, model) call.

    Each outcome is either reply text or an exception to raise. When the
    script runs out, ``default_reply`` is returned.
    """

    def __init__(
        self,
        outcomes: Optional[List[Union[str, BaseException]]] = None,
        default_reply: str = "Happy to help with that!",
        delay: float = 0.0,
    ):
        self.outcomes = list(outcomes or [])
        self.default_reply = default_reply
        self.delay = delay
        self.calls: List[Tuple[str, str]] = []

    @property
    def prompts(self) -> List[str]:
        return [prompt for prompt, _ in self.calls]

    @property
    def models(self) -> List[str]:
        return [model for _, model in self.calls]

    async def complete_prompt(self, prompt: str, model_id: str) -> str:
        self.calls.append((prompt, model_id))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return self.default_reply
