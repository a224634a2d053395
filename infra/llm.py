"""Completion provider backed by LangChain's OpenAI chat model.

One ``ChatOpenAI`` client is kept per model id. Provider exceptions are
raised as-is; callers classify them.
"""
from __future__ import annotations

import time
from typing import Dict, Optional

import structlog
from langchain_openai import ChatOpenAI

logger = structlog.get_logger("chat.llm")


class ChatModelProvider:
    """Single-turn, non-streaming prompt completion."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        timeout: float = 30.0,
    ):
        if not api_key:
            raise ValueError("OPENAI_API_KEY is required")
        self.api_key = api_key
        self.base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._clients: Dict[str, ChatOpenAI] = {}

    def _client(self, model_id: str) -> ChatOpenAI:
        client = self._clients.get(model_id)
        if client is None:
            client = ChatOpenAI(
                model=model_id,
                api_key=self.api_key,
                base_url=self.base_url,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
                max_retries=0,
            )
            self._clients[model_id] = client
        return client

    async def complete_prompt(self, prompt: str, model_id: str) -> str:
        start = time.time()
        result = await self._client(model_id).ainvoke(prompt)
        latency_ms = int((time.time() - start) * 1000)
        logger.info("llm.completion", model=model_id, latency_ms=latency_ms)

        content = result.content
        if isinstance(content, list):
            # Content blocks: keep only the text parts
            content = "".join(
                part if isinstance(part, str) else str(part.get("text", ""))
                for part in content
            )
        return content or ""
