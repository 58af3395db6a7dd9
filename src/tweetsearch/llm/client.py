"""OpenAI-compatible async LLM client.

This wraps the `openai` Python SDK and provides a minimal interface for chat completions.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Literal, Sequence

from openai import AsyncOpenAI

from tweetsearch.config import Settings
from tweetsearch.logging import get_logger

logger = get_logger(__name__)

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """A chat message."""

    role: Role
    content: str


class AsyncLLMClient:
    """LLM client using the OpenAI-compatible Chat Completions API.

    Single attempt per call: callers decide what a failure means.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        if not settings.openai_api_key:
            raise ValueError(
                "Missing TWEETSEARCH_OPENAI_API_KEY. "
                "Set it in environment variables or a .env file."
            )

        self._client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            max_retries=0,
        )

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float = 0.0,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a completion.

        Args:
            messages: Chat messages.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate.

        Returns:
            Assistant message content.
        """

        payload: list[dict[str, str]] = [{"role": m.role, "content": m.content} for m in messages]
        start_time = time.monotonic()
        resp = await self._client.chat.completions.create(
            model=self._settings.openai_model,
            messages=payload,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=self._settings.openai_timeout_s,
        )
        logger.debug(
            "LLM completion successful",
            extra={
                "model": self._settings.openai_model,
                "latency_ms": (time.monotonic() - start_time) * 1000,
                "tokens": resp.usage.total_tokens if resp.usage else None,
            },
        )
        choice = resp.choices[0]
        if not choice.message or choice.message.content is None:
            return ""
        return choice.message.content

    async def aclose(self) -> None:
        await self._client.close()
