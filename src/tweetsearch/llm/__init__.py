"""LLM access."""

from __future__ import annotations

from tweetsearch.llm.client import AsyncLLMClient, ChatMessage

__all__ = ["AsyncLLMClient", "ChatMessage"]
