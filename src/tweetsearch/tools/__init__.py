"""Tool invocation endpoint support."""

from __future__ import annotations

from tweetsearch.tools.registry import (
    ExtractTermCall,
    RankCall,
    SearchCall,
    ToolDispatcher,
    ToolName,
    ToolResult,
    list_tools,
    parse_call,
)

__all__ = [
    "ExtractTermCall",
    "RankCall",
    "SearchCall",
    "ToolDispatcher",
    "ToolName",
    "ToolResult",
    "list_tools",
    "parse_call",
]
