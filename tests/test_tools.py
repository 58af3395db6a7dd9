"""Tests for tool parsing and dispatch."""

from __future__ import annotations

import asyncio

import pytest
from fakes import ScriptedJobClient, make_item, upstream_item

from tweetsearch.enhance.stage import EnhancementStage
from tweetsearch.errors import EnhancementError, InvalidToolParametersError, UnknownToolError
from tweetsearch.jobs.orchestrator import PollingOrchestrator
from tweetsearch.models.search import JobStatus
from tweetsearch.service import SearchService
from tweetsearch.tools.registry import (
    ExtractTermCall,
    RankCall,
    SearchCall,
    ToolDispatcher,
    list_tools,
    parse_call,
)


async def _no_sleep(seconds: float) -> None:
    return None


class FailingExtractor:
    async def extract(self, content: str, instruction: str | None = None) -> str:
        raise EnhancementError("model unavailable")


def _dispatcher(client: ScriptedJobClient | None = None, extractor=None) -> ToolDispatcher:
    client = client or ScriptedJobClient([JobStatus.done()])
    service = SearchService(
        orchestrator=PollingOrchestrator(client, sleep=_no_sleep),
        stage=EnhancementStage(extractor=extractor),
        extractor=extractor,
    )
    return ToolDispatcher(service)


def test_parse_call_unknown_tool() -> None:
    with pytest.raises(UnknownToolError, match="Tool 'x' not found"):
        parse_call("x", {})


def test_parse_call_accepts_aliases() -> None:
    search = parse_call("search", {"query": "#AI", "maxResults": 5})
    extract = parse_call("extract-term", {"tweet_content": "hello", "customInstruction": "short"})

    assert isinstance(search, SearchCall)
    assert search.max_results == 5
    assert isinstance(extract, ExtractTermCall)
    assert (extract.content, extract.instruction) == ("hello", "short")


@pytest.mark.parametrize(
    ("tool", "parameters"),
    [
        ("search", {}),
        ("search", {"query": "ai", "maxResults": 1000}),
        ("extract-term", {"content": ""}),
        ("rank-by-engagement", {"tweets": "not a list"}),
    ],
)
def test_parse_call_invalid_parameters(tool: str, parameters: dict) -> None:
    with pytest.raises(InvalidToolParametersError) as exc_info:
        parse_call(tool, parameters)

    assert exc_info.value.http_status == 422


def test_parse_call_rank_accepts_upstream_shape() -> None:
    call = parse_call("rank-by-engagement", {"tweets": [upstream_item("t1", 3, 1, 0, 0, 0)]})

    assert isinstance(call, RankCall)
    assert call.items[0].id == "t1"
    assert call.items[0].metrics.retweet_count == 3


def test_list_tools() -> None:
    tools = {t["name"]: t for t in list_tools()}

    assert set(tools) == {"search", "rank-by-engagement", "extract-term"}
    assert "query" in tools["search"]["schema"]["properties"]
    assert "tool" not in tools["search"]["schema"]["properties"]
    assert tools["extract-term"]["description"]


def test_rank_tool_sorts_items() -> None:
    params = {
        "tweets": [
            upstream_item("item1", 10, 5, 0, 1, 0),
            upstream_item("item2", 1, 1, 0, 0, 0),
            upstream_item("item3", 50, 20, 2, 3, 1),
        ]
    }

    result = asyncio.run(_dispatcher().execute("rank-by-engagement", params))

    assert result.success
    assert [it["id"] for it in result.content] == ["item3", "item1", "item2"]
    assert result.content[0]["score"] == 127.0


def test_search_tool_returns_ranked_items() -> None:
    client = ScriptedJobClient([JobStatus.done()], [make_item("low", 0, 1, 0, 0, 0), make_item("high", 9, 0, 0, 0, 0)])

    result = asyncio.run(_dispatcher(client).execute("search", {"query": "ai"}))

    assert result.success
    assert [it["id"] for it in result.content] == ["high", "low"]


def test_search_tool_reports_job_failure() -> None:
    client = ScriptedJobClient([JobStatus.failed("quota exceeded")])

    result = asyncio.run(_dispatcher(client).execute("search", {"query": "ai"}))

    assert not result.success
    assert "quota exceeded" in (result.error or "")
    assert result.metadata["http_status"] == 502


def test_extract_term_failure_is_reported_in_content() -> None:
    result = asyncio.run(_dispatcher(extractor=FailingExtractor()).execute("extract-term", {"content": "hi"}))

    assert result.success
    assert result.content["success"] is False
    assert result.content["searchTerm"] is None


def test_extract_term_without_extractor() -> None:
    result = asyncio.run(_dispatcher().execute("extract-term", {"content": "hi"}))

    assert result.content == {
        "searchTerm": None,
        "success": False,
        "error": "search term extraction is not configured",
    }
