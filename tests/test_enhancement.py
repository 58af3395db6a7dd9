"""Tests for the enhancement stage."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import pytest
from fakes import make_item

from tweetsearch.enhance.extractor import LLMTermExtractor, MockTermExtractor, clean_term
from tweetsearch.enhance.stage import EnhancementStage
from tweetsearch.errors import EnhancementError
from tweetsearch.models.search import EnhancedItem, ResultItem
from tweetsearch.ranking.scoring import rank

RANKED = rank([make_item(f"i{n}", n, 0, 0, 0, 0) for n in range(5, 0, -1)])


class UpperExtractor:
    """Returns the upper-cased content; fails for ids in `fail_ids`."""

    def __init__(self, fail_ids: Sequence[str] = (), delays: dict[str, int] | None = None) -> None:
        self.fail_ids = set(fail_ids)
        self.delays = delays or {}
        self.calls: list[tuple[str, str | None]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def extract(self, content: str, instruction: str | None = None) -> str:
        self.calls.append((content, instruction))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            item_id = content.split()[-1]
            for _ in range(self.delays.get(item_id, 0)):
                await asyncio.sleep(0)
            if item_id in self.fail_ids:
                raise EnhancementError(f"no term for {item_id}")
            return content.upper()
        finally:
            self.in_flight -= 1


class BatchUpper:
    def __init__(self, *, fail: bool = False, drop_one: bool = False) -> None:
        self.fail = fail
        self.drop_one = drop_one
        self.calls = 0

    async def enrich(self, items: Sequence[ResultItem], instruction: str | None = None) -> list[EnhancedItem]:
        self.calls += 1
        if self.fail:
            raise RuntimeError("enrichment service unavailable")
        out = [EnhancedItem(item=it, enriched_content=it.content.upper()) for it in items]
        return out[:-1] if self.drop_one else out


def _enhance(stage: EnhancementStage, items: Sequence[ResultItem], top_k: int, instruction: str | None = None):
    return asyncio.run(stage.enhance(items, top_k, instruction))


@pytest.mark.parametrize("top_k", range(0, len(RANKED) + 1))
def test_output_length_matches_input(top_k: int) -> None:
    stage = EnhancementStage(extractor=UpperExtractor(fail_ids=["i4"]))

    out = _enhance(stage, RANKED, top_k)

    assert len(out) == len(RANKED)
    assert [it.id for it in out] == [it.id for it in RANKED]
    assert all(isinstance(it, EnhancedItem) for it in out[:top_k])
    assert all(isinstance(it, ResultItem) for it in out[top_k:])


def test_top_k_zero_is_identity() -> None:
    extractor = UpperExtractor()

    out = _enhance(EnhancementStage(extractor=extractor), RANKED, 0)

    assert out == RANKED
    assert extractor.calls == []


def test_disabled_stage_is_identity() -> None:
    extractor = UpperExtractor()

    out = _enhance(EnhancementStage(extractor=extractor, enabled=False), RANKED, 3)

    assert out == RANKED
    assert extractor.calls == []


def test_top_k_larger_than_input_is_clamped() -> None:
    out = _enhance(EnhancementStage(extractor=MockTermExtractor()), RANKED[:2], 10)

    assert len(out) == 2
    assert all(it.search_term == "artificial intelligence" for it in out)


def test_per_item_failure_does_not_abort_the_rest() -> None:
    extractor = UpperExtractor(fail_ids=["i4"])

    out = _enhance(EnhancementStage(extractor=extractor), RANKED, 3, "focus on news")

    assert [it.search_term for it in out[:3]] == ["POST I5", None, "POST I3"]
    assert out[1].enhancement_error == "no term for i4"
    assert out[1].item == RANKED[1]
    assert extractor.calls[0] == ("post i5", "focus on news")
    assert len(extractor.calls) == 3


def test_extraction_is_sequential_by_default() -> None:
    extractor = UpperExtractor(delays={"i5": 3})

    _enhance(EnhancementStage(extractor=extractor), RANKED, 4)

    assert extractor.max_in_flight == 1


def test_bounded_concurrency_preserves_order() -> None:
    extractor = UpperExtractor(delays={"i5": 5, "i4": 3, "i3": 1})

    out = _enhance(EnhancementStage(extractor=extractor, max_concurrency=2), RANKED, 4)

    assert [it.id for it in out] == [it.id for it in RANKED]
    assert [it.search_term for it in out[:4]] == ["POST I5", "POST I4", "POST I3", "POST I2"]
    assert extractor.max_in_flight == 2


def test_batch_enricher_success() -> None:
    enricher = BatchUpper()

    out = _enhance(EnhancementStage(enricher=enricher, extractor=UpperExtractor()), RANKED, 2)

    assert enricher.calls == 1
    assert [it.enriched_content for it in out[:2]] == ["POST I5", "POST I4"]
    assert out[2:] == RANKED[2:]


def test_batch_enricher_failure_annotates_head() -> None:
    out = _enhance(EnhancementStage(enricher=BatchUpper(fail=True)), RANKED, 2)

    assert len(out) == len(RANKED)
    assert [it.enhancement_error for it in out[:2]] == ["enrichment service unavailable"] * 2
    assert [it.item for it in out[:2]] == RANKED[:2]
    assert out[2:] == RANKED[2:]


def test_batch_enricher_dropping_items_counts_as_failure() -> None:
    out = _enhance(EnhancementStage(enricher=BatchUpper(drop_one=True)), RANKED, 3)

    assert len(out) == len(RANKED)
    assert all(it.enhancement_error for it in out[:3])


def test_no_collaborator_is_identity() -> None:
    assert _enhance(EnhancementStage(), RANKED, 3) == RANKED


@pytest.mark.parametrize(
    ("raw", "term"),
    [
        ("artificial intelligence", "artificial intelligence"),
        ('"Bitcoin ETF"\n', "Bitcoin ETF"),
        ("Search term: climate policy.", "climate policy"),
        ("\n\n  rust async\nbecause the post...", "rust async"),
        ("   ", ""),
    ],
)
def test_clean_term(raw: str, term: str) -> None:
    assert clean_term(raw) == term


class FakeLLM:
    def __init__(self, reply: str | Exception) -> None:
        self.reply = reply
        self.messages: list = []

    async def complete(self, messages, temperature: float = 0.0, max_tokens: int | None = None) -> str:
        self.messages = list(messages)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def test_llm_extractor_sends_instruction_and_cleans_reply() -> None:
    llm = FakeLLM('"Bitcoin ETF".')

    term = asyncio.run(LLMTermExtractor(llm).extract("ETF approved today", "prefer tickers"))

    assert term == "Bitcoin ETF"
    assert [m.role for m in llm.messages] == ["system", "user"]
    assert "prefer tickers" in llm.messages[0].content
    assert llm.messages[1].content == "ETF approved today"


@pytest.mark.parametrize(("content", "reply"), [("   ", "ai"), ("post", "  "), ("post", TimeoutError("slow"))])
def test_llm_extractor_failures_are_enhancement_errors(content: str, reply: str | Exception) -> None:
    with pytest.raises(EnhancementError):
        asyncio.run(LLMTermExtractor(FakeLLM(reply)).extract(content))
