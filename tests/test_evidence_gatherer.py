from __future__ import annotations

import pytest

from app.models.events import EventType
from app.models.provider import ContentsResult, SearchHit, SearchResponse
from app.models.report import Citation
from app.services.evidence_gatherer import (
    REJECTED_REASON,
    EvidenceGatherer,
    EvidencePool,
)
from app.services.query_classifier import classify
from app.services.prompt_store import render_prompt
from app.tools.provider_errors import ProviderError


def _hit(url: str, title: str = "", snippet: str = "") -> SearchHit:
    return SearchHit(title=title or url, url=url, snippets=[snippet] if snippet else [])


def _citation(url: str, snippet: str = "") -> Citation:
    return Citation(title=f"Title {url}", url=url, snippet=snippet)


class FakeSearch:
    name = "fake"

    def __init__(self, responses: dict[str, SearchResponse | Exception]):
        self.responses = responses
        self.calls: list[str] = []

    async def search(self, query, *, count=None, freshness=None, crawl_mode=None, crawl_formats=None):
        self.calls.append(query)
        result = self.responses[query]
        if isinstance(result, Exception):
            raise result
        return result


class FakeContents:
    def __init__(self, pages=None, error: Exception | None = None):
        self.pages = pages or []
        self.error = error
        self.calls: list[list[str]] = []

    async def contents(self, urls, formats=("markdown",)):
        self.calls.append(list(urls))
        if self.error is not None:
            raise self.error
        return self.pages


@pytest.mark.asyncio
async def test_search_merges_in_query_order_and_dedupes_by_url():
    plan = classify("Is it safe to take magnesium with lisinopril?")
    first, second = plan.queries
    search = FakeSearch(
        {
            first: SearchResponse(
                web=[_hit("https://nih.gov/a", "A"), _hit("https://example.com/b", "B")],
                news=[_hit("https://nih.gov/a", "A again")],
            ),
            second: SearchResponse(web=[_hit("https://example.com/b", "B dup"), _hit("https://c.org/c", "C")]),
        }
    )
    gatherer = EvidenceGatherer(search, FakeContents())

    outcome, events = await gatherer.search(plan)

    urls = [c.url for c in outcome.pool.citations]
    assert urls == ["https://nih.gov/a", "https://example.com/b", "https://c.org/c"]
    assert len(urls) == len(set(urls))
    assert outcome.pool.get("https://nih.gov/a").title == "A"
    assert outcome.query_log == list(plan.queries)
    assert [e.event for e in events] == [EventType.SEARCH_RESULTS, EventType.SEARCH_RESULTS]
    assert len(events[1].data["sources"]) == 1


@pytest.mark.asyncio
async def test_one_failed_query_does_not_sink_the_others():
    plan = classify("Benefits of ashwagandha")
    first, second = plan.queries
    search = FakeSearch(
        {
            first: ProviderError("You.com Search API error 402: credits used up", status_code=402),
            second: SearchResponse(web=[_hit("https://examine.com/ashwagandha", "Examine")]),
        }
    )
    gatherer = EvidenceGatherer(search, FakeContents())

    outcome, events = await gatherer.search(plan)

    assert outcome.failed_queries == [first]
    assert outcome.credits_error is True
    assert [c.url for c in outcome.pool.citations] == ["https://examine.com/ashwagandha"]
    assert [e.event for e in events] == [EventType.SEARCH_RESULTS, EventType.REASONING]
    assert events[-1].data["thought"] == render_prompt("reasoning.credits")


@pytest.mark.asyncio
async def test_invalid_urls_are_skipped():
    plan = classify("What causes migraines?")
    search = FakeSearch(
        {q: SearchResponse(web=[_hit("not a url"), _hit("")]) for q in plan.queries}
    )
    outcome, events = await EvidenceGatherer(search, None).search(plan)

    assert len(outcome.pool) == 0
    assert events == []


def test_select_deep_read_bounds():
    citations = [
        _citation("https://www.nih.gov/1"),
        _citation("https://blog.example.com/2"),
        _citation("https://www.mayoclinic.org/3"),
        _citation("https://www.webmd.com/4"),
        _citation("https://random.org/5"),
        _citation("https://another.org/6"),
        _citation("https://third.org/7"),
        _citation("https://fourth.org/8"),
        _citation("https://fifth.org/9"),
    ]
    gatherer = EvidenceGatherer(FakeSearch({}), None)

    selected, rejected = gatherer.select_deep_read(citations)

    assert selected == [
        "https://www.nih.gov/1",
        "https://www.mayoclinic.org/3",
        "https://blog.example.com/2",
    ]
    assert len(rejected) == 5
    assert all(r.reason == REJECTED_REASON for r in rejected)
    assert not {r.url for r in rejected} & set(selected)


def test_select_deep_read_with_no_authority_sources():
    citations = [_citation("https://a.org/1"), _citation("https://b.org/2")]
    selected, rejected = EvidenceGatherer(FakeSearch({}), None).select_deep_read(citations)

    assert selected == ["https://a.org/1"]
    assert [r.url for r in rejected] == ["https://b.org/2"]


@pytest.mark.asyncio
async def test_read_batches_one_call_and_builds_blocks():
    pool = EvidencePool()
    pool.extend(
        [
            _citation("https://nih.gov/1", "NIH snippet about magnesium absorption in adults."),
            _citation("https://c.org/2", "Snippet two says magnesium may interact with drugs."),
        ]
    )
    contents = FakeContents(
        pages=[
            ContentsResult(
                url="https://nih.gov/1",
                title="NIH page",
                markdown="Sign in\nMagnesium absorption is reduced by high zinc intake.",
            )
        ]
    )
    gatherer = EvidenceGatherer(FakeSearch({}), contents)

    outcome = await gatherer.read(["https://nih.gov/1", "https://c.org/2"], pool)

    assert contents.calls == [["https://nih.gov/1", "https://c.org/2"]]
    blocks = outcome.extracted.blocks
    assert blocks[0].text == "Magnesium absorption is reduced by high zinc intake."
    assert blocks[0].from_snippet is False
    assert blocks[1].from_snippet is True
    assert outcome.snippet_fallback is False


@pytest.mark.asyncio
async def test_read_failure_falls_back_to_snippets():
    pool = EvidencePool()
    pool.add(_citation("https://nih.gov/1", "Magnesium is an essential mineral for adults."))
    contents = FakeContents(error=ProviderError("You.com Contents API error 402: out of credits"))
    gatherer = EvidenceGatherer(FakeSearch({}), contents)

    outcome = await gatherer.read(["https://nih.gov/1"], pool)

    assert outcome.snippet_fallback is True
    assert outcome.credits_error is True
    assert outcome.extracted.render() == (
        "### Source: Title https://nih.gov/1 (https://nih.gov/1)\n"
        "Magnesium is an essential mineral for adults."
    )


@pytest.mark.asyncio
async def test_read_with_nothing_selected_makes_no_call():
    contents = FakeContents()
    outcome = await EvidenceGatherer(FakeSearch({}), contents).read([], EvidencePool())

    assert outcome.extracted.is_empty
    assert contents.calls == []


@pytest.mark.asyncio
async def test_gather_emits_searching_then_results_then_reading():
    plan = classify("Is intermittent fasting safe?")
    search = FakeSearch(
        {q: SearchResponse(web=[_hit(f"https://nih.gov/{i}", f"T{i}")]) for i, q in enumerate(plan.queries)}
    )
    bundle = await EvidenceGatherer(search, FakeContents()).gather(plan)

    kinds = [e.event for e in bundle.events]
    assert kinds[: len(plan.queries)] == [EventType.SEARCHING] * len(plan.queries)
    assert kinds.index(EventType.SEARCH_RESULTS) < kinds.index(EventType.READING)
    assert kinds.count(EventType.READING) == 2
    assert [c.url for c in bundle.citations] == ["https://nih.gov/0", "https://nih.gov/1"]
