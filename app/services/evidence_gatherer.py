from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable

from app.config import settings
from app.models.events import SSEEvent
from app.models.report import Citation, RejectedSource
from app.models.research_plan import ResearchPlan
from app.services import logger as log_service
from app.services import streaming
from app.services.prompt_store import render_prompt
from app.services.source_tiers import citation_from_hit
from app.tools.content_extractor import ExtractedContent, build_block, snippet_block
from app.tools.provider_errors import is_credits_error
from app.tools.search_provider import ContentProvider, SearchProvider
from app.tools.web_utils import is_valid_url

AUTHORITY_DOMAINS = (
    "nih.gov",
    "mayoclinic.org",
    "who.int",
    "fda.gov",
    "webmd.com",
    "drugs.com",
    "examine.com",
    "pubmed",
    "clevelandclinic.org",
    "medlineplus.gov",
    "healthline.com",
)
REJECTED_REASON = "Not selected for deep reading; snippet evidence used instead"
SEARCH_RESULTS_PREVIEW = 5


def is_authority_url(url: str) -> bool:
    lowered = url.lower()
    return any(domain in lowered for domain in AUTHORITY_DOMAINS)


@dataclass(slots=True)
class EvidencePool:
    """Order-preserving citations for one run, unique by url (first seen wins)."""

    citations: list[Citation] = field(default_factory=list)
    _by_url: dict[str, Citation] = field(default_factory=dict)

    def add(self, citation: Citation) -> bool:
        if citation.url in self._by_url:
            return False
        self._by_url[citation.url] = citation
        self.citations.append(citation)
        return True

    def extend(self, citations: Iterable[Citation]) -> list[Citation]:
        """Add citations in order and return the ones that were new."""
        return [c for c in citations if self.add(c)]

    def get(self, url: str) -> Citation | None:
        return self._by_url.get(url)

    def __len__(self) -> int:
        return len(self.citations)


@dataclass(slots=True)
class SearchOutcome:
    pool: EvidencePool
    query_log: list[str] = field(default_factory=list)
    failed_queries: list[str] = field(default_factory=list)
    credits_error: bool = False


@dataclass(slots=True)
class ReadOutcome:
    extracted: ExtractedContent
    credits_error: bool = False
    snippet_fallback: bool = False


@dataclass(slots=True)
class EvidenceBundle:
    citations: list[Citation]
    extracted: ExtractedContent
    query_log: list[str]
    credits_error: bool
    rejected_sources: list[RejectedSource]
    events: list[SSEEvent] = field(default_factory=list)


@dataclass(slots=True)
class _QueryResult:
    query: str
    citations: list[Citation] = field(default_factory=list)
    error: str | None = None


class EvidenceGatherer:
    """Concurrent search fan-out, dedup, tiering and bounded deep reading."""

    def __init__(
        self,
        search_provider: SearchProvider,
        content_provider: ContentProvider | None,
        *,
        results_per_query: int | None = None,
        freshness: str | None = None,
        crawl_mode: str | None = None,
        max_deep_read: int | None = None,
        max_authority: int | None = None,
        max_other: int | None = None,
        max_rejected: int | None = None,
    ):
        self.search_provider = search_provider
        self.content_provider = content_provider
        self.results_per_query = results_per_query or settings.search_results_per_query
        self.freshness = freshness if freshness is not None else settings.search_freshness
        self.crawl_mode = crawl_mode if crawl_mode is not None else settings.search_crawl_mode
        self.max_deep_read = max_deep_read if max_deep_read is not None else settings.deep_read_max_urls
        self.max_authority = max_authority if max_authority is not None else settings.deep_read_max_authority
        self.max_other = max_other if max_other is not None else settings.deep_read_max_other
        self.max_rejected = max_rejected if max_rejected is not None else settings.rejected_sources_max

    # --- Searching ---

    @staticmethod
    def announce_searches(plan: ResearchPlan) -> list[SSEEvent]:
        return [streaming.searching(query) for query in plan.queries]

    async def _run_query(self, query: str) -> _QueryResult:
        try:
            response = await self.search_provider.search(
                query,
                count=self.results_per_query,
                freshness=self.freshness or None,
                crawl_mode=self.crawl_mode or None,
            )
        except Exception as exc:
            log_service.log_provider_call(
                getattr(self.search_provider, "name", "search"),
                "search",
                "error",
                details=query[:80],
                error=str(exc),
            )
            return _QueryResult(query=query, error=str(exc))

        citations = [
            citation_from_hit(hit)
            for hit in response.all_hits()
            if hit.url and is_valid_url(hit.url)
        ]
        return _QueryResult(query=query, citations=citations)

    async def search(self, plan: ResearchPlan) -> tuple[SearchOutcome, list[SSEEvent]]:
        """Run every plan query concurrently and merge results in query order."""
        events: list[SSEEvent] = []
        outcome = SearchOutcome(pool=EvidencePool(), query_log=list(plan.queries))

        results = await asyncio.gather(*(self._run_query(q) for q in plan.queries))

        for result in results:
            if result.error is not None:
                outcome.failed_queries.append(result.query)
                if is_credits_error(result.error):
                    outcome.credits_error = True
                continue
            added = outcome.pool.extend(result.citations)
            if added:
                events.append(streaming.search_results(added[:SEARCH_RESULTS_PREVIEW]))

        if outcome.credits_error:
            events.append(streaming.reasoning(render_prompt("reasoning.credits")))

        log_service.log_event(
            event_type="search_completed",
            message="Search stage finished",
            queries=len(plan.queries),
            failed=len(outcome.failed_queries),
            citations=len(outcome.pool),
            credits_error=outcome.credits_error,
        )
        return outcome, events

    # --- Deep-read selection ---

    def select_deep_read(
        self, citations: list[Citation]
    ) -> tuple[list[str], list[RejectedSource]]:
        """Pick at most a few URLs to read in full; the rest are recorded as rejected."""
        unique_urls = list(dict.fromkeys(c.url for c in citations))
        authority = [u for u in unique_urls if is_authority_url(u)][: self.max_authority]
        other = [u for u in unique_urls if not is_authority_url(u)][: self.max_other]
        selected = [*authority, *other][: self.max_deep_read]

        chosen = set(selected)
        rejected: list[RejectedSource] = []
        for citation in citations:
            if citation.url in chosen:
                continue
            if len(rejected) >= self.max_rejected:
                break
            rejected.append(
                RejectedSource(title=citation.title, url=citation.url, reason=REJECTED_REASON)
            )
        return selected, rejected

    # --- Reading ---

    @staticmethod
    def announce_reads(urls: list[str], pool: EvidencePool) -> list[SSEEvent]:
        events: list[SSEEvent] = []
        for url in urls:
            citation = pool.get(url)
            events.append(streaming.reading(url, citation.title if citation else url))
        return events

    @staticmethod
    def _snippet_content(urls: list[str], pool: EvidencePool) -> ExtractedContent:
        extracted = ExtractedContent()
        for url in urls:
            citation = pool.get(url)
            if citation is None or not citation.snippet:
                continue
            extracted.append(snippet_block(title=citation.title, url=url, snippet=citation.snippet))
        return extracted

    async def read(self, urls: list[str], pool: EvidencePool) -> ReadOutcome:
        """Extract and clean the deep-read set in one batched provider call."""
        if not urls:
            return ReadOutcome(extracted=ExtractedContent())
        if self.content_provider is None:
            return ReadOutcome(extracted=self._snippet_content(urls, pool), snippet_fallback=True)

        try:
            pages = await self.content_provider.contents(urls, ["markdown"])
        except Exception as exc:
            log_service.log_provider_call(
                "contents", "extract", "error", details=f"{len(urls)} urls", error=str(exc)
            )
            return ReadOutcome(
                extracted=self._snippet_content(urls, pool),
                credits_error=is_credits_error(exc),
                snippet_fallback=True,
            )

        by_url = {page.url: page for page in pages if page.url}
        extracted = ExtractedContent()
        for url in urls:
            citation = pool.get(url)
            title = citation.title if citation else url
            snippet = citation.snippet if citation else ""
            page = by_url.get(url)
            if page is None:
                if snippet:
                    extracted.append(snippet_block(title=title, url=url, snippet=snippet))
                continue
            extracted.append(
                build_block(
                    page,
                    title=title,
                    fallback_snippet=snippet,
                    max_markdown_chars=settings.extract_max_markdown_chars,
                    max_block_chars=settings.extract_max_block_chars,
                )
            )
        return ReadOutcome(extracted=extracted)

    # --- Whole stage ---

    async def gather(self, plan: ResearchPlan) -> EvidenceBundle:
        events = self.announce_searches(plan)
        outcome, search_events = await self.search(plan)
        events.extend(search_events)

        urls, rejected = self.select_deep_read(outcome.pool.citations)
        events.extend(self.announce_reads(urls, outcome.pool))
        read = await self.read(urls, outcome.pool)

        return EvidenceBundle(
            citations=list(outcome.pool.citations),
            extracted=read.extracted,
            query_log=outcome.query_log,
            credits_error=outcome.credits_error or read.credits_error,
            rejected_sources=rejected,
            events=events,
        )
