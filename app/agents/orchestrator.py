from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, AsyncGenerator

from loguru import logger

from app.agents.synthesis import STRATEGY_FALLBACK, SynthesisEngine, build_fallback_report
from app.config import settings
from app.models.events import SSEEvent
from app.models.report import (
    Citation,
    EvidenceQuality,
    HealthReport,
    RejectedSource,
    SafetyLevel,
)
from app.models.research_plan import ResearchPlan
from app.services import logger as log_service
from app.services import streaming
from app.services.evidence_gatherer import EvidenceGatherer, EvidencePool
from app.services.query_classifier import classify
from app.services.report_metadata import (
    extract_summary,
    get_disclaimer_extras,
    parse_conflicting_evidence,
    parse_contraindication_alerts,
    parse_evidence,
    parse_safety,
    with_credits_notice,
)
from app.tools.content_extractor import ExtractedContent
from app.tools.provider_errors import is_credits_error
from app.tools.search_provider import (
    ContentProvider,
    ReasoningProvider,
    SearchProvider,
    get_reasoning_provider,
    get_search_provider,
)
from app.tools.you_client import YouClient

STRATEGY_OFFLINE = "offline"


class PipelineState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    SEARCHING = "searching"
    READING = "reading"
    REASONING = "reasoning"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    ERROR = "error"


STATE_ORDER = (
    PipelineState.IDLE,
    PipelineState.PLANNING,
    PipelineState.SEARCHING,
    PipelineState.READING,
    PipelineState.REASONING,
    PipelineState.FINALIZING,
    PipelineState.COMPLETE,
)

ROLE_FOR_STATE: dict[PipelineState, str] = {
    PipelineState.PLANNING: "Planner Agent",
    PipelineState.SEARCHING: "Research Agent",
    PipelineState.READING: "Evidence Reader",
    PipelineState.REASONING: "Synthesis Agent",
    PipelineState.FINALIZING: "Safety Agent",
}

_DEFAULT: Any = object()


def merge_citations(*groups: list[Citation], limit: int) -> list[Citation]:
    """Concatenate citation groups, keep the first per url, and cap the total."""
    pool = EvidencePool()
    for group in groups:
        pool.extend(group)
    return pool.citations[:limit]


class HealthResearchOrchestrator:
    """Drives one health question through plan, search, read, synthesize, finalize.

    Stages return their results together with the events they produced; this
    class is the single place that yields those events, in order, to the
    caller. Each run owns its provider client and closes it on the way out,
    including when the consumer stops iterating early.
    """

    def __init__(
        self,
        *,
        you_client: YouClient | None = None,
        search_provider: SearchProvider | None = None,
        content_provider: ContentProvider | None = _DEFAULT,
        reasoning_provider: ReasoningProvider | None = _DEFAULT,
        run_id: str | None = None,
    ):
        self._you_client = you_client
        self._search_provider = search_provider
        self._content_provider = content_provider
        self._reasoning_provider = reasoning_provider
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.state = PipelineState.IDLE
        self.roles_used: list[str] = []

    # --- State machine ---

    def _advance(self, target: PipelineState) -> SSEEvent | None:
        """Move to ``target``; returns the agent_role event for roles that own the state."""
        if target is PipelineState.ERROR:
            if self.state is PipelineState.COMPLETE:
                raise RuntimeError("Cannot fail a completed run")
        elif STATE_ORDER.index(target) <= STATE_ORDER.index(self.state):
            raise RuntimeError(f"Illegal transition {self.state.value} -> {target.value}")

        log_service.log_research_step(
            run_id=self.run_id,
            step_type=target.value,
            status="entered",
            data={"from": self.state.value},
        )
        self.state = target
        role = ROLE_FOR_STATE.get(target)
        if role is None:
            return None
        self.roles_used.append(role)
        return streaming.agent_role(role)

    # --- Report assembly ---

    def _build_report(
        self,
        plan: ResearchPlan,
        *,
        analysis: str,
        extracted: ExtractedContent,
        citations: list[Citation],
        rejected: list[RejectedSource],
        query_log: list[str],
        credits_unavailable: bool,
        strategy: str,
    ) -> HealthReport:
        secondary = extracted.render()
        safety = parse_safety(analysis, secondary)
        evidence = parse_evidence(analysis, secondary)
        detailed = with_credits_notice(analysis) if credits_unavailable else analysis
        return HealthReport(
            safety_rating=safety,
            evidence_level=evidence,
            summary=extract_summary(analysis),
            detailed_analysis=detailed,
            citations=tuple(citations),
            disclaimer_extras=tuple(get_disclaimer_extras(plan.query_type, plan.question)),
            contraindication_alerts=tuple(parse_contraindication_alerts(analysis)),
            conflicting_evidence=tuple(parse_conflicting_evidence(analysis)),
            rejected_sources=tuple(rejected),
            query_log=tuple(query_log),
            agent_roles_used=tuple(self.roles_used),
            credits_unavailable=credits_unavailable,
            query_type=plan.query_type.value,
            synthesis_strategy=strategy,
        )

    def offline_report(self, plan: ResearchPlan) -> HealthReport:
        analysis = build_fallback_report(plan.question, plan.query_type, [], ExtractedContent())
        return HealthReport(
            safety_rating=SafetyLevel.UNKNOWN,
            evidence_level=EvidenceQuality.UNKNOWN,
            summary=extract_summary(analysis),
            detailed_analysis=with_credits_notice(analysis),
            disclaimer_extras=tuple(get_disclaimer_extras(plan.query_type, plan.question)),
            query_type=plan.query_type.value,
            credits_unavailable=True,
            synthesis_strategy=STRATEGY_OFFLINE,
        )

    # --- Run ---

    def _providers(
        self, client: YouClient
    ) -> tuple[SearchProvider, ContentProvider | None, ReasoningProvider | None]:
        search = self._search_provider or get_search_provider(client)
        content = client if self._content_provider is _DEFAULT else self._content_provider
        reasoning = (
            get_reasoning_provider(client)
            if self._reasoning_provider is _DEFAULT
            else self._reasoning_provider
        )
        return search, content, reasoning

    async def research(
        self, question: str, *, offline: bool = False, strategy: str | None = None
    ) -> AsyncGenerator[SSEEvent, None]:
        """Stream progress events for one question, ending in exactly one terminal event.

        Cancellation is not intercepted: a cancelled or closed run emits nothing further.
        """
        plan = classify(question)
        self.state = PipelineState.IDLE
        self.roles_used = []
        logger.info(
            f"Research run {self.run_id} started: type={plan.query_type.value} offline={offline}"
        )

        if offline:
            report = self.offline_report(plan)
            self.state = PipelineState.COMPLETE
            yield streaming.complete(report)
            return

        client = self._you_client or YouClient()
        pool = EvidencePool()
        query_log: list[str] = list(plan.queries)
        credits_unavailable = False
        try:
            search_provider, content_provider, reasoning_provider = self._providers(client)
            gatherer = EvidenceGatherer(search_provider, content_provider)
            engine = SynthesisEngine(reasoning_provider)

            yield self._advance(PipelineState.PLANNING)
            yield streaming.planning(plan)

            yield self._advance(PipelineState.SEARCHING)
            for event in gatherer.announce_searches(plan):
                yield event
            outcome, events = await gatherer.search(plan)
            pool = outcome.pool
            query_log = outcome.query_log
            credits_unavailable = outcome.credits_error
            for event in events:
                yield event

            yield self._advance(PipelineState.READING)
            urls, rejected = gatherer.select_deep_read(pool.citations)
            for event in gatherer.announce_reads(urls, pool):
                yield event
            read = await gatherer.read(urls, pool)
            credits_unavailable = credits_unavailable or read.credits_error

            yield self._advance(PipelineState.REASONING)
            result, events = await engine.synthesize(
                plan.question, plan, pool.citations, read.extracted, strategy=strategy
            )
            credits_unavailable = credits_unavailable or result.credits_error
            for event in events:
                yield event

            yield self._advance(PipelineState.FINALIZING)
            report = self._build_report(
                plan,
                analysis=result.text,
                extracted=read.extracted,
                citations=merge_citations(
                    pool.citations, result.citations, limit=settings.report_max_citations
                ),
                rejected=rejected,
                query_log=query_log,
                credits_unavailable=credits_unavailable,
                strategy=result.strategy,
            )
            yield streaming.safety_rating(report.safety_rating)
            yield streaming.evidence_level(report.evidence_level)
            yield streaming.report_chunk(report.detailed_analysis)
            yield streaming.citations(report.citations)

            self._advance(PipelineState.COMPLETE)
            logger.info(
                f"Research run {self.run_id} complete: strategy={report.synthesis_strategy} "
                f"safety={report.safety_rating.value} risk={report.risk_score}"
            )
            yield streaming.complete(report)
        except Exception as exc:
            failed_stage = self.state.value
            logger.exception(f"Research run {self.run_id} failed in {failed_stage}: {exc}")
            self._advance(PipelineState.ERROR)
            yield streaming.error(str(exc), stage=failed_stage)
            if is_credits_error(exc):
                yield streaming.complete(self._degraded_report(plan, pool, query_log))
        finally:
            await client.aclose()

    def _degraded_report(
        self, plan: ResearchPlan, pool: EvidencePool, query_log: list[str]
    ) -> HealthReport:
        citations = pool.citations[: settings.report_max_citations]
        analysis = build_fallback_report(
            plan.question, plan.query_type, citations, ExtractedContent()
        )
        return self._build_report(
            plan,
            analysis=analysis,
            extracted=ExtractedContent(),
            citations=citations,
            rejected=[],
            query_log=query_log,
            credits_unavailable=True,
            strategy=STRATEGY_FALLBACK,
        )
