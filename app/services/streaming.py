from __future__ import annotations

from typing import Iterable

from app.models.events import EventType, SSEEvent
from app.models.report import Citation, EvidenceQuality, HealthReport, SafetyLevel
from app.models.research_plan import ResearchPlan


def _sources(citations: Iterable[Citation]) -> list[dict]:
    return [c.model_dump(mode="json", exclude_none=True) for c in citations]


def planning(plan: ResearchPlan) -> SSEEvent:
    """Emit the classifier's task labels for progress display."""
    return SSEEvent(
        event=EventType.PLANNING,
        data={"tasks": list(plan.tasks), "query_type": plan.query_type.value},
    )


def searching(query: str) -> SSEEvent:
    return SSEEvent(event=EventType.SEARCHING, data={"query": query})


def search_results(sources: Iterable[Citation]) -> SSEEvent:
    return SSEEvent(event=EventType.SEARCH_RESULTS, data={"sources": _sources(sources)})


def reading(url: str, title: str) -> SSEEvent:
    return SSEEvent(event=EventType.READING, data={"url": url, "title": title})


def reasoning(thought: str) -> SSEEvent:
    return SSEEvent(event=EventType.REASONING, data={"thought": thought})


def agent_role(role: str) -> SSEEvent:
    return SSEEvent(event=EventType.AGENT_ROLE, data={"role": role})


def safety_rating(rating: SafetyLevel) -> SSEEvent:
    return SSEEvent(event=EventType.SAFETY_RATING, data={"rating": SafetyLevel(rating).value})


def evidence_level(level: EvidenceQuality) -> SSEEvent:
    return SSEEvent(
        event=EventType.EVIDENCE_LEVEL, data={"level": EvidenceQuality(level).value}
    )


def report_chunk(markdown: str) -> SSEEvent:
    return SSEEvent(event=EventType.REPORT_CHUNK, data={"markdown": markdown})


def citations(sources: Iterable[Citation]) -> SSEEvent:
    return SSEEvent(event=EventType.CITATIONS, data={"sources": _sources(sources)})


def complete(report: HealthReport) -> SSEEvent:
    return SSEEvent(
        event=EventType.COMPLETE,
        data={"report": report.model_dump(mode="json")},
    )


def error(message: str, stage: str | None = None) -> SSEEvent:
    data: dict = {"message": message}
    if stage:
        data["stage"] = stage
    return SSEEvent(event=EventType.ERROR, data=data)
