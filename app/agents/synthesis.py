from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.config import settings
from app.models.events import SSEEvent
from app.models.report import Citation
from app.models.research_plan import QueryType, ResearchPlan
from app.services import logger as log_service
from app.services import streaming
from app.services.prompt_store import render_prompt
from app.services.sanitizer import (
    clean_for_display,
    clean_report_markdown,
    is_readable,
    split_sentences,
)
from app.services.source_tiers import citation_from_source_ref
from app.tools.content_extractor import ExtractedContent
from app.tools.provider_errors import is_credits_error
from app.tools.search_provider import ReasoningProvider

STRATEGY_REMOTE = "remote"
STRATEGY_FALLBACK = "fallback"

TYPE_LABELS: dict[QueryType, str] = {
    QueryType.INTERACTION: "Interaction Analysis",
    QueryType.SUPPLEMENT: "Supplement Research",
    QueryType.WELLNESS: "Wellness Claim Analysis",
    QueryType.GENERAL: "Health Research",
}

PROS_PATTERN = re.compile(
    r"benefit|help|improve|reduce risk|protect|support|effective|positive|safe"
    r"|well-tolerated|lower|decrease|enhance|boost",
    re.IGNORECASE,
)
CONS_PATTERN = re.compile(
    r"risk|side effect|danger|avoid|harm|negative|interact|caution|warning|adverse"
    r"|toxicity|overdose|contraindic",
    re.IGNORECASE,
)

MAX_PROS = 3
MAX_CONS = 3
MAX_KEY_POINTS = 4
MIN_SNIPPET_SENTENCES = 5
MIN_KEYWORD_MATCHES = 3
SNIPPET_CONTEXT_LINES = 6
_KEYWORD_TOKEN = re.compile(r"[a-z0-9][a-z0-9\-]*")


@dataclass(slots=True)
class SynthesisResult:
    strategy: str
    text: str
    citations: list[Citation] = field(default_factory=list)
    credits_error: bool = False


def research_tool() -> dict[str, Any]:
    return {
        "type": "research",
        "search_effort": settings.reasoning_search_effort,
        "report_verbosity": settings.reasoning_verbosity,
    }


def build_agent_prompt(
    question: str, citations: list[Citation], extracted: ExtractedContent
) -> str:
    """The fixed instructions followed by whatever evidence the run gathered."""
    if not extracted.is_empty:
        evidence = extracted.render()
    else:
        evidence = "\n".join(
            f"- {c.title}: {clean_for_display(c.snippet)}"
            for c in citations[:SNIPPET_CONTEXT_LINES]
        )
    return (
        render_prompt("synthesis.agent_input", question=question)
        + "\n\n"
        + render_prompt("synthesis.evidence_header")
        + "\n"
        + evidence
    )


def citations_from_agent_output(output: list[dict[str, Any]]) -> list[Citation]:
    found: list[Citation] = []
    for item in output:
        if item.get("type") != "web_search.results":
            continue
        for ref in item.get("content") or []:
            if not isinstance(ref, dict):
                continue
            citation = citation_from_source_ref(ref)
            if citation is not None:
                found.append(citation)
    return found


# --- Deterministic fallback ---


def _keywords(question: str) -> set[str]:
    return {tok for tok in _KEYWORD_TOKEN.findall(question.lower()) if len(tok) > 3}


def candidate_sentences(
    citations: list[Citation], extracted: ExtractedContent
) -> list[str]:
    """Readable, de-duplicated sentences from snippets, topped up from page text."""
    seen: set[str] = set()
    pool: list[str] = []

    def take(text: str) -> None:
        for sentence in split_sentences(clean_for_display(text)):
            key = sentence.lower()
            if key in seen or not is_readable(sentence):
                continue
            seen.add(key)
            pool.append(sentence)

    for citation in citations:
        take(citation.snippet)
    if len(pool) < MIN_SNIPPET_SENTENCES and not extracted.is_empty:
        for block in extracted.blocks:
            take(block.text)
    return pool


def bucket_sentences(
    sentences: list[str], question: str
) -> tuple[list[str], list[str], list[str]]:
    """Split sentences into (key points, pros, cons); earlier sentences win."""
    keywords = _keywords(question)
    relevant = [s for s in sentences if any(k in s.lower() for k in keywords)]
    chosen = relevant if len(relevant) >= MIN_KEYWORD_MATCHES else sentences

    key_points: list[str] = []
    pros: list[str] = []
    cons: list[str] = []
    for sentence in chosen:
        if PROS_PATTERN.search(sentence):
            if len(pros) < MAX_PROS:
                pros.append(sentence)
        elif CONS_PATTERN.search(sentence):
            if len(cons) < MAX_CONS:
                cons.append(sentence)
        elif len(key_points) < MAX_KEY_POINTS:
            key_points.append(sentence)
    return key_points, pros, cons


def _bullets(items: list[str]) -> str:
    if not items:
        return render_prompt("synthesis.empty_bucket")
    return "\n".join(f"- {item}" for item in items)


def build_fallback_report(
    question: str,
    query_type: QueryType,
    citations: list[Citation],
    extracted: ExtractedContent,
) -> str:
    key_points, pros, cons = bucket_sentences(
        candidate_sentences(citations, extracted), question
    )
    sections = [f"## {TYPE_LABELS[query_type]}: {question}"]
    if not citations:
        sections.append(render_prompt("synthesis.no_sources_banner"))
    sections += [
        "### Summary\n"
        + render_prompt("synthesis.fallback_summary", source_count=len(citations)),
        "### Key Points\n" + _bullets(key_points),
        "### Potential Benefits (Pros)\n" + _bullets(pros),
        "### Risks & Considerations (Cons)\n" + _bullets(cons),
        "### Recommendations\n" + render_prompt("synthesis.recommendations"),
    ]
    return "\n\n".join(sections)


class SynthesisEngine:
    """Turns gathered evidence into report markdown.

    The remote reasoning provider is tried first, under a timeout. Any failure
    there is reported as a ``reasoning`` event and the deterministic template
    takes over, so synthesis itself never ends a run.
    """

    def __init__(
        self,
        provider: ReasoningProvider | None,
        *,
        timeout_s: float | None = None,
        max_steps: int | None = None,
    ):
        self.provider = provider
        self.timeout_s = settings.reasoning_timeout_s if timeout_s is None else timeout_s
        self.max_steps = settings.reasoning_max_steps if max_steps is None else max_steps

    async def _run_remote(
        self, question: str, citations: list[Citation], extracted: ExtractedContent
    ) -> tuple[str, list[Citation]]:
        prompt = build_agent_prompt(question, citations, extracted)
        response = await asyncio.wait_for(
            self.provider.run(
                prompt,
                tools=[research_tool()],
                verbosity=settings.reasoning_verbosity,
                max_steps=self.max_steps,
                timeout_s=self.timeout_s,
            ),
            timeout=self.timeout_s,
        )
        return response.answer_text(), citations_from_agent_output(response.output)

    async def synthesize(
        self,
        question: str,
        plan: ResearchPlan,
        citations: list[Citation],
        extracted: ExtractedContent,
        *,
        strategy: str | None = None,
    ) -> tuple[SynthesisResult, list[SSEEvent]]:
        events: list[SSEEvent] = []
        credits_error = False
        use_remote = self.provider is not None and strategy != STRATEGY_FALLBACK

        if use_remote:
            events.append(
                streaming.reasoning(
                    render_prompt("reasoning.remote", source_count=len(citations))
                )
            )
            try:
                text, agent_citations = await self._run_remote(question, citations, extracted)
            except (asyncio.TimeoutError, httpx.TimeoutException):
                log_service.log_llm_call(
                    model=getattr(self.provider, "name", "remote"),
                    caller="synthesis",
                    status="timeout",
                    error=f"no answer within {self.timeout_s}s",
                )
                events.append(streaming.reasoning(render_prompt("reasoning.timeout")))
            except Exception as exc:
                credits_error = is_credits_error(exc)
                log_service.log_event(
                    event_type="synthesis_remote_failed",
                    message="Remote synthesis failed, using fallback",
                    error=str(exc),
                    credits_error=credits_error,
                )
                events.append(streaming.reasoning(render_prompt("reasoning.fallback")))
            else:
                cleaned = clean_report_markdown(text)
                if cleaned:
                    return (
                        SynthesisResult(
                            strategy=STRATEGY_REMOTE,
                            text=cleaned,
                            citations=agent_citations,
                        ),
                        events,
                    )
                events.append(streaming.reasoning(render_prompt("reasoning.fallback")))
        else:
            events.append(streaming.reasoning(render_prompt("reasoning.fallback")))

        report = build_fallback_report(question, plan.query_type, citations, extracted)
        return (
            SynthesisResult(
                strategy=STRATEGY_FALLBACK,
                text=clean_report_markdown(report),
                credits_error=credits_error,
            ),
            events,
        )
