"""Structured metadata derived from synthesized report text.

Everything here is pure: the same text always yields the same labels.
"""
from __future__ import annotations

import re
from typing import Optional

from app.models.report import (
    ConflictingEvidence,
    ContraindicationAlert,
    EvidenceQuality,
    SafetyLevel,
    compute_risk_score,
)
from app.models.research_plan import QueryType
from app.services.prompt_store import render_prompt

__all__ = [
    "compute_risk_score",
    "parse_safety",
    "parse_evidence",
    "parse_contraindication_alerts",
    "parse_conflicting_evidence",
    "get_disclaimer_extras",
    "extract_summary",
    "with_credits_notice",
]

# --- Safety and evidence labels ---

# Checked top-down; the first level with any phrase present wins.
SAFETY_RULES: tuple[tuple[SafetyLevel, tuple[str, ...]], ...] = (
    (SafetyLevel.DANGER, ("danger", "contraindicated", "do not take", "avoid")),
    (SafetyLevel.WARNING, ("warning", "significant risk", "serious")),
    (
        SafetyLevel.CAUTION,
        ("caution", "moderate risk", "use with caution", "consult", "monitor"),
    ),
    (
        SafetyLevel.SAFE,
        ("generally safe", "safe", "low risk", "well-tolerated", "no significant"),
    ),
)

EVIDENCE_RULES: tuple[tuple[EvidenceQuality, tuple[str, ...]], ...] = (
    (
        EvidenceQuality.STRONG,
        (
            "strong evidence",
            "well-established",
            "robust evidence",
            "clinical trials confirm",
            "widely supported",
            "well-documented",
            "extensively studied",
            "conclusive",
        ),
    ),
    (
        EvidenceQuality.MODERATE,
        (
            "moderate evidence",
            "some evidence",
            "several studies",
            "research suggests",
            "studies show",
            "studies indicate",
            "evidence suggests",
            "research indicates",
            "clinical studies",
            "mixed evidence",
            "emerging evidence",
        ),
    ),
    (
        EvidenceQuality.LIMITED,
        (
            "limited evidence",
            "insufficient",
            "few studies",
            "preliminary",
            "anecdotal",
            "early research",
            "small studies",
            "more research needed",
            "inconclusive",
        ),
    ),
    (
        EvidenceQuality.NONE,
        ("no evidence", "no studies", "not studied", "not been studied"),
    ),
)

_INLINE_CITATION = re.compile(r"\[.*?\]\(https?://.*?\)")
LINK_COUNT_MODERATE = 5
LINK_COUNT_LIMITED = 2


def _safety_of(text: str) -> SafetyLevel:
    lowered = (text or "").lower()
    for level, phrases in SAFETY_RULES:
        if any(phrase in lowered for phrase in phrases):
            return level
    return SafetyLevel.UNKNOWN


def _evidence_of(text: str) -> EvidenceQuality:
    lowered = (text or "").lower()
    for level, phrases in EVIDENCE_RULES:
        if any(phrase in lowered for phrase in phrases):
            return level
    links = len(_INLINE_CITATION.findall(text or ""))
    if links >= LINK_COUNT_MODERATE:
        return EvidenceQuality.MODERATE
    if links >= LINK_COUNT_LIMITED:
        return EvidenceQuality.LIMITED
    return EvidenceQuality.UNKNOWN


def parse_safety(text: str, secondary: str = "") -> SafetyLevel:
    """Safety label from the analysis; ``secondary`` is read only if that says nothing."""
    level = _safety_of(text)
    if level is SafetyLevel.UNKNOWN and secondary:
        level = _safety_of(secondary)
    return level


def parse_evidence(text: str, secondary: str = "") -> EvidenceQuality:
    level = _evidence_of(text)
    if level is EvidenceQuality.UNKNOWN and secondary:
        level = _evidence_of(secondary)
    return level


# --- Sections ---

MAX_CONTRAINDICATION_ALERTS = 6

_SECTION_END = re.compile(r"^\s*(?:#{1,6}\s+\S|\*\*[^*]+\*\*\s*:?\s*$)")
_ALERT_LINE = re.compile(
    r"^\s*(?:[-*•]|\d+[.)])?\s*\*{0,2}([^:*\[\]]{2,60}?)\*{0,2}\s*:\s*\*{0,2}\s*(.+?)\s*$"
)
_TRAILING_LINK = re.compile(r"\s*\(?\[([^\]]+)\]\((https?://[^)\s]+)\)\)?\.?\s*$")
_TRAILING_PAREN = re.compile(r"\s*\(([^()]{2,80})\)\.?\s*$")
_CONFLICT = re.compile(
    r"[\"“]([^\"“”]+)[\"”]\s*\(([^()]+)\)\s*vs\.?\s*[\"“]([^\"“”]+)[\"”]\s*\(([^()]+)\)",
    re.IGNORECASE,
)


def _section_heading(name: str) -> re.Pattern[str]:
    return re.compile(
        rf"^\s*(?:#{{1,6}}\s*)?\**\s*{name}\b[^\n]*$", re.IGNORECASE
    )


def _section_lines(text: str, name: str) -> list[str]:
    """Lines under a heading named ``name`` up to the next heading; [] if absent."""
    heading = _section_heading(name)
    lines = (text or "").splitlines()
    for index, line in enumerate(lines):
        if heading.match(line):
            body: list[str] = []
            for following in lines[index + 1:]:
                if _SECTION_END.match(following):
                    break
                body.append(following)
            return body
    return []


def _split_source(summary: str) -> tuple[str, Optional[str]]:
    link = _TRAILING_LINK.search(summary)
    if link:
        return summary[: link.start()].rstrip(" .;,-"), link.group(1)
    paren = _TRAILING_PAREN.search(summary)
    if paren:
        return summary[: paren.start()].rstrip(" .;,-"), paren.group(1).strip()
    return summary, None


def parse_contraindication_alerts(text: str) -> list[ContraindicationAlert]:
    alerts: list[ContraindicationAlert] = []
    for line in _section_lines(text, "contraindication alerts"):
        match = _ALERT_LINE.match(line)
        if not match:
            continue
        population = match.group(1).strip()
        summary, source = _split_source(match.group(2).strip().rstrip("*").strip())
        if not population or not summary:
            continue
        alerts.append(
            ContraindicationAlert(population=population, summary=summary, source=source)
        )
        if len(alerts) >= MAX_CONTRAINDICATION_ALERTS:
            break
    return alerts


def parse_conflicting_evidence(text: str) -> list[ConflictingEvidence]:
    body = "\n".join(_section_lines(text, "conflicting evidence"))
    match = _CONFLICT.search(body)
    if not match:
        return []
    claim_a, source_a, claim_b, source_b = (part.strip() for part in match.groups())
    return [
        ConflictingEvidence(
            claim_a=claim_a, claim_b=claim_b, source_a=source_a, source_b=source_b
        )
    ]


# --- Disclaimers and summary ---

DISCLAIMER_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"pregnan|breastfeed|nursing", re.IGNORECASE),
        "Evidence in pregnancy/nursing is often limited. Discuss with your OB or provider.",
    ),
    (
        re.compile(r"child|pediatric|\bkid|infant", re.IGNORECASE),
        "Pediatric dosing and safety may differ from adults. Use under medical guidance.",
    ),
    (
        re.compile(r"crohn|\bibd\b|inflammatory bowel|ulcerative colitis", re.IGNORECASE),
        "GI conditions can affect absorption and interactions. Confirm with your gastroenterologist.",
    ),
    (
        re.compile(r"multiple medications|polypharmacy|many drugs|several meds", re.IGNORECASE),
        "Multiple medications increase interaction risk. A pharmacist review is recommended.",
    ),
)


def get_disclaimer_extras(query_type: QueryType | str | None, question: str) -> list[str]:
    """Population caveats for the question, in a fixed order.

    ``query_type`` is accepted so callers can pass the plan through unchanged;
    every type gets the same checks today.
    """
    return [extra for pattern, extra in DISCLAIMER_RULES if pattern.search(question or "")]


SUMMARY_MIN_CHARS = 20
DEFAULT_SUMMARY = "Analysis complete"
_SUMMARY_MARKUP = re.compile(r"^#+\s*|\*\*")


def extract_summary(text: str) -> str:
    for line in (text or "").splitlines():
        candidate = _SUMMARY_MARKUP.sub("", line.strip()).strip()
        if len(candidate) > SUMMARY_MIN_CHARS:
            return candidate
    return DEFAULT_SUMMARY


def with_credits_notice(analysis: str) -> str:
    """Prepend the degraded-mode notice; the only place it is added."""
    notice = render_prompt("report.credits_notice")
    if analysis.startswith(notice):
        return analysis
    return f"{notice}\n\n{analysis}" if analysis else notice
