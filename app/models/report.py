from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field, model_validator


class SafetyLevel(str, Enum):
    """Qualitative risk label, ordered by increasing severity.

    ``UNKNOWN`` means the text carried no safety signal; it is not a judgment.
    """

    SAFE = "safe"
    CAUTION = "caution"
    WARNING = "warning"
    DANGER = "danger"
    UNKNOWN = "unknown"


class EvidenceQuality(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    LIMITED = "limited"
    NONE = "none"
    UNKNOWN = "unknown"


class SourceTier(str, Enum):
    """Source credibility, highest first."""

    FDA_LABEL = "fda_label"
    RCT = "rct"
    META_ANALYSIS = "meta_analysis"
    OBSERVATIONAL = "observational"
    BLOG = "blog"
    UNKNOWN = "unknown"


SOURCE_TIER_RANK: dict[SourceTier, int] = {
    tier: rank for rank, tier in enumerate(SourceTier)
}

SAFETY_BASE_SCORE: dict[SafetyLevel, int] = {
    SafetyLevel.DANGER: 85,
    SafetyLevel.WARNING: 65,
    SafetyLevel.CAUTION: 45,
    SafetyLevel.SAFE: 18,
    SafetyLevel.UNKNOWN: 55,
}

EVIDENCE_ADJUSTMENT: dict[EvidenceQuality, int] = {
    EvidenceQuality.STRONG: -12,
    EvidenceQuality.MODERATE: -5,
    EvidenceQuality.LIMITED: 5,
    EvidenceQuality.NONE: 15,
    EvidenceQuality.UNKNOWN: 0,
}

WELL_CITED_THRESHOLD = 8
WELL_CITED_BONUS = -5

DISCLAIMER = (
    "This information is for educational purposes only and is not medical advice. "
    "Always consult your healthcare provider before making changes to medications "
    "or supplements."
)


def compute_risk_score(
    safety: SafetyLevel,
    evidence: EvidenceQuality,
    citation_count: int,
) -> int:
    """Deterministic 0-100 risk score (higher means more risk)."""
    score = SAFETY_BASE_SCORE[SafetyLevel(safety)] + EVIDENCE_ADJUSTMENT[EvidenceQuality(evidence)]
    if citation_count >= WELL_CITED_THRESHOLD:
        score += WELL_CITED_BONUS
    return max(0, min(100, int(score)))


class Citation(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    snippet: str = ""
    favicon_url: Optional[str] = None
    source_name: Optional[str] = None
    source_tier: Optional[SourceTier] = None
    doi: Optional[str] = None
    pubmed_id: Optional[str] = None


class ContraindicationAlert(BaseModel):
    model_config = ConfigDict(frozen=True)

    population: str
    summary: str
    source: Optional[str] = None


class ConflictingEvidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    claim_a: str
    claim_b: str
    source_a: Optional[str] = None
    source_b: Optional[str] = None


class RejectedSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    reason: str


class HealthReport(BaseModel):
    """Terminal artifact of one research run. Never mutated once built."""

    model_config = ConfigDict(frozen=True)

    safety_rating: SafetyLevel
    evidence_level: EvidenceQuality
    summary: str
    detailed_analysis: str
    citations: tuple[Citation, ...] = ()
    disclaimer: str = DISCLAIMER
    disclaimer_extras: tuple[str, ...] = ()
    contraindication_alerts: tuple[ContraindicationAlert, ...] = ()
    conflicting_evidence: tuple[ConflictingEvidence, ...] = ()
    rejected_sources: tuple[RejectedSource, ...] = ()
    query_log: tuple[str, ...] = ()
    agent_roles_used: tuple[str, ...] = ()
    credits_unavailable: bool = False
    query_type: Optional[str] = None
    synthesis_strategy: Optional[str] = None

    @model_validator(mode="after")
    def _check_unique_citation_urls(self) -> "HealthReport":
        urls = [c.url for c in self.citations]
        if len(urls) != len(set(urls)):
            raise ValueError("HealthReport citations must have unique urls")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def risk_score(self) -> int:
        return compute_risk_score(
            self.safety_rating, self.evidence_level, len(self.citations)
        )
