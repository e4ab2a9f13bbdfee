from __future__ import annotations

import re
from typing import Callable, Optional

from app.models.provider import SearchHit
from app.models.report import Citation, SourceTier
from app.tools.web_utils import extract_domain

FDA_DOMAINS = ("fda.gov",)
TRIAL_REGISTRY_DOMAINS = ("pubmed.ncbi.nlm.nih.gov", "ncbi.nlm.nih.gov", "pubmed")
HEALTH_AUTHORITY_DOMAINS = ("nih.gov", "mayoclinic.org", "who.int")
BLOG_DOMAINS = (
    "medium.com",
    "substack.com",
    "blogspot.com",
    "wordpress.com",
    "tumblr.com",
    "wixsite.com",
)

_RCT_TITLE = re.compile(
    r"\b(randomi[sz]ed|controlled trial|clinical trial|rct)\b", re.IGNORECASE
)
_META_TITLE = re.compile(r"meta-?analysis|systematic review|cochrane", re.IGNORECASE)
_OBSERVATIONAL_TEXT = re.compile(r"\b(observational|cohort)\b", re.IGNORECASE)
_DOI = re.compile(r"\b(10\.\d{4,9}/[^\s\"'<>)\]]+)", re.IGNORECASE)
_PUBMED_ID = re.compile(r"pubmed\.ncbi\.nlm\.nih\.gov/(\d{5,9})|\bPMID:?\s*(\d{5,9})", re.IGNORECASE)


def _host_matches(url: str, domains: tuple[str, ...]) -> bool:
    host = extract_domain(url).lower()
    lowered = url.lower()
    return any(host == d or host.endswith("." + d) or d in lowered for d in domains)


def _is_fda(url: str, title: str, snippet: str) -> bool:
    return _host_matches(url, FDA_DOMAINS)


def _is_rct(url: str, title: str, snippet: str) -> bool:
    return _host_matches(url, TRIAL_REGISTRY_DOMAINS) or bool(_RCT_TITLE.search(title))


def _is_meta_analysis(url: str, title: str, snippet: str) -> bool:
    return bool(_META_TITLE.search(title))


def _is_observational(url: str, title: str, snippet: str) -> bool:
    if _host_matches(url, HEALTH_AUTHORITY_DOMAINS):
        return True
    return bool(_OBSERVATIONAL_TEXT.search(title) or _OBSERVATIONAL_TEXT.search(snippet))


def _is_blog(url: str, title: str, snippet: str) -> bool:
    host = extract_domain(url).lower()
    if _host_matches(url, BLOG_DOMAINS):
        return True
    return host.startswith("blog.") or "/blog/" in url.lower()


# First matching rule wins; this is a precedence list, not a score.
TIER_RULES: tuple[tuple[Callable[[str, str, str], bool], SourceTier], ...] = (
    (_is_fda, SourceTier.FDA_LABEL),
    (_is_rct, SourceTier.RCT),
    (_is_meta_analysis, SourceTier.META_ANALYSIS),
    (_is_observational, SourceTier.OBSERVATIONAL),
    (_is_blog, SourceTier.BLOG),
)


def classify_source_tier(url: str, title: str = "", snippet: str = "") -> SourceTier:
    for rule, tier in TIER_RULES:
        if rule(url or "", title or "", snippet or ""):
            return tier
    return SourceTier.UNKNOWN


def extract_doi(*texts: str) -> Optional[str]:
    for text in texts:
        match = _DOI.search(text or "")
        if match:
            return match.group(1).rstrip(".,;")
    return None


def extract_pubmed_id(*texts: str) -> Optional[str]:
    for text in texts:
        match = _PUBMED_ID.search(text or "")
        if match:
            return match.group(1) or match.group(2)
    return None


def citation_from_hit(hit: SearchHit) -> Citation:
    """Build a tiered Citation from one search hit."""
    snippet = hit.best_snippet
    return Citation(
        title=hit.title or hit.url,
        url=hit.url,
        snippet=snippet,
        favicon_url=hit.favicon_url,
        source_name=extract_domain(hit.url) or None,
        source_tier=classify_source_tier(hit.url, hit.title, snippet),
        doi=extract_doi(hit.url, snippet),
        pubmed_id=extract_pubmed_id(hit.url, snippet),
    )


def citation_from_source_ref(ref: dict) -> Optional[Citation]:
    """Build a tiered Citation from a reasoning-provider source reference."""
    url = ref.get("url") or ref.get("citation_uri")
    if not isinstance(url, str) or not url:
        return None
    title = str(ref.get("title") or url)
    snippet = str(ref.get("snippet") or "")
    return Citation(
        title=title,
        url=url,
        snippet=snippet,
        source_name=extract_domain(url) or None,
        source_tier=classify_source_tier(url, title, snippet),
        doi=extract_doi(url, snippet),
        pubmed_id=extract_pubmed_id(url, snippet),
    )
