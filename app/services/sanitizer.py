"""Text hygiene for crawled markdown, search snippets and synthesized reports.

Every rule is a small predicate or transform so it can be tested on its own.
The public helpers run them in order:

* ``clean_extracted_block`` drops page chrome line by line.
* ``clean_for_display`` scrubs one snippet for human display.
* ``is_readable`` is the gate every candidate evidence sentence passes through.
* ``clean_report_markdown`` tidies synthesized analysis text.
"""
from __future__ import annotations

import re
from typing import Callable

from app.config import settings

MIN_LINE_CHARS = 5

# --- Line predicates (True means drop the line) ---

_CHROME_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"^(skip to|enable accessibility|open the|go to our|shop with|shipping to|sign in"
        r"|sign up|log in|subscribe|newsletter|cookie|accept all|privacy|menu|navigation"
        r"|breadcrumb|footer|copyright|©|all rights reserved)",
        re.IGNORECASE,
    ),
    re.compile(
        r"^(share|tweet|pin it|email|print|save|bookmark|follow us|contact us|about us"
        r"|terms of|advertisement)",
        re.IGNORECASE,
    ),
    re.compile(
        r"^\[?\s*(facebook|twitter|instagram|youtube|linkedin|pinterest|tiktok|x)\s*\]?$",
        re.IGNORECASE,
    ),
    re.compile(r"^(request (an )?appointment|find a doctor|schedule)", re.IGNORECASE),
    re.compile(r"(medically|fact[- ]checked|clinically) reviewed by", re.IGNORECASE),
    re.compile(r"^home\s*[>/»›|]", re.IGNORECASE),
    re.compile(r"\s[>»›]\s.*\s[>»›]\s"),
)

_BARE_URL = re.compile(r"^[<(\[]?\s*(https?://|www\.)\S+\s*[>)\]]?$", re.IGNORECASE)
_LINK_ONLY = re.compile(r"^[-*]?\s*!?\[[^\]]*\]\([^)]*\)\s*$")
_LINK_PATH = re.compile(r"^(\]\(|\(?/)?[\w\-]+(/[\w\-.%]+)+/?\)?$")
_TRACKING = re.compile(r"(utm_[a-z]+=|[?&](fbclid|gclid|mc_cid|mc_eid|ref_src)=)", re.IGNORECASE)
_EMPTY_HEADING = re.compile(r"^#{1,6}\s*$")
_ALPHA_TOKEN = re.compile(r"^[^\W\d_]+$")
_SENTENCE_PUNCT = re.compile(r"[.!?:;]")


def is_too_short(line: str) -> bool:
    return len(line.strip()) < MIN_LINE_CHARS


def is_chrome(line: str) -> bool:
    stripped = line.strip().lstrip("#*-> ").strip()
    return any(pattern.search(stripped) for pattern in _CHROME_PATTERNS)


def is_bare_url(line: str) -> bool:
    stripped = line.strip()
    return bool(_BARE_URL.match(stripped) or _LINK_ONLY.match(stripped))


def is_link_path_fragment(line: str) -> bool:
    return bool(_LINK_PATH.match(line.strip()))


def is_tracking_fragment(line: str) -> bool:
    return bool(_TRACKING.search(line))


def is_empty_heading(line: str) -> bool:
    return bool(_EMPTY_HEADING.match(line.strip()))


def is_label_fragment(line: str) -> bool:
    """Menu labels and headings: at most two words and no sentence punctuation."""
    stripped = line.strip().lstrip("#*-> ").strip()
    if _SENTENCE_PUNCT.search(stripped):
        return False
    words = [_strip_token(tok) for tok in stripped.split()]
    alpha_words = [w for w in words if w and _ALPHA_TOKEN.match(w)]
    return len(alpha_words) <= 2


LINE_FILTERS: tuple[Callable[[str], bool], ...] = (
    is_too_short,
    is_empty_heading,
    is_chrome,
    is_bare_url,
    is_link_path_fragment,
    is_tracking_fragment,
    is_label_fragment,
)


def keep_line(line: str) -> bool:
    if not line.strip():
        return True
    return not any(rule(line) for rule in LINE_FILTERS)


def collapse_blank_lines(text: str) -> str:
    return re.sub(r"\n{3,}", "\n\n", text)


def clean_extracted_block(markdown: str) -> str:
    """Reduce crawled markdown to prose lines. Output is never longer than input."""
    if not markdown:
        return ""
    kept = [line if line.strip() else "" for line in markdown.splitlines() if keep_line(line)]
    return collapse_blank_lines("\n".join(kept)).strip()


# --- Snippet transforms ---

_MONTHS = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?"
_IMAGE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
_MD_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_RAW_URL = re.compile(r"<?\b(?:https?://|www\.)[^\s<>)\]]+>?", re.IGNORECASE)
_BOLD = re.compile(r"\*\*|__")
_REDIRECT = re.compile(
    r"\b(?:redirecting(?: you)? to|you are being redirected|click here if you are not redirected"
    r"|this page has moved|if you are not redirected)\b[^.!?\n]*[.!?]?",
    re.IGNORECASE,
)
_DATE_STAMPS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"\b(?:(?:updated|published|posted|reviewed|last updated)(?: on)?:?\s*)?"
        rf"{_MONTHS}\s+\d{{1,2}},?\s+\d{{4}}\b\s*[-–—·|]*",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:(?:updated|published|posted|reviewed|last updated)(?: on)?:?\s*)?"
        rf"\d{{1,2}}\s+{_MONTHS}\s+\d{{4}}\b\s*[-–—·|]*",
        re.IGNORECASE,
    ),
    re.compile(r"\b\d{4}-\d{2}-\d{2}(?:T[\d:.]+Z?)?\b"),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
)


def drop_images(text: str) -> str:
    return _IMAGE.sub("", text)


def unwrap_markdown_links(text: str) -> str:
    return _MD_LINK.sub(r"\1", text)


def strip_raw_urls(text: str) -> str:
    return _RAW_URL.sub("", text)


def strip_bold(text: str) -> str:
    return _BOLD.sub("", text)


def strip_redirect_notices(text: str) -> str:
    return _REDIRECT.sub("", text)


def strip_date_stamps(text: str) -> str:
    for pattern in _DATE_STAMPS:
        text = pattern.sub("", text)
    return text


def normalize_spacing(text: str) -> str:
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\s+([,.;:!?])", r"\1", text)
    text = re.sub(r"\(\s*\)", "", text)
    return text.strip(" \t\n-–—·|").strip()


SNIPPET_TRANSFORMS: tuple[Callable[[str], str], ...] = (
    drop_images,
    unwrap_markdown_links,
    strip_raw_urls,
    strip_bold,
    strip_redirect_notices,
    strip_date_stamps,
    normalize_spacing,
)


def clean_for_display(text: str) -> str:
    if not text:
        return ""
    for transform in SNIPPET_TRANSFORMS:
        text = transform(text)
    return text


# --- Readability gate ---

_LINK_START = re.compile(r"^(?:\(?\s*(?:https?://|www\.)|/[\w\-]|\[|\]\()", re.IGNORECASE)
_NUMERIC = re.compile(r"^[\d\s.,%:/()+\-–]+$")
_PROPER_START = re.compile(r"^[A-Z\"'“‘(]")
_VERB = re.compile(
    r"\b(?:is|are|was|were|be|been|being|has|have|had|may|might|can|could|should|would"
    r"|will|must|does|do|did|shows?|showed|shown|suggests?|suggested|indicates?|indicated"
    r"|finds?|found|reduces?|reduced|increases?|increased|helps?|helped|causes?|caused"
    r"|contains?|appears?|seems?|remains?|includes?|improves?|improved|lowers?|lowered"
    r"|raises?|affects?|interacts?|recommends?|recommended|supports?|linked|associated"
    r"|taking|take|takes|occurs?|leads?|results?|provides?|works?|needs?|requires?)\b",
    re.IGNORECASE,
)


def _strip_token(token: str) -> str:
    return re.sub(r"^[^\w]+|[^\w]+$", "", token)


def within_length(text: str, min_chars: int, max_chars: int) -> bool:
    return min_chars <= len(text) <= max_chars


def starts_with_link(text: str) -> bool:
    return bool(_LINK_START.match(text))


def is_numeric(text: str) -> bool:
    return bool(_NUMERIC.match(text))


def starts_properly(text: str) -> bool:
    return bool(_PROPER_START.match(text))


def real_word_count(text: str) -> int:
    words = (_strip_token(tok) for tok in text.split())
    return sum(1 for w in words if len(w) >= 3 and _ALPHA_TOKEN.match(w))


def alpha_ratio(text: str) -> float:
    tokens = text.split()
    if not tokens:
        return 0.0
    alpha = sum(1 for tok in tokens if _ALPHA_TOKEN.match(_strip_token(tok) or "_"))
    return alpha / len(tokens)


def has_verb(text: str) -> bool:
    return bool(_VERB.search(text))


def is_readable(
    text: str,
    *,
    min_chars: int | None = None,
    max_chars: int | None = None,
    min_words: int | None = None,
    min_alpha_ratio: float | None = None,
) -> bool:
    """True for declarative prose; False for navigation, labels and link debris.

    All checks must pass. Thresholds default to the configured values.
    """
    if not isinstance(text, str):
        return False
    candidate = text.strip()
    lo = settings.readable_min_chars if min_chars is None else min_chars
    hi = settings.readable_max_chars if max_chars is None else max_chars
    words = settings.readable_min_words if min_words is None else min_words
    ratio = settings.readable_min_alpha_ratio if min_alpha_ratio is None else min_alpha_ratio
    return (
        within_length(candidate, lo, hi)
        and not starts_with_link(candidate)
        and not is_numeric(candidate)
        and starts_properly(candidate)
        and real_word_count(candidate) >= words
        and alpha_ratio(candidate) >= ratio
        and has_verb(candidate)
    )


# --- Sentences ---

_LIST_MARKER = re.compile(r"^\s*(?:#{1,6}|[-*>•]+|\d+[.)])\s*")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z\"'“(])")


def split_sentences(text: str) -> list[str]:
    """Split prose into sentences, keeping terminal punctuation."""
    sentences: list[str] = []
    for line in (text or "").splitlines():
        if line.strip().lower().startswith("### source:"):
            continue
        line = _LIST_MARKER.sub("", line).strip()
        if not line:
            continue
        for part in _SENTENCE_BOUNDARY.split(line):
            part = part.strip()
            if part:
                sentences.append(part)
    return sentences


# --- Report markdown ---

_REPORT_BARE_URL = re.compile(r"(?<!\]\()<?\bhttps?://[^\s)\]>]+>?", re.IGNORECASE)
_EMPTY_BULLET = re.compile(r"^\s*(?:[-*]|\d+[.)])\s*$")
_SOURCES_HEADING = re.compile(
    r"^(?:#{1,6}\s*|\*\*)\s*(?:sources|references|citations|bibliography)\b[\s:*]*$",
    re.IGNORECASE,
)
_HEADING = re.compile(r"^#{1,6}\s+")


def strip_sources_section(text: str) -> str:
    """Drop model-written Sources/References sections; citations travel separately."""
    cleaned: list[str] = []
    skipping = False
    for line in text.splitlines():
        stripped = line.strip()
        if _SOURCES_HEADING.match(stripped):
            skipping = True
            continue
        if skipping and _HEADING.match(stripped):
            skipping = False
        if not skipping:
            cleaned.append(line)
    return "\n".join(cleaned)


def clean_report_markdown(text: str) -> str:
    if not text:
        return ""
    text = strip_sources_section(text)
    lines: list[str] = []
    for line in text.splitlines():
        if _REDIRECT.search(line):
            line = strip_redirect_notices(line)
            if len(line.strip()) < MIN_LINE_CHARS:
                continue
        line = _REPORT_BARE_URL.sub("", line).rstrip()
        if _EMPTY_BULLET.match(line):
            continue
        lines.append(line)
    return collapse_blank_lines("\n".join(lines)).strip()
