from __future__ import annotations

import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from app.models.provider import ContentsResult
from app.services.sanitizer import clean_extracted_block
from app.tools.web_utils import truncate

_BLOCK_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "aside", "form")


@dataclass(slots=True)
class ExtractedBlock:
    title: str
    url: str
    text: str
    from_snippet: bool = False

    def render(self) -> str:
        return f"### Source: {self.title} ({self.url})\n{self.text}"


@dataclass(slots=True)
class ExtractedContent:
    """Cleaned text of the deep-read set, one block per source, in read order."""

    blocks: list[ExtractedBlock] = field(default_factory=list)

    def append(self, block: ExtractedBlock) -> None:
        if block.text.strip():
            self.blocks.append(block)

    @property
    def is_empty(self) -> bool:
        return not self.blocks

    def render(self) -> str:
        return "\n\n".join(block.render() for block in self.blocks)


def _normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def html_to_text(raw_html: str) -> str:
    """Visible text of an HTML page, one block element per line."""
    soup = BeautifulSoup(raw_html, "html.parser")
    for tag in soup(_BLOCK_TAGS):
        tag.decompose()
    return _normalize_text(soup.get_text("\n"))


def build_block(
    page: ContentsResult,
    *,
    title: str,
    fallback_snippet: str,
    max_markdown_chars: int,
    max_block_chars: int,
) -> ExtractedBlock:
    """Turn one contents result into a cleaned, bounded block.

    Markdown is preferred, then HTML; a page with neither keeps the search snippet.
    """
    raw = page.markdown
    if not raw and page.html:
        raw = html_to_text(page.html)

    cleaned = ""
    if raw:
        cleaned = clean_extracted_block(truncate(raw, max_markdown_chars))
    if cleaned:
        return ExtractedBlock(
            title=page.title or title,
            url=page.url,
            text=truncate(cleaned, max_block_chars),
        )
    return snippet_block(title=page.title or title, url=page.url, snippet=fallback_snippet)


def snippet_block(*, title: str, url: str, snippet: str) -> ExtractedBlock:
    return ExtractedBlock(
        title=title,
        url=url,
        text=clean_extracted_block(snippet) or snippet,
        from_snippet=True,
    )
