"""Payload shapes exchanged with the search, contents and reasoning providers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(slots=True)
class SearchHit:
    title: str
    url: str
    description: str = ""
    snippets: list[str] = field(default_factory=list)
    thumbnail_url: Optional[str] = None
    favicon_url: Optional[str] = None
    page_age: Optional[str] = None

    @property
    def best_snippet(self) -> str:
        for snippet in self.snippets:
            if snippet and snippet.strip():
                return snippet
        return self.description or ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SearchHit":
        snippets = raw.get("snippets") or []
        return cls(
            title=str(raw.get("title") or ""),
            url=str(raw.get("url") or ""),
            description=str(raw.get("description") or ""),
            snippets=[s for s in snippets if isinstance(s, str)],
            thumbnail_url=raw.get("thumbnail_url"),
            favicon_url=raw.get("favicon_url"),
            page_age=raw.get("page_age"),
        )


@dataclass(slots=True)
class SearchResponse:
    web: list[SearchHit] = field(default_factory=list)
    news: list[SearchHit] = field(default_factory=list)
    provider: str = "you"

    def all_hits(self) -> list[SearchHit]:
        return [*self.web, *self.news]


@dataclass(slots=True)
class ContentsResult:
    url: str
    title: str = ""
    markdown: Optional[str] = None
    html: Optional[str] = None


@dataclass(slots=True)
class AgentResponse:
    output: list[dict[str, Any]] = field(default_factory=list)
    agent: str = ""

    def answer_text(self) -> str:
        """First non-empty textual answer in the run output."""
        for item in self.output:
            if item.get("type") == "message.answer":
                text = item.get("text")
                if isinstance(text, str) and text.strip():
                    return text
        return ""
