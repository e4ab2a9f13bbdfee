from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


# --- Requests ---


class ResearchRequest(BaseModel):
    question: str
    offline: bool = False


# --- Responses ---


class NewsArticle(BaseModel):
    title: str
    url: str
    description: str
    source: str
    thumbnail_url: Optional[str] = None
    favicon_url: Optional[str] = None
    age: Optional[str] = None


class NewsResponse(BaseModel):
    articles: list[NewsArticle]
    offline: bool = False
