"""Health news digest built from one fresh search."""
from __future__ import annotations

import random
from typing import Callable, Sequence

from app.config import settings
from app.models.provider import SearchHit
from app.models.schemas import NewsArticle, NewsResponse
from app.services import logger as log_service
from app.tools.search_provider import SearchProvider
from app.tools.web_utils import extract_domain

HEALTH_QUERIES = (
    "latest medical health research breakthroughs",
    "new drug supplement safety findings",
    "health wellness news today",
)
NEWS_FRESHNESS = "week"


def _article(hit: SearchHit, *, prefer_description: bool) -> NewsArticle:
    first_snippet = hit.snippets[0] if hit.snippets else ""
    if prefer_description:
        description = hit.description or first_snippet
    else:
        description = first_snippet or hit.description
    return NewsArticle(
        title=hit.title,
        url=hit.url,
        description=description or "",
        source=extract_domain(hit.url) or hit.url,
        thumbnail_url=hit.thumbnail_url,
        favicon_url=hit.favicon_url,
        age=hit.page_age,
    )


def collect_articles(
    news: Sequence[SearchHit], web: Sequence[SearchHit], *, limit: int
) -> list[NewsArticle]:
    """News hits first, then web hits, unique by url, capped at ``limit``."""
    articles: list[NewsArticle] = []
    seen: set[str] = set()
    for hits, prefer_description in ((news, True), (web, False)):
        for hit in hits:
            if len(articles) >= limit:
                return articles
            if not hit.url or hit.url in seen:
                continue
            seen.add(hit.url)
            articles.append(_article(hit, prefer_description=prefer_description))
    return articles


async def fetch_health_news(
    provider: SearchProvider,
    *,
    choose: Callable[[Sequence[str]], str] = random.choice,
) -> NewsResponse:
    query = choose(HEALTH_QUERIES)
    response = await provider.search(
        query, count=settings.news_results_count, freshness=NEWS_FRESHNESS
    )
    articles = collect_articles(
        response.news, response.web, limit=settings.news_max_articles
    )
    log_service.log_event(
        event_type="news_fetched",
        message="Health news digest built",
        query=query,
        articles=len(articles),
    )
    return NewsResponse(articles=articles)
