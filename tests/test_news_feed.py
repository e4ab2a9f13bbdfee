from __future__ import annotations

import pytest

from app.models.provider import SearchHit, SearchResponse
from app.services.news_feed import HEALTH_QUERIES, collect_articles, fetch_health_news


def _hit(url: str, **kwargs) -> SearchHit:
    return SearchHit(title=f"T {url}", url=url, **kwargs)


def test_collect_articles_news_first_dedupes_and_caps():
    news = [_hit(f"https://news.org/{i}", description=f"News {i}") for i in range(5)]
    web = [_hit("https://news.org/0")] + [_hit(f"https://web.org/{i}", snippets=[f"Web {i}"]) for i in range(20)]

    articles = collect_articles(news, web, limit=12)

    urls = [a.url for a in articles]
    assert len(articles) == 12
    assert len(set(urls)) == 12
    assert urls[:5] == [f"https://news.org/{i}" for i in range(5)]
    assert articles[0].description == "News 0"
    assert articles[5].description == "Web 0"
    assert articles[5].source == "web.org"


def test_collect_articles_description_preferences():
    news = [_hit("https://www.a.com/n", description="", snippets=["snippet only"])]
    web = [_hit("https://b.com/w", description="desc", snippets=["first snippet"])]

    articles = collect_articles(news, web, limit=12)

    assert articles[0].description == "snippet only"
    assert articles[0].source == "a.com"
    assert articles[1].description == "first snippet"


@pytest.mark.asyncio
async def test_fetch_health_news_queries_last_week():
    calls = []

    class FakeSearch:
        name = "fake"

        async def search(self, query, **kwargs):
            calls.append((query, kwargs))
            return SearchResponse(news=[_hit("https://news.org/x", page_age="3 hours ago")])

    response = await fetch_health_news(FakeSearch(), choose=lambda options: options[1])

    assert calls == [(HEALTH_QUERIES[1], {"count": 10, "freshness": "week"})]
    assert response.offline is False
    assert response.articles[0].age == "3 hours ago"
