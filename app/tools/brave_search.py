from __future__ import annotations

from typing import Any

import httpx

from app.config import settings
from app.models.provider import SearchHit, SearchResponse
from app.tools.provider_errors import ProviderError

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"

FRESHNESS_MAP = {
    "day": "pd",
    "week": "pw",
    "month": "pm",
    "year": "py",
}


def _to_hit(item: dict[str, Any]) -> SearchHit:
    profile = item.get("profile") or {}
    meta_url = item.get("meta_url") or {}
    thumbnail = item.get("thumbnail") or {}
    return SearchHit(
        title=item.get("title", "") or "",
        url=item.get("url", "") or "",
        description=(item.get("description", "") or "").strip(),
        snippets=[s for s in item.get("extra_snippets", []) or [] if isinstance(s, str)],
        thumbnail_url=thumbnail.get("src"),
        favicon_url=meta_url.get("favicon") or profile.get("img"),
        page_age=item.get("page_age") or item.get("age"),
    )


class BraveSearchClient:
    """Brave web search mapped onto the same result shape as You.com search."""

    name = "brave"

    def __init__(self, api_key: str | None = None):
        self.api_key = settings.brave_api_key if api_key is None else api_key

    async def search(
        self,
        query: str,
        *,
        count: int | None = None,
        freshness: str | None = None,
        crawl_mode: str | None = None,
        crawl_formats: str | None = None,
    ) -> SearchResponse:
        # Brave has no live-crawl mode; crawl_* arguments are accepted and ignored.
        if not self.api_key:
            raise ProviderError("BRAVE_API_KEY is not configured", provider=self.name)

        params: dict[str, Any] = {"q": query}
        if count:
            params["count"] = count
        if freshness and freshness in FRESHNESS_MAP:
            params["freshness"] = FRESHNESS_MAP[freshness]

        async with httpx.AsyncClient(timeout=settings.search_timeout_s) as client:
            response = await client.get(
                BRAVE_SEARCH_URL,
                params=params,
                headers={
                    "Accept": "application/json",
                    "X-Subscription-Token": self.api_key,
                },
            )
            if response.status_code >= 400:
                raise ProviderError(
                    f"Brave Search API error {response.status_code}: {response.text}",
                    status_code=response.status_code,
                    body=response.text,
                    provider=self.name,
                )
            payload = response.json()

        web = payload.get("web", {}).get("results", []) or []
        news = payload.get("news", {}).get("results", []) or []
        return SearchResponse(
            web=[_to_hit(item) for item in web if isinstance(item, dict)],
            news=[_to_hit(item) for item in news if isinstance(item, dict)],
            provider=self.name,
        )
