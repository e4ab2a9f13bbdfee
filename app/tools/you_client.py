"""You.com Search, Contents and Agents APIs over a single httpx client."""
from __future__ import annotations

import time
from typing import Any, Iterable

import httpx

from app.config import settings
from app.models.provider import AgentResponse, ContentsResult, SearchHit, SearchResponse
from app.services import logger as log_service
from app.tools.provider_errors import ProviderError

DEFAULT_RESEARCH_TOOL = {
    "type": "research",
    "search_effort": "medium",
    "report_verbosity": "medium",
}


class YouClient:
    """One instance per research run; close it when the run ends."""

    name = "you"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        search_base_url: str | None = None,
        agents_base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float | None = None,
    ):
        self.api_key = settings.you_api_key if api_key is None else api_key
        self.search_base_url = (search_base_url or settings.you_search_base_url).rstrip("/")
        self.agents_base_url = (agents_base_url or settings.you_agents_base_url).rstrip("/")
        self.timeout_s = settings.search_timeout_s if timeout_s is None else timeout_s
        self._client = http_client
        self._owns_client = http_client is None

    async def __aenter__(self) -> "YouClient":
        self._http()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    @property
    def closed(self) -> bool:
        return self._client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_s)
            self._owns_client = True
        return self._client

    def _require_key(self) -> str:
        if not self.api_key:
            raise ProviderError("YOU_API_KEY environment variable is not set", provider=self.name)
        return self.api_key

    @staticmethod
    def _check(response: httpx.Response, api: str) -> None:
        if response.status_code >= 400:
            body = response.text
            raise ProviderError(
                f"You.com {api} API error {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
                provider="you",
            )

    async def search(
        self,
        query: str,
        *,
        count: int | None = None,
        freshness: str | None = None,
        crawl_mode: str | None = None,
        crawl_formats: str | None = None,
    ) -> SearchResponse:
        params: dict[str, Any] = {"query": query}
        if count:
            params["count"] = count
        if freshness:
            params["freshness"] = freshness
        if crawl_mode:
            params["livecrawl"] = crawl_mode
        if crawl_formats:
            params["livecrawl_formats"] = crawl_formats

        t0 = time.monotonic()
        response = await self._http().get(
            f"{self.search_base_url}/v1/search",
            params=params,
            headers={"X-API-Key": self._require_key()},
        )
        self._check(response, "Search")
        payload = response.json()
        log_service.log_provider_call(
            self.name,
            "search",
            "success",
            details=f"{query[:80]} ({int((time.monotonic() - t0) * 1000)}ms)",
        )

        results = payload.get("results") or {}
        return SearchResponse(
            web=[SearchHit.from_dict(r) for r in results.get("web") or [] if isinstance(r, dict)],
            news=[SearchHit.from_dict(r) for r in results.get("news") or [] if isinstance(r, dict)],
            provider=self.name,
        )

    async def contents(
        self,
        urls: Iterable[str],
        formats: Iterable[str] = ("markdown",),
    ) -> list[ContentsResult]:
        body = {
            "urls": list(urls),
            "formats": list(formats),
            "crawl_timeout": settings.extract_crawl_timeout_s,
        }
        response = await self._http().post(
            f"{self.search_base_url}/v1/contents",
            json=body,
            headers={"X-API-Key": self._require_key(), "Content-Type": "application/json"},
        )
        self._check(response, "Contents")
        payload = response.json()
        if not isinstance(payload, list):
            raise ProviderError("You.com Contents API returned an unexpected payload", provider=self.name)

        log_service.log_provider_call(self.name, "contents", "success", details=f"{len(body['urls'])} urls")
        return [
            ContentsResult(
                url=str(item.get("url") or ""),
                title=str(item.get("title") or ""),
                markdown=item.get("markdown"),
                html=item.get("html"),
            )
            for item in payload
            if isinstance(item, dict)
        ]

    async def run(
        self,
        prompt: str,
        *,
        tools: list[dict[str, Any]] | None = None,
        verbosity: str = "medium",
        max_steps: int = 3,
        timeout_s: float = 45.0,
    ) -> AgentResponse:
        """Run the advanced agent once, non-streaming."""
        body = {
            "agent": "advanced",
            "input": prompt,
            "stream": False,
            "tools": tools or [DEFAULT_RESEARCH_TOOL],
            "verbosity": verbosity,
            "workflow_config": {"max_workflow_steps": max_steps},
        }
        t0 = time.monotonic()
        try:
            response = await self._http().post(
                f"{self.agents_base_url}/v1/agents/runs",
                json=body,
                headers={
                    "Authorization": f"Bearer {self._require_key()}",
                    "Content-Type": "application/json",
                },
                timeout=timeout_s,
            )
            self._check(response, "Agents")
        except Exception as exc:
            log_service.log_llm_call(
                model="you.advanced",
                caller="synthesis",
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(exc),
            )
            raise

        payload = response.json()
        log_service.log_llm_call(
            model="you.advanced",
            caller="synthesis",
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        output = payload.get("output") if isinstance(payload, dict) else None
        return AgentResponse(
            output=[item for item in output or [] if isinstance(item, dict)],
            agent=str(payload.get("agent", "")) if isinstance(payload, dict) else "",
        )
