"""Provider selection for search, content extraction and reasoning."""
from __future__ import annotations

from typing import Any, Iterable, Protocol

from app.config import settings
from app.models.provider import AgentResponse, ContentsResult, SearchResponse
from app.tools.brave_search import BraveSearchClient
from app.tools.you_client import YouClient


class SearchProvider(Protocol):
    name: str

    async def search(
        self,
        query: str,
        *,
        count: int | None = None,
        freshness: str | None = None,
        crawl_mode: str | None = None,
        crawl_formats: str | None = None,
    ) -> SearchResponse: ...


class ContentProvider(Protocol):
    async def contents(
        self, urls: Iterable[str], formats: Iterable[str] = ("markdown",)
    ) -> list[ContentsResult]: ...


class ReasoningProvider(Protocol):
    async def run(
        self,
        prompt: str,
        *,
        tools: list[dict[str, Any]] | None = None,
        verbosity: str = "medium",
        max_steps: int = 3,
        timeout_s: float = 45.0,
    ) -> AgentResponse: ...


def get_search_provider(you_client: YouClient) -> SearchProvider:
    provider = settings.search_provider.lower().strip()
    if provider == "you":
        return you_client
    if provider == "brave":
        return BraveSearchClient()
    raise ValueError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")


def get_reasoning_provider(you_client: YouClient) -> ReasoningProvider | None:
    """Return the configured reasoning backend, or None to always use the local fallback."""
    provider = settings.reasoning_provider.lower().strip()
    if provider == "you":
        return you_client
    if provider == "openrouter":
        from app.llm_client import OpenRouterReasoner

        return OpenRouterReasoner()
    if provider in ("none", "", "off"):
        return None
    raise ValueError(f"Unsupported REASONING_PROVIDER: {settings.reasoning_provider}")


def missing_api_key() -> str | None:
    """Name of the first required API key that is not configured, if any."""
    search = settings.search_provider.lower().strip()
    reasoning = settings.reasoning_provider.lower().strip()
    if search == "brave" and not settings.brave_api_key:
        return "BRAVE_API_KEY"
    # Contents extraction always goes through You.com.
    if not settings.you_api_key:
        return "YOU_API_KEY"
    if reasoning == "openrouter" and not settings.openrouter_api_key:
        return "OPENROUTER_API_KEY"
    return None
