from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Header, HTTPException
from loguru import logger

from app.models.schemas import NewsResponse
from app.services.news_feed import fetch_health_news
from app.tools.provider_errors import ProviderError
from app.tools.search_provider import get_search_provider, missing_api_key
from app.tools.you_client import YouClient

router = APIRouter(prefix="/api/news", tags=["news"])


@router.get("", response_model=NewsResponse)
async def health_news(x_offline_mode: Optional[str] = Header(default=None)):
    if (x_offline_mode or "").strip().lower() == "true":
        return NewsResponse(articles=[], offline=True)

    missing = missing_api_key()
    if missing:
        raise HTTPException(status_code=500, detail=f"{missing} is not configured")

    async with YouClient() as client:
        try:
            return await fetch_health_news(get_search_provider(client))
        except ProviderError as exc:
            logger.warning(f"News digest failed: {exc}")
            raise HTTPException(status_code=500, detail=str(exc)) from exc
