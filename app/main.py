from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import news, research
from app.config import settings
from app.services.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Remedy starting: search={settings.search_provider} reasoning={settings.reasoning_provider}"
    )
    yield


app = FastAPI(
    title="Remedy",
    description="Evidence-backed health research with streamed progress",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(research.router)
app.include_router(news.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "remedy"}
