"""Tests for API routes."""
import json
from unittest.mock import AsyncMock, patch

import pytest

from app.models.events import SSEEvent, EventType
from app.models.schemas import NewsResponse


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    # sse-starlette keeps a process-wide exit event bound to the first loop it saw.
    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = None
    yield


@pytest.fixture
def app():
    from app.main import app
    return app


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient
    return TestClient(app)


def _sse_events(body: str) -> list[tuple[str, dict]]:
    events = []
    name = None
    for line in body.splitlines():
        if line.startswith("event:"):
            name = line.split(":", 1)[1].strip()
        elif line.startswith("data:") and name:
            events.append((name, json.loads(line.split(":", 1)[1].strip())))
            name = None
    return events


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "remedy"


def test_research_rejects_blank_question(client):
    response = client.post("/api/research", json={"question": "   "})
    assert response.status_code == 400


def test_research_requires_api_key_when_online(client):
    with patch("app.api.routes.research.missing_api_key", return_value="YOU_API_KEY"):
        response = client.post("/api/research", json={"question": "Is zinc safe?"})
    assert response.status_code == 500
    assert "YOU_API_KEY" in response.json()["detail"]


def test_research_offline_streams_single_complete(client):
    with patch("app.api.routes.research.missing_api_key", return_value="YOU_API_KEY"):
        response = client.post(
            "/api/research", json={"question": "Is zinc safe?", "offline": True}
        )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = _sse_events(response.text)
    assert [name for name, _ in events] == ["complete"]
    name, data = events[0]
    assert data["type"] == "complete"
    assert data["report"]["credits_unavailable"] is True
    assert data["report"]["citations"] == []


def test_research_streams_orchestrator_events(client):
    async def fake_research(self, question, *, offline=False, strategy=None):
        yield SSEEvent(event=EventType.PLANNING, data={"tasks": ["a"], "query_type": "GENERAL"})
        yield SSEEvent(event=EventType.ERROR, data={"message": "boom", "stage": "searching"})

    with (
        patch("app.api.routes.research.missing_api_key", return_value=None),
        patch("app.agents.orchestrator.HealthResearchOrchestrator.research", new=fake_research),
    ):
        response = client.post("/api/research", json={"question": "Is zinc safe?"})

    events = _sse_events(response.text)
    assert [name for name, _ in events] == ["planning", "error"]
    assert events[1][1] == {"type": "error", "message": "boom", "stage": "searching"}


def test_news_offline_header(client):
    response = client.get("/api/news", headers={"X-Offline-Mode": "true"})
    assert response.status_code == 200
    assert response.json() == {"articles": [], "offline": True}


def test_news_returns_digest(client):
    with (
        patch("app.api.routes.news.missing_api_key", return_value=None),
        patch(
            "app.api.routes.news.fetch_health_news",
            new=AsyncMock(return_value=NewsResponse(articles=[])),
        ) as fetch,
    ):
        response = client.get("/api/news")

    assert response.status_code == 200
    assert response.json()["offline"] is False
    fetch.assert_awaited_once()
