from __future__ import annotations

import json

from fastapi import APIRouter, HTTPException
from sse_starlette.sse import EventSourceResponse

from app.agents.orchestrator import HealthResearchOrchestrator
from app.models.schemas import ResearchRequest
from app.services import logger as log_service
from app.tools.search_provider import missing_api_key

router = APIRouter(prefix="/api/research", tags=["research"])


@router.post("")
async def research(request: ResearchRequest):
    """Stream one research run as server-sent events."""
    question = request.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Question is required")
    if not request.offline:
        missing = missing_api_key()
        if missing:
            raise HTTPException(status_code=500, detail=f"{missing} is not configured")

    async def event_generator():
        orchestrator = HealthResearchOrchestrator()
        log_service.log_event(
            event_type="research_started",
            message="Research started",
            run_id=orchestrator.run_id,
            offline=request.offline,
            question=question[:100],
        )
        async for event in orchestrator.research(question, offline=request.offline):
            yield {
                "event": event.event.value,
                "data": json.dumps(event.to_dict()),
            }
        log_service.log_event(
            event_type="research_finished",
            message="Research stream closed",
            run_id=orchestrator.run_id,
            state=orchestrator.state.value,
        )

    return EventSourceResponse(
        event_generator(),
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
