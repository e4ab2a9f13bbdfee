from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    PLANNING = "planning"
    SEARCHING = "searching"
    SEARCH_RESULTS = "search_results"
    READING = "reading"
    REASONING = "reasoning"
    AGENT_ROLE = "agent_role"
    SAFETY_RATING = "safety_rating"
    EVIDENCE_LEVEL = "evidence_level"
    REPORT_CHUNK = "report_chunk"
    CITATIONS = "citations"
    COMPLETE = "complete"
    ERROR = "error"


NETWORK_EVENTS = frozenset({EventType.SEARCHING, EventType.READING})


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.event.value, **self.data}
