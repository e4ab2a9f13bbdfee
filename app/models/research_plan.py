from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class QueryType(str, Enum):
    INTERACTION = "INTERACTION"
    SUPPLEMENT = "SUPPLEMENT"
    WELLNESS = "WELLNESS"
    GENERAL = "GENERAL"


class ResearchPlan(BaseModel):
    """Classification of one question plus the searches it should trigger."""

    model_config = ConfigDict(frozen=True)

    question: str
    query_type: QueryType
    tasks: tuple[str, ...]  # progress labels, in display order
    queries: tuple[str, ...]  # 2-4 search strings, in issue order
