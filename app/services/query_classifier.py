from __future__ import annotations

import re
from typing import Any

from app.models.research_plan import QueryType, ResearchPlan

INTERACTION_PATTERN = re.compile(
    r"interact|combin|together with|\bmix|safe to take .+ with|take .+ and",
    re.IGNORECASE,
)
SUPPLEMENT_PATTERN = re.compile(
    r"supplement|vitamin|mineral|herb|ashwagandha|turmeric|magnesium|zinc|omega"
    r"|creatine|melatonin|probiotic|collagen|biotin",
    re.IGNORECASE,
)
WELLNESS_PATTERN = re.compile(
    r"intermittent fasting|cold (?:shower|plunge|exposure)|keto|paleo|detox|cleanse"
    r"|diet|fasting|sauna|grounding|seed oil",
    re.IGNORECASE,
)

# Checked top-down; the first pattern that matches decides the type.
CLASSIFICATION_RULES: tuple[tuple[re.Pattern[str], QueryType], ...] = (
    (INTERACTION_PATTERN, QueryType.INTERACTION),
    (SUPPLEMENT_PATTERN, QueryType.SUPPLEMENT),
    (WELLNESS_PATTERN, QueryType.WELLNESS),
)

TASKS: dict[QueryType, tuple[str, ...]] = {
    QueryType.INTERACTION: (
        "Searching for interaction data",
        "Checking clinical evidence",
        "Analyzing safety profiles",
    ),
    QueryType.SUPPLEMENT: (
        "Researching clinical evidence",
        "Checking dosage and safety",
        "Evaluating efficacy",
    ),
    QueryType.WELLNESS: (
        "Finding scientific studies",
        "Checking expert consensus",
        "Evaluating claims",
    ),
    QueryType.GENERAL: (
        "Searching medical literature",
        "Finding expert guidelines",
        "Gathering evidence",
    ),
}

QUERY_HINTS: dict[QueryType, tuple[str, ...]] = {
    QueryType.INTERACTION: ("drug interaction safety", "clinical evidence mechanism"),
    QueryType.SUPPLEMENT: ("clinical evidence research", "safety side effects dosage"),
    QueryType.WELLNESS: ("scientific evidence study", "benefits risks research"),
    QueryType.GENERAL: ("medical research evidence", "health guidelines"),
}


def detect_query_type(question: str) -> QueryType:
    for pattern, query_type in CLASSIFICATION_RULES:
        if pattern.search(question):
            return query_type
    return QueryType.GENERAL


def build_queries(question: str, query_type: QueryType) -> tuple[str, ...]:
    return tuple(
        f"{question} {hint}".strip() for hint in QUERY_HINTS[query_type]
    )


def classify(question: Any) -> ResearchPlan:
    """Map free text to a ResearchPlan. Pure; unmatched input is GENERAL."""
    text = " ".join(question.split()) if isinstance(question, str) else ""
    query_type = detect_query_type(text)
    return ResearchPlan(
        question=text,
        query_type=query_type,
        tasks=TASKS[query_type],
        queries=build_queries(text, query_type),
    )
