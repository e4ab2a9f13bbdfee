from __future__ import annotations

import pytest

from app.models.research_plan import QueryType
from app.services.query_classifier import TASKS, classify


@pytest.mark.parametrize(
    "question",
    [
        "Does ibuprofen INTERACT with warfarin?",
        "can I combine st john's wort and sertraline",
        "Is it safe to take fish oil with aspirin?",
        "what happens if I mix alcohol and melatonin",
    ],
)
def test_interaction_vocabulary_always_wins(question):
    plan = classify(question)
    assert plan.query_type == QueryType.INTERACTION


def test_interaction_checked_before_supplement():
    # "magnesium" is supplement vocabulary, "take ... with" is interaction vocabulary.
    plan = classify("Is it safe to take magnesium with lisinopril?")

    assert plan.query_type == QueryType.INTERACTION
    assert len(plan.queries) == 2
    assert all("lisinopril" in q for q in plan.queries)
    assert "interaction" in plan.queries[0]
    assert "mechanism" in plan.queries[1]
    assert plan.tasks == TASKS[QueryType.INTERACTION]


def test_supplement_and_wellness_questions():
    assert classify("Benefits of ashwagandha for stress").query_type == QueryType.SUPPLEMENT
    assert classify("Does a cold plunge boost immunity?").query_type == QueryType.WELLNESS
    assert classify("Is intermittent fasting good for longevity").query_type == QueryType.WELLNESS


def test_unmatched_and_empty_input_is_general():
    assert classify("What causes migraines?").query_type == QueryType.GENERAL

    empty = classify("")
    assert empty.query_type == QueryType.GENERAL
    assert 2 <= len(empty.queries) <= 4


def test_non_string_input_never_raises():
    plan = classify(None)  # type: ignore[arg-type]
    assert plan.query_type == QueryType.GENERAL
    assert plan.question == ""


def test_whitespace_is_normalized():
    plan = classify("  turmeric   for\njoint pain ")
    assert plan.question == "turmeric for joint pain"
    assert plan.queries[0].startswith("turmeric for joint pain ")
