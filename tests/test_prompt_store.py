from __future__ import annotations

import pytest

from app.services.prompt_store import render_prompt


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt("synthesis.agent_input", question="Is zinc safe with antibiotics?")

    assert "Question: Is zinc safe with antibiotics?" in prompt
    assert "## Safety Assessment" in prompt
    assert "**Contraindication Alerts**" in prompt


def test_list_entries_are_joined_by_line():
    recommendations = render_prompt("synthesis.recommendations")

    lines = recommendations.splitlines()
    assert len(lines) == 5
    assert lines[0].startswith("- **Consult your doctor**")


def test_render_prompt_raises_for_missing_value():
    with pytest.raises(KeyError, match="question"):
        render_prompt("synthesis.agent_input")


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")


def test_render_prompt_rejects_non_text_nodes():
    with pytest.raises(TypeError):
        render_prompt("synthesis")
