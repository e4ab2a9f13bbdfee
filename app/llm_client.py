"""OpenRouter reasoning backend via the OpenAI-compatible SDK."""
from __future__ import annotations

import time
from typing import Any

from app.config import settings
from app.models.provider import AgentResponse
from app.services import logger as log_service
from app.services.prompt_store import render_prompt


def get_client() -> Any:
    """Get OpenRouter client via OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    return AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=base_url,
    )


def get_model() -> str:
    return settings.openrouter_model


_client: Any | None = None


def client() -> Any:
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


class OpenRouterReasoner:
    """Reasoning provider that answers from the supplied evidence only.

    It has no browsing tools, so ``tools`` is accepted for interface parity and
    ignored; the answer never carries extra source references.
    """

    name = "openrouter"

    def __init__(self, model: str | None = None, llm: Any | None = None):
        self.model = model or get_model()
        self._llm = llm

    @staticmethod
    def _temperature_for_model(model: str) -> int:
        # Some OpenAI GPT-5-compatible gateways reject temperature=0.
        return 1 if "gpt-5" in (model or "").lower() else 0

    async def run(
        self,
        prompt: str,
        *,
        tools: list[dict[str, Any]] | None = None,
        verbosity: str = "medium",
        max_steps: int = 3,
        timeout_s: float = 45.0,
    ) -> AgentResponse:
        active = self._llm or client()
        t0 = time.monotonic()
        try:
            response = await active.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": render_prompt("synthesis.system_prompt")},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=4096,
                temperature=self._temperature_for_model(self.model),
                timeout=timeout_s,
            )
        except Exception as exc:
            log_service.log_llm_call(
                model=self.model,
                caller="synthesis",
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(exc),
            )
            raise

        log_service.log_llm_call(
            model=self.model,
            caller="synthesis",
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        choices = getattr(response, "choices", None) or []
        text = getattr(choices[0].message, "content", None) if choices else None
        output: list[dict[str, Any]] = []
        if isinstance(text, str) and text.strip():
            output.append({"type": "message.answer", "text": text})
        return AgentResponse(output=output, agent=self.model)
