from __future__ import annotations

import time
from typing import Optional

from pulse.config import get_settings
from pulse.services.llm.providers.openai_provider import OpenAIProvider
from pulse.services.llm.types import LLMRequest, LLMResponse, now_iso


class LLMClient:
    """Single-attempt completion client. Provider errors propagate unchanged."""

    def __init__(self) -> None:
        self._settings = get_settings()
        self._instance: Optional[OpenAIProvider] = None

    def _provider(self):
        if self._instance is None:
            self._instance = OpenAIProvider()
        return self._instance

    def complete(self, request: LLMRequest) -> LLMResponse:
        provider = self._provider()
        started = now_iso()
        t0 = time.perf_counter()
        text = provider.generate(
            model=request.model,
            system_prompt=request.system_prompt,
            prompt=request.prompt,
            timeout_seconds=max(1, int(request.timeout_seconds)),
        )
        return LLMResponse(
            text=text,
            provider=getattr(provider, "name", "unknown"),
            model=request.model,
            latency_ms=int((time.perf_counter() - t0) * 1000),
            started_at=started,
            ended_at=now_iso(),
        )
