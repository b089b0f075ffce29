from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class LLMRequest:
    system_prompt: str
    prompt: str
    model: str
    timeout_seconds: int = 60
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMResponse:
    text: str
    provider: str
    model: str
    latency_ms: int = 0
    started_at: Optional[str] = None
    ended_at: Optional[str] = None


class LLMProviderError(RuntimeError):
    """The completion endpoint could not be reached or answered with an error."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LLMRateLimitError(LLMProviderError):
    """HTTP 429 from the gateway."""

    def __init__(self, message: str = "Rate limit exceeded. Please try again later.") -> None:
        super().__init__(message, status_code=429)


class LLMQuotaExceededError(LLMProviderError):
    """HTTP 402 from the gateway: the usage quota is exhausted."""

    def __init__(self, message: str = "AI credits exhausted. Please add credits to continue.") -> None:
        super().__init__(message, status_code=402)


def now_iso() -> str:
    return datetime.utcnow().isoformat()
