"""Sentiment classification of free-text answers through the AI gateway."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from pulse.config import get_settings
from pulse.services.llm.client import LLMClient
from pulse.services.llm.types import LLMRequest

logger = logging.getLogger(__name__)

SENTIMENT_SYSTEM_PROMPT = """You are an HR sentiment analysis expert. Analyze employee feedback and provide:
1. Sentiment (positive/negative/neutral)
2. Confidence score (0.00 to 1.00)
3. Key themes (array of 2-5 key topics)
4. Brief summary of the feedback

Respond in JSON format:
{
  "sentiment": "positive|negative|neutral",
  "confidence": 0.85,
  "key_themes": ["work-life balance", "management"],
  "summary": "Brief summary of the feedback"
}"""

FALLBACK_CONFIDENCE = 0.7
FALLBACK_THEME = "general feedback"
FALLBACK_SUMMARY_CHARS = 200

_CODE_FENCE_RE = re.compile(r"```(?:json)?\n?")


class VerdictKind(str, Enum):
    parsed = "parsed"
    fallback = "fallback"


@dataclass
class SentimentVerdict:
    sentiment: str
    confidence: float
    key_themes: List[str] = field(default_factory=list)
    summary: str = ""
    kind: VerdictKind = VerdictKind.parsed

    def as_dict(self) -> Dict[str, Any]:
        return {
            "sentiment": self.sentiment,
            "confidence": self.confidence,
            "key_themes": list(self.key_themes),
            "summary": self.summary,
            "kind": self.kind.value,
        }


class _VerdictPayload(BaseModel):
    sentiment: Literal["positive", "negative", "neutral"]
    confidence: float = Field(ge=0.0, le=1.0)
    key_themes: List[str] = Field(default_factory=list)
    summary: str = ""

    @field_validator("sentiment", mode="before")
    @classmethod
    def _normalize_label(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


def strip_code_fences(content: str) -> str:
    return _CODE_FENCE_RE.sub("", str(content or "")).strip()


def fallback_verdict(content: str, response_text: str) -> SentimentVerdict:
    lowered = str(content or "").lower()
    if "negative" in lowered:
        sentiment = "negative"
    elif "positive" in lowered:
        sentiment = "positive"
    else:
        sentiment = "neutral"
    return SentimentVerdict(
        sentiment=sentiment,
        confidence=FALLBACK_CONFIDENCE,
        key_themes=[FALLBACK_THEME],
        summary=str(response_text or "")[:FALLBACK_SUMMARY_CHARS],
        kind=VerdictKind.fallback,
    )


def parse_verdict(content: str, response_text: str) -> SentimentVerdict:
    """Validate the model output against the verdict schema, falling back to keyword matching."""
    cleaned = strip_code_fences(content)
    try:
        payload = _VerdictPayload.model_validate_json(cleaned)
    except ValidationError:
        logger.warning("Failed to parse AI response: %s", cleaned[:500])
        return fallback_verdict(cleaned, response_text)
    return SentimentVerdict(
        sentiment=payload.sentiment,
        confidence=payload.confidence,
        key_themes=[str(theme) for theme in payload.key_themes],
        summary=payload.summary,
        kind=VerdictKind.parsed,
    )


def classify_sentiment(response_text: str, client: Optional[LLMClient] = None) -> SentimentVerdict:
    """Ask the gateway for a verdict on one answer.

    Raises LLMProviderError (or its rate-limit / quota subclasses) when the
    gateway call itself fails; malformed output never raises.
    """
    settings = get_settings()
    client = client or LLMClient()
    response = client.complete(
        LLMRequest(
            system_prompt=SENTIMENT_SYSTEM_PROMPT,
            prompt=f'Analyze this employee feedback: "{response_text}"',
            model=settings.sentiment_model,
            timeout_seconds=settings.sentiment_timeout_seconds,
        )
    )
    logger.debug("Sentiment completion from %s:%s in %sms", response.provider, response.model, response.latency_ms)
    return parse_verdict(response.text, response_text)
