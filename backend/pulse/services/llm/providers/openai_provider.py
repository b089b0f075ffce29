from __future__ import annotations

import logging

from openai import APIConnectionError, APIError, APIStatusError, OpenAI, RateLimitError

from pulse.config import get_settings
from pulse.services.llm.types import (
    LLMProviderError,
    LLMQuotaExceededError,
    LLMRateLimitError,
)

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """Chat completions against the OpenAI-compatible AI gateway."""

    name = "ai_gateway"

    def __init__(self) -> None:
        settings = get_settings()
        if not settings.ai_gateway_api_key:
            raise LLMProviderError("AI_GATEWAY_API_KEY is not configured")
        # Failures surface to the caller; nothing is retried.
        self._client = OpenAI(
            api_key=settings.ai_gateway_api_key,
            base_url=settings.ai_gateway_base_url,
            max_retries=0,
        )

    def generate(
        self,
        *,
        model: str,
        system_prompt: str,
        prompt: str,
        timeout_seconds: int,
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                timeout=timeout_seconds,
            )
        except RateLimitError as exc:
            logger.error("AI gateway error: 429 %s", exc)
            raise LLMRateLimitError() from exc
        except APIStatusError as exc:
            logger.error("AI gateway error: %s %s", exc.status_code, exc)
            if exc.status_code == 402:
                raise LLMQuotaExceededError() from exc
            raise LLMProviderError(f"AI gateway error: {exc.status_code}", status_code=exc.status_code) from exc
        except APIConnectionError as exc:
            logger.error("AI gateway unreachable: %s", exc)
            raise LLMProviderError(f"AI gateway unreachable: {exc}") from exc
        except APIError as exc:
            logger.error("AI gateway returned an unusable reply: %s", exc)
            raise LLMProviderError(f"AI gateway error: {exc}") from exc

        # Proxies and maintenance pages answer 200 with a non-JSON body.
        choices = getattr(response, "choices", None)
        if choices is None:
            logger.error("AI gateway returned an unexpected body: %s", str(response)[:200])
            raise LLMProviderError("AI gateway returned an unexpected response body")
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None)
        return str(content or "").strip()
