from types import SimpleNamespace

import httpx
import openai
import pytest

from pulse.services.llm.client import LLMClient
from pulse.services.llm.providers.openai_provider import OpenAIProvider
from pulse.services.llm.types import (
    LLMProviderError,
    LLMQuotaExceededError,
    LLMRateLimitError,
    LLMRequest,
)

_GATEWAY_URL = "https://ai.gateway.test/v1/chat/completions"


class _FakeProvider:
    name = "fake_gateway"

    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def generate(self, *, model: str, system_prompt: str, prompt: str, timeout_seconds: int):
        self.calls.append(
            {"model": model, "system_prompt": system_prompt, "prompt": prompt, "timeout_seconds": timeout_seconds}
        )
        if not self._responses:
            return ""
        nxt = self._responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return str(nxt)


def _request():
    return LLMRequest(
        system_prompt="You are a classifier.",
        prompt="Classify this.",
        model="google/gemini-2.5-flash",
        timeout_seconds=30,
    )


def _provider_raising(exc):
    provider = OpenAIProvider.__new__(OpenAIProvider)

    def _create(**_kwargs):
        raise exc

    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_create)))
    return provider


def _status_error(cls, status_code):
    request = httpx.Request("POST", _GATEWAY_URL)
    response = httpx.Response(status_code, request=request)
    return cls(f"status {status_code}", response=response, body=None)


def test_client_returns_provider_text_and_metadata(monkeypatch):
    client = LLMClient()
    provider = _FakeProvider(['{"sentiment":"neutral","confidence":0.5}'])
    monkeypatch.setattr(client, "_provider", lambda: provider)

    response = client.complete(_request())

    assert response.text == '{"sentiment":"neutral","confidence":0.5}'
    assert response.provider == "fake_gateway"
    assert response.model == "google/gemini-2.5-flash"
    assert response.started_at and response.ended_at
    assert provider.calls == [
        {
            "model": "google/gemini-2.5-flash",
            "system_prompt": "You are a classifier.",
            "prompt": "Classify this.",
            "timeout_seconds": 30,
        }
    ]


def test_client_makes_a_single_attempt(monkeypatch):
    client = LLMClient()
    provider = _FakeProvider([LLMProviderError("boom", status_code=503), "never reached"])
    monkeypatch.setattr(client, "_provider", lambda: provider)

    with pytest.raises(LLMProviderError) as excinfo:
        client.complete(_request())

    assert excinfo.value.status_code == 503
    assert len(provider.calls) == 1


def test_provider_requires_api_key(monkeypatch):
    settings = SimpleNamespace(ai_gateway_api_key="", ai_gateway_base_url="https://ai.gateway.test/v1")
    monkeypatch.setattr("pulse.services.llm.providers.openai_provider.get_settings", lambda: settings)

    with pytest.raises(LLMProviderError):
        OpenAIProvider()


def test_provider_sends_system_and_user_messages():
    provider = OpenAIProvider.__new__(OpenAIProvider)
    captured = {}

    def _create(**kwargs):
        captured.update(kwargs)
        message = SimpleNamespace(content='  {"sentiment": "positive"}  ')
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_create)))

    text = provider.generate(model="m", system_prompt="sys", prompt="user text", timeout_seconds=60)

    assert text == '{"sentiment": "positive"}'
    assert captured["model"] == "m"
    assert captured["timeout"] == 60
    assert captured["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "user text"},
    ]


def test_provider_maps_rate_limit_to_429():
    provider = _provider_raising(_status_error(openai.RateLimitError, 429))

    with pytest.raises(LLMRateLimitError) as excinfo:
        provider.generate(model="m", system_prompt="s", prompt="p", timeout_seconds=60)

    assert excinfo.value.status_code == 429
    assert str(excinfo.value) == "Rate limit exceeded. Please try again later."


def test_provider_maps_payment_required_to_quota_error():
    provider = _provider_raising(_status_error(openai.APIStatusError, 402))

    with pytest.raises(LLMQuotaExceededError) as excinfo:
        provider.generate(model="m", system_prompt="s", prompt="p", timeout_seconds=60)

    assert excinfo.value.status_code == 402
    assert str(excinfo.value) == "AI credits exhausted. Please add credits to continue."


def test_provider_maps_other_statuses_and_connection_failures():
    provider = _provider_raising(_status_error(openai.APIStatusError, 500))
    with pytest.raises(LLMProviderError) as excinfo:
        provider.generate(model="m", system_prompt="s", prompt="p", timeout_seconds=60)
    assert excinfo.value.status_code == 500
    assert not isinstance(excinfo.value, (LLMRateLimitError, LLMQuotaExceededError))

    offline = _provider_raising(openai.APIConnectionError(request=httpx.Request("POST", _GATEWAY_URL)))
    with pytest.raises(LLMProviderError) as excinfo:
        offline.generate(model="m", system_prompt="s", prompt="p", timeout_seconds=60)
    assert excinfo.value.status_code is None


def _gateway_returning(status_code, body, content_type):
    def _handler(request):
        return httpx.Response(status_code, content=body, headers={"content-type": content_type})

    provider = OpenAIProvider.__new__(OpenAIProvider)
    provider._client = openai.OpenAI(
        api_key="test-key",
        base_url="https://ai.gateway.test/v1",
        max_retries=0,
        http_client=httpx.Client(transport=httpx.MockTransport(_handler)),
    )
    return provider


def test_provider_rejects_html_body_served_with_200():
    provider = _gateway_returning(200, b"<html>maintenance</html>", "text/html")

    with pytest.raises(LLMProviderError) as excinfo:
        provider.generate(model="m", system_prompt="s", prompt="p", timeout_seconds=60)

    assert not isinstance(excinfo.value, (LLMRateLimitError, LLMQuotaExceededError))


def test_provider_wraps_other_sdk_errors():
    provider = _provider_raising(openai.APIError("bad reply", httpx.Request("POST", _GATEWAY_URL), body=None))

    with pytest.raises(LLMProviderError):
        provider.generate(model="m", system_prompt="s", prompt="p", timeout_seconds=60)
