"""Unit tests for LLM provider routing -- no real API calls, httpx.MockTransport only."""

import asyncio
import json

import httpx
import pytest

from tweaq.core.errors import ProviderError
from tweaq.core.llm.config import ProviderConfig
from tweaq.core.llm.providers import ProviderTextGenerator, call_provider, retry_api_call


class Recorder:
    """MockTransport handler that replays responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    @property
    def transport(self):
        return httpx.MockTransport(self)


def _openai_reply(text):
    return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})


def _call(config, recorder, **kwargs):
    kwargs.setdefault("retry_delay", 0)
    return asyncio.run(call_provider(config, "sys", "user", transport=recorder.transport, **kwargs))


class TestRouting:
    def test_openai_compatible(self):
        recorder = Recorder(_openai_reply("hello"))
        text = _call(ProviderConfig(provider="openai", model="gpt-4o"), recorder, api_key="sk-test")

        assert text == "hello"
        request = recorder.requests[0]
        assert request.url.path == "/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["messages"][1] == {"role": "user", "content": "user"}

    def test_groq_uses_its_base_url(self):
        recorder = Recorder(_openai_reply("ok"))
        _call(ProviderConfig(provider="groq", model="llama-3.3-70b-versatile"), recorder, api_key="k")
        assert recorder.requests[0].url.host == "api.groq.com"

    def test_anthropic(self):
        recorder = Recorder(httpx.Response(200, json={"content": [{"text": "claude says"}]}))
        text = _call(
            ProviderConfig(provider="anthropic", model="claude-sonnet-4-20250514"), recorder, api_key="ak"
        )
        assert text == "claude says"
        assert recorder.requests[0].headers["x-api-key"] == "ak"
        assert json.loads(recorder.requests[0].content)["system"] == "sys"

    def test_google(self):
        reply = {"candidates": [{"content": {"parts": [{"text": "gemini says"}]}}]}
        recorder = Recorder(httpx.Response(200, json=reply))
        text = _call(ProviderConfig(provider="google", model="gemini-2.5-flash"), recorder, api_key="gk")
        assert text == "gemini says"
        assert recorder.requests[0].url.params["key"] == "gk"

    def test_ollama_needs_no_key(self):
        recorder = Recorder(httpx.Response(200, json={"message": {"content": "local"}}))
        assert _call(ProviderConfig(), recorder) == "local"
        assert recorder.requests[0].url.path == "/api/chat"


class TestErrors:
    def test_unknown_provider(self):
        with pytest.raises(ProviderError, match="Unknown provider"):
            _call(ProviderConfig(provider="nonexistent"), Recorder(_openai_reply("x")))

    def test_missing_key(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TWEAQ_HOME", str(tmp_path))
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("TWEAQ_OPENAI_API_KEY", raising=False)
        with pytest.raises(ProviderError, match="not configured"):
            _call(ProviderConfig(provider="openai", model="gpt-4o"), Recorder(_openai_reply("x")))

    def test_auth_error_is_not_retried(self):
        recorder = Recorder(httpx.Response(401, json={"error": "bad key"}))
        with pytest.raises(ProviderError) as exc_info:
            _call(ProviderConfig(provider="openai", model="gpt-4o"), recorder, api_key="bad")
        assert exc_info.value.status == 401
        assert len(recorder.requests) == 1

    def test_server_error_is_retried(self):
        recorder = Recorder(httpx.Response(503), _openai_reply("recovered"))
        text = _call(ProviderConfig(provider="openai", model="gpt-4o"), recorder, api_key="k")
        assert text == "recovered"
        assert len(recorder.requests) == 2

    def test_retries_run_out(self):
        recorder = Recorder(httpx.Response(500))
        with pytest.raises(ProviderError) as exc_info:
            _call(ProviderConfig(provider="openai", model="gpt-4o"), recorder, api_key="k", max_retries=2)
        assert exc_info.value.status == 500
        assert len(recorder.requests) == 2

    def test_empty_reply(self):
        with pytest.raises(ProviderError, match="empty response"):
            _call(ProviderConfig(), Recorder(httpx.Response(200, json={"message": {"content": "  "}})))


class TestRetryWrapper:
    def test_transport_errors_are_retried(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused")
            return "ok"

        assert asyncio.run(retry_api_call(flaky, max_retries=3, delay_seconds=0)) == "ok"
        assert len(calls) == 3


class TestProviderTextGenerator:
    def test_generate_text(self):
        recorder = Recorder(httpx.Response(200, json={"message": {"content": "```tsx\nx\n```"}}))
        generator = ProviderTextGenerator(ProviderConfig(), transport=recorder.transport, retry_delay=0)
        assert asyncio.run(generator.generate_text("prompt")) == "```tsx\nx\n```"

    def test_failures_propagate(self):
        recorder = Recorder(httpx.Response(404))
        generator = ProviderTextGenerator(ProviderConfig(), transport=recorder.transport, retry_delay=0)
        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(generator.generate_text("prompt"))
        assert exc_info.value.status == 404
