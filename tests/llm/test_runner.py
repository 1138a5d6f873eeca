"""Tests for the chat completion transport."""

from __future__ import annotations

import io
import json
from urllib.error import HTTPError, URLError

import pytest

from textlint_ai.errors import ConfigurationError, TransientServiceError
from textlint_ai.llm.runner import LLMRunner


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload

    def read(self):
        return json.dumps(self._payload).encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def test_llm_runner_constructs_request() -> None:
    captured = {}

    def fake_runner(request):
        captured["prompt"] = request.prompt
        captured["model"] = request.model
        captured["temperature"] = request.temperature
        captured["max_tokens"] = request.max_tokens
        captured["json_mode"] = request.json_mode
        captured["base_url"] = request.base_url
        captured["request_timeout"] = request.request_timeout
        return "response"

    runner = LLMRunner(
        model="custom-model",
        base_url="http://localhost:8080/v1/",
        temperature=0.15,
        max_tokens=256,
        request_timeout=42.0,
        runner=fake_runner,
    )
    result = runner.run("Hello world", json_mode=True)

    assert result == "response"
    assert captured == {
        "prompt": "Hello world",
        "model": "custom-model",
        "temperature": 0.15,
        "max_tokens": 256,
        "json_mode": True,
        "base_url": "http://localhost:8080/v1",
        "request_timeout": 42.0,
    }


def test_llm_runner_requires_api_key(monkeypatch) -> None:
    for key in LLMRunner.ENV_API_KEY_KEYS:
        monkeypatch.delenv(key, raising=False)

    with pytest.raises(ConfigurationError):
        LLMRunner()


def test_llm_runner_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("TEXTLINT_API_KEY", "env-key")
    monkeypatch.setenv("TEXTLINT_MODEL", "gpt-env")
    monkeypatch.delenv("TEXTLINT_BASE_URL", raising=False)
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)

    runner = LLMRunner()

    assert runner.api_key == "env-key"
    assert runner.model == "gpt-env"
    assert runner.base_url == LLMRunner.DEFAULT_BASE_URL


def test_llm_runner_http_posts_payload(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["payload"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse({"choices": [{"message": {"content": " Bonjour le monde. "}}]})

    monkeypatch.setattr("textlint_ai.llm.runner.urlopen", fake_urlopen)

    runner = LLMRunner(
        model="gpt-4o-mini",
        base_url="https://llm.example.test/v1/",
        api_key="secret",
        temperature=0.0,
        max_tokens=128,
        request_timeout=15.0,
    )
    result = runner.run("Correct this", json_mode=True)

    assert result == "Bonjour le monde."
    assert captured["url"] == "https://llm.example.test/v1/chat/completions"
    assert captured["headers"]["authorization"] == "Bearer secret"
    assert captured["timeout"] == 15.0
    assert captured["payload"] == {
        "model": "gpt-4o-mini",
        "messages": [{"role": "user", "content": "Correct this"}],
        "temperature": 0.0,
        "max_tokens": 128,
        "response_format": {"type": "json_object"},
    }


def test_llm_runner_empty_content_is_transient(monkeypatch) -> None:
    monkeypatch.setattr(
        "textlint_ai.llm.runner.urlopen",
        lambda request, timeout=None: FakeResponse({"choices": [{"message": {"content": ""}}]}),
    )
    runner = LLMRunner(api_key="secret")

    with pytest.raises(TransientServiceError):
        runner.run("Correct this")


def test_llm_runner_network_failures_are_transient(monkeypatch) -> None:
    def unreachable(request, timeout=None):
        raise URLError("connection refused")

    monkeypatch.setattr("textlint_ai.llm.runner.urlopen", unreachable)
    runner = LLMRunner(api_key="secret")

    with pytest.raises(TransientServiceError, match="unreachable"):
        runner.run("Correct this")


def test_llm_runner_http_errors_are_transient(monkeypatch) -> None:
    def rate_limited(request, timeout=None):
        raise HTTPError(request.full_url, 429, "Too Many Requests", hdrs=None, fp=io.BytesIO(b"slow down"))

    monkeypatch.setattr("textlint_ai.llm.runner.urlopen", rate_limited)
    runner = LLMRunner(api_key="secret")

    with pytest.raises(TransientServiceError, match="429"):
        runner.run("Correct this")


def test_list_models_filters_and_sorts(monkeypatch) -> None:
    payload = {"data": [{"id": "gpt-4o"}, {"id": "whisper-1"}, {"id": "gpt-4"}]}
    monkeypatch.setattr(
        "textlint_ai.llm.runner.urlopen", lambda request, timeout=None: FakeResponse(payload)
    )
    runner = LLMRunner(api_key="secret")

    assert runner.list_models() == ["gpt-4", "gpt-4o"]


def test_list_models_falls_back_on_failure(monkeypatch) -> None:
    def unreachable(request, timeout=None):
        raise URLError("offline")

    monkeypatch.setattr("textlint_ai.llm.runner.urlopen", unreachable)
    runner = LLMRunner(api_key="secret")

    assert runner.list_models() == list(LLMRunner.FALLBACK_MODELS)
