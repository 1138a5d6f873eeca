"""Synchronous transport for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import ConfigurationError, TransientServiceError


@dataclass
class LLMRequest:
    """Represents a single-turn completion request."""

    prompt: str
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    json_mode: bool
    base_url: str
    api_key: Optional[str]
    request_timeout: Optional[float]


class LLMRunner:
    """Sends prompts to the configured chat completion service."""

    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    FALLBACK_MODELS = ("gpt-4", "gpt-4o", "gpt-4o-mini")
    ENV_MODEL_KEYS = ("TEXTLINT_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("TEXTLINT_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("TEXTLINT_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None = None,
        temperature: Optional[float] = 0.0,
        max_tokens: Optional[int] = 500,
        api_key: str | None = None,
        request_timeout: Optional[float] = 60.0,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        self.model = model or self._first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        self.base_url = (
            base_url or self._first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        ).rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = api_key or self._first_env_value(self.ENV_API_KEY_KEYS)
        self.request_timeout = request_timeout
        if runner is not None:
            self._runner = runner
        elif not self.api_key:
            raise ConfigurationError(
                "Missing API key for the correction service. Set TEXTLINT_API_KEY or llm.api_key."
            )
        else:
            self._runner = self._http_runner

    def run(
        self,
        prompt: str,
        *,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send the prompt and return the response text."""
        request = LLMRequest(
            prompt=prompt,
            model=self.model,
            temperature=self.temperature,
            max_tokens=max_tokens if max_tokens is not None else self.max_tokens,
            json_mode=json_mode,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )
        return self._runner(request)

    def list_models(self) -> List[str]:
        """Return available gpt model ids, or a fixed fallback list on failure."""
        request = Request(
            f"{self.base_url}/models",
            headers=self._headers(self.api_key),
            method="GET",
        )
        try:
            with urlopen(request, timeout=self.request_timeout or 60.0) as response:  # type: ignore[arg-type]
                payload = json.loads(response.read().decode("utf-8"))
        except (HTTPError, URLError, OSError, json.JSONDecodeError):
            return list(self.FALLBACK_MODELS)
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            return list(self.FALLBACK_MODELS)
        ids = [
            item["id"]
            for item in data
            if isinstance(item, dict) and isinstance(item.get("id"), str) and "gpt" in item["id"]
        ]
        return sorted(ids) or list(self.FALLBACK_MODELS)

    @staticmethod
    def _http_runner(request: LLMRequest) -> str:
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.json_mode:
            payload["response_format"] = {"type": "json_object"}

        data = json.dumps(payload).encode("utf-8")
        http_request = Request(
            endpoint, data=data, headers=LLMRunner._headers(request.api_key), method="POST"
        )
        timeout = request.request_timeout or 60.0

        try:
            with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise TransientServiceError(
                f"Correction service failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:
            raise TransientServiceError(f"Correction service unreachable: {exc.reason}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise TransientServiceError("Correction service returned invalid JSON") from exc

        content = LLMRunner._extract_content(response_payload)
        if not content:
            raise TransientServiceError("Correction service returned an empty response")
        return content.strip()

    @staticmethod
    def _headers(api_key: str | None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    @staticmethod
    def _extract_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


__all__ = ["LLMRequest", "LLMRunner"]
