from __future__ import annotations

import json
import threading
from typing import Callable, Dict, Iterable, List, Optional

import pytest

from textlint_ai.errors import TransientServiceError
from textlint_ai.llm import CorrectionClient, LLMRequest, LLMRunner
from textlint_ai.orchestrator import CorrectionOrchestrator
from textlint_ai.stores import CorrectionCache

FIXES: Dict[str, str] = {
    "helo wrld": "hello world",
    "bad speling here": "bad spelling here",
    "Bonjour le mond": "Bonjour le monde",
}


def prompt_text(prompt: str) -> str:
    """Recover the text embedded in a rendered correction prompt."""
    body = prompt.split('Text to correct:\n"', 1)[1]
    return body.rsplit('"', 1)[0]


class FakeTransport:
    """Stands in for the HTTP transport and records every request."""

    def __init__(
        self,
        fixes: Optional[Dict[str, str]] = None,
        *,
        failing: Iterable[str] = (),
        detailed: Optional[Callable[[str], str]] = None,
        on_call: Optional[Callable[[LLMRequest], None]] = None,
    ) -> None:
        self.fixes = dict(FIXES if fixes is None else fixes)
        self.failing = set(failing)
        self.detailed = detailed
        self.on_call = on_call
        self.requests: List[LLMRequest] = []
        self._lock = threading.Lock()

    def __call__(self, request: LLMRequest) -> str:
        with self._lock:
            self.requests.append(request)
        if self.on_call is not None:
            self.on_call(request)
        text = prompt_text(request.prompt)
        if text in self.failing:
            raise TransientServiceError(f"service unavailable for {text}")
        if request.json_mode:
            if self.detailed is None:
                return json.dumps({"correctedText": self.fixes.get(text, text), "changes": []})
            return self.detailed(text)
        return self.fixes.get(text, text)

    def texts(self) -> List[str]:
        return [prompt_text(request.prompt) for request in self.requests]


async def no_sleep(delay: float) -> None:
    return None


def build_orchestrator(transport: FakeTransport, **kwargs) -> CorrectionOrchestrator:
    client = CorrectionClient(LLMRunner("test-model", runner=transport), sleep=no_sleep)
    return CorrectionOrchestrator(client, CorrectionCache(), **kwargs)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def make_orchestrator() -> Callable[..., CorrectionOrchestrator]:
    return build_orchestrator


@pytest.fixture
def recorded_sleeps() -> List[float]:
    return []


@pytest.fixture
def recording_sleep(recorded_sleeps: List[float]) -> Callable[[float], object]:
    async def _sleep(delay: float) -> None:
        recorded_sleeps.append(delay)

    return _sleep
