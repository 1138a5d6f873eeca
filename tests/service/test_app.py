"""Tests for the FastAPI service mode."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from textlint_ai.errors import ConfigurationError
from textlint_ai.orchestrator import ApplyResult
from textlint_ai.service import create_app


@pytest.fixture
def client(transport, make_orchestrator) -> TestClient:
    orchestrator = make_orchestrator(transport)
    return TestClient(create_app(lambda: orchestrator))


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_extract_returns_spans_in_document_order(client: TestClient) -> None:
    response = client.post(
        "/extract",
        json={"text": '// helo wrld\nmessage = "Hello there"\n', "language_id": "javascript"},
    )

    assert response.status_code == 200
    spans = response.json()["spans"]
    assert [span["text"] for span in spans] == ["helo wrld", "Hello there"]
    assert [span["type"] for span in spans] == ["comment", "string"]
    assert spans[0]["start"] == {"line": 0, "column": 3}
    assert spans[1]["start"] == {"line": 1, "column": 11}


def test_extract_defaults_scan_every_language(client: TestClient) -> None:
    response = client.post("/extract", json={"text": "# A python comment worth checking\nx = 1\n"})

    assert response.status_code == 200
    spans = response.json()["spans"]
    assert [span["text"] for span in spans] == ["A python comment worth checking"]
    assert spans[0]["start"] == {"line": 0, "column": 2}


def test_correct_previews_changes(client: TestClient, transport) -> None:
    response = client.post(
        "/correct",
        json={"text": "// helo wrld\n", "language_id": "javascript", "target_language": "en"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "completed"
    assert body["text"] is None
    assert [(c["original"], c["text"]) for c in body["corrections"]] == [
        ("helo wrld", "hello world")
    ]
    assert body["stats"]["total_texts"] == 1
    assert "in en" in transport.requests[0].prompt


def test_correct_can_apply(client: TestClient) -> None:
    response = client.post(
        "/correct",
        json={"text": "// helo wrld\nconst x = 1;\n", "language_id": "javascript", "apply": True},
    )

    assert response.status_code == 200
    assert response.json()["text"] == "// hello world\nconst x = 1;\n"


def test_cache_is_shared_across_requests(client: TestClient, transport) -> None:
    payload = {"text": "// helo wrld\n", "language_id": "javascript"}
    client.post("/correct", json=payload)
    second = client.post("/correct", json=payload).json()

    assert second["stats"]["cached"] == 1
    assert len(transport.requests) == 1
    stats = client.get("/cache/stats").json()
    assert stats["entries"] == 1
    assert stats["hits"] == 1


def test_configuration_errors_map_to_503() -> None:
    def _factory():
        raise ConfigurationError("No API key configured")

    client = TestClient(create_app(_factory))

    response = client.post("/correct", json={"text": "// helo wrld\n"})

    assert response.status_code == 503
    assert response.json() == {"detail": "No API key configured"}


def test_apply_without_run_is_rejected(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)

    async def _apply_all(document, options=None, *, cancel_event=None):
        return ApplyResult(applied=[], success=True)

    orchestrator.apply_all = _apply_all
    client = TestClient(create_app(lambda: orchestrator))

    response = client.post("/correct", json={"text": "// helo wrld\n", "apply": True})

    assert response.status_code == 400
    assert response.json() == {"detail": "Correction run produced no result"}
