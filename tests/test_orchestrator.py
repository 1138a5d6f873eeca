"""Tests for correction runs, application and undo."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from textlint_ai.config import TextLintConfig
from textlint_ai.documents import TextDocument
from textlint_ai.errors import NoActiveTargetError
from textlint_ai.models import ExtractedText, Position, Range
from textlint_ai.orchestrator import CorrectionOrchestrator, RunState


def _span(text: str, line: int = 0) -> ExtractedText:
    return ExtractedText(
        text=text,
        type="comment",
        start=Position(line, 3),
        end=Position(line, 3 + len(text)),
        confidence=0.9,
    )


def test_failed_span_keeps_original_and_run_continues(make_transport, make_orchestrator) -> None:
    transport = make_transport(failing=["broken text here"])
    orchestrator = make_orchestrator(transport)
    spans = [_span("helo wrld", 0), _span("broken text here", 1), _span("bad speling here", 2)]

    run = asyncio.run(orchestrator.correct_spans(spans))

    assert run.state is RunState.COMPLETED
    assert [c.original for c in run.corrections] == [s.text for s in spans]
    assert [c.text for c in run.corrections] == [
        "hello world",
        "broken text here",
        "bad spelling here",
    ]
    failed = run.corrections[1]
    assert failed.confidence == 0.0
    assert transport.texts().count("broken text here") == 3
    assert run.stats.total_texts == 3
    assert run.stats.corrected == 2
    assert run.stats.failed == 1
    assert run.stats.duration >= 0.0


def test_concurrent_chunks_keep_index_alignment(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport, chunk_size=3, chunk_pause=0.0)
    texts = ["helo wrld", "first", "second", "bad speling here", "third", "Bonjour le mond", "x y z"]

    run = asyncio.run(orchestrator.correct_spans([_span(text, i) for i, text in enumerate(texts)]))

    assert [c.original for c in run.corrections] == texts
    assert run.corrections[5].text == "Bonjour le monde"


def test_second_run_is_served_from_cache(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)
    spans = [_span("helo wrld"), _span("bad speling here", 1)]

    asyncio.run(orchestrator.correct_spans(spans))
    run = asyncio.run(orchestrator.correct_spans(spans))

    assert run.stats.cached == 2
    assert run.stats.corrected == 2
    assert len(transport.requests) == 2

    orchestrator.clear_cache()
    asyncio.run(orchestrator.correct_spans(spans))
    assert len(transport.requests) == 4


def test_quotes_echoed_by_the_service_are_removed(make_transport, make_orchestrator) -> None:
    transport = make_transport({"helo wrld": '"hello world"'})
    orchestrator = make_orchestrator(transport)

    run = asyncio.run(orchestrator.correct_spans([_span("helo wrld")]))

    assert run.corrections[0].text == "hello world"


def test_cancelled_before_start(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)

    async def scenario():
        cancel = asyncio.Event()
        cancel.set()
        return await orchestrator.correct_spans([_span("helo wrld")], cancel_event=cancel)

    run = asyncio.run(scenario())

    assert run.state is RunState.CANCELLED
    assert run.corrections == []
    assert transport.requests == []


def test_cancelled_mid_run_discards_in_flight_result(make_transport, make_orchestrator) -> None:
    async def scenario():
        loop = asyncio.get_running_loop()
        cancel = asyncio.Event()
        transport = make_transport(on_call=lambda request: loop.call_soon_threadsafe(cancel.set))
        orchestrator = make_orchestrator(transport)
        spans = [_span("helo wrld"), _span("bad speling here", 1), _span("more text", 2)]
        run = await orchestrator.correct_spans(spans, cancel_event=cancel)
        return run, transport

    run, transport = asyncio.run(scenario())

    assert run.state is RunState.CANCELLED
    assert run.corrections == []
    assert len(transport.requests) == 1


def test_apply_all_then_undo(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)
    original = "// helo wrld\nconst x = 1;\n"
    document = TextDocument(original, language_id="javascript")

    result = asyncio.run(orchestrator.apply_all(document))

    assert result.success is True
    assert [c.text for c in result.applied] == ["hello world"]
    assert document.get_text() == "// hello world\nconst x = 1;\n"
    assert orchestrator.undo_depth == 1
    assert len(orchestrator.get_history(document.identity)) == 1

    assert orchestrator.undo(document) is True
    assert document.get_text() == original
    assert orchestrator.undo(document) is False


def test_apply_all_without_text_is_a_no_op(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)
    document = TextDocument("const x = 1;\n", language_id="javascript")

    result = asyncio.run(orchestrator.apply_all(document))

    assert result.success is True
    assert result.applied == []
    assert orchestrator.undo_depth == 0


def test_operations_without_target_raise(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)
    document = TextDocument("// helo wrld\n", language_id="javascript")
    empty = Range(Position(0, 0), Position(0, 0))

    with pytest.raises(NoActiveTargetError):
        asyncio.run(orchestrator.apply_all(None))
    with pytest.raises(NoActiveTargetError):
        asyncio.run(orchestrator.apply_selection(document, empty))
    with pytest.raises(NoActiveTargetError):
        orchestrator.undo(None)
    assert document.get_text() == "// helo wrld\n"


def test_undo_on_other_document_is_a_no_op(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)
    target = TextDocument("// helo wrld\n", language_id="javascript")
    other = TextDocument("// helo wrld\n", language_id="javascript")

    asyncio.run(orchestrator.apply_all(target))

    assert orchestrator.undo(other) is False
    assert other.get_text() == "// helo wrld\n"
    assert orchestrator.undo(target) is True
    assert target.get_text() == "// helo wrld\n"


def test_undo_stack_is_bounded(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport, undo_limit=2)
    documents = [TextDocument("// helo wrld\n", language_id="javascript") for _ in range(3)]

    for document in documents:
        asyncio.run(orchestrator.apply_all(document))

    assert orchestrator.undo_depth == 2
    assert orchestrator.undo(documents[2]) is True
    assert orchestrator.undo(documents[1]) is True
    assert orchestrator.undo(documents[0]) is False


def test_apply_selection_only_touches_selected_spans(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)
    original = "// helo wrld\n// bad speling here\n"
    document = TextDocument(original, language_id="javascript")
    selection = Range(Position(1, 0), Position(1, 19))

    result = asyncio.run(orchestrator.apply_selection(document, selection))

    assert [c.original for c in result.applied] == ["bad speling here"]
    assert document.get_text() == "// helo wrld\n// bad spelling here\n"
    assert orchestrator.undo(document) is True
    assert document.get_text() == original


def test_preview_then_apply_subset(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)
    original = "// helo wrld\n// nothing to fix here\n// bad speling here\n"
    document = TextDocument(original, language_id="javascript")

    run = asyncio.run(orchestrator.preview(document))

    assert document.get_text() == original
    assert sorted(c.original for c in run.corrections) == ["bad speling here", "helo wrld"]
    assert run.stats.total_texts == 3

    chosen = [c for c in run.corrections if c.original == "helo wrld"]
    result = orchestrator.apply_subset(document, chosen)

    assert result.success is True
    assert document.get_text() == "// hello world\n// nothing to fix here\n// bad speling here\n"


def test_rejected_edits_are_not_recorded(transport, make_orchestrator) -> None:
    class ReadOnlyDocument(TextDocument):
        def replace_ranges(self, edits):
            return False

    orchestrator = make_orchestrator(transport)
    document = ReadOnlyDocument("// helo wrld\n", language_id="javascript")

    result = asyncio.run(orchestrator.apply_all(document))

    assert result.success is False
    assert orchestrator.undo_depth == 0
    assert orchestrator.get_history() == []


def test_correct_span_detailed(make_transport, make_orchestrator) -> None:
    def detailed(text: str) -> str:
        return json.dumps(
            {
                "correctedText": "hello world",
                "changes": [{"type": "spelling", "original": "helo", "corrected": "hello"}],
                "confidence": 0.95,
            }
        )

    orchestrator = make_orchestrator(make_transport(detailed=detailed))

    correction = asyncio.run(orchestrator.correct_span_detailed(_span("helo wrld")))

    assert correction.text == "hello world"
    assert correction.original == "helo wrld"
    assert correction.confidence == pytest.approx(0.95)
    assert [change.corrected for change in correction.changes] == ["hello"]


def test_correct_span_detailed_falls_back_to_plain(make_transport, make_orchestrator) -> None:
    calls = []

    def detailed(text: str) -> str:
        calls.append(text)
        raise RuntimeError("structured output unavailable")

    transport = make_transport(detailed=detailed)
    orchestrator = make_orchestrator(transport)

    correction = asyncio.run(orchestrator.correct_span_detailed(_span("helo wrld")))

    assert correction.text == "hello world"
    assert correction.changes == []
    assert len(calls) == 3


def test_analyze_summarises_document(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)
    document = TextDocument('# a comment here\nmessage = "Hello there"\n', language_id="python")

    analysis = orchestrator.analyze(document)

    assert analysis.segments == 2
    assert analysis.by_type == {"comment": 1, "string": 1}


def test_from_config_wires_components(transport, tmp_path: Path) -> None:
    config = TextLintConfig(root=tmp_path, language="en", style="formal")

    orchestrator = CorrectionOrchestrator.from_config(config, runner=transport)
    run = asyncio.run(orchestrator.correct_spans([_span("helo wrld")]))

    assert run.corrections[0].text == "hello world"
    assert "in en" in transport.requests[0].prompt
    assert "formal style" in transport.requests[0].prompt
    assert orchestrator.cache.max_size == config.cache.max_size


def test_preview_sends_only_prose_to_the_service(transport, make_orchestrator) -> None:
    orchestrator = make_orchestrator(transport)
    code = (
        'app.get("/api/*", handler);\n'
        "function add(a, b) {\n"
        "  return a + b;\n"
        "}\n"
        "/* Closing note for readers. */\n"
    )
    document = TextDocument(code, language_id="javascript")

    asyncio.run(orchestrator.preview(document))

    sent = transport.texts()
    assert "Closing note for readers." in sent
    assert not any("function add" in text for text in sent)
    assert document.get_text() == code
