"""Correction runs, edit application and undo for documents."""

from __future__ import annotations

import asyncio
import enum
import time
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Callable, Deque, Dict, List, Optional, Sequence, Tuple

from .config import TextLintConfig
from .documents import Document
from .errors import ConfigurationError, NoActiveTargetError, UndoMismatchError
from .extraction import TextExtractor, summarize
from .llm import CorrectionClient, LLMRunner
from .llm.runner import LLMRequest
from .logging import excerpt, get_logger
from .models import (
    Correction,
    CorrectionOptions,
    CorrectionStats,
    ExtractedText,
    ExtractionOptions,
    Range,
    TextAnalysis,
    UndoEntry,
)
from .reconcile import inverse_edits, plan_edits
from .stores import CorrectionCache

UNDO_LIMIT = 10
_WRAPPING_QUOTES = ('"', "'", "`")


class RunState(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class _Outcome(enum.Enum):
    CORRECTED = "corrected"
    CACHED = "cached"
    FAILED = "failed"


@dataclass
class CorrectionRun:
    """Corrections produced by one pass plus its statistics."""

    corrections: List[Correction]
    stats: CorrectionStats
    state: RunState

    @property
    def changed(self) -> List[Correction]:
        return [correction for correction in self.corrections if correction.changed]


@dataclass
class ApplyResult:
    """Outcome of pushing corrections into a document."""

    applied: List[Correction]
    success: bool
    run: Optional[CorrectionRun] = None


@dataclass
class HistoryEntry:
    identity: str
    corrections: List[Correction]
    timestamp: float = field(default_factory=time.time)


class CorrectionOrchestrator:
    """Runs extracted spans through the cache and the client and applies the results.

    Each run moves through ``PENDING -> RUNNING -> COMPLETED | CANCELLED``.
    Every input span yields a :class:`Correction`; failed spans keep their
    original text with a confidence of 0.
    """

    def __init__(
        self,
        client: CorrectionClient,
        cache: CorrectionCache | None = None,
        extractor: TextExtractor | None = None,
        *,
        config: TextLintConfig | None = None,
        chunk_size: int = 1,
        chunk_pause: float = 0.5,
        undo_limit: int = UNDO_LIMIT,
    ) -> None:
        self.client = client
        self.cache = cache or CorrectionCache()
        self.extractor = extractor or TextExtractor()
        self.config = config
        self.chunk_size = max(1, chunk_size)
        self.chunk_pause = chunk_pause
        self.state = RunState.PENDING
        self.logger = get_logger("orchestrator")
        self._undo_stack: Deque[UndoEntry] = deque(maxlen=undo_limit)
        self._history: Dict[str, List[HistoryEntry]] = {}

    @classmethod
    def from_config(
        cls,
        config: TextLintConfig,
        *,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> "CorrectionOrchestrator":
        """Wire runner, client and cache from a loaded configuration."""
        llm = config.llm
        llm_runner = LLMRunner(
            llm.model,
            base_url=llm.base_url,
            temperature=llm.temperature,
            max_tokens=llm.max_tokens,
            request_timeout=llm.request_timeout,
            api_key=llm.api_key,
            runner=runner,
        )
        cache = CorrectionCache(max_size=config.cache.max_size, max_age_ms=config.cache.max_age_ms)
        return cls(CorrectionClient(llm_runner), cache, config=config)

    def extraction_options(self) -> ExtractionOptions:
        return self.config.extraction_options() if self.config else ExtractionOptions()

    def correction_options(self) -> CorrectionOptions:
        return self.config.correction_options() if self.config else CorrectionOptions()

    async def correct_spans(
        self,
        spans: Sequence[ExtractedText],
        options: CorrectionOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> CorrectionRun:
        """Correct ``spans`` and return index-aligned corrections.

        Cancellation is checked between chunks; results of a chunk that was in
        flight when cancellation was observed are discarded.
        """
        options = options or self.correction_options()
        self.state = RunState.RUNNING
        started = time.perf_counter()
        stats = CorrectionStats(total_texts=len(spans))
        corrections: List[Correction] = []

        for offset in range(0, len(spans), self.chunk_size):
            if _cancelled(cancel_event):
                self.state = RunState.CANCELLED
                break
            chunk = spans[offset : offset + self.chunk_size]
            outcomes = await asyncio.gather(
                *(self._correct_span(span, options, cancel_event) for span in chunk)
            )
            if _cancelled(cancel_event):
                self.logger.info("Correction run cancelled after %d spans", len(corrections))
                self.state = RunState.CANCELLED
                break
            for correction, outcome in outcomes:
                corrections.append(correction)
                _count(stats, correction, outcome)
            if self.chunk_size > 1 and offset + self.chunk_size < len(spans):
                await self._pause(cancel_event)

        if self.state is RunState.RUNNING:
            self.state = RunState.COMPLETED
        stats.duration = time.perf_counter() - started
        self.logger.debug(
            "Run %s: %d texts, %d corrected, %d cached, %d failed",
            self.state.value,
            stats.total_texts,
            stats.corrected,
            stats.cached,
            stats.failed,
        )
        return CorrectionRun(corrections, stats, self.state)

    async def correct_span_detailed(
        self, span: ExtractedText, options: CorrectionOptions | None = None
    ) -> Correction:
        """Ask for a structured correction, falling back to the plain flow on failure."""
        span_options = _span_options(span, options or self.correction_options())
        try:
            detailed = await self.client.correct_detailed(span.text, span_options)
        except ConfigurationError:
            raise
        except Exception as exc:  # noqa: BLE001 - degrade to the plain correction
            self.logger.warning("Detailed correction failed, using plain correction: %s", exc)
            run = await self.correct_spans([span], options)
            return run.corrections[0]
        return Correction(
            text=_unwrap(detailed.corrected_text, span.text),
            start=span.start,
            end=span.end,
            original=span.text,
            confidence=detailed.confidence,
            changes=list(detailed.changes),
        )

    async def apply_all(
        self,
        document: Document | None,
        options: CorrectionOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ApplyResult:
        if document is None:
            raise NoActiveTargetError("No active document to correct")
        spans = self.extractor.extract_from_document(document, self.extraction_options())
        return await self._correct_and_apply(document, spans, options, cancel_event)

    async def apply_selection(
        self,
        document: Document | None,
        selection: Range | None,
        options: CorrectionOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ApplyResult:
        if document is None:
            raise NoActiveTargetError("No active document to correct")
        if selection is None or selection.is_empty:
            raise NoActiveTargetError("No text selected")
        spans = [
            span
            for span in self.extractor.extract_from_selection(
                document, selection, self.extraction_options()
            )
            if span.range.intersects(selection)
        ]
        return await self._correct_and_apply(document, spans, options, cancel_event)

    async def preview(
        self,
        document: Document | None,
        options: CorrectionOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> CorrectionRun:
        """Correct every span without touching the document.

        The returned run only lists corrections whose text actually changed.
        """
        if document is None:
            raise NoActiveTargetError("No active document to preview")
        spans = self.extractor.extract_from_document(document, self.extraction_options())
        run = await self.correct_spans(spans, options, cancel_event=cancel_event)
        return replace(run, corrections=run.changed)

    def apply_subset(
        self, document: Document | None, corrections: Sequence[Correction]
    ) -> ApplyResult:
        if document is None:
            raise NoActiveTargetError("No active document to apply corrections to")
        applied = self._apply(document, corrections)
        return ApplyResult(applied=applied or [], success=applied is not None)

    def undo(self, document: Document | None) -> bool:
        """Revert the latest apply on ``document``; False when there is nothing to undo."""
        if document is None:
            raise NoActiveTargetError("No active document to undo")
        try:
            entry = self._peek_undo(document.identity)
        except UndoMismatchError as exc:
            self.logger.info("%s", exc)
            return False
        if not document.replace_ranges(entry.edits):
            self.logger.warning("Undo rejected by %s; the document changed since", document.identity)
            return False
        self._undo_stack.pop()
        self.logger.info("Reverted %d corrections in %s", len(entry.corrections), document.identity)
        return True

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    def get_history(self, identity: str | None = None) -> List[HistoryEntry]:
        if identity is not None:
            return list(self._history.get(identity, []))
        entries = [entry for history in self._history.values() for entry in history]
        return sorted(entries, key=lambda entry: entry.timestamp)

    def clear_cache(self) -> None:
        self.cache.clear()

    def analyze(self, document: Document | None) -> TextAnalysis:
        if document is None:
            raise NoActiveTargetError("No active document to analyze")
        return summarize(self.extractor.extract_from_document(document, self.extraction_options()))

    async def _correct_and_apply(
        self,
        document: Document,
        spans: Sequence[ExtractedText],
        options: CorrectionOptions | None,
        cancel_event: asyncio.Event | None,
    ) -> ApplyResult:
        if not spans:
            self.logger.info("No text to correct in %s", document.identity)
            self.state = RunState.COMPLETED
            return ApplyResult(
                applied=[],
                success=True,
                run=CorrectionRun([], CorrectionStats(), RunState.COMPLETED),
            )
        run = await self.correct_spans(spans, options, cancel_event=cancel_event)
        if run.state is RunState.CANCELLED:
            return ApplyResult(applied=[], success=False, run=run)
        applied = self._apply(document, run.corrections)
        return ApplyResult(applied=applied or [], success=applied is not None, run=run)

    def _apply(
        self, document: Document, corrections: Sequence[Correction]
    ) -> Optional[List[Correction]]:
        plan = plan_edits(document, corrections)
        if plan.skipped:
            self.logger.debug("Skipped %d corrections that could not be placed", len(plan.skipped))
        if not plan:
            return []
        inverse = inverse_edits(document, plan.edits)
        if not document.replace_ranges(plan.edits):
            self.logger.warning("Document %s rejected %d edits", document.identity, len(plan.edits))
            return None
        self._undo_stack.append(UndoEntry(document.identity, plan.corrections, inverse))
        self._history.setdefault(document.identity, []).append(
            HistoryEntry(document.identity, plan.corrections)
        )
        self.logger.info("Applied %d corrections to %s", len(plan.corrections), document.identity)
        return plan.corrections

    def _peek_undo(self, identity: str) -> UndoEntry:
        if not self._undo_stack:
            raise UndoMismatchError("Nothing to undo")
        entry = self._undo_stack[-1]
        if entry.document_identity != identity:
            raise UndoMismatchError(f"Nothing to undo for {identity}")
        return entry

    async def _correct_span(
        self,
        span: ExtractedText,
        options: CorrectionOptions,
        cancel_event: asyncio.Event | None,
    ) -> Tuple[Correction, _Outcome]:
        span_options = _span_options(span, options)
        key = span_options.cache_key(span.text)
        cached = self.cache.get(key)
        if cached is not None:
            return _correction(span, cached, span.confidence), _Outcome.CACHED
        try:
            corrected = await self.client.correct(span.text, span_options, cancel_event=cancel_event)
        except ConfigurationError:
            raise
        except Exception as exc:  # noqa: BLE001 - a failed span never aborts the run
            self.logger.warning("Correction failed for %r: %s", excerpt(span.text), exc)
            return _correction(span, span.text, 0.0), _Outcome.FAILED
        corrected = _unwrap(corrected, span.text)
        self.cache.set(key, corrected)
        return _correction(span, corrected, span.confidence), _Outcome.CORRECTED

    async def _pause(self, cancel_event: asyncio.Event | None) -> None:
        if cancel_event is None:
            await asyncio.sleep(self.chunk_pause)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self.chunk_pause)
        except asyncio.TimeoutError:
            pass


def _cancelled(cancel_event: asyncio.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def _span_options(span: ExtractedText, options: CorrectionOptions) -> CorrectionOptions:
    if options.context is None and span.context:
        return replace(options, context=span.context)
    return options


def _correction(span: ExtractedText, text: str, confidence: float) -> Correction:
    return Correction(
        text=text,
        start=span.start,
        end=span.end,
        original=span.text,
        confidence=confidence,
    )


def _unwrap(corrected: str, original: str) -> str:
    """Drop quotes the service echoed from the prompt around the corrected text."""
    corrected = corrected.strip()
    for quote in _WRAPPING_QUOTES:
        if (
            len(corrected) >= 2
            and corrected[0] == quote
            and corrected[-1] == quote
            and not (original.startswith(quote) and original.endswith(quote))
        ):
            return corrected[1:-1].strip()
    return corrected


def _count(stats: CorrectionStats, correction: Correction, outcome: _Outcome) -> None:
    if outcome is _Outcome.FAILED:
        stats.failed += 1
        return
    if outcome is _Outcome.CACHED:
        stats.cached += 1
    if correction.changed:
        stats.corrected += 1


__all__ = [
    "ApplyResult",
    "CorrectionOrchestrator",
    "CorrectionRun",
    "HistoryEntry",
    "RunState",
    "UNDO_LIMIT",
]
