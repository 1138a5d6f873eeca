"""Extracts natural-language spans (comments, strings, docstrings) from source code."""

from __future__ import annotations

import enum
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from ..languages import LanguageRegistry
from ..logging import get_logger
from ..models import (
    ExtractedText,
    ExtractionOptions,
    Position,
    Range,
    TextAnalysis,
    TextType,
)
from .classifier import TextTypeClassifier

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..documents import Document

MIN_CONFIDENCE = 0.3
CONTEXT_LINES = 2

_LINE_SPLIT = re.compile(r"\r?\n")
_DOCSTRING_OPEN = re.compile("^\\s*[rRuU]?(\"\"\"|''')")
_COMMENT_BODY = re.compile(r"/{2,}\s*(.+)|#\s*(.+)|/\*+\s*(.+)\s*\*/")
_STRING_LITERAL = re.compile(r"""(['"`])((?:(?!\1|\\).|\\.)*)\1""")
_CODE_ONLY = re.compile(r"^[{}\[\]();,.=<>!&|+\-*/\\]+$")
_BARE_URL = re.compile(r"^https?://\S+$")
_TERMINAL_PUNCTUATION = re.compile(r"[.!?]$")


class ScanMode(enum.Enum):
    NORMAL = "normal"
    IN_BLOCK_COMMENT = "block_comment"
    IN_DOCSTRING = "docstring"


@dataclass
class _ScanState:
    mode: ScanMode = ScanMode.NORMAL
    buffer: List[str] = field(default_factory=list)
    start_line: int = 0
    delimiter: str = ""

    def open(self, mode: ScanMode, line: str, index: int, delimiter: str = "") -> None:
        self.mode = mode
        self.buffer = [line]
        self.start_line = index
        self.delimiter = delimiter

    def reset(self) -> None:
        self.mode = ScanMode.NORMAL
        self.buffer = []
        self.delimiter = ""


class TextExtractor:
    """Line-oriented scanner that turns source code into scored prose spans.

    Spans are returned sorted by descending confidence, not in source order;
    use :func:`in_document_order` when positions matter more than value.
    """

    def __init__(
        self,
        classifier: TextTypeClassifier | None = None,
        *,
        registry: LanguageRegistry | None = None,
    ) -> None:
        self.classifier = classifier or TextTypeClassifier(registry)
        self.registry = self.classifier.registry
        self.logger = get_logger("extractor")

    def extract_from_document(
        self, document: "Document", options: ExtractionOptions | None = None
    ) -> List[ExtractedText]:
        opts = options or ExtractionOptions()
        language = self._effective_language(document, opts)
        return self.extract_text_from_code(
            document.get_text(), Position(0, 0), language, opts
        )

    def extract_from_selection(
        self,
        document: "Document",
        selection: Range,
        options: ExtractionOptions | None = None,
    ) -> List[ExtractedText]:
        opts = options or ExtractionOptions()
        language = self._effective_language(document, opts)
        text = document.get_text(selection)
        return self.extract_text_from_code(text, selection.start, language, opts)

    def extract_text_from_code(
        self,
        code: str,
        start_position: Position = Position(0, 0),
        language: str = "auto",
        options: ExtractionOptions | None = None,
    ) -> List[ExtractedText]:
        """Scan ``code`` and return the spans worth correcting.

        Positions are expressed relative to ``start_position`` so the same scan
        serves whole documents and selections.
        """
        opts = options or ExtractionOptions(language=language)
        lines = _LINE_SPLIT.split(code)
        block_openers, triple_docstrings = self._multi_line_support(language)
        state = _ScanState()
        extracted: List[ExtractedText] = []

        for index, line in enumerate(lines):
            if state.mode is ScanMode.IN_DOCSTRING:
                state.buffer.append(line)
                if state.delimiter in line:
                    self._add_block(extracted, state, "docstring", index, lines, start_position, opts)
                    state.reset()
                continue

            if state.mode is ScanMode.IN_BLOCK_COMMENT:
                state.buffer.append(line)
                if "*/" in line:
                    self._add_block(extracted, state, "comment", index, lines, start_position, opts)
                    state.reset()
                continue

            if "*/" not in line and any(pattern.match(line) for pattern in block_openers):
                state.open(ScanMode.IN_BLOCK_COMMENT, line, index)
                continue

            if triple_docstrings:
                opener = _DOCSTRING_OPEN.match(line)
                if opener and line.count(opener.group(1)) == 1:
                    state.open(ScanMode.IN_DOCSTRING, line, index, opener.group(1))
                    continue

            extracted.extend(
                self._extract_from_line(line, index, lines, start_position, language, opts)
            )

        if state.mode is not ScanMode.NORMAL:
            self.logger.debug(
                "Unterminated %s starting at line %d ignored",
                state.mode.value,
                start_position.line + state.start_line,
            )

        return _filter_and_sort(extracted)

    def should_include_text(self, text: str, options: ExtractionOptions) -> bool:
        if len(text) < options.min_length or len(text) > options.max_length:
            return False
        folded = text.casefold()
        for pattern in options.ignore_patterns:
            if pattern and pattern.casefold() in folded:
                return False
        if _CODE_ONLY.match(text):
            return False
        if _BARE_URL.match(text):
            return False
        return True

    @staticmethod
    def calculate_confidence(text: str, text_type: TextType) -> float:
        confidence = 1.0
        if len(text) < 10:
            confidence -= 0.2
        if _TERMINAL_PUNCTUATION.search(text):
            confidence += 0.1
        if text:
            symbols = sum(1 for char in text if not char.isalnum() and not char.isspace())
            symbol_ratio = symbols / len(text)
            if symbol_ratio > 0.3:
                confidence -= symbol_ratio * 0.5
        if text_type == "docstring":
            confidence += 0.1
        return max(0.0, min(1.0, confidence))

    @staticmethod
    def clean_text(text: str, text_type: TextType) -> str:
        cleaned = text.strip()
        if text_type == "comment":
            cleaned = re.sub(r"^/{2,}\s*", "", cleaned)
            cleaned = re.sub(r"^/\*+\s*", "", cleaned)
            cleaned = re.sub(r"\s*\*+/$", "", cleaned)
            cleaned = re.sub(r"^#\s*", "", cleaned)
            cleaned = "\n".join(
                re.sub(r"^\*+(?!/)\s?", "", part.strip()).strip()
                for part in cleaned.split("\n")
            )
        elif text_type == "docstring":
            cleaned = re.sub(r"""^[rRuU]?(\"\"\"|''')""", "", cleaned)
            cleaned = re.sub(r"""(\"\"\"|''')$""", "", cleaned)
            cleaned = re.sub(r"^/\*\*\s*|^/{3}\s*", "", cleaned)
            cleaned = re.sub(r"\s*\*/$", "", cleaned)
            cleaned = "\n".join(
                re.sub(r"^\*+(?!/)\s?", "", part.strip()).strip()
                for part in cleaned.split("\n")
            )
        elif text_type == "string":
            cleaned = re.sub(r"""^['"`]|['"`]$""", "", cleaned)
        return cleaned.strip()

    def _effective_language(self, document: "Document", options: ExtractionOptions) -> str:
        if options.language != "auto":
            return options.language
        # Ids such as "plaintext" carry no patterns; scan them with every language.
        return document.language_id if self.registry.knows(document.language_id) else "auto"

    def _multi_line_support(self, language: str) -> tuple[List[re.Pattern[str]], bool]:
        """Return the block-comment openers and whether triple-quoted docstrings apply."""
        definitions = self.registry.languages_to_check(language)
        openers: Dict[str, re.Pattern[str]] = {}
        for definition in definitions:
            for pattern in definition.comment_patterns.multi_line_start:
                if "/\\*" in pattern.pattern:
                    openers.setdefault(pattern.pattern, pattern)
        triple = any(
            '"""' in pattern.pattern or "'''" in pattern.pattern
            for definition in definitions
            for pattern in definition.docstring_patterns
        )
        return list(openers.values()), triple

    def _extract_from_line(
        self,
        line: str,
        index: int,
        lines: Sequence[str],
        start_position: Position,
        language: str,
        options: ExtractionOptions,
    ) -> List[ExtractedText]:
        text_type = self.classifier.classify_line(line, language)
        if text_type is None:
            return []

        if text_type == "string":
            spans = []
            for match in _STRING_LITERAL.finditer(line):
                inner = match.group(2)
                text = inner.strip()
                if not text:
                    continue
                column = match.start(2) + (len(inner) - len(inner.lstrip()))
                span = self._build_span(text, "string", index, column, index, column + len(text), lines, start_position, options)
                if span is not None:
                    spans.append(span)
            return spans

        if text_type == "comment":
            match = _COMMENT_BODY.search(line)
            if match is None:
                return []
            raw = next(group for group in match.groups() if group)
        else:
            raw = line.strip()

        text = self.clean_text(raw, text_type)
        if not text:
            return []
        column = line.find(text)
        if column < 0:
            column = len(line) - len(line.lstrip())
        span = self._build_span(text, text_type, index, column, index, column + len(text), lines, start_position, options)
        return [span] if span is not None else []

    def _add_block(
        self,
        extracted: List[ExtractedText],
        state: _ScanState,
        text_type: TextType,
        end_index: int,
        lines: Sequence[str],
        start_position: Position,
        options: ExtractionOptions,
    ) -> None:
        opener = "/*" if text_type == "comment" else state.delimiter
        closer = "*/" if text_type == "comment" else state.delimiter
        body = list(state.buffer)
        body[0] = body[0][body[0].find(opener) :] if opener in body[0] else body[0]
        tail = body[-1].rfind(closer)
        if tail >= 0:
            body[-1] = body[-1][: tail + len(closer)]
        text = self.clean_text("\n".join(body), text_type)
        span = self._build_span(
            text,
            text_type,
            state.start_line,
            0,
            end_index,
            len(lines[end_index]),
            lines,
            start_position,
            options,
        )
        if span is not None:
            extracted.append(span)

    def _build_span(
        self,
        text: str,
        text_type: TextType,
        start_line: int,
        start_column: int,
        end_line: int,
        end_column: int,
        lines: Sequence[str],
        start_position: Position,
        options: ExtractionOptions,
    ) -> Optional[ExtractedText]:
        if not self.should_include_text(text, options):
            return None
        return ExtractedText(
            text=text,
            type=text_type,
            start=_relative(start_position, start_line, start_column),
            end=_relative(start_position, end_line, end_column),
            confidence=self.calculate_confidence(text, text_type),
            context=_context(lines, start_line, end_line) if options.include_context else None,
        )


def _relative(origin: Position, line_index: int, column: int) -> Position:
    if line_index == 0:
        return Position(origin.line, origin.column + column)
    return Position(origin.line + line_index, column)


def _context(lines: Sequence[str], start_line: int, end_line: int) -> str:
    first = max(0, start_line - CONTEXT_LINES)
    last = min(len(lines) - 1, end_line + CONTEXT_LINES)
    return "\n".join(lines[first : last + 1])


def _filter_and_sort(extracted: Iterable[ExtractedText]) -> List[ExtractedText]:
    kept = [span for span in extracted if span.confidence > MIN_CONFIDENCE]
    return sorted(kept, key=lambda span: span.confidence, reverse=True)


def in_document_order(spans: Iterable[ExtractedText]) -> List[ExtractedText]:
    """Return spans sorted by source position instead of confidence."""
    return sorted(spans, key=lambda span: (span.start, span.end))


def summarize(spans: Sequence[ExtractedText]) -> TextAnalysis:
    """Aggregate counts and average confidence over extracted spans."""
    if not spans:
        return TextAnalysis(segments=0, total_characters=0, average_confidence=0.0, by_type={})
    counts = Counter(span.type for span in spans)
    return TextAnalysis(
        segments=len(spans),
        total_characters=sum(len(span.text) for span in spans),
        average_confidence=sum(span.confidence for span in spans) / len(spans),
        by_type=dict(counts),
    )


__all__ = [
    "MIN_CONFIDENCE",
    "ScanMode",
    "TextExtractor",
    "in_document_order",
    "summarize",
]
