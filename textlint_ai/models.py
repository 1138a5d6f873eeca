"""Core data models shared across textlint-ai components."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

TextType = Literal["comment", "string", "docstring"]
ChangeType = Literal["spelling", "grammar", "style", "punctuation"]
DEFAULT_IGNORE_PATTERNS = ("TODO", "FIXME", "XXX", "HACK")


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based line/column coordinate inside a scanned buffer."""

    line: int
    column: int

    def translate(self, line_delta: int = 0, column_delta: int = 0) -> "Position":
        return Position(self.line + line_delta, self.column + column_delta)


@dataclass(frozen=True)
class Range:
    """Half-open span between two positions."""

    start: Position
    end: Position

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def intersects(self, other: "Range") -> bool:
        """Return True when the ranges share at least one position."""
        return self.start <= other.end and other.start <= self.end


@dataclass(frozen=True)
class ExtractedText:
    """A natural-language fragment found in source code."""

    text: str
    type: TextType
    start: Position
    end: Position
    confidence: float
    context: Optional[str] = None

    @property
    def range(self) -> Range:
        return Range(self.start, self.end)


@dataclass
class ExtractionOptions:
    """Knobs controlling which spans the extractor keeps."""

    language: str = "auto"
    min_length: int = 3
    max_length: int = 1000
    include_context: bool = True
    ignore_patterns: List[str] = field(
        default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS)
    )


@dataclass(frozen=True)
class CorrectionOptions:
    """Per-request settings forwarded to the correction service."""

    language: Optional[str] = None
    style: Optional[str] = None
    context: Optional[str] = None
    custom_prompt: Optional[str] = None

    def as_payload(self) -> Dict[str, str]:
        payload = {
            "language": self.language,
            "style": self.style,
            "context": self.context,
            "custom_prompt": self.custom_prompt,
        }
        return {key: value for key, value in payload.items() if value}

    def cache_key(self, text: str) -> str:
        """Return the raw (unhashed) cache key for ``text`` under these options."""
        serialised = json.dumps(self.as_payload(), sort_keys=True, ensure_ascii=False)
        return f"{text}\u0000{serialised}"


@dataclass(frozen=True)
class Change:
    """A single edit reported by a detailed correction."""

    type: str
    original: str
    corrected: str
    explanation: Optional[str] = None


@dataclass
class DetailedCorrection:
    """Structured response of a detailed correction request."""

    corrected_text: str
    original_text: str
    changes: List[Change]
    confidence: float
    model: Optional[str] = None


@dataclass
class Correction:
    """Original/corrected pair for one extracted span."""

    text: str
    start: Position
    end: Position
    original: str
    confidence: float
    changes: List[Change] = field(default_factory=list)

    @property
    def range(self) -> Range:
        return Range(self.start, self.end)

    @property
    def changed(self) -> bool:
        return self.text != self.original


@dataclass
class CorrectionStats:
    """Summary of one correction pass."""

    total_texts: int = 0
    corrected: int = 0
    cached: int = 0
    failed: int = 0
    duration: float = 0.0


@dataclass(frozen=True)
class TextEdit:
    """Replacement of a document range by new text."""

    range: Range
    new_text: str


@dataclass
class UndoEntry:
    """Inverse edits recorded for one applied correction batch."""

    document_identity: str
    corrections: List[Correction]
    edits: List[TextEdit]


@dataclass
class TextAnalysis:
    """Aggregate view over a set of extracted spans."""

    segments: int
    total_characters: int
    average_confidence: float
    by_type: Dict[str, int]


__all__ = [
    "Change",
    "ChangeType",
    "Correction",
    "CorrectionOptions",
    "CorrectionStats",
    "DEFAULT_IGNORE_PATTERNS",
    "DetailedCorrection",
    "ExtractedText",
    "ExtractionOptions",
    "Position",
    "Range",
    "TextAnalysis",
    "TextEdit",
    "TextType",
    "UndoEntry",
]
