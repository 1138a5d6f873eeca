"""Document adapters consumed by the extractor and the orchestrator."""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from .languages import language_for_path
from .logging import get_logger
from .models import Position, Range, TextEdit


@runtime_checkable
class Document(Protocol):
    """Minimal editor-side contract: text access, coordinates and batched edits."""

    @property
    def identity(self) -> str: ...

    @property
    def language_id(self) -> str: ...

    def get_text(self, range: Range | None = None) -> str: ...

    def position_at(self, offset: int) -> Position: ...

    def offset_at(self, position: Position) -> int: ...

    def replace_ranges(self, edits: Sequence[TextEdit]) -> bool: ...


def position_at(text: str, offset: int) -> Position:
    """Map a flat character offset in ``text`` to a line/column position."""
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return Position(line, offset - line_start)


def offset_at(text: str, position: Position) -> int:
    """Inverse of :func:`position_at`; out-of-range coordinates are clamped."""
    starts = _line_starts(text)
    line = max(0, min(position.line, len(starts) - 1))
    line_end = starts[line + 1] - 1 if line + 1 < len(starts) else len(text)
    column = max(0, min(position.column, line_end - starts[line]))
    return starts[line] + column


def apply_edits(text: str, edits: Sequence[Tuple[int, int, str]]) -> str:
    """Apply non-overlapping ``(start, end, new_text)`` offset edits to ``text``."""
    for start, end, new_text in sorted(edits, key=lambda edit: edit[0], reverse=True):
        text = text[:start] + new_text + text[end:]
    return text


def _line_starts(text: str) -> List[int]:
    starts = [0]
    index = text.find("\n")
    while index >= 0:
        starts.append(index + 1)
        index = text.find("\n", index + 1)
    return starts


class TextDocument:
    """In-memory document, used by the CLI, the service and tests."""

    def __init__(
        self,
        text: str,
        language_id: str = "plaintext",
        identity: str | None = None,
    ) -> None:
        self._text = text
        self._language_id = language_id
        self._identity = identity or f"untitled:{uuid.uuid4().hex[:12]}"
        self._line_starts = _line_starts(text)
        self.logger = get_logger("documents")

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def language_id(self) -> str:
        return self._language_id

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def get_text(self, range: Range | None = None) -> str:
        if range is None:
            return self._text
        return self._text[self.offset_at(range.start) : self.offset_at(range.end)]

    def position_at(self, offset: int) -> Position:
        return position_at(self._text, offset)

    def offset_at(self, position: Position) -> int:
        return offset_at(self._text, position)

    def replace_ranges(self, edits: Sequence[TextEdit]) -> bool:
        """Apply every edit or none of them.

        Edits are rejected when a range points outside the document or when
        two ranges overlap.
        """
        resolved: List[Tuple[int, int, str]] = []
        for edit in edits:
            start = self._checked_offset(edit.range.start)
            end = self._checked_offset(edit.range.end)
            if start is None or end is None or start > end:
                self.logger.debug("Rejected edit outside document %s: %s", self.identity, edit.range)
                return False
            resolved.append((start, end, edit.new_text))
        resolved.sort(key=lambda item: (item[0], item[1]))
        for previous, current in zip(resolved, resolved[1:]):
            if current[0] < previous[1]:
                self.logger.debug("Rejected overlapping edits in %s", self.identity)
                return False
        self._set_text(apply_edits(self._text, resolved))
        return True

    def _set_text(self, text: str) -> None:
        self._text = text
        self._line_starts = _line_starts(text)

    def _checked_offset(self, position: Position) -> Optional[int]:
        if position.line < 0 or position.column < 0 or position.line >= len(self._line_starts):
            return None
        start = self._line_starts[position.line]
        if position.line + 1 < len(self._line_starts):
            line_length = self._line_starts[position.line + 1] - 1 - start
        else:
            line_length = len(self._text) - start
        if position.column > line_length:
            return None
        return start + position.column


class FileDocument(TextDocument):
    """Document backed by a file on disk; edits stay in memory until :meth:`save`."""

    def __init__(
        self,
        path: Path,
        *,
        language_id: str | None = None,
        encoding: str = "utf-8",
    ) -> None:
        self.path = Path(path).expanduser().resolve()
        self.encoding = encoding
        super().__init__(
            self.path.read_text(encoding=encoding),
            language_id=language_id or language_for_path(self.path),
            identity=str(self.path),
        )
        self._saved_text = self._text

    @property
    def dirty(self) -> bool:
        return self._text != self._saved_text

    def save(self) -> bool:
        """Write pending edits back to disk; returns False when nothing changed."""
        if not self.dirty:
            return False
        self.path.write_text(self._text, encoding=self.encoding)
        self._saved_text = self._text
        self.logger.info("Saved %s", self.path)
        return True


__all__ = [
    "Document",
    "FileDocument",
    "TextDocument",
    "apply_edits",
    "offset_at",
    "position_at",
]
