"""Maps corrected span text back onto document ranges."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .documents import Document, apply_edits, position_at
from .models import Correction, Range, TextEdit

_OPENER = re.compile(r"""^[ \t]*(?:/\*+|[rRuU]?(?:\"\"\"|''')|/{2,}|#|\*+(?!/))?[ \t]*""")
_CLOSER = re.compile(r"""[ \t]*(?:\*+/|\"\"\"|''')?[ \t]*$""")
_CONTINUATION = re.compile(r"^[ \t]*(?:\*+(?!/)|/{2,}|#)?[ \t]*")


@dataclass
class EditPlan:
    """Edits ready for ``Document.replace_ranges`` and the corrections behind them."""

    edits: List[TextEdit] = field(default_factory=list)
    corrections: List[Correction] = field(default_factory=list)
    skipped: List[Correction] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.edits)


def build_replacement(source: str, original: str, corrected: str) -> str:
    """Return ``source`` with ``original`` swapped for ``corrected``.

    ``source`` is the raw text of a span's range, markers and quotes included,
    while ``original`` and ``corrected`` are cleaned prose.
    """
    if original == corrected:
        return source
    if original and original in source:
        return source.replace(original, corrected, 1)

    source_lines = source.split("\n")
    original_lines = original.split("\n")
    corrected_lines = corrected.split("\n")
    if len(original_lines) == len(corrected_lines):
        spliced = _splice_lines(source_lines, original_lines, corrected_lines)
        if spliced is not None:
            return "\n".join(spliced)
    return _rebuild(source_lines, corrected_lines)


def plan_edits(document: Document, corrections: Sequence[Correction]) -> EditPlan:
    """Turn changed corrections into non-overlapping edits, in document order.

    When two ranges overlap the earlier one wins and the other is skipped.
    """
    plan = EditPlan()
    last_end = None
    for correction in sorted(corrections, key=lambda item: (item.start, item.end)):
        if not correction.changed:
            continue
        if last_end is not None and correction.start < last_end:
            plan.skipped.append(correction)
            continue
        source = document.get_text(correction.range)
        replacement = build_replacement(source, correction.original, correction.text)
        if replacement == source:
            plan.skipped.append(correction)
            continue
        plan.edits.append(TextEdit(correction.range, replacement))
        plan.corrections.append(correction)
        last_end = correction.end
    return plan


def inverse_edits(document: Document, edits: Sequence[TextEdit]) -> List[TextEdit]:
    """Compute edits that undo ``edits`` once they have been applied to ``document``.

    Must be called before the edits are applied. The returned ranges address the
    post-edit text and restore the exact previous source of every range.
    """
    text = document.get_text()
    resolved: List[Tuple[int, int, str]] = sorted(
        (
            (document.offset_at(edit.range.start), document.offset_at(edit.range.end), edit.new_text)
            for edit in edits
        ),
        key=lambda item: item[0],
    )
    after = apply_edits(text, resolved)
    inverse: List[TextEdit] = []
    shift = 0
    for start, end, new_text in resolved:
        new_start = start + shift
        new_end = new_start + len(new_text)
        inverse.append(
            TextEdit(
                Range(position_at(after, new_start), position_at(after, new_end)),
                text[start:end],
            )
        )
        shift += len(new_text) - (end - start)
    return inverse


def _splice_lines(
    source_lines: List[str], original_lines: Sequence[str], corrected_lines: Sequence[str]
) -> Optional[List[str]]:
    result = list(source_lines)
    cursor = 0
    for original, corrected in zip(original_lines, corrected_lines):
        if not original.strip():
            if corrected.strip():
                return None
            continue
        index = next(
            (i for i in range(cursor, len(result)) if original in result[i]),
            None,
        )
        if index is None:
            return None
        result[index] = result[index].replace(original, corrected, 1)
        cursor = index + 1
    return result


def _rebuild(source_lines: List[str], corrected_lines: Sequence[str]) -> str:
    first, last = source_lines[0], source_lines[-1]
    multi_line = len(source_lines) > 1
    head: List[str] = []
    tail: List[str] = []

    opener: Optional[str] = _OPENER.match(first).group(0)  # type: ignore[union-attr]
    if multi_line and not first[len(opener or "") :].strip():
        head.append(first)
        opener = None

    closing_line = last if multi_line else first[len(opener or "") :]
    closer_match = _CLOSER.search(closing_line)
    closer = closer_match.group(0) if closer_match else ""
    if multi_line and closer_match and not last[: closer_match.start()].strip():
        tail.append(last)
        closer = ""

    continuation = _continuation_prefix(source_lines, first)
    body = []
    for index, line in enumerate(corrected_lines):
        lead = opener if index == 0 and opener is not None else continuation
        body.append((lead + line).rstrip() if not line.strip() else lead + line)
    body[-1] += closer
    return "\n".join(head + body + tail)


def _continuation_prefix(source_lines: Sequence[str], first: str) -> str:
    for line in source_lines[1:]:
        marker = _CONTINUATION.match(line).group(0)  # type: ignore[union-attr]
        if line[len(marker) :].strip() and not _CLOSER.fullmatch(line):
            return marker
    return first[: len(first) - len(first.lstrip())]


__all__ = ["EditPlan", "build_replacement", "inverse_edits", "plan_edits"]
