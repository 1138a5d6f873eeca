"""Line-level classification of comments, strings and docstrings."""

from __future__ import annotations

import re
from typing import Dict, Optional

from ..languages import FALLBACK_LANGUAGE, LanguageDefinition, LanguageRegistry
from ..models import TextType

_QUOTE_CHARS = re.compile(r"""['"`]""")


class TextTypeClassifier:
    """Decides whether a line carries a comment, a string literal or a docstring."""

    def __init__(self, registry: LanguageRegistry | None = None) -> None:
        self.registry = registry or LanguageRegistry()

    def classify_line(self, line: str, language: str = "auto") -> Optional[TextType]:
        """Return the text type of ``line`` or ``None`` when it holds no prose.

        With ``language="auto"`` every registered language is tried in
        registration order and the first non-``None`` answer wins.
        """
        if not line.strip():
            return None
        for definition in self.registry.languages_to_check(language):
            detected = self._classify_with(line, definition)
            if detected is not None:
                return detected
        return None

    def detect_language(self, code: str) -> str:
        """Score every language by keyword hits and comment lines."""
        lines = code.split("\n")
        best_language = FALLBACK_LANGUAGE
        best_score = 0.0
        for definition in self.registry.definitions():
            score = 0.0
            for keyword in definition.keywords:
                score += len(re.findall(rf"\b{re.escape(keyword)}\b", code))
            for line in lines:
                for pattern in definition.comment_patterns.single_line:
                    if pattern.search(line):
                        score += 0.5
            if score > best_score:
                best_score = score
                best_language = definition.id
        return best_language

    def analyze_structure(self, code: str, language: str = "auto") -> Dict[str, int]:
        """Count prose-bearing lines per text type."""
        lines = code.split("\n")
        counts = {"comments": 0, "strings": 0, "docstrings": 0, "lines": len(lines)}
        for line in lines:
            detected = self.classify_line(line, language)
            if detected == "comment":
                counts["comments"] += 1
            elif detected == "string":
                counts["strings"] += 1
            elif detected == "docstring":
                counts["docstrings"] += 1
        return counts

    def _classify_with(self, line: str, definition: LanguageDefinition) -> Optional[TextType]:
        comments = definition.comment_patterns
        if any(pattern.search(line) for pattern in comments.single_line):
            return "comment"
        if any(pattern.search(line) for pattern in definition.docstring_patterns):
            return "docstring"
        for pattern in definition.string_patterns:
            if pattern.search(line) and not _is_string_in_comment(line, definition):
                return "string"
        if any(pattern.search(line) for pattern in comments.multi_line_start):
            return "comment"
        return None


def _is_string_in_comment(line: str, definition: LanguageDefinition) -> bool:
    quote = _QUOTE_CHARS.search(line)
    if quote is None:
        return False
    for pattern in definition.comment_patterns.single_line:
        match = pattern.search(line)
        if match and quote.start() >= match.start():
            return True
    return False


__all__ = ["TextTypeClassifier"]
