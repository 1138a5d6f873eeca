"""Ordered registry of language definitions."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..logging import get_logger
from .definitions import (
    BUILTIN_DEFINITIONS,
    LANGUAGE_ALIASES,
    LANGUAGE_BY_SUFFIX,
    LanguageDefinition,
)

FALLBACK_LANGUAGE = "javascript"


class LanguageRegistry:
    """Holds language definitions in registration order.

    The order is observable: ``"auto"`` classification walks ``all_ids()`` and
    the first language that recognises a line wins. Re-registering an existing
    id replaces its definition in place without moving it.
    """

    def __init__(self, definitions: Iterable[LanguageDefinition] | None = None) -> None:
        self._definitions: Dict[str, LanguageDefinition] = {}
        self.logger = get_logger("languages")
        for definition in definitions if definitions is not None else BUILTIN_DEFINITIONS:
            self.register(definition)

    def get(self, language_id: str) -> Optional[LanguageDefinition]:
        return self._definitions.get(language_id)

    def register(self, definition: LanguageDefinition) -> None:
        if definition.id in self._definitions:
            self.logger.debug("Replacing language definition %s", definition.id)
        self._definitions[definition.id] = definition

    def resolve_alias(self, language_id: str) -> str:
        """Normalise short forms and fall back to javascript for unknown ids."""
        normalized = LANGUAGE_ALIASES.get(language_id, language_id)
        if normalized in self._definitions:
            return normalized
        return FALLBACK_LANGUAGE

    def knows(self, language_id: str) -> bool:
        """True when ``language_id`` or its alias names a registered language."""
        return LANGUAGE_ALIASES.get(language_id, language_id) in self._definitions

    def all_ids(self) -> List[str]:
        return list(self._definitions)

    def definitions(self) -> List[LanguageDefinition]:
        return list(self._definitions.values())

    def languages_to_check(self, language: str) -> List[LanguageDefinition]:
        if language == "auto":
            return self.definitions()
        definition = self._definitions.get(self.resolve_alias(language))
        return [definition] if definition is not None else []

    def __contains__(self, language_id: object) -> bool:
        return language_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)


def language_for_path(path: Path | str) -> str:
    """Guess a language id from a file suffix, ``"plaintext"`` when unknown."""
    suffix = Path(path).suffix.lower()
    return LANGUAGE_BY_SUFFIX.get(suffix, "plaintext")


__all__ = ["FALLBACK_LANGUAGE", "LanguageRegistry", "language_for_path"]
