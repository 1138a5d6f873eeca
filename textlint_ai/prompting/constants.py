"""Shared constants for correction prompts."""

from __future__ import annotations

DEFAULT_TARGET_LANGUAGE = "fr"
NEUTRAL_STYLE = "neutral"
TEXT_PLACEHOLDER = "{text}"

CORRECTION_TEMPLATE = "correct.j2"
DETAILED_TEMPLATE = "detailed.j2"

CHANGE_TYPES: tuple[str, ...] = ("spelling", "grammar", "style", "punctuation")


__all__ = [
    "CHANGE_TYPES",
    "CORRECTION_TEMPLATE",
    "DEFAULT_TARGET_LANGUAGE",
    "DETAILED_TEMPLATE",
    "NEUTRAL_STYLE",
    "TEXT_PLACEHOLDER",
]
