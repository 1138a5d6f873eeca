"""Exception hierarchy shared by textlint-ai components."""

from __future__ import annotations


class TextLintError(RuntimeError):
    """Base class for all textlint-ai errors."""


class ConfigurationError(TextLintError):
    """Raised when configuration or credentials are missing or malformed."""


class TransientServiceError(TextLintError):
    """Raised when the correction service fails in a way worth retrying."""


class ParseError(TextLintError):
    """Raised when a structured correction payload cannot be decoded."""


class CacheImportError(TextLintError):
    """Raised when an exported cache payload is malformed."""


class NoActiveTargetError(TextLintError):
    """Raised when an operation needs a document or selection and none is available."""


class UndoMismatchError(TextLintError):
    """Raised when the undo stack has nothing for the active document."""


__all__ = [
    "CacheImportError",
    "ConfigurationError",
    "NoActiveTargetError",
    "ParseError",
    "TextLintError",
    "TransientServiceError",
    "UndoMismatchError",
]
