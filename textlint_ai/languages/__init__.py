"""Language pattern tables and the registry that orders them."""

from .definitions import CommentPatterns, LanguageDefinition
from .registry import FALLBACK_LANGUAGE, LanguageRegistry, language_for_path

__all__ = [
    "CommentPatterns",
    "FALLBACK_LANGUAGE",
    "LanguageDefinition",
    "LanguageRegistry",
    "language_for_path",
]
