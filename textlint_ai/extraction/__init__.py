"""Lexical extraction of prose from source code."""

from .classifier import TextTypeClassifier
from .extractor import MIN_CONFIDENCE, ScanMode, TextExtractor, in_document_order, summarize

__all__ = [
    "MIN_CONFIDENCE",
    "ScanMode",
    "TextExtractor",
    "TextTypeClassifier",
    "in_document_order",
    "summarize",
]
