"""Correction service transport and client."""

from .client import CorrectionClient
from .runner import LLMRequest, LLMRunner

__all__ = ["CorrectionClient", "LLMRequest", "LLMRunner"]
