"""Prompt construction for the correction service."""

from .builder import PromptBuilder

__all__ = ["PromptBuilder"]
