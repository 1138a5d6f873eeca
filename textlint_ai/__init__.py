"""textlint-ai: find and correct prose embedded in source code."""

from .config import TextLintConfig, load_config
from .documents import FileDocument, TextDocument
from .extraction import TextExtractor, TextTypeClassifier
from .languages import LanguageRegistry
from .llm import CorrectionClient, LLMRunner
from .orchestrator import CorrectionOrchestrator, RunState
from .stores import CorrectionCache

__all__ = [
    "CorrectionCache",
    "CorrectionClient",
    "CorrectionOrchestrator",
    "FileDocument",
    "LLMRunner",
    "LanguageRegistry",
    "RunState",
    "TextDocument",
    "TextExtractor",
    "TextLintConfig",
    "TextTypeClassifier",
    "load_config",
]
