"""Configuration loading for textlint-ai (.textlint.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigurationError
from .models import DEFAULT_IGNORE_PATTERNS, CorrectionOptions, ExtractionOptions
from .stores.correction_cache import DEFAULT_MAX_AGE_MS, DEFAULT_MAX_SIZE

CONFIG_FILENAME = ".textlint.yml"


@dataclass
class LLMConfig:
    """Correction service settings."""

    model: str = "gpt-4o-mini"
    max_tokens: int = 500
    temperature: float = 0.0
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    request_timeout: float = 60.0


@dataclass
class CacheConfig:
    """Size and age limits for the correction cache."""

    max_size: int = DEFAULT_MAX_SIZE
    max_age: int = DEFAULT_MAX_AGE_MS // 1000

    @property
    def max_age_ms(self) -> int:
        return self.max_age * 1000


@dataclass
class ExtractionConfig:
    """Extractor defaults; ``language`` is a programming language id or ``auto``."""

    language: str = "auto"
    min_length: int = 3
    max_length: int = 1000
    include_context: bool = True


@dataclass
class TextLintConfig:
    """Represents the settings defined in .textlint.yml."""

    root: Path
    llm: LLMConfig = field(default_factory=LLMConfig)
    language: str = "fr"
    auto_correct: bool = False
    ignore_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))
    custom_prompt: Optional[str] = None
    style: Optional[str] = None
    cache: CacheConfig = field(default_factory=CacheConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)

    def extraction_options(self, language: str | None = None) -> ExtractionOptions:
        return ExtractionOptions(
            language=language or self.extraction.language,
            min_length=self.extraction.min_length,
            max_length=self.extraction.max_length,
            include_context=self.extraction.include_context,
            ignore_patterns=list(self.ignore_patterns),
        )

    def correction_options(self, context: str | None = None) -> CorrectionOptions:
        return CorrectionOptions(
            language=self.language,
            style=self.style,
            context=context,
            custom_prompt=self.custom_prompt,
        )


def load_config(config_path: Path) -> TextLintConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return TextLintConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = TextLintConfig(root=root)

    llm_data = _as_dict(data.get("llm"))
    if llm_data:
        defaults = LLMConfig()
        config.llm = LLMConfig(
            model=_as_str(llm_data.get("model")) or defaults.model,
            max_tokens=_positive(_as_int(llm_data.get("max_tokens")), defaults.max_tokens),
            temperature=_or_default(_as_float(llm_data.get("temperature")), defaults.temperature),
            base_url=_as_str(llm_data.get("base_url")),
            api_key=_as_str(llm_data.get("api_key")),
            request_timeout=_positive(
                _as_float(llm_data.get("request_timeout")), defaults.request_timeout
            ),
        )

    config.language = _as_str(data.get("language")) or config.language
    config.auto_correct = _or_default(_as_bool(data.get("auto_correct")), config.auto_correct)
    if "ignore_patterns" in data:
        config.ignore_patterns = _as_str_list(data.get("ignore_patterns"))
    config.custom_prompt = _as_str(data.get("custom_prompt"))
    config.style = _as_str(data.get("style"))

    cache_data = _as_dict(data.get("cache"))
    if cache_data:
        config.cache = CacheConfig(
            max_size=_positive(_as_int(cache_data.get("max_size")), DEFAULT_MAX_SIZE),
            max_age=_positive(_as_int(cache_data.get("max_age")), DEFAULT_MAX_AGE_MS // 1000),
        )

    extraction_data = _as_dict(data.get("extraction"))
    if extraction_data:
        defaults_extraction = ExtractionConfig()
        config.extraction = ExtractionConfig(
            language=_as_str(extraction_data.get("language")) or defaults_extraction.language,
            min_length=_or_default(
                _as_int(extraction_data.get("min_length")), defaults_extraction.min_length
            ),
            max_length=_positive(
                _as_int(extraction_data.get("max_length")), defaults_extraction.max_length
            ),
            include_context=_or_default(
                _as_bool(extraction_data.get("include_context")),
                defaults_extraction.include_context,
            ),
        )
        if config.extraction.min_length > config.extraction.max_length:
            raise ConfigurationError("extraction.min_length must not exceed extraction.max_length")

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.suffix not in {".yml", ".yaml"}:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _or_default(value: Any, default: Any) -> Any:
    return default if value is None else value


def _positive(value: Any, default: Any) -> Any:
    return value if value is not None and value > 0 else default


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "CacheConfig",
    "ExtractionConfig",
    "LLMConfig",
    "TextLintConfig",
    "load_config",
]
