"""Logging helpers shared by the extractor, the correction pipeline and the CLI."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "textlint_ai"
_CONSOLE_FORMAT = "[textlint-ai] %(levelname)s %(message)s"
_VERBOSE_CONSOLE_FORMAT = "[textlint-ai] %(levelname)s %(component)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the logger of one component (``cache``, ``client``, ...)."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def excerpt(text: str, limit: int = 40) -> str:
    """Flatten span text onto one line and cut it to ``limit`` characters.

    Spans can be whole docstrings; log lines should only identify them.
    """
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."


class _ComponentFilter(logging.Filter):
    """Expose the component part of the logger name as ``%(component)s``."""

    def filter(self, record: logging.LogRecord) -> bool:
        prefix = f"{_LOGGER_NAME}."
        record.component = record.name[len(prefix) :] if record.name.startswith(prefix) else "core"
        return True


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send textlint_ai logs to stderr and optionally to ``log_file``.

    Verbose mode lowers the level to DEBUG and prefixes console lines with the
    emitting component so retries, cache evictions and skipped edits can be
    told apart.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Handlers are rebuilt so repeated CLI invocations do not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.addFilter(_ComponentFilter())
    stream_handler.setFormatter(
        logging.Formatter(_VERBOSE_CONSOLE_FORMAT if verbose else _CONSOLE_FORMAT)
    )
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "excerpt", "get_logger"]
