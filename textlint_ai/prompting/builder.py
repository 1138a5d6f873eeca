"""Builds correction prompts from Jinja2 templates."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from ..models import CorrectionOptions
from .constants import (
    CHANGE_TYPES,
    CORRECTION_TEMPLATE,
    DEFAULT_TARGET_LANGUAGE,
    DETAILED_TEMPLATE,
    NEUTRAL_STYLE,
    TEXT_PLACEHOLDER,
)


class PromptBuilder:
    """Renders plain and structured correction prompts.

    Prompts depend only on the text, the options and the default target
    language, so identical inputs always yield identical prompts.
    """

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        default_language: str = DEFAULT_TARGET_LANGUAGE,
    ) -> None:
        self.templates_dir = templates_dir or Path(__file__).with_name("templates")
        self.default_language = default_language
        self._env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def build_prompt(self, text: str, options: CorrectionOptions | None = None) -> str:
        options = options or CorrectionOptions()
        if options.custom_prompt:
            return options.custom_prompt.replace(TEXT_PLACEHOLDER, text)
        return self._render(CORRECTION_TEMPLATE, text, options)

    def build_detailed_prompt(
        self, text: str, options: CorrectionOptions | None = None
    ) -> str:
        return self._render(DETAILED_TEMPLATE, text, options or CorrectionOptions())

    def _render(self, template_name: str, text: str, options: CorrectionOptions) -> str:
        style = options.style if options.style and options.style != NEUTRAL_STYLE else None
        template = self._env.get_template(template_name)
        return template.render(
            text=text,
            language=options.language or self.default_language,
            style=style,
            context=options.context,
            change_types=CHANGE_TYPES,
        ).strip()


__all__ = ["PromptBuilder"]
