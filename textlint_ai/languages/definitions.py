"""Built-in comment, string and docstring patterns per programming language."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Tuple

Pattern = re.Pattern[str]


@dataclass(frozen=True)
class CommentPatterns:
    """Regexes that recognise comment openers and closers."""

    single_line: Tuple[Pattern, ...] = ()
    multi_line_start: Tuple[Pattern, ...] = ()
    multi_line_end: Tuple[Pattern, ...] = ()


@dataclass(frozen=True)
class LanguageDefinition:
    """Pattern set describing where prose lives in one language."""

    id: str
    comment_patterns: CommentPatterns = field(default_factory=CommentPatterns)
    string_patterns: Tuple[Pattern, ...] = ()
    docstring_patterns: Tuple[Pattern, ...] = ()
    keywords: Tuple[str, ...] = ()


def _compile(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(pattern) for pattern in patterns)


_SLASH_LINE = r"^\s*//"
_TRIPLE_SLASH = r"^\s*///"
_BLOCK_START = r"^\s*/\*"
_BLOCK_END = r"\*/\s*$"
_JAVADOC = r"^\s*/\*\*[\s\S]*?\*/"
_QUOTED = r"""(['"`])(?:(?!\1|\\).|\\.)*\1"""
_SINGLE_OR_DOUBLE = r"""(['"])(?:(?!\1|\\).|\\.)*\1"""
_DOUBLE_ONLY = r'"(?:[^"\\]|\\.)*"'

_C_STYLE_COMMENTS = CommentPatterns(
    single_line=_compile(_SLASH_LINE),
    multi_line_start=_compile(_BLOCK_START),
    multi_line_end=_compile(_BLOCK_END),
)

BUILTIN_DEFINITIONS: Tuple[LanguageDefinition, ...] = (
    LanguageDefinition(
        id="javascript",
        comment_patterns=_C_STYLE_COMMENTS,
        string_patterns=_compile(_QUOTED, r"`(?:[^`\\]|\\.)*`"),
        docstring_patterns=_compile(_JAVADOC),
        keywords=("function", "const", "let", "var", "class", "import", "export"),
    ),
    LanguageDefinition(
        id="typescript",
        comment_patterns=_C_STYLE_COMMENTS,
        string_patterns=_compile(_QUOTED, r"`(?:[^`\\]|\\.)*`"),
        docstring_patterns=_compile(_JAVADOC),
        keywords=(
            "function",
            "const",
            "let",
            "var",
            "class",
            "interface",
            "type",
            "import",
            "export",
        ),
    ),
    LanguageDefinition(
        id="python",
        comment_patterns=CommentPatterns(single_line=_compile(r"^\s*#")),
        string_patterns=_compile(_SINGLE_OR_DOUBLE, r"""f(['"])(?:(?!\1|\\).|\\.)*\1"""),
        docstring_patterns=_compile("^\\s*(\"\"\"|''')", "^\\s*r(\"\"\"|''')"),
        keywords=("def", "class", "import", "from", "if", "for", "while"),
    ),
    LanguageDefinition(
        id="java",
        comment_patterns=_C_STYLE_COMMENTS,
        string_patterns=_compile(_DOUBLE_ONLY),
        docstring_patterns=_compile(_JAVADOC),
        keywords=("public", "private", "class", "interface", "void", "return"),
    ),
    LanguageDefinition(
        id="csharp",
        comment_patterns=CommentPatterns(
            single_line=_compile(_SLASH_LINE, _TRIPLE_SLASH),
            multi_line_start=_compile(_BLOCK_START),
            multi_line_end=_compile(_BLOCK_END),
        ),
        string_patterns=_compile(_DOUBLE_ONLY, r'@"(?:[^"]|"")*"'),
        docstring_patterns=_compile(_TRIPLE_SLASH, _JAVADOC),
        keywords=("public", "private", "class", "interface", "void", "namespace"),
    ),
    LanguageDefinition(
        id="php",
        comment_patterns=CommentPatterns(
            single_line=_compile(_SLASH_LINE, r"^\s*#"),
            multi_line_start=_compile(_BLOCK_START),
            multi_line_end=_compile(_BLOCK_END),
        ),
        string_patterns=_compile(_SINGLE_OR_DOUBLE),
        docstring_patterns=_compile(_JAVADOC),
        keywords=("function", "class", "public", "private", "namespace"),
    ),
    LanguageDefinition(
        id="ruby",
        comment_patterns=CommentPatterns(
            single_line=_compile(r"^\s*#"),
            multi_line_start=_compile(r"^\s*=begin"),
            multi_line_end=_compile(r"^\s*=end"),
        ),
        string_patterns=_compile(_SINGLE_OR_DOUBLE),
        keywords=("def", "class", "module", "end", "require"),
    ),
    LanguageDefinition(
        id="go",
        comment_patterns=_C_STYLE_COMMENTS,
        string_patterns=_compile(_DOUBLE_ONLY, r"`[^`]*`"),
        keywords=("func", "type", "struct", "interface", "package", "import"),
    ),
    LanguageDefinition(
        id="rust",
        comment_patterns=CommentPatterns(
            single_line=_compile(_SLASH_LINE, _TRIPLE_SLASH),
            multi_line_start=_compile(_BLOCK_START),
            multi_line_end=_compile(_BLOCK_END),
        ),
        string_patterns=_compile(_DOUBLE_ONLY, r'r#*"[^"]*"#*'),
        docstring_patterns=_compile(_TRIPLE_SLASH),
        keywords=("fn", "struct", "enum", "impl", "trait", "use"),
    ),
)

LANGUAGE_ALIASES: Dict[str, str] = {
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "cs": "csharp",
    "rb": "ruby",
    "rs": "rust",
}

LANGUAGE_BY_SUFFIX: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".cs": "csharp",
    ".php": "php",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
}

__all__ = [
    "BUILTIN_DEFINITIONS",
    "CommentPatterns",
    "LANGUAGE_ALIASES",
    "LANGUAGE_BY_SUFFIX",
    "LanguageDefinition",
]
