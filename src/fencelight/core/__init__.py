"""Core highlighting pipeline: directive parsing, grammar loading, tree rewrite."""

from __future__ import annotations

from .config import DEFAULT_THEME, HighlightConfig, LineNumbersConfig
from .context import BlockCounter, HighlightContext, default_context
from .diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from .directives import (
    DiffMarks,
    HighlightDirectives,
    LineNumbering,
    LineSet,
    expand_line_selector,
    parse_meta,
)
from .exceptions import GrammarLoadError, HighlightError, InvalidNodeError, RenderError
from .languages import GrammarSupply, LanguageCache, LanguageLoader, collect_languages
from .nodes import Node, iter_nodes
from .transform import (
    CodeBlockHighlighter,
    CodeBlockRef,
    HighlightRenderer,
    HighlightResult,
    discover_code_blocks,
    highlight_code_blocks,
)


__all__ = [
    "DEFAULT_THEME",
    "BlockCounter",
    "CodeBlockHighlighter",
    "CodeBlockRef",
    "DiagnosticEmitter",
    "DiffMarks",
    "GrammarLoadError",
    "GrammarSupply",
    "HighlightConfig",
    "HighlightContext",
    "HighlightDirectives",
    "HighlightError",
    "HighlightRenderer",
    "HighlightResult",
    "InvalidNodeError",
    "LanguageCache",
    "LanguageLoader",
    "LineNumbering",
    "LineNumbersConfig",
    "LineSet",
    "LoggingEmitter",
    "Node",
    "NullEmitter",
    "RenderError",
    "collect_languages",
    "default_context",
    "discover_code_blocks",
    "expand_line_selector",
    "highlight_code_blocks",
    "iter_nodes",
    "parse_meta",
]
