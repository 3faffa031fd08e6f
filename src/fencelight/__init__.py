"""Highlight Markdown code fences with the CSS Custom Highlight API."""

from __future__ import annotations

from fencelight.core import (
    CodeBlockHighlighter,
    HighlightConfig,
    HighlightContext,
    HighlightDirectives,
    HighlightResult,
    LineNumbersConfig,
    highlight_code_blocks,
    parse_meta,
)
from fencelight.version import get_version


__version__ = get_version()

__all__ = [
    "CodeBlockHighlighter",
    "HighlightConfig",
    "HighlightContext",
    "HighlightDirectives",
    "HighlightResult",
    "LineNumbersConfig",
    "__version__",
    "get_version",
    "highlight_code_blocks",
    "parse_meta",
]
