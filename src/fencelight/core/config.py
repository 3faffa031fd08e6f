"""Configuration models for the code block highlighter.

HighlightConfig

`theme` (`str`)
: Name of the colour theme handed to the renderer. With the bundled Pygments
  renderer this is any installed Pygments style name.

`line_numbers` (`bool | LineNumbersConfig | None`)
: Global default for line numbering. `True` enables numbering from 1, a
  `LineNumbersConfig` (or a mapping such as `{"start": 100}`) picks the first
  number, `False` or `None` leaves numbering off. A `showLineNumbers` or
  `lineNumbers` directive in a fence's meta string always wins.

`load_languages` (`Callable | None`)
: Zero-argument hook, sync or async, awaited once at the start of every
  transform. Use it to register grammars the bundled set does not provide.

LineNumbersConfig

`start` (`int`)
: First line number displayed.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field

from .directives import HighlightDirectives, LineNumbering


DEFAULT_THEME = "monokai"

LanguageHook = Callable[[], Awaitable[None] | None]


class LineNumbersConfig(BaseModel):
    """Explicit line numbering start."""

    model_config = ConfigDict(extra="forbid")

    start: int = Field(default=1, description="First displayed line number")


class HighlightConfig(BaseModel):
    """Caller-facing options of the code block highlighter."""

    model_config = ConfigDict(extra="forbid")

    theme: str = Field(default=DEFAULT_THEME, description="Renderer theme name")
    line_numbers: bool | LineNumbersConfig | None = None
    load_languages: LanguageHook | None = None

    def default_directives(self) -> HighlightDirectives:
        """Directive set applied to blocks that do not override a field."""
        numbering: LineNumbering | None = None
        if isinstance(self.line_numbers, LineNumbersConfig):
            numbering = LineNumbering(start=self.line_numbers.start)
        elif self.line_numbers:
            numbering = LineNumbering()
        return HighlightDirectives(line_numbers=numbering)


__all__ = ["DEFAULT_THEME", "HighlightConfig", "LanguageHook", "LineNumbersConfig"]
