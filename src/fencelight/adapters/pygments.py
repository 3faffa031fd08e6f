"""Pygments-backed grammar supply and CSS Highlight API renderer."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import json
from pathlib import Path
from threading import Lock
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, find_lexer_class_by_name
from pygments.styles import get_style_by_name
from pygments.token import STANDARD_TYPES, Token, _TokenType
from pygments.util import ClassNotFound

from fencelight.core.directives import HighlightDirectives
from fencelight.core.exceptions import GrammarLoadError, RenderError
from fencelight.core.transform import HighlightResult


TEMPLATE_DIR = Path(__file__).resolve().parent / "partials"

_TOKEN_KEYS: dict[_TokenType, str] = {
    token_type: key for token_type, key in STANDARD_TYPES.items() if key
}
_KEY_TOKENS: dict[str, _TokenType] = {key: token_type for token_type, key in _TOKEN_KEYS.items()}


class LexerRegistry:
    """Lexer classes available to the renderer, keyed by lowercase alias."""

    def __init__(self) -> None:
        self._lexers: dict[str, type[Lexer]] = {}
        self._lock = Lock()

    def __contains__(self, language: object) -> bool:
        return isinstance(language, str) and language.lower() in self._lexers

    def register_lexer(self, lexer_cls: type[Lexer], *aliases: str) -> None:
        """Register ``lexer_cls`` under ``aliases`` or its declared aliases."""
        names = list(aliases) or list(getattr(lexer_cls, "aliases", None) or [])
        if not names:
            name = getattr(lexer_cls, "name", None)
            if not name:
                raise GrammarLoadError(f"Lexer {lexer_cls!r} declares no alias")
            names = [name]
        with self._lock:
            for alias in names:
                self._lexers[alias.lower()] = lexer_cls

    def get(self, language: str) -> type[Lexer] | None:
        return self._lexers.get(language.lower())


_DEFAULT_REGISTRY: LexerRegistry | None = None
_DEFAULT_REGISTRY_GUARD = Lock()


def default_registry() -> LexerRegistry:
    """Return the process-wide lexer registry."""
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        with _DEFAULT_REGISTRY_GUARD:
            if _DEFAULT_REGISTRY is None:
                _DEFAULT_REGISTRY = LexerRegistry()
    return _DEFAULT_REGISTRY


class PygmentsGrammarSupply:
    """Resolve bundled Pygments lexers and register them for rendering."""

    def __init__(self, registry: LexerRegistry | None = None) -> None:
        self.registry = registry or default_registry()

    @property
    def cache_scope(self) -> LexerRegistry:
        return self.registry

    def fetch(self, language: str) -> type[Lexer] | None:
        try:
            return find_lexer_class_by_name(language)
        except ClassNotFound:
            return None

    def register(self, grammar: type[Lexer]) -> None:
        self.registry.register_lexer(grammar)


@dataclass(slots=True)
class _Line:
    text: str
    number: int | None
    classes: list[str] = field(default_factory=lambda: ["line"])


def _token_key(token_type: _TokenType) -> str | None:
    current: _TokenType | None = token_type
    while current is not None:
        key = _TOKEN_KEYS.get(current)
        if key:
            return key
        current = current.parent
    return None


def _utf16_length(text: str) -> int:
    # Browser ranges count UTF-16 code units.
    return len(text.encode("utf-16-le")) // 2


def _normalize_source(code: str) -> str:
    # Pygments applies the same normalization before lexing.
    code = code.replace("\r\n", "\n").replace("\r", "\n")
    return code.removeprefix("\ufeff")


def tokenize_lines(lexer: Lexer, code: str) -> dict[str, list[list[int]]]:
    """Return ``[line, start, end]`` ranges grouped by short token key.

    Offsets are relative to each line's text. Plain text tokens are omitted.
    """
    ranges: dict[str, list[list[int]]] = {}
    line = 0
    column = 0
    for token_type, value in lexer.get_tokens(code):
        key = _token_key(token_type)
        for offset, part in enumerate(value.split("\n")):
            if offset:
                line += 1
                column = 0
            width = _utf16_length(part)
            if part and key:
                ranges.setdefault(key, []).append([line, column, column + width])
            column += width
    return ranges


def _features(lines: list[_Line]) -> dict[str, bool]:
    classes = {name for line in lines for name in line.classes}
    return {
        "highlight": "highlighted" in classes,
        "diff": "diff" in classes,
        "focus": "blurred" in classes,
        "numbers": any(line.number is not None for line in lines),
    }


def _declarations(style_def: dict[str, Any]) -> str:
    # ::highlight() only honours colour and decoration properties.
    declarations: list[str] = []
    if style_def.get("color"):
        declarations.append(f"color: #{style_def['color']};")
    if style_def.get("bgcolor"):
        declarations.append(f"background-color: #{style_def['bgcolor']};")
    if style_def.get("underline"):
        declarations.append("text-decoration: underline;")
    return " ".join(declarations)


class PygmentsHighlightRenderer:
    """Render code blocks as plain lines plus CSS Highlight API registrations.

    Only lexers present in ``registry`` are used; any other language renders
    as plain text. Share the registry with :class:`PygmentsGrammarSupply` so
    that loaded grammars become visible here.
    """

    def __init__(
        self,
        registry: LexerRegistry | None = None,
        *,
        template_dir: Path = TEMPLATE_DIR,
    ) -> None:
        self.registry = registry or default_registry()
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(enabled_extensions=("html",)),
        )

    def lexer_for(self, language: str) -> Lexer:
        lexer_cls = self.registry.get(language) or TextLexer
        return lexer_cls(stripnl=False, ensurenl=False)

    def render(
        self,
        code: str,
        language: str,
        theme: str,
        label: str,
        directives: HighlightDirectives,
    ) -> HighlightResult:
        try:
            style = get_style_by_name(theme)
        except ClassNotFound as exc:
            raise RenderError(f"Unknown theme '{theme}'") from exc

        source = _normalize_source(code)
        try:
            ranges = tokenize_lines(self.lexer_for(language), source)
        except Exception as exc:
            raise RenderError(f"Failed to tokenize {language} source") from exc

        prefixed = {f"{label}-{key}": spans for key, spans in ranges.items()}
        rules = []
        for key in ranges:
            declarations = _declarations(style.style_for_token(_KEY_TOKENS.get(key, Token)))
            if declarations:
                rules.append((f"{label}-{key}", declarations))
        styled = {name for name, _ in rules}
        tokens = {name: spans for name, spans in prefixed.items() if name in styled}

        lines = self._lines(source, directives)
        markup = self.env.get_template("markup.html").render(
            label=label,
            language=language,
            lines=lines,
        )
        style_block = self.env.get_template("style.css").render(
            scope=f'pre[data-fencelight="{label}"]',
            container=self._container_rule(style),
            highlight_color=style.highlight_color,
            line_number_color=getattr(style, "line_number_color", "inherit"),
            features=_features(lines),
            rules=rules,
        )
        script = self.env.get_template("script.js").render(
            label_json=json.dumps(label),
            tokens_json=json.dumps(tokens, separators=(",", ":")).replace("</", "<\\/"),
        )
        return HighlightResult(markup=markup, style=style_block, script=script)

    @staticmethod
    def _container_rule(style: Any) -> str:
        declarations = [f"background-color: {style.background_color};"]
        text_color = style.style_for_token(Token.Text).get("color")
        if text_color:
            declarations.append(f"color: #{text_color};")
        return " ".join(declarations)

    @staticmethod
    def _lines(source: str, directives: HighlightDirectives) -> list[_Line]:
        highlighted = directives.highlighted
        diff = directives.diff
        focus = directives.focus_lines
        numbering = directives.line_numbers

        lines: list[_Line] = []
        for index, text in enumerate(source.split("\n")):
            number = index + 1
            line = _Line(text=text, number=numbering.start + index if numbering else None)
            if highlighted and number in highlighted:
                line.classes.append("highlighted")
            if diff is not None:
                added = diff.added is not None and number in diff.added
                removed = diff.removed is not None and number in diff.removed
                if added or removed:
                    line.classes.append("diff")
                if added:
                    line.classes.append("add")
                if removed:
                    line.classes.append("remove")
            if focus and number not in focus:
                line.classes.append("blurred")
            lines.append(line)
        return lines


def register_lexers(lexers: Iterable[type[Lexer]], registry: LexerRegistry | None = None) -> None:
    """Register custom lexer classes, typically from a ``load_languages`` hook."""
    target = registry or default_registry()
    for lexer_cls in lexers:
        target.register_lexer(lexer_cls)


__all__ = [
    "LexerRegistry",
    "PygmentsGrammarSupply",
    "PygmentsHighlightRenderer",
    "default_registry",
    "register_lexers",
    "tokenize_lines",
]
