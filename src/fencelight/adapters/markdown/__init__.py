"""Markdown parsing and HTML serialization around the highlighting tree."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from html import escape
from threading import Lock
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.token import Token
import yaml

from fencelight.core.config import HighlightConfig
from fencelight.core.nodes import CODE, Node, root
from fencelight.core.transform import CodeBlockHighlighter


__all__ = [
    "MarkdownConversionError",
    "MarkdownDocument",
    "convert_markdown",
    "parse_markdown",
    "render_html",
    "render_markdown",
    "split_front_matter",
]


_CONTAINERS = {
    "blockquote_open": "blockquote",
    "bullet_list_open": "list",
    "ordered_list_open": "list",
    "list_item_open": "listItem",
}

_LEAF_TYPES = {
    "paragraph_open": "paragraph",
    "heading_open": "heading",
    "hr": "thematicBreak",
    "html_block": "html",
    "table_open": "table",
}


class MarkdownConversionError(Exception):
    """Raised when Markdown cannot be converted."""


@dataclass(slots=True)
class MarkdownDocument:
    """Result of converting Markdown into HTML."""

    html: str
    front_matter: dict[str, Any]


_PARSER: MarkdownIt | None = None
_PARSER_GUARD = Lock()


def _parser() -> MarkdownIt:
    global _PARSER
    if _PARSER is None:
        with _PARSER_GUARD:
            if _PARSER is None:
                _PARSER = MarkdownIt("commonmark").enable("table")
    return _PARSER


def _closing_index(tokens: Sequence[Token], start: int) -> int:
    depth = 0
    for index in range(start, len(tokens)):
        depth += tokens[index].nesting
        if depth <= 0:
            return index
    raise MarkdownConversionError(f"Unbalanced '{tokens[start].type}' token")


def _render_tokens(md: MarkdownIt, tokens: Sequence[Token], env: dict[str, Any]) -> str:
    return md.renderer.render(list(tokens), md.options, env)


def _code_node(token: Token) -> Node:
    body = token.content
    if body.endswith("\n"):
        body = body[:-1]
    if token.type != "fence":
        return Node(CODE, value=body)
    parts = token.info.strip().split(maxsplit=1)
    lang = parts[0] if parts else None
    meta = parts[1].strip() if len(parts) > 1 else None
    return Node(CODE, value=body, lang=lang, meta=meta or None)


def _build(md: MarkdownIt, tokens: Sequence[Token], env: dict[str, Any]) -> list[Node]:
    nodes: list[Node] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        end = _closing_index(tokens, index)
        if token.type in {"fence", "code_block"}:
            nodes.append(_code_node(token))
        elif token.type in _CONTAINERS:
            nodes.append(
                Node(
                    _CONTAINERS[token.type],
                    children=_build(md, tokens[index + 1 : end], env),
                    data={
                        "open": _render_tokens(md, [token], env),
                        "close": _render_tokens(md, [tokens[end]], env),
                    },
                )
            )
        else:
            node_type = _LEAF_TYPES.get(token.type, token.type.removesuffix("_open"))
            nodes.append(Node(node_type, value=_render_tokens(md, tokens[index : end + 1], env)))
        index = end + 1
    return nodes


def parse_markdown(source: str) -> Node:
    """Parse Markdown into a tree whose code fences are ``code`` nodes.

    Blockquotes and lists stay containers so fences nested inside them are
    reachable; every other block is kept as pre-rendered HTML.
    """
    md = _parser()
    env: dict[str, Any] = {}
    try:
        tokens = md.parse(source, env)
    except Exception as exc:  # pragma: no cover - library-controlled
        raise MarkdownConversionError(f"Failed to parse Markdown source: {exc}") from exc
    return root(*_build(md, tokens, env))


def _code_html(node: Node) -> str:
    body = escape(node.value or "")
    if body:
        body += "\n"
    lang = (node.lang or "").strip()
    attrs = f' class="language-{escape(lang)}"' if lang else ""
    return f"<pre><code{attrs}>{body}</code></pre>\n"


def _serialize(node: Node, parts: list[str]) -> None:
    if node.type == CODE:
        parts.append(_code_html(node))
        return
    if node.children is not None:
        parts.append(node.data.get("open", ""))
        for child in node.children:
            _serialize(child, parts)
        parts.append(node.data.get("close", ""))
        return
    value = node.value or ""
    if value and not value.endswith("\n"):
        value += "\n"
    parts.append(value)


def render_html(tree: Node) -> str:
    """Serialize a tree back to HTML."""
    parts: list[str] = []
    _serialize(tree, parts)
    return "".join(parts)


def split_front_matter(source: str) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from Markdown content, returning metadata and body."""
    candidate = source.lstrip("\ufeff")
    lines = candidate.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, source

    closing_index: int | None = None
    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() in {"---", "..."}:
            closing_index = idx
            break
    if closing_index is None:
        return {}, source

    try:
        metadata = yaml.safe_load("\n".join(lines[1:closing_index])) or {}
    except yaml.YAMLError:
        return {}, source
    if not isinstance(metadata, dict):
        metadata = {}

    body = "\n".join(lines[closing_index + 1 :])
    if source.endswith("\n"):
        body += "\n"
    return metadata, body


async def convert_markdown(
    source: str,
    highlighter: CodeBlockHighlighter | None = None,
) -> MarkdownDocument:
    """Convert Markdown to HTML, highlighting every code fence."""
    metadata, body = split_front_matter(source)
    tree = parse_markdown(body)
    await (highlighter or CodeBlockHighlighter()).transform(tree)
    return MarkdownDocument(html=render_html(tree), front_matter=metadata)


def render_markdown(
    source: str,
    config: HighlightConfig | None = None,
    *,
    highlighter: CodeBlockHighlighter | None = None,
) -> MarkdownDocument:
    """Synchronous wrapper around :func:`convert_markdown`."""
    if highlighter is None:
        highlighter = CodeBlockHighlighter(config)
    return asyncio.run(convert_markdown(source, highlighter))
