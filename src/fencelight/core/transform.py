"""Replace code-fence nodes with CSS Highlight API bundles.

A transform runs in distinct phases, each finished before the next starts:

1. await the custom language hook, once per transform;
2. collect every code node with its index and parent, without mutating;
3. load the grammars of all languages found in the document;
4. render and splice blocks from the highest index to the lowest.

Splicing one node into three shifts every later sibling, so blocks are
processed from the end of their parent towards the start: a recorded index is
only ever invalidated by mutations above it, which have already happened.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging
from typing import Any, Protocol, runtime_checkable

from .config import HighlightConfig
from .context import HighlightContext, default_context
from .diagnostics import DiagnosticEmitter, LoggingEmitter
from .directives import HighlightDirectives, parse_meta
from .exceptions import InvalidNodeError, RenderError
from .languages import (
    GrammarSupply,
    LanguageLoader,
    collect_languages,
    normalize_language,
    resolve,
)
from .nodes import CODE, Node, html, iter_nodes


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HighlightResult:
    """Payloads produced for one code block, all tagged with the block label."""

    markup: str
    style: str
    script: str


@runtime_checkable
class HighlightRenderer(Protocol):
    """Turn source code into markup, style rules, and a registration script."""

    def render(
        self,
        code: str,
        language: str,
        theme: str,
        label: str,
        directives: HighlightDirectives,
    ) -> HighlightResult | Awaitable[HighlightResult]: ...


RenderCallable = Callable[..., Any]


@dataclass(slots=True)
class CodeBlockRef:
    """A code node together with its location in the tree."""

    node: Node
    index: int
    parent: Node


def discover_code_blocks(tree: Node) -> list[CodeBlockRef]:
    """Return every code node that has a parent, in document order."""
    blocks: list[CodeBlockRef] = []
    for node, index, parent in iter_nodes(tree, CODE):
        if index is None or parent is None:
            continue
        blocks.append(CodeBlockRef(node=node, index=index, parent=parent))
    return blocks


def _bundle_nodes(result: Any) -> list[Node]:
    payloads = []
    for name in ("markup", "style", "script"):
        value = getattr(result, name, None)
        if not isinstance(value, str):
            raise RenderError(f"Renderer returned no '{name}' payload")
        payloads.append(html(value))
    return payloads


def _splice(ref: CodeBlockRef, replacement: list[Node]) -> None:
    children = ref.parent.children
    if children is None or ref.index >= len(children) or children[ref.index] is not ref.node:
        raise InvalidNodeError("Code block moved before it could be replaced")
    children[ref.index : ref.index + 1] = replacement


class CodeBlockHighlighter:
    """Batch rewrite of a document's code blocks.

    ``renderer`` and ``grammars`` default to the bundled Pygments adapters
    sharing one lexer registry. ``renderer`` may be an object with a
    ``render`` method or a bare callable with the same signature.
    """

    def __init__(
        self,
        config: HighlightConfig | None = None,
        *,
        renderer: HighlightRenderer | RenderCallable | None = None,
        grammars: GrammarSupply | None = None,
        context: HighlightContext | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.config = config or HighlightConfig()
        if renderer is None or grammars is None:
            from fencelight.adapters.pygments import (
                PygmentsGrammarSupply,
                PygmentsHighlightRenderer,
                default_registry,
            )

            registry = getattr(renderer, "registry", None)
            if registry is None:
                registry = default_registry()
            if renderer is None:
                renderer = PygmentsHighlightRenderer(registry)
            if grammars is None:
                grammars = PygmentsGrammarSupply(registry)
        self.renderer = renderer
        self.context = context or default_context()
        self.emitter = emitter or LoggingEmitter()
        self.loader = LanguageLoader(grammars, self.context.languages, emitter=self.emitter)
        self._defaults = self.config.default_directives()

    async def __call__(self, tree: Node) -> Node:
        return await self.transform(tree)

    async def transform(self, tree: Node) -> Node:
        """Highlight every code block of ``tree`` in place and return it."""
        hook = self.config.load_languages
        if hook is not None:
            await resolve(hook())

        blocks = discover_code_blocks(tree)
        if not blocks:
            return tree

        await self.loader.load(collect_languages(tree))

        converted = 0
        failed = 0
        for ref in sorted(blocks, key=lambda item: item.index, reverse=True):
            if await self._replace_block(ref):
                converted += 1
            else:
                failed += 1

        self.emitter.event("code_blocks_highlighted", {"converted": converted, "failed": failed})
        return tree

    async def _replace_block(self, ref: CodeBlockRef) -> bool:
        language = normalize_language(ref.node.lang)
        try:
            directives = parse_meta(ref.node.meta).merged_over(self._defaults)
            label = self.context.counter.next_label()
            result = await resolve(
                self._render(ref.node.value or "", language, self.config.theme, label, directives)
            )
            _splice(ref, _bundle_nodes(result))
        except Exception as exc:
            self.emitter.error(f"Failed to process code block (lang: {language})", exc)
            return False
        logger.debug("Replaced %s code block at index %d with %s", language, ref.index, label)
        return True

    def _render(self, *args: Any) -> Any:
        render = getattr(self.renderer, "render", self.renderer)
        return render(*args)


def highlight_code_blocks(
    config: HighlightConfig | None = None,
    *,
    renderer: HighlightRenderer | RenderCallable | None = None,
    grammars: GrammarSupply | None = None,
    context: HighlightContext | None = None,
    emitter: DiagnosticEmitter | None = None,
    **options: Any,
) -> CodeBlockHighlighter:
    """Build a highlighter; keyword ``options`` override fields of ``config``."""
    if options:
        base = config.model_dump() if config is not None else {}
        config = HighlightConfig(**{**base, **options})
    return CodeBlockHighlighter(
        config,
        renderer=renderer,
        grammars=grammars,
        context=context,
        emitter=emitter,
    )


__all__ = [
    "CodeBlockHighlighter",
    "CodeBlockRef",
    "HighlightRenderer",
    "HighlightResult",
    "discover_code_blocks",
    "highlight_code_blocks",
]
