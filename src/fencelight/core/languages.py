"""Lazy grammar loading with a process-wide memo of loaded languages."""

from __future__ import annotations

from collections.abc import Hashable, Iterable
import inspect
import logging
from threading import Lock
from typing import Any, Protocol, runtime_checkable

from .diagnostics import DiagnosticEmitter, LoggingEmitter
from .nodes import CODE, Node, iter_nodes


logger = logging.getLogger(__name__)

PLAIN_TEXT = "text"


@runtime_checkable
class GrammarSupply(Protocol):
    """Source of language grammars consumed by the renderer.

    ``fetch`` returns ``None`` for identifiers it does not know and raises when
    a known grammar cannot be retrieved. Both methods may be coroutines.
    An optional ``cache_scope`` attribute names where grammars get registered;
    loads are remembered per scope.
    """

    def fetch(self, language: str) -> Any: ...

    def register(self, grammar: Any) -> Any: ...


class LanguageCache:
    """Grow-only record of loaded languages, grouped by grammar scope.

    A scope identifies where grammars were registered, such as one lexer
    registry. A language loaded into one scope is still missing from any
    other, so highlighters with separate registries can share a context.
    """

    def __init__(self) -> None:
        self._loaded: dict[Hashable, set[str]] = {}
        self._lock = Lock()

    def __contains__(self, language: object) -> bool:
        return self.is_loaded(language)

    def __len__(self) -> int:
        return sum(len(languages) for languages in self._loaded.values())

    def is_loaded(self, language: object, scope: Hashable = None) -> bool:
        return language in self._loaded.get(scope, ())

    def add(self, language: str, scope: Hashable = None) -> bool:
        """Record ``language`` in ``scope``; return ``False`` if already present."""
        with self._lock:
            loaded = self._loaded.setdefault(scope, set())
            if language in loaded:
                return False
            loaded.add(language)
            return True

    def snapshot(self, scope: Hashable = None) -> frozenset[str]:
        with self._lock:
            return frozenset(self._loaded.get(scope, ()))


def normalize_language(language: str | None) -> str:
    """Return the language tag, defaulting to plain text when empty."""
    candidate = (language or "").strip()
    return candidate or PLAIN_TEXT


def collect_languages(tree: Node) -> list[str]:
    """Return the distinct languages of the tree's code blocks in document order."""
    seen: dict[str, None] = {}
    for node, _, _ in iter_nodes(tree, CODE):
        language = normalize_language(node.lang)
        if language != PLAIN_TEXT:
            seen.setdefault(language, None)
    return list(seen)


async def resolve(value: Any) -> Any:
    """Await ``value`` when it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


class LanguageLoader:
    """Make grammars available to the renderer, loading each at most once."""

    def __init__(
        self,
        supply: GrammarSupply,
        cache: LanguageCache,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.supply = supply
        self.cache = cache
        self.emitter = emitter or LoggingEmitter()
        self.scope: Hashable = getattr(supply, "cache_scope", None)

    async def load(self, languages: Iterable[str]) -> list[str]:
        """Load every language not yet cached; return the ones loaded now.

        Unknown identifiers are skipped silently since a custom language hook
        may have registered them elsewhere. Fetch failures are reported as
        warnings and leave the identifier unregistered.
        """
        loaded: list[str] = []
        for language in dict.fromkeys(languages):
            if self.cache.is_loaded(language, self.scope):
                continue
            try:
                grammar = await resolve(self.supply.fetch(language))
                if grammar is None:
                    logger.debug("No bundled grammar for language %r", language)
                    continue
                await resolve(self.supply.register(grammar))
            except Exception as exc:
                self.emitter.warning(f"Failed to load language {language}", exc)
                continue
            if self.cache.add(language, self.scope):
                loaded.append(language)
                self.emitter.event("language_loaded", {"language": language})
        return loaded


__all__ = [
    "PLAIN_TEXT",
    "GrammarSupply",
    "LanguageCache",
    "LanguageLoader",
    "collect_languages",
    "normalize_language",
    "resolve",
]
