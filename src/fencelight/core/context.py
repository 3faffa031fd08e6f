"""Shared state owned by highlighters: loaded languages and block labels."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock

from .languages import LanguageCache


class BlockCounter:
    """Monotonic counter minting unique block labels."""

    def __init__(self, prefix: str = "hl") -> None:
        self.prefix = prefix
        self._value = 0
        self._lock = Lock()

    @property
    def value(self) -> int:
        return self._value

    def next_label(self) -> str:
        with self._lock:
            self._value += 1
            current = self._value
        return f"{self.prefix}-{current}"


@dataclass(slots=True)
class HighlightContext:
    """State shared by every transform that uses the same context.

    Labels are never reused and grammars are loaded once for all documents
    processed with one context.
    """

    languages: LanguageCache = field(default_factory=LanguageCache)
    counter: BlockCounter = field(default_factory=BlockCounter)


_DEFAULT_CONTEXT: HighlightContext | None = None
_DEFAULT_CONTEXT_GUARD = Lock()


def default_context() -> HighlightContext:
    """Return the process-wide context, creating it on first use."""
    global _DEFAULT_CONTEXT
    if _DEFAULT_CONTEXT is None:
        with _DEFAULT_CONTEXT_GUARD:
            if _DEFAULT_CONTEXT is None:
                _DEFAULT_CONTEXT = HighlightContext()
    return _DEFAULT_CONTEXT


__all__ = ["BlockCounter", "HighlightContext", "default_context"]
