"""Exception hierarchy for the code block highlighting pipeline."""

from __future__ import annotations


class HighlightError(RuntimeError):
    """Base exception for highlighting failures."""


class GrammarLoadError(HighlightError):
    """Raised when a language grammar cannot be fetched or registered."""


class RenderError(HighlightError):
    """Raised when a code block cannot be converted into a highlight bundle."""


class InvalidNodeError(HighlightError):
    """Raised when a tree node does not have the expected shape."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "GrammarLoadError",
    "HighlightError",
    "InvalidNodeError",
    "RenderError",
    "exception_hint",
    "exception_messages",
]
