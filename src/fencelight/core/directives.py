"""Parse fence meta strings into highlighting directives.

The meta string is the free-form text following the language on a fence's
opening line::

    ```python {1,3-5} showLineNumbers:10 +2 -4 focus{2-3}

Each directive is looked up on its own with a dedicated pattern rather than by
tokenizing the whole string, so a malformed directive never hides a valid one
and the relative order of directives does not matter:

``{1,3-5}``
: Highlighted lines. Only the first brace group is considered; when its
  content is not a list of numbers and ranges the field is left unset.

``showLineNumbers`` / ``lineNumbers``
: Enable line numbering. ``flag:N`` (no whitespace around the colon) starts
  numbering at ``N``; otherwise numbering starts at 1.

``+1,3`` / ``-2``
: Lines marked as added or removed, found anywhere in the string. A minus
  sign directly after a digit belongs to a range such as ``{1-3}`` and is
  skipped.

``focus{2-3}``
: Focused lines; every other line is rendered blurred.

Anything else in the string is ignored.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, fields
import re


_SELECTOR_ITEM = r"\d+(?:-\d+)?"
_SELECTOR = re.compile(rf"^\s*{_SELECTOR_ITEM}(?:\s*,\s*{_SELECTOR_ITEM})*\s*$")
_HIGHLIGHT_GROUP = re.compile(r"(?<!focus)\{([^{}]*)\}")
_FOCUS_GROUP = re.compile(r"focus\{([^{}]*)\}")
_LINE_NUMBERS_FLAG = re.compile(r"showLineNumbers|lineNumbers")
_LINE_NUMBERS_START = re.compile(r"(?:showLineNumbers|lineNumbers):(\d+)")
_ADDED_LINES = re.compile(r"\+(\d+(?:,\d+)*)")
_REMOVED_LINES = re.compile(r"(?<!\d)-(\d+(?:,\d+)*)")


@dataclass(frozen=True, slots=True)
class LineSet:
    """Ordered set of 1-indexed line numbers stored as inclusive spans.

    Spans are kept sorted and merged so that two sets holding the same lines
    compare equal. Membership tests never expand the spans, which keeps
    selectors such as ``{1-1000000}`` cheap.
    """

    spans: tuple[tuple[int, int], ...] = ()

    @classmethod
    def from_spans(cls, spans: list[tuple[int, int]]) -> LineSet:
        ordered = sorted((min(lo, hi), max(lo, hi)) for lo, hi in spans)
        merged: list[tuple[int, int]] = []
        for lo, hi in ordered:
            if merged and lo <= merged[-1][1] + 1:
                merged[-1] = (merged[-1][0], max(merged[-1][1], hi))
            else:
                merged.append((lo, hi))
        return cls(tuple(merged))

    def __contains__(self, line: object) -> bool:
        if not isinstance(line, int):
            return False
        return any(lo <= line <= hi for lo, hi in self.spans)

    def __iter__(self) -> Iterator[int]:
        for lo, hi in self.spans:
            yield from range(lo, hi + 1)

    def __len__(self) -> int:
        return sum(hi - lo + 1 for lo, hi in self.spans)

    def __bool__(self) -> bool:
        return bool(self.spans)


@dataclass(frozen=True, slots=True)
class LineNumbering:
    """Line numbering switched on, starting at ``start``."""

    start: int = 1


@dataclass(frozen=True, slots=True)
class DiffMarks:
    """Lines flagged as added or removed in a diff view."""

    added: frozenset[int] | None = None
    removed: frozenset[int] | None = None


@dataclass(frozen=True, slots=True)
class HighlightDirectives:
    """Canonical rendering intent decoded from a fence meta string.

    ``None`` means the directive is absent. An absent ``focus_lines`` means no
    focus restriction, not an empty focus.
    """

    highlighted_lines: str | None = None
    line_numbers: LineNumbering | None = None
    diff: DiffMarks | None = None
    focus_lines: LineSet | None = None

    @property
    def highlighted(self) -> LineSet | None:
        """Expanded form of ``highlighted_lines``."""
        if self.highlighted_lines is None:
            return None
        return expand_line_selector(self.highlighted_lines)

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, item.name) is None for item in fields(self))

    def merged_over(self, defaults: HighlightDirectives | None) -> HighlightDirectives:
        """Return a copy where every absent field falls back to ``defaults``."""
        if defaults is None:
            return self
        values = {}
        for item in fields(self):
            value = getattr(self, item.name)
            values[item.name] = value if value is not None else getattr(defaults, item.name)
        return HighlightDirectives(**values)


def expand_line_selector(selector: str) -> LineSet | None:
    """Expand a selector such as ``"1,3-5"`` into a :class:`LineSet`.

    Reversed ranges are read as the span between their endpoints, so ``3-1``
    selects lines 1 to 3. Returns ``None`` for malformed selectors.
    """
    if not isinstance(selector, str) or not _SELECTOR.match(selector):
        return None
    spans: list[tuple[int, int]] = []
    try:
        for chunk in selector.split(","):
            first, _, last = chunk.strip().partition("-")
            lo = int(first)
            hi = int(last) if last else lo
            spans.append((lo, hi))
    except ValueError:
        return None
    return LineSet.from_spans(spans)


def _parse_highlighted_lines(meta: str) -> str | None:
    match = _HIGHLIGHT_GROUP.search(meta)
    if match is None:
        return None
    content = match.group(1)
    if expand_line_selector(content) is None:
        return None
    return ",".join(chunk.strip() for chunk in content.split(","))


def _parse_line_numbers(meta: str) -> LineNumbering | None:
    if _LINE_NUMBERS_FLAG.search(meta) is None:
        return None
    match = _LINE_NUMBERS_START.search(meta)
    if match is None:
        return LineNumbering()
    try:
        return LineNumbering(start=int(match.group(1)))
    except ValueError:
        return LineNumbering()


def _parse_number_list(pattern: re.Pattern[str], meta: str) -> frozenset[int] | None:
    match = pattern.search(meta)
    if match is None:
        return None
    try:
        return frozenset(int(value) for value in match.group(1).split(","))
    except ValueError:
        return None


def _parse_diff(meta: str) -> DiffMarks | None:
    added = _parse_number_list(_ADDED_LINES, meta)
    removed = _parse_number_list(_REMOVED_LINES, meta)
    if added is None and removed is None:
        return None
    return DiffMarks(added=added, removed=removed)


def _parse_focus_lines(meta: str) -> LineSet | None:
    match = _FOCUS_GROUP.search(meta)
    if match is None:
        return None
    return expand_line_selector(match.group(1))


def parse_meta(meta: str | None) -> HighlightDirectives:
    """Decode a fence meta string. Never raises; unknown text is ignored."""
    if not isinstance(meta, str) or not meta.strip():
        return HighlightDirectives()
    return HighlightDirectives(
        highlighted_lines=_parse_highlighted_lines(meta),
        line_numbers=_parse_line_numbers(meta),
        diff=_parse_diff(meta),
        focus_lines=_parse_focus_lines(meta),
    )


__all__ = [
    "DiffMarks",
    "HighlightDirectives",
    "LineNumbering",
    "LineSet",
    "expand_line_selector",
    "parse_meta",
]
