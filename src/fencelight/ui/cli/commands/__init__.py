"""CLI commands."""

from __future__ import annotations

from .convert import convert


__all__ = ["convert"]
