"""Report highlighting diagnostics on the CLI's stderr console."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fencelight.core.diagnostics import format_event_message

from .state import (
    CLIState,
    emit_error,
    emit_warning,
    get_cli_state,
    print_traceback,
    render_message,
)


class CliEmitter:
    """Emitter used by ``fencelight convert``.

    Grammar and render failures print a one-line message. With ``--debug`` a
    render failure also prints the traceback of its cause.
    """

    def __init__(self, state: CLIState | None = None, *, debug_enabled: bool | None = None) -> None:
        state = state or get_cli_state()
        self.debug_enabled = state.show_tracebacks if debug_enabled is None else debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        emit_warning(message, exception=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        emit_error(message, exception=exc)
        if exc is not None and self.debug_enabled:
            print_traceback(exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            render_message("info", message)


__all__ = ["CliEmitter"]
