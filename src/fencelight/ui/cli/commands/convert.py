"""Implementation of the `fencelight convert` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pygments.styles import get_all_styles
import typer

from fencelight.adapters.markdown import MarkdownConversionError, render_markdown
from fencelight.core.config import DEFAULT_THEME, HighlightConfig, LineNumbersConfig
from fencelight.core.transform import CodeBlockHighlighter

from ..diagnostics import CliEmitter
from ..state import emit_error, get_cli_state


InputArgument = Annotated[
    Path,
    typer.Argument(
        metavar="INPUT",
        help="Markdown document whose code fences should be highlighted.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
]

OutputOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        help="Write the HTML to this file instead of standard output.",
        dir_okay=False,
    ),
]

ThemeOption = Annotated[
    str,
    typer.Option("--theme", "-t", help="Pygments style used for token colours."),
]

LineNumbersOption = Annotated[
    bool | None,
    typer.Option(
        "--line-numbers/--no-line-numbers",
        help="Number every block unless its meta string says otherwise.",
        show_default=False,
    ),
]

LineNumbersStartOption = Annotated[
    int | None,
    typer.Option(
        "--line-numbers-start",
        help="First line number; implies --line-numbers.",
        min=0,
    ),
]


def _write_output_file(target: Path, content: str) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as exc:  # pragma: no cover - filesystem errors
        raise OSError(f"Failed to write HTML output to '{target}': {exc}") from exc


def convert(
    input_path: InputArgument,
    output: OutputOption = None,
    theme: ThemeOption = DEFAULT_THEME,
    line_numbers: LineNumbersOption = None,
    line_numbers_start: LineNumbersStartOption = None,
) -> None:
    """Convert a Markdown file to HTML with CSS Highlight API code blocks."""
    state = get_cli_state()

    if theme not in set(get_all_styles()):
        raise typer.BadParameter(f"Unknown theme '{theme}'.", param_hint="--theme")

    numbering: bool | LineNumbersConfig | None = line_numbers
    if line_numbers_start is not None and line_numbers is not False:
        numbering = LineNumbersConfig(start=line_numbers_start)

    config = HighlightConfig(theme=theme, line_numbers=numbering)
    highlighter = CodeBlockHighlighter(config, emitter=CliEmitter(state))

    try:
        source = input_path.read_text(encoding="utf-8")
        document = render_markdown(source, highlighter=highlighter)
    except (OSError, UnicodeDecodeError, MarkdownConversionError) as exc:
        emit_error(f"Failed to convert '{input_path.name}'", exception=exc)
        raise typer.Exit(code=1) from exc

    if output is None:
        typer.echo(document.html, nl=False)
        return
    _write_output_file(output, document.html)


__all__ = ["convert"]
