from pathlib import Path

from typer.testing import CliRunner

import fencelight
from fencelight.ui.cli import app


def _write(tmp_path: Path, text: str, name: str = "doc.md") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_get_version_matches_public_api() -> None:
    assert fencelight.get_version() == fencelight.__version__
    assert isinstance(fencelight.__version__, str)


def test_cli_version_flag() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == fencelight.get_version()


def test_convert_prints_html(tmp_path: Path) -> None:
    source = _write(tmp_path, "# Demo\n\n```python {1}\nx = 1\n```\n")
    runner = CliRunner()
    result = runner.invoke(app, ["convert", str(source)])

    assert result.exit_code == 0, result.output
    assert "<h1>Demo</h1>" in result.stdout
    assert 'class="line highlighted"' in result.stdout
    assert "CSS.highlights.set" in result.stdout


def test_convert_writes_output_file(tmp_path: Path) -> None:
    source = _write(tmp_path, "```js\nlet a = 1;\n```\n")
    target = tmp_path / "out" / "doc.html"
    runner = CliRunner()
    result = runner.invoke(app, ["convert", str(source), "--output", str(target)])

    assert result.exit_code == 0, result.output
    assert result.stdout == ""
    html = target.read_text(encoding="utf-8")
    assert "let a = 1;" in html
    assert "<script>" in html


def test_convert_line_number_options(tmp_path: Path) -> None:
    source = _write(tmp_path, "```python\na = 1\nb = 2\n```\n")
    runner = CliRunner()
    result = runner.invoke(app, ["convert", str(source), "--line-numbers-start", "7"])

    assert result.exit_code == 0, result.output
    assert '<span class="line-number">7</span>' in result.stdout
    assert '<span class="line-number">8</span>' in result.stdout

    result = runner.invoke(
        app, ["convert", str(source), "--no-line-numbers", "--line-numbers-start", "7"]
    )
    assert result.exit_code == 0, result.output
    assert "line-number" not in result.stdout


def test_convert_theme_option(tmp_path: Path) -> None:
    source = _write(tmp_path, "```python\ndef f():\n    pass\n```\n")
    runner = CliRunner()
    monokai = runner.invoke(app, ["convert", str(source)])
    friendly = runner.invoke(app, ["convert", str(source), "--theme", "friendly"])

    assert monokai.exit_code == 0, monokai.output
    assert friendly.exit_code == 0, friendly.output
    assert "#66d9ef" in monokai.stdout
    assert "#66d9ef" not in friendly.stdout


def test_convert_rejects_unknown_theme(tmp_path: Path) -> None:
    source = _write(tmp_path, "```python\nx = 1\n```\n")
    runner = CliRunner()
    result = runner.invoke(app, ["convert", str(source), "--theme", "no-such-theme"])

    assert result.exit_code == 2


def test_convert_rejects_missing_input(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["convert", str(tmp_path / "missing.md")])

    assert result.exit_code == 2


def test_convert_reports_undecodable_input(tmp_path: Path) -> None:
    source = tmp_path / "latin1.md"
    source.write_bytes(b"caf\xe9\n")
    runner = CliRunner()
    result = runner.invoke(app, ["convert", str(source)])

    assert result.exit_code == 1


def test_no_arguments_shows_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, [])

    assert "convert" in result.output
