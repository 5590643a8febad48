"""PromptQC CLI - run QC files and inspect fixtures."""

from __future__ import annotations

import importlib.util
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import configure_logging, get_settings
from .errors import FixtureError, PromptQCError
from .fixtures import read_fixture_map
from .reporters import ConsoleReporter, JSONReporter
from .runner import QCRunner

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="promptqc",
    help="Run completion functions against fixture prompts and test the output.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold cyan]promptqc[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
):
    """PromptQC - test LLM completions against prompt fixtures.

    [bold]Quick Start:[/bold]

        promptqc run qc_chat.py           Run the QCRunner defined in qc_chat.py
        promptqc groups prompts.json      List prompt groups in a fixture file
    """
    pass


def load_runner(path: Path) -> QCRunner | None:
    """Import a QC file and return the QCRunner it defines.

    Uses the module-level ``runner`` attribute if present, otherwise the
    first QCRunner instance found in the module.
    """
    module_name = f"promptqc_file_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if not spec or not spec.loader:
        logger.error("Cannot load module spec from: %s", path)
        return None

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise

    runner = getattr(module, "runner", None)
    if isinstance(runner, QCRunner):
        return runner
    for name in dir(module):
        obj = getattr(module, name)
        if isinstance(obj, QCRunner):
            return obj
    return None


@app.command("run")
def run_cmd(
    qc_file: Path = typer.Argument(help="Python file that registers units on a QCRunner"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Save JSON summary to file"),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Override log level"),
) -> None:
    """Run every unit registered in a QC file."""
    settings = get_settings()
    configure_logging(
        level=log_level or settings.log_level,
        format=settings.log_format,
        sanitize_logs=settings.sanitize_logs,
    )

    if not qc_file.is_file():
        console.print(f"[red]QC file not found: {qc_file}[/red]")
        raise typer.Exit(2)

    try:
        runner = load_runner(qc_file)
    except PromptQCError as e:
        console.print(f"[red]Invalid unit in {qc_file}:[/red] {e}")
        raise typer.Exit(2)
    except Exception as e:
        console.print(f"[red]Failed to load {qc_file}:[/red] {type(e).__name__}: {escape(str(e))}")
        raise typer.Exit(2)

    if runner is None:
        console.print(f"[red]No QCRunner found in {qc_file}.[/red]")
        console.print("[dim]Define a module-level 'runner = QCRunner()'.[/dim]")
        raise typer.Exit(2)

    console.print(f"\n[bold]Running:[/bold] {qc_file} ({len(runner)} units)")
    summary = runner.run()

    ConsoleReporter().print(summary, console)

    if output:
        JSONReporter().save(summary, output)
        console.print(f"\n[green]Summary saved to {output}[/green]")

    if not summary.all_passed:
        raise typer.Exit(1)


@app.command("groups")
def groups_cmd(
    fixture_file: Path = typer.Argument(help="Fixture (prompt) file to inspect"),
) -> None:
    """List the prompt groups in a fixture file."""
    settings = get_settings()
    try:
        fixture_map = read_fixture_map(fixture_file, encoding=settings.fixture_encoding)
    except FixtureError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=str(fixture_file))
    table.add_column("Group", style="bold")
    table.add_column("Prompts", justify="right")

    for group, prompts in fixture_map.items():
        table.add_row(str(group), str(len(prompts)))

    console.print(table)


if __name__ == "__main__":
    app()
