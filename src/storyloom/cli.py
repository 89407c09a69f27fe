"""storyloom CLI - typer application entry point."""

from __future__ import annotations

import atexit
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from storyloom.errors import StoryImportError
from storyloom.observability import (
    bind_command,
    close_file_logging,
    configure_logging,
    get_logger,
)

if TYPE_CHECKING:
    from storyloom.graph.validation_types import ValidationReport
    from storyloom.models.ingest import ImportResult
    from storyloom.pipeline.config import ProjectConfig

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="loom",
    help="storyloom: recover story structure from manuscripts and keep story graphs consistent.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

SEVERITY_STYLES = {"error": "red", "warning": "yellow", "info": "dim"}


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log",
            help="Also write JSONL debug logs to DIR/logs/debug.jsonl.",
            file_okay=False,
        ),
    ] = None,
) -> None:
    """storyloom: recover story structure from manuscripts."""
    if log_dir is not None:
        configure_logging(verbosity=verbose, log_to_file=True, log_path=log_dir)
        atexit.register(close_file_logging)
    else:
        configure_logging(verbosity=verbose)


def _load_config() -> ProjectConfig:
    from storyloom.pipeline.config import ProjectConfigError, load_project_config

    try:
        return load_project_config(Path.cwd())
    except ProjectConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


def _run_import(file: Path, title: str | None, config: ProjectConfig) -> ImportResult:
    from storyloom.pipeline import ImportPipeline

    if not file.is_file():
        console.print(f"[red]Error:[/red] File not found: {file}")
        raise typer.Exit(1)

    try:
        return ImportPipeline(config.import_).run(file.read_bytes(), file.name, title=title)
    except StoryImportError as e:
        console.print(f"[red]Import failed[/red] ({e.code}): {e.message}")
        raise typer.Exit(1) from None


def _print_import_summary(result: ImportResult) -> None:
    enc = result.encoding
    console.print(f"[bold]{escape(result.title)}[/bold]")
    console.print(
        f"Encoding: [cyan]{enc.encoding}[/cyan] (confidence {enc.confidence:.2f}"
        f"{', BOM' if enc.has_bom else ''})"
    )
    console.print(f"Line endings: [cyan]{result.normalized.original_line_ending}[/cyan]")
    preview = result.preview
    console.print(
        f"Words: {preview.total_words}  Chapters: {preview.chapter_count}  "
        f"Scenes: {preview.scene_count}  Characters: {preview.character_count}  "
        f"Reading time: ~{preview.estimated_reading_minutes} min"
    )
    console.print()

    if result.chapters:
        table = Table(title="Chapters")
        table.add_column("Line", justify="right", style="dim")
        table.add_column("Title", style="bold")
        table.add_column("Pattern")
        table.add_column("Confidence", justify="right")
        table.add_column("Words", justify="right")
        for chapter, words in zip(result.chapters, result.word_counts.chapters, strict=False):
            table.add_row(
                str(chapter.line_index + 1),
                escape(chapter.title),
                chapter.matched_pattern,
                f"{chapter.confidence:.2f}",
                str(words),
            )
        console.print(table)
    else:
        console.print("[dim]No chapters detected.[/dim]")

    if result.characters:
        table = Table(title="Characters")
        table.add_column("Name", style="bold")
        table.add_column("Occurrences", justify="right")
        table.add_column("Context")
        table.add_column("Confidence", justify="right")
        for character in result.characters:
            table.add_row(
                escape(character.name),
                str(character.occurrences),
                str(character.strongest_context),
                f"{character.confidence:.2f}",
            )
        console.print(table)

    validation = result.validation
    for error in validation.errors:
        console.print(f"[red]\u2717[/red] {escape(error)}")
    for warning in validation.warnings:
        console.print(f"[yellow]![/yellow] {escape(warning)}")


def _print_report(report: ValidationReport) -> None:
    if not report.issues:
        console.print("[green]\u2713[/green] No integrity issues")
        return

    table = Table(title=f"Integrity issues ({report.summary})")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Entity", style="cyan")
    table.add_column("Message")
    for issue in report.issues:
        style = SEVERITY_STYLES.get(str(issue.severity), "")
        table.add_row(
            f"[{style}]{issue.severity}[/{style}]",
            str(issue.category),
            issue.entity_id,
            escape(issue.message),
        )
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from storyloom import __version__

    console.print(f"storyloom v{__version__}")


@app.command()
def inspect(
    file: Annotated[Path, typer.Argument(help="Manuscript to import (.txt, .md).")],
    title: Annotated[str | None, typer.Option("--title", "-t", help="Story title.")] = None,
    as_json: Annotated[
        bool, typer.Option("--json", help="Print the full import result as JSON.")
    ] = False,
) -> None:
    """Import a manuscript and show what was detected."""
    bind_command("inspect", file=str(file))
    config = _load_config()
    result = _run_import(file, title, config)
    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return
    _print_import_summary(result)


@app.command()
def convert(
    file: Annotated[Path, typer.Argument(help="Manuscript to import (.txt, .md).")],
    output: Annotated[
        Path, typer.Option("--output", "-o", help="Where to write the story graph JSON.")
    ],
    title: Annotated[str | None, typer.Option("--title", "-t", help="Story title.")] = None,
) -> None:
    """Import a manuscript and write its story graph."""
    from storyloom.graph import IntegrityGuard, StoryIntegrityError
    from storyloom.pipeline import convert as convert_result

    bind_command("convert", file=str(file))
    config = _load_config()
    result = _run_import(file, title, config)
    graph = convert_result(
        result,
        min_character_confidence=config.import_.character_min_confidence,
        max_characters=config.import_.max_characters,
    )

    try:
        outcome = IntegrityGuard(config.repair).after_import(graph)
    except StoryIntegrityError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(outcome.graph.model_dump_json(indent=2), encoding="utf-8")
    log.info("graph_written", path=str(output), story_id=outcome.graph.story.id)

    console.print(
        f"[green]\u2713[/green] Wrote [bold]{escape(outcome.graph.story.title)}[/bold] "
        f"({len(outcome.graph.chapters)} chapters, {len(outcome.graph.scenes)} scenes) "
        f"to {output}"
    )
    if outcome.repaired:
        console.print(f"[yellow]Repaired {len(outcome.actions)} issue(s) on import[/yellow]")
    if not outcome.ok:
        _print_report(outcome.report)
        raise typer.Exit(1)


@app.command()
def validate(
    graph_file: Annotated[Path, typer.Argument(help="Story graph JSON file.")],
    fix: Annotated[bool, typer.Option("--repair", help="Repair the graph.")] = False,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the repaired graph here (with --repair)."),
    ] = None,
) -> None:
    """Check a story graph's integrity, optionally repairing it."""
    from storyloom.graph import repair, validate as validate_graph
    from storyloom.models.story import StoryGraph

    bind_command("validate", file=str(graph_file), repair=fix)
    if not graph_file.is_file():
        console.print(f"[red]Error:[/red] File not found: {graph_file}")
        raise typer.Exit(1)

    try:
        graph = StoryGraph.model_validate_json(graph_file.read_text(encoding="utf-8"))
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Error:[/red] {graph_file} is not a story graph: {e}")
        raise typer.Exit(1) from None

    report = validate_graph(graph)
    _print_report(report)
    if not fix:
        if report.has_errors:
            raise typer.Exit(1)
        return

    result = repair(graph)
    console.print()
    if result.actions:
        console.print(f"[bold]Repair actions ({len(result.actions)})[/bold]")
        for action in result.actions:
            console.print(f"  {escape(str(action))}")
    else:
        console.print("[dim]Nothing to repair.[/dim]")

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.repaired.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"Wrote repaired graph to {output}")

    if not result.success:
        console.print("[red]Errors remain after repair:[/red]")
        if result.final_report is not None:
            _print_report(result.final_report)
        raise typer.Exit(1)
    console.print("[green]\u2713[/green] Graph is consistent")


if __name__ == "__main__":
    app()
