"""CLI for Performance Assessment."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path
from typing import Annotated, TypeVar

import structlog
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from perf_assessment import __version__
from perf_assessment.core.config import AssessmentConfig, load_config
from perf_assessment.core.errors import AssessmentError, ConfigurationError
from perf_assessment.models import RecordFilter
from perf_assessment.schema import DEFAULT_REGISTRY
from perf_assessment.scoring import parse_record_csv
from perf_assessment.services.remote import LocalRemoteStore, RemoteStore
from perf_assessment.services.reporting import render_summary
from perf_assessment.services.storage import AssessmentStore

T = TypeVar("T")

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="perf-assessment",
    help="Performance Assessment - score subjects against themed criteria and keep a history",
    add_completion=False,
)
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config YAML file")
]
OwnerOption = Annotated[
    str, typer.Option("--owner", envvar="ASSESSMENT_OWNER", help="Owner (user) id")
]
DateFromOption = Annotated[
    datetime | None, typer.Option("--date-from", formats=["%Y-%m-%d"], help="Earliest assessment date")
]
DateToOption = Annotated[
    datetime | None, typer.Option("--date-to", formats=["%Y-%m-%d"], help="Latest assessment date")
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"perf-assessment v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")] = False,
) -> None:
    """Performance Assessment CLI."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load(config_path: Path | None) -> AssessmentConfig:
    return load_config(config_path) if config_path else AssessmentConfig()


def _run_with_store(
    config_path: Path | None,
    owner: str,
    fn: Callable[[RemoteStore, AssessmentConfig], Awaitable[T]],
) -> T:
    """Open the record store for ``owner``, run ``fn`` and map errors to exit codes."""
    try:
        config = _load(config_path)

        async def _run() -> T:
            store = AssessmentStore(config)
            try:
                return await fn(LocalRemoteStore(store.records, owner), config)
            finally:
                await store.close()

        return asyncio.run(_run())

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except AssessmentError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _filter(
    name: str | None,
    date_from: datetime | None,
    date_to: datetime | None,
    page: int = 1,
    page_size: int = 20,
) -> RecordFilter:
    return RecordFilter(
        subject_name_contains=name,
        date_from=date_from.date() if date_from else None,
        date_to=date_to.date() if date_to else None,
        page=page,
        page_size=page_size,
    )


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file."""
    try:
        config = load_config(config_path)
        console.print("[green]Configuration is valid![/green]")
        console.print(f"  Database: {config.database_path}")
        console.print(f"  Draft cache: {config.cache_path}")
        console.print(f"  API: {config.api_base_url}")
        console.print(f"  Autosave delay: {config.autosave_delay}s")
        console.print(f"  Page size: {config.page_size}")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Validation error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command("list")
def list_assessments(
    owner: OwnerOption,
    config_path: ConfigOption = None,
    name: Annotated[str | None, typer.Option("--name", help="Subject name contains")] = None,
    date_from: DateFromOption = None,
    date_to: DateToOption = None,
    page: Annotated[int, typer.Option("--page", min=1)] = 1,
) -> None:
    """List stored assessments, newest first."""
    page_result = _run_with_store(
        config_path,
        owner,
        lambda remote, config: remote.list_records(
            _filter(name, date_from, date_to, page, config.page_size)
        ),
    )

    table = Table(title=f"Assessments (page {page_result.page} of {max(page_result.pages, 1)})")
    table.add_column("ID")
    table.add_column("Employee")
    table.add_column("Date")
    table.add_column("Version", justify="right")
    for record in page_result.records:
        table.add_row(
            record.id,
            record.subject_name,
            record.assessment_date.date().isoformat(),
            str(record.version),
        )
    console.print(table)
    console.print(f"Total: {page_result.total}")


@app.command()
def show(
    record_id: Annotated[str, typer.Argument(help="Assessment id")],
    owner: OwnerOption,
    config_path: ConfigOption = None,
) -> None:
    """Show one assessment with theme averages."""
    record = _run_with_store(config_path, owner, lambda remote, _: remote.get(record_id))
    console.print(f"[bold]{record.id}[/bold] ({record.assessment_date.date().isoformat()})")
    console.print(render_summary(record.subject_name, record.metrics), markup=False)


@app.command("import")
def import_csv(
    csv_path: Annotated[Path, typer.Argument(help="Two-column Categories,Ratings CSV")],
    owner: OwnerOption,
    name: Annotated[str | None, typer.Option("--name", help="Employee name")] = None,
    config_path: ConfigOption = None,
) -> None:
    """Create an assessment from a CSV file."""
    if not csv_path.exists():
        console.print(f"[red]Error:[/red] CSV file not found: {csv_path}")
        raise typer.Exit(1)
    text = csv_path.read_text(encoding="utf-8")
    result = _run_with_store(config_path, owner, lambda remote, _: remote.import_table(text, name))

    console.print(f"[green]CSV imported successfully:[/green] {result.record.id}")
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


@app.command()
def export(
    owner: OwnerOption,
    out_dir: Annotated[Path, typer.Option("--out", help="Output directory")] = Path("."),
    ids: Annotated[list[str] | None, typer.Option("--id", help="Assessment id (repeatable)")] = None,
    name: Annotated[str | None, typer.Option("--name", help="Subject name contains")] = None,
    date_from: DateFromOption = None,
    date_to: DateToOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Export assessments to CSV."""
    flt = _filter(name, date_from, date_to)
    result = _run_with_store(config_path, owner, lambda remote, _: remote.export_table(flt, ids))

    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / result.filename
    path.write_bytes(result.content)
    console.print(f"[green]Exported {result.count} assessment(s) to[/green] {path}")


@app.command()
def delete(
    record_id: Annotated[str, typer.Argument(help="Assessment id")],
    owner: OwnerOption,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
    config_path: ConfigOption = None,
) -> None:
    """Permanently delete an assessment."""
    if not yes:
        typer.confirm(f"Delete assessment {record_id}? This cannot be undone.", abort=True)
    _run_with_store(config_path, owner, lambda remote, _: remote.delete(record_id))
    console.print("[green]Assessment deleted successfully[/green]")


@app.command()
def summary(
    csv_path: Annotated[Path, typer.Argument(help="Two-column Categories,Ratings CSV")],
    name: Annotated[str, typer.Option("--name", help="Employee name")] = "",
) -> None:
    """Print theme averages for a CSV file without storing it."""
    try:
        parsed = parse_record_csv(csv_path.read_text(encoding="utf-8"), DEFAULT_REGISTRY)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except AssessmentError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    for warning in parsed.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    console.print(render_summary(name, parsed.metrics), markup=False)


@app.command()
def info() -> None:
    """Show tool information and example commands."""
    console.print("[bold]Performance Assessment[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print("[bold]Themes:[/bold]")
    for theme in DEFAULT_REGISTRY.list_themes():
        console.print(f"  {theme.name}: {', '.join(theme.metric_ids)}")

    console.print("\n[bold]Example Commands:[/bold]")
    console.print("  # Import a CSV as a new assessment")
    console.print("  perf-assessment import ratings.csv --owner alice --name 'Jane Doe'\n")

    console.print("  # List assessments for an employee")
    console.print("  perf-assessment list --owner alice --name jane\n")

    console.print("  # Export everything from March")
    console.print("  perf-assessment export --owner alice --date-from 2026-03-01 --date-to 2026-03-31\n")

    console.print("  # Averages for a CSV without storing it")
    console.print("  perf-assessment summary ratings.csv")


if __name__ == "__main__":
    app()
