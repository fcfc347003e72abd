"""Operator console for landingstats."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

from landingstats import __version__
from landingstats.config import get_config
from landingstats.core.stats import StatisticsAggregator
from landingstats.dashboard import render_dashboard
from landingstats.export import DataExporter, import_export
from landingstats.storage.store import PersistenceStore, StorageError

MAIN_HELP = """
[bold cyan]landingstats[/] - visitor analytics for a single landing page

Reads the locally stored visitors, events and sessions and reports on them.

[bold yellow]Quick Start:[/]
  landingstats simulate --visitors 20
  landingstats dashboard

[bold yellow]Common Workflows:[/]
  [dim]Key metrics:[/]            landingstats stats
  [dim]Full snapshot as JSON:[/]  landingstats stats --json
  [dim]Back up everything:[/]     landingstats export
  [dim]Restore a backup:[/]       landingstats import <file>
"""

app = typer.Typer(
    name="landingstats",
    help=MAIN_HELP,
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()

# Global store instance (lazy initialized)
_store: PersistenceStore | None = None


def _get_store() -> PersistenceStore:
    """Get or create the store described by the current configuration."""
    global _store
    if _store is None:
        _store = get_config().create_store()
    return _store


def _get_aggregator() -> StatisticsAggregator:
    config = get_config()
    return StatisticsAggregator(
        _get_store(),
        recent_limit=config.dashboard.recent_visitors,
        time_format=config.dashboard.time_format,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    console.no_color = not get_config().dashboard.color_enabled


@app.command()
def stats(
    as_json: bool = typer.Option(False, "--json", help="Print the full snapshot as JSON"),
) -> None:
    """
    Show key visitor statistics.

    [bold yellow]Example:[/]
      landingstats stats
      landingstats stats --json
    """
    try:
        snapshot = _get_aggregator().compute_stats()
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(snapshot.to_dict(), ensure_ascii=False))
        return

    console.print(
        Panel(
            Text.from_markup(
                f"[bold]Total Visitors:[/bold] {snapshot.total_visitors}\n"
                f"[bold]Today:[/bold] {snapshot.today_visitors}\n"
                f"[bold]Subscribers:[/bold] {snapshot.total_subscribers}\n"
                f"[bold]Conversion Rate:[/bold] {snapshot.conversion_rate}%\n"
                f"[bold]Avg Session:[/bold] {snapshot.avg_session_time_seconds}s\n"
                f"[bold]Stored Events:[/bold] {snapshot.total_events}"
            ),
            title="[bold cyan]Visitor Statistics[/bold cyan]",
            border_style="cyan",
        )
    )


@app.command()
def dashboard() -> None:
    """
    Render the full dashboard: metrics, device and browser breakdowns,
    and the most recent visitors.

    [bold yellow]Example:[/]
      landingstats dashboard
    """
    try:
        snapshot = _get_aggregator().compute_stats()
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    render_dashboard(snapshot, console=console)


@app.command(name="export")
def export_data(
    output_dir: Path | None = typer.Option(
        None, "--output-dir", "-o", help="Directory for the export file"
    ),
) -> None:
    """
    Export visitors, subscribers, events and sessions to one JSON file.

    [bold yellow]Example:[/]
      landingstats export -o ./backups
    """
    exporter = DataExporter(output_dir or get_config().export.directory)
    try:
        path = exporter.export(_get_store())
    except (StorageError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Exported:[/green] {path}")


@app.command(name="import")
def import_data(
    file: Path = typer.Argument(..., help="Export file to restore"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """
    Replace the stored collections with the contents of an export file.

    [bold yellow]Example:[/]
      landingstats import ./exports/landing-analytics-2024-01-15.json
    """
    if not file.exists():
        console.print(f"[red]Error:[/red] File not found: {file}")
        raise typer.Exit(1)

    try:
        document = DataExporter().load(file)
    except (json.JSONDecodeError, OSError) as e:
        console.print(f"[red]Error:[/red] Cannot read {file}: {e}")
        raise typer.Exit(1)

    if not yes and not typer.confirm("This replaces all stored collections. Continue?"):
        raise typer.Exit(1)

    try:
        counts = import_export(_get_store(), document)
    except (ValueError, StorageError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(
        "[green]Imported:[/green] "
        + ", ".join(f"{section}={count}" for section, count in counts.items())
    )


@app.command()
def simulate(
    visitors: int = typer.Option(10, "--visitors", "-n", min=1, help="Page loads to simulate"),
    seed: int | None = typer.Option(None, "--seed", help="Random seed for repeatable runs"),
) -> None:
    """
    Record synthetic page loads so the statistics have something to show.

    [bold yellow]Example:[/]
      landingstats simulate -n 50 --seed 7
    """
    from landingstats.simulate import simulate_visits

    tracking = get_config().tracking
    events = simulate_visits(
        _get_store(),
        visitors=visitors,
        seed=seed,
        milestones=tracking.scroll_milestones,
        debounce_seconds=tracking.scroll_debounce_ms / 1000,
        position_threshold=tracking.scroll_position_threshold,
    )
    console.print(f"[green]Simulated[/green] {visitors} visits ({events} events)")


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """
    Delete stored visitors, events and sessions. Subscribers are kept.
    """
    if not yes and not typer.confirm("Delete all analytics data? This cannot be undone."):
        raise typer.Exit(1)
    try:
        _get_store().clear()
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print("[green]Cleared analytics data[/green]")


# Config subcommand group
config_app = typer.Typer(
    name="config",
    help="Manage landingstats configuration",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


@config_app.command(name="show")
def config_show() -> None:
    """Show current configuration."""
    from landingstats.config import DEFAULT_CONFIG_PATH

    config = get_config()
    config_exists = DEFAULT_CONFIG_PATH.exists()

    lines = [
        f"[bold]Config file:[/bold] {DEFAULT_CONFIG_PATH}",
        f"[bold]Status:[/bold] {'[green]exists[/green]' if config_exists else '[yellow]using defaults[/yellow]'}",
        "",
        "[bold cyan]Storage[/bold cyan]",
        f"  Directory: {config.storage.directory}",
        f"  Namespace: {config.storage.namespace}",
        f"  Subscribers key: {config.storage.subscribers_key}",
        f"  Quota: {config.storage.quota_bytes or 'unlimited'}",
        "",
        "[bold cyan]Retention[/bold cyan]",
        f"  Max events: {config.retention.max_events}",
        f"  Max visitors: {config.retention.max_visitors or 'unbounded'}",
        f"  Max sessions: {config.retention.max_sessions or 'unbounded'}",
        "",
        "[bold cyan]Tracking[/bold cyan]",
        f"  Scroll milestones: {', '.join(str(m) for m in config.tracking.scroll_milestones)}",
        f"  Scroll debounce: {config.tracking.scroll_debounce_ms}ms",
    ]

    console.print(
        Panel(
            Text.from_markup("\n".join(lines)),
            title="[bold cyan]landingstats Configuration[/bold cyan]",
            border_style="cyan",
        )
    )


@config_app.command(name="init")
def config_init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write the default configuration file."""
    from landingstats.config import DEFAULT_CONFIG_PATH, generate_default_config

    if DEFAULT_CONFIG_PATH.exists() and not force:
        console.print(
            f"[yellow]Config already exists:[/yellow] {DEFAULT_CONFIG_PATH}\n"
            "Use --force to overwrite."
        )
        raise typer.Exit(1)

    DEFAULT_CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    DEFAULT_CONFIG_PATH.write_text(generate_default_config(), encoding="utf-8")
    console.print(f"[green]Created:[/green] {DEFAULT_CONFIG_PATH}")


@config_app.command(name="path")
def config_path() -> None:
    """Print the configuration file path."""
    from landingstats.config import DEFAULT_CONFIG_PATH

    console.print(str(DEFAULT_CONFIG_PATH))


@app.command()
def version() -> None:
    """Show the landingstats version."""
    console.print(f"landingstats {__version__}")


if __name__ == "__main__":
    app()
