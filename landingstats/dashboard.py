"""Rich console rendering of a statistics snapshot."""

from __future__ import annotations

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from landingstats.core.stats import StatsSnapshot

OPERATOR_COMMANDS = (
    ("landingstats stats", "basic statistics"),
    ("landingstats stats --json", "full snapshot as JSON"),
    ("landingstats dashboard", "this dashboard"),
    ("landingstats export", "export all collections"),
)


def _breakdown_table(title: str, label: str, breakdown: dict[str, int]) -> Table:
    table = Table(title=title, title_justify="left", show_edge=False, expand=False)
    table.add_column(label, style="cyan")
    table.add_column("Visitors", justify="right")
    if not breakdown:
        table.add_row("[dim]none[/dim]", "0")
    for key, count in sorted(breakdown.items(), key=lambda item: (-item[1], item[0])):
        table.add_row(escape(key), str(count))
    return table


def build_dashboard(snapshot: StatsSnapshot, title: str = "Landing Page Dashboard") -> Panel:
    """Compose the dashboard renderable for a snapshot."""
    metrics = Text.from_markup(
        f"[bold]Total visitors:[/bold] {snapshot.total_visitors}\n"
        f"[bold]Today's visitors:[/bold] {snapshot.today_visitors}\n"
        f"[bold]Subscribers:[/bold] {snapshot.total_subscribers}\n"
        f"[bold]Conversion rate:[/bold] {snapshot.conversion_rate}%\n"
        f"[bold]Avg session time:[/bold] {snapshot.avg_session_time_seconds}s\n"
        f"[bold]Stored events:[/bold] {snapshot.total_events}"
    )

    recent = Text()
    recent.append("Recent visitors\n", style="bold")
    if not snapshot.recent_visitors:
        recent.append("  no visitors yet\n", style="dim")
    for visitor in snapshot.recent_visitors:
        recent.append(f"  {visitor.time} - {visitor.device} ({visitor.referrer or 'direct'})\n")

    hints = Text()
    hints.append("Commands\n", style="bold")
    for command, description in OPERATOR_COMMANDS:
        hints.append(f"  {command}", style="green")
        hints.append(f" - {description}\n", style="dim")

    return Panel(
        Group(
            metrics,
            Text(""),
            _breakdown_table("Devices", "Device", snapshot.device_breakdown),
            Text(""),
            _breakdown_table("Browsers", "Browser", snapshot.browser_breakdown),
            Text(""),
            recent,
            hints,
        ),
        title=f"[bold cyan]{escape(title)}[/bold cyan]",
        border_style="cyan",
    )


def render_dashboard(
    snapshot: StatsSnapshot,
    console: Console | None = None,
    title: str = "Landing Page Dashboard",
) -> StatsSnapshot:
    """Print the dashboard and hand the snapshot back to the caller."""
    console = console or Console()
    console.print(build_dashboard(snapshot, title=title))
    return snapshot
