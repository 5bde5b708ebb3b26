"""Console rendering helpers for the docuploader CLI."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .orchestrator.models import AgentResult, ImportResult, UnitResult
from .orchestrator.timing import format_elapsed

console = Console()


def render_configuration_summary(config: Dict[str, Any], out: Optional[Console] = None) -> None:
    """Render startup configuration summary."""
    out = out or console
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]docuploader[/bold green]",
        subtitle="[dim]document import[/dim]",
        border_style="blue",
    )
    out.print(panel)


class ImportProgressDisplay:
    """Prints agent and unit events of an import process."""

    def __init__(self, trace: bool = False, out: Optional[Console] = None):
        self._trace = trace
        self._out = out or console
        self._units_done = 0
        self._units_failed = 0

    def on_agent_start(self, folder: Path) -> None:
        self._out.print(f"[cyan]Agent started:[/cyan] {Path(folder).name}")

    def on_agent_complete(self, result: AgentResult) -> None:
        name = Path(result.folder).name
        if not result.connected:
            self._out.print(f"[red]Agent skipped:[/red] {name} ({result.error})")
            return
        self._out.print(
            f"[green]Agent done:[/green] {name} attempted={result.attempted} failed={result.failed}"
        )

    def on_unit_complete(self, result: UnitResult) -> None:
        self._units_done += 1
        if self._trace:
            for path in result.paths:
                self._out.print(f"  [dim]DONE[/dim] {path}")

    def on_unit_fail(self, result: UnitResult) -> None:
        self._units_done += 1
        self._units_failed += 1
        for path in result.paths:
            self._out.print(f"  [red]FAIL[/red] {path}: {result.error}")

    def on_error(self, error: Exception) -> None:
        self._out.print(f"[red]Error:[/red] {error}")

    def on_finish(self, result: ImportResult) -> None:
        table = Table(title="Import result", show_header=True, header_style="bold")
        table.add_column("Folder")
        table.add_column("Attempted", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Connected")
        for agent in result.agents:
            table.add_row(
                Path(agent.folder).name,
                str(agent.attempted),
                str(agent.failed),
                "yes" if agent.connected else "no",
            )
        self._out.print(table)

        status = "[green]OK[/green]" if result.success else "[red]FAILED[/red]"
        self._out.print(
            f"[bold]Finished[/bold] {status} imported={result.imported_count} "
            f"failed={result.failed_count} units={self._units_done} failed_units={self._units_failed} "
            f"time={format_elapsed(result.elapsed)}"
        )
        if result.error:
            self._out.print(f"[red]Error:[/red] {result.error}")
