"""Rich output for the pak CLI."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.table import Table

from pak.types import CommandResult


class TUI:
    """Text output for pak commands."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def show_workspaces(self, root: Path, workspaces: list[Path]) -> None:
        """Display workspace directories.

        Args:
            root: Directory whose manifest declares the workspaces.
            workspaces: Workspace directories.
        """
        if not workspaces:
            self.console.print("[yellow]No workspaces declared[/yellow]")
            return

        table = Table(title=f"Workspaces of {root}")
        table.add_column("Path", style="cyan")
        for workspace in workspaces:
            try:
                table.add_row(str(workspace.relative_to(root)))
            except ValueError:
                table.add_row(str(workspace))

        self.console.print(table)

    def show_result(self, action: str, result: CommandResult) -> None:
        """Report the outcome of a package manager command.

        Args:
            action: What was attempted, e.g. "install".
            result: Result of the command.
        """
        if result.success:
            self.show_success(f"{action} succeeded")
        else:
            detail = result.stderr or f"exit code {result.exit_code}"
            self.show_error(f"{action} failed: {detail}")

    def show_success(self, message: str) -> None:
        """Show success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def show_error(self, message: str) -> None:
        """Show error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def show_info(self, message: str) -> None:
        """Show info message."""
        self.console.print(f"[blue]i[/blue] {message}")
