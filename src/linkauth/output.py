"""Output formatting for the linkauth CLI.

Every command answers either as rich console output or, with ``--json``, as
one JSON envelope::

    {"success": true, "timestamp": ..., "data": ..., "message": ...}
    {"success": false, "timestamp": ..., "error": {"code", "message", "suggestion"}}
"""

import json
import sys
from datetime import datetime, timezone
from typing import Any, NoReturn

from rich.console import Console
from rich.table import Table
from rich.text import Text


def _cell(value: Any) -> str:
    """Render a table cell; booleans become check marks."""
    if value is True:
        return "[green]✓[/green]"
    if value is False:
        return "[dim]-[/dim]"
    if value is None:
        return ""
    return str(value)


class OutputFormatter:
    """Writes command results for humans or, in JSON mode, for scripts."""

    def __init__(self, json_mode: bool = False) -> None:
        self.json_mode = json_mode
        self.console = Console()

    def success(self, data: Any, message: str = "Done") -> None:
        if self.json_mode:
            self._emit({"success": True, "data": data, "message": message})
            return

        self.console.print(f"[green]{message}[/green]")
        if isinstance(data, dict):
            for key, value in data.items():
                self.console.print(f"  [cyan]{key}:[/cyan] {value}")

    def error(
        self,
        code: str,
        message: str,
        suggestion: str | None = None,
        exit_code: int = 1,
    ) -> NoReturn:
        """Report a failure and exit with ``exit_code``."""
        if self.json_mode:
            self._emit(
                {
                    "success": False,
                    "error": {"code": code, "message": message, "suggestion": suggestion},
                }
            )
        else:
            line = Text()
            line.append("Error ", style="bold red")
            line.append(f"{code}: ", style="red")
            line.append(message)
            self.console.print(line)
            if suggestion:
                self.console.print(f"[yellow]Try:[/yellow] {suggestion}")
        sys.exit(exit_code)

    def table(
        self,
        rows: list[dict[str, Any]],
        columns: list[tuple[str, str]],
        title: str | None = None,
        message: str = "Data retrieved",
    ) -> None:
        """Print ``rows`` as a table; ``columns`` maps row keys to headers."""
        if self.json_mode:
            self._emit({"success": True, "data": rows, "message": message})
            return

        if not rows:
            self.console.print(f"[dim]{message}[/dim]")
            return

        table = Table(*(header for _, header in columns), title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*(_cell(row.get(key)) for key, _ in columns))
        self.console.print(table)

    @staticmethod
    def _emit(payload: dict[str, Any]) -> None:
        envelope = {"timestamp": datetime.now(timezone.utc).isoformat(), **payload}
        print(json.dumps(envelope, indent=2, default=str))
