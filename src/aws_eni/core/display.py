"""Base display utilities"""

from typing import Optional
from rich.console import Console
from rich.panel import Panel
from rich.table import Table


class BaseDisplay:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_error(self, message: str):
        self.console.print(f"[red]{message}[/]")

    def record_panel(self, title: str, record: dict) -> Panel:
        """Render one result record as key/value lines"""
        lines = []
        for key, val in record.items():
            if key == "api_response":
                continue
            if isinstance(val, (list, tuple)):
                val = ", ".join(str(v) for v in val) or "-"
            lines.append(f"[bold]{key.replace('_', ' ').title()}:[/] {val if val is not None else '-'}")
        return Panel("\n".join(lines), title=title)

    def id_table(self, title: str, rows: list[dict], columns: list[tuple[str, str, str]]) -> Table:
        """Create a table with given columns: (name, style, key)"""
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("#", style="dim", justify="right")
        for name, style, _ in columns:
            table.add_column(name, style=style)
        for i, row in enumerate(rows, 1):
            table.add_row(str(i), *[str(row.get(key) or "-") for _, _, key in columns])
        return table
