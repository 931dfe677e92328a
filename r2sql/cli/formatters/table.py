"""
Rich table formatter for terminal output
"""

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from r2sql.cli.formatters.base import BaseFormatter
from r2sql.core.render import format_bytes, value_style
from r2sql.core.types import QueryResult


class TableFormatter(BaseFormatter):
    """Format results as a Rich table"""

    def format(self, result: QueryResult, **kwargs) -> str:
        """
        Format rows as a Rich table

        Args:
            result: Query result to format
            **kwargs: Options like 'no_color', 'show_footer', 'max_width'

        Returns:
            Rendered table string
        """
        if not result.rows:
            return "No rows returned."

        console = Console(force_terminal=not kwargs.get("no_color", False), no_color=kwargs.get("no_color", False))
        columns = self.columns(result.rows)
        narrow = console.width < 80 or len(columns) > 8
        max_width = kwargs.get("max_width", 15 if narrow else 30)

        table = Table(
            show_header=True,
            header_style="bold #F38020",
            box=box.SIMPLE if narrow else box.HEAVY_HEAD,
        )
        for col in columns:
            table.add_column(col, overflow="ellipsis", max_width=max_width, no_wrap=narrow)

        for row in result.rows:
            table.add_row(*[Text(self.cell(row.get(col)), style=value_style(row.get(col))) for col in columns])

        if kwargs.get("show_footer", True):
            count = len(result.rows)
            caption = f"{count} row{'s' if count != 1 else ''}"
            if result.stats is not None:
                stats = result.stats
                if stats.bytes_scanned is not None:
                    caption += f" | scanned {format_bytes(stats.bytes_scanned)}"
                if stats.execution_time is not None:
                    caption += f" | {stats.execution_time:.2f} ms"
            table.caption = caption

        with console.capture() as capture:
            console.print(table)
        return capture.get()

