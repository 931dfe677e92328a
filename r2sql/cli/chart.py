"""
Terminal charts for query results

A result charts as a line when a time-like column sits beside a numeric one,
or as horizontal bars when it is a small label/value pair.
"""

from typing import Any, Dict, List, Optional, Tuple

import plotext as plt
from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

TIME_HINTS = ("time", "date")
MAX_BARS = 20
BAR_WIDTH = 50
LABEL_WIDTH = 15
LINE_HEIGHT = 10


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def detect_chart(rows: List[Dict[str, Any]]) -> Optional[Tuple[str, str, str]]:
    """
    Pick a chart for a result set

    Columns are read from the first row.

    Returns:
        ``("line", time_column, value_column)``, ``("bar", label_column, value_column)``
        or None when the rows do not chart well
    """
    if len(rows) < 2:
        return None

    first = rows[0]
    columns = list(first)
    time_column = next((col for col in columns if any(hint in col.lower() for hint in TIME_HINTS)), None)
    numeric = [col for col in columns if col != time_column and _is_number(first[col])]

    if time_column is not None and numeric:
        return "line", time_column, numeric[0]
    if len(columns) == 2 and len(numeric) == 1 and len(rows) <= MAX_BARS:
        label_column = next(col for col in columns if col != numeric[0])
        return "bar", label_column, numeric[0]
    return None


def line_chart(rows: List[Dict[str, Any]], time_column: str, value_column: str, width: int = 80) -> RenderableType:
    """Plot one numeric column in row order with plotext."""
    series = [row.get(value_column) for row in rows]
    series = [value for value in series if _is_number(value)]

    plt.clear_figure()
    plt.plotsize(max(20, width), LINE_HEIGHT)
    plt.theme("clear")
    plt.plot(series)
    canvas = plt.build()
    plt.clear_figure()

    return Group(
        Text(f"Chart: {value_column} over {time_column}", style="bold cyan"),
        Text.from_ansi(canvas),
    )


def bar_chart(rows: List[Dict[str, Any]], label_column: str, value_column: str) -> RenderableType:
    """Horizontal bars scaled to the largest value."""
    values = [row.get(value_column) if _is_number(row.get(value_column)) else 0 for row in rows]
    peak = max(values)

    grid = Table.grid(padding=(0, 1))
    grid.add_column(style="cyan", width=LABEL_WIDTH, no_wrap=True, overflow="crop")
    grid.add_column(style="green", no_wrap=True)
    grid.add_column()
    for row, value in zip(rows, values):
        length = round(value / peak * BAR_WIDTH) if peak > 0 and value > 0 else 0
        grid.add_row(str(row.get(label_column)), "█" * length, str(value))

    return Group(Text(f"Bar Chart: {value_column} by {label_column}", style="bold cyan"), grid)


def auto_chart(rows: List[Dict[str, Any]], width: int = 80) -> Optional[RenderableType]:
    """Chart the rows when their shape allows it."""
    detected = detect_chart(rows)
    if detected is None:
        return None
    kind, label_column, value_column = detected
    if kind == "line":
        return line_chart(rows, label_column, value_column, width)
    return bar_chart(rows, label_column, value_column)
