"""
Result rendering

Turns query rows, schema fields, response headers and catalog metadata trees
into styled fixed-width text for the results pane. Every function here is
pure: the same input always produces the same Text.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from rich.text import Text

from r2sql.core.types import QueryStats, TableMetadata, ViewMode

ACCENT_STYLE = "bold #F38020"
MUTED_STYLE = "#CCCCCC"
RULE_STYLE = "grey50"
NULL_STYLE = "grey50"
NUMBER_STYLE = "yellow"
TRUE_STYLE = "green"
FALSE_STYLE = "red"
TIMESTAMP_STYLE = "cyan"
STRING_STYLE = "white"
OBJECT_STYLE = "magenta"
ERROR_STYLE = "bold red"
WARNING_STYLE = "yellow"
CURRENT_STYLE = "reverse"

NULL_MARKER = "NULL"
RULE_WIDTH = 80
MAX_LIST_VALUE = 100
MIN_COLUMN_WIDTH = 6

TIMESTAMP_PATTERNS = [
    re.compile(r"^\d{4}-\d{2}-\d{2}"),
    re.compile(r"^\d{2}/\d{2}/\d{4}"),
    re.compile(r"T\d{2}:\d{2}:\d{2}"),
    re.compile(r"^\d{10,13}$"),
]

_JSON_STRING = r'"(?:[^"\\]|\\.)*"'


@dataclass
class RenderedView:
    """Rendered pane content plus the first line of each record, for scrolling to matches."""

    text: Text
    anchors: List[int] = field(default_factory=list)


class _Lines:
    """Accumulates lines and record anchors."""

    def __init__(self) -> None:
        self.lines: List[Text] = []
        self.anchors: List[int] = []

    def add(self, line: Any = "", style: str = "") -> None:
        self.lines.append(line if isinstance(line, Text) else Text(str(line), style=style))

    def anchor(self) -> None:
        self.anchors.append(len(self.lines))

    def rule(self, width: int = RULE_WIDTH) -> None:
        self.add("─" * width, RULE_STYLE)

    def build(self) -> RenderedView:
        return RenderedView(Text("\n").join(self.lines), self.anchors)


def looks_like_timestamp(value: str) -> bool:
    """Check if a string resembles a date, datetime or epoch timestamp."""
    return any(pattern.search(value) for pattern in TIMESTAMP_PATTERNS)


def stringify(value: Any) -> str:
    """Plain text form of a cell value."""
    if value is None:
        return NULL_MARKER
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def value_style(value: Any) -> str:
    """Style for a value, chosen by its type."""
    if value is None:
        return NULL_STYLE
    if isinstance(value, bool):
        return TRUE_STYLE if value else FALSE_STYLE
    if isinstance(value, (int, float)):
        return NUMBER_STYLE
    if isinstance(value, (dict, list)):
        return OBJECT_STYLE
    if isinstance(value, str) and looks_like_timestamp(value):
        return TIMESTAMP_STYLE
    return STRING_STYLE


def styled_value(value: Any, max_length: Optional[int] = None) -> Text:
    """Styled text for a value, optionally truncated with an ellipsis."""
    plain = stringify(value)
    if max_length is not None and len(plain) > max_length:
        plain = plain[: max_length - 3] + "..."
    return Text(plain, style=value_style(value))


def format_bytes(count: Optional[int]) -> str:
    if count is None:
        return "n/a"
    if count >= 1024 * 1024:
        return f"{count / 1024 / 1024:.2f} MB"
    return f"{count / 1024:.2f} KB"


def _or_na(value: Any) -> str:
    return "n/a" if value is None else str(value)


def _stats_line(stats: QueryStats, shown_rows: int) -> Text:
    line = Text()
    row_count = stats.row_count if stats.row_count is not None else shown_rows
    line.append("Rows: ", style=MUTED_STYLE)
    line.append(str(row_count), style=NUMBER_STYLE)
    line.append("  R2 Requests: ", style=MUTED_STYLE)
    line.append(_or_na(stats.r2_requests_count), style=NUMBER_STYLE)
    line.append("  Files: ", style=MUTED_STYLE)
    line.append(_or_na(stats.files_scanned), style=NUMBER_STYLE)
    line.append("  Scanned: ", style=MUTED_STYLE)
    line.append(format_bytes(stats.bytes_scanned), style=NUMBER_STYLE)
    if stats.execution_time is not None:
        line.append("  Time: ", style=MUTED_STYLE)
        line.append(f"{stats.execution_time:.2f} ms", style=NUMBER_STYLE)
    return line


def _stats_details(out: _Lines, stats: QueryStats) -> None:
    out.add("")
    out.add("Query Metadata:", ACCENT_STYLE)
    out.add(f"  Rows Returned:  {_or_na(stats.row_count)}")
    out.add(f"  R2 Requests:    {_or_na(stats.r2_requests_count)}")
    out.add(f"  Files Scanned:  {_or_na(stats.files_scanned)}")
    out.add(f"  Bytes Scanned:  {format_bytes(stats.bytes_scanned)}")
    if stats.execution_time is not None:
        out.add(f"  Execution Time: {stats.execution_time:.2f} ms")


def _columns(records: Sequence[Dict[str, Any]]) -> List[str]:
    """Union of record keys, in first-seen order."""
    seen: Dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(str(key), None)
    return list(seen)


def _as_record(item: Any) -> Dict[str, Any]:
    return item if isinstance(item, dict) else {"value": item}


def _table_block(
    out: _Lines,
    records: Sequence[Dict[str, Any]],
    width: int,
    current: Optional[int] = None,
) -> None:
    """Fixed-width table: header, rule, one line per record."""
    columns = _columns(records)
    if not columns:
        out.add("No columns to display", WARNING_STYLE)
        return

    col_width = max(MIN_COLUMN_WIDTH, width // len(columns))
    header = Text()
    for col in columns:
        header.append(col.ljust(col_width)[:col_width], style=ACCENT_STYLE)
    out.add(header)
    out.rule(col_width * len(columns))

    for index, record in enumerate(records):
        out.anchor()
        line = Text()
        for col in columns:
            value = record.get(col)
            plain = stringify(value)
            if len(plain) > col_width - 1:
                plain = plain[: col_width - 4] + "..."
            line.append(plain.ljust(col_width), style=value_style(value))
        if index == current:
            line.stylize(CURRENT_STYLE)
        out.add(line)


def _field_line(key: str, pad: int, value: Any) -> Text:
    line = Text("  ")
    line.append(key.ljust(pad), style=ACCENT_STYLE)
    line.append(": ")
    line.append_text(styled_value(value, MAX_LIST_VALUE))
    return line


def render_rows(
    rows: Sequence[Dict[str, Any]],
    view_mode: ViewMode,
    width: int,
    stats: Optional[QueryStats] = None,
    total: Optional[int] = None,
    row_numbers: Optional[Sequence[int]] = None,
    current: Optional[int] = None,
) -> RenderedView:
    """
    Render query rows

    Args:
        rows: Records to display (already filtered, when a search is active)
        view_mode: Table or list layout
        width: Available pane width in cells
        stats: Execution statistics, shown as a header when present
        total: Size of the unfiltered result; set only when ``rows`` is a filtered subset
        row_numbers: Original indices of ``rows`` for numbering list blocks
        current: Position in ``rows`` of the current search match

    Returns:
        RenderedView with one anchor per record
    """
    out = _Lines()
    filtered = total is not None

    if not rows and not filtered:
        out.add("No rows returned", WARNING_STYLE)
        if stats is not None:
            _stats_details(out, stats)
        return out.build()

    if stats is not None:
        out.add("Query Statistics:", ACCENT_STYLE)
        out.add(_stats_line(stats, len(rows) if total is None else total))
    if filtered:
        out.add(f"Showing {len(rows)} of {total} rows (filtered)", WARNING_STYLE)
    if stats is not None or filtered:
        out.rule()
        out.add("")

    if not rows:
        out.add("No matching rows", WARNING_STYLE)
        return out.build()

    if view_mode is ViewMode.TABLE:
        _table_block(out, rows, width, current)
        return out.build()

    for index, row in enumerate(rows):
        number = row_numbers[index] if row_numbers is not None else index
        out.anchor()
        style = f"{ACCENT_STYLE} {CURRENT_STYLE}" if index == current else ACCENT_STYLE
        out.add(f"Row {number + 1}:", style)
        keys = [str(key) for key in row]
        pad = max((len(key) for key in keys), default=0)
        for key, value in zip(keys, row.values()):
            out.add(_field_line(key, pad, value))
        out.add("")
    return out.build()


def render_schema(
    schema: Any,
    view_mode: ViewMode,
    width: int,
    total: Optional[int] = None,
    current: Optional[int] = None,
) -> RenderedView:
    """Render the field descriptors returned alongside a query result."""
    out = _Lines()
    if schema is None:
        out.add("No schema information available", WARNING_STYLE)
        return out.build()
    if not isinstance(schema, list):
        out.add("Query Schema:", ACCENT_STYLE)
        out.rule()
        out.add(highlight_json(schema))
        return out.build()

    if total is not None and not schema:
        out.add("No matching schema fields", WARNING_STYLE)
        return out.build()

    title = Text("Query Schema:", style=ACCENT_STYLE)
    if total is not None:
        title.append(f"  (filtered: {len(schema)}/{total} fields)", style=WARNING_STYLE)
    out.add(title)
    out.rule()
    out.add("")

    records = [_as_record(item) for item in schema]
    if view_mode is ViewMode.TABLE:
        _table_block(out, records, width, current)
        return out.build()

    for index, record in enumerate(records):
        out.anchor()
        style = f"{ACCENT_STYLE} {CURRENT_STYLE}" if index == current else ACCENT_STYLE
        out.add(f"Column {index + 1}:", style)
        for key, value in record.items():
            line = Text(f"  {key}: ")
            line.append_text(styled_value(value, MAX_LIST_VALUE))
            out.add(line)
        out.add("")
    return out.build()


def render_headers(
    headers: Optional[Dict[str, Any]],
    view_mode: ViewMode,
    width: int,
    total: Optional[int] = None,
    current: Optional[int] = None,
) -> RenderedView:
    """Render the HTTP response headers of the last query."""
    out = _Lines()
    if total is None and not headers:
        out.add("No headers available", WARNING_STYLE)
        return out.build()
    if total is not None and not headers:
        out.add("No matching headers", WARNING_STYLE)
        return out.build()

    title = Text("Response Headers:", style=ACCENT_STYLE)
    if total is not None:
        title.append(f"  (filtered: {len(headers)}/{total} headers)", style=WARNING_STYLE)
    out.add(title)
    out.rule()
    out.add("")

    if view_mode is ViewMode.TABLE:
        records = [{"Header": key, "Value": value} for key, value in headers.items()]
        _table_block(out, records, width, current)
        return out.build()

    pad = max(len(str(key)) for key in headers)
    for index, (key, value) in enumerate(headers.items()):
        out.anchor()
        line = Text(str(key).ljust(pad), style=ACCENT_STYLE)
        line.append(": ")
        line.append_text(styled_value(value))
        if index == current:
            line.stylize(CURRENT_STYLE)
        out.add(line)
    return out.build()


def highlight_json(value: Any) -> Text:
    """Pretty-printed JSON with keys, strings, numbers, booleans and nulls styled."""
    text = Text(json.dumps(value, indent=2, default=str))
    text.highlight_regex(r"-?\b\d+(?:\.\d+)?(?:[eE][+-]?\d+)?\b", NUMBER_STYLE)
    text.highlight_regex(r"\b(?:true|false)\b", "cyan")
    text.highlight_regex(r"\bnull\b", NULL_STYLE)
    text.highlight_regex(_JSON_STRING, "green")
    text.highlight_regex(_JSON_STRING + r"(?=\s*:)", OBJECT_STYLE)
    return text


def render_metadata(tree: Any, filtered: bool = False) -> RenderedView:
    """Render a catalog metadata tree, or its filtered remainder."""
    out = _Lines()
    if tree is None and filtered:
        out.add("No matching metadata fields", WARNING_STYLE)
        return out.build()
    if tree is None:
        out.add("No table metadata available", WARNING_STYLE)
        out.add("")
        out.add("Select a table from the sidebar to load its metadata.", MUTED_STYLE)
        return out.build()

    title = Text("Iceberg Table Metadata:", style=ACCENT_STYLE)
    if filtered:
        title.append("  (filtered)", style=WARNING_STYLE)
    out.add(title)
    out.rule()
    out.anchor()
    out.add(highlight_json(tree))
    return out.build()


def render_table_schema(metadata: TableMetadata) -> RenderedView:
    """Column listing shown when a table is selected in the sidebar."""
    out = _Lines()
    out.add(f"Table: {metadata.qualified_name}", ACCENT_STYLE)
    out.add("")
    header = Text()
    header.append("Column Name".ljust(30), style=ACCENT_STYLE)
    header.append("Type".ljust(35), style=ACCENT_STYLE)
    header.append("Nullable", style=ACCENT_STYLE)
    out.add(header)
    out.rule()

    if not metadata.fields:
        out.add("No schema fields reported", WARNING_STYLE)
        return out.build()

    for schema_field in metadata.fields:
        out.anchor()
        line = Text()
        line.append(str(schema_field.get("name", "")).ljust(30), style=STRING_STYLE)
        field_type = schema_field.get("type", "")
        type_text = field_type if isinstance(field_type, str) else json.dumps(field_type)
        line.append(type_text.ljust(35), style=TIMESTAMP_STYLE)
        if schema_field.get("required"):
            line.append("NOT NULL", style=FALSE_STYLE)
        else:
            line.append("NULL", style=TRUE_STYLE)
        out.add(line)
    return out.build()


def render_message(message: str, style: str = WARNING_STYLE) -> RenderedView:
    out = _Lines()
    out.add(message, style)
    return out.build()


def render_error(message: str) -> RenderedView:
    out = _Lines()
    out.add(message if message.startswith("Error") else f"Error: {message}", ERROR_STYLE)
    return out.build()
