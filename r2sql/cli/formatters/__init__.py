"""
Output formatters for query results

Available formatters:
- TableFormatter: Rich table for the terminal
- JSONFormatter: Machine-readable JSON, nested values preserved
- CSVFormatter: Unix-friendly CSV
- MarkdownFormatter: GitHub Flavored Markdown table (also used for clipboard copies)
"""

from r2sql.cli.formatters.base import BaseFormatter
from r2sql.cli.formatters.csv import CSVFormatter
from r2sql.cli.formatters.json import JSONFormatter
from r2sql.cli.formatters.markdown import MarkdownFormatter
from r2sql.cli.formatters.table import TableFormatter

__all__ = ["BaseFormatter", "TableFormatter", "JSONFormatter", "CSVFormatter", "MarkdownFormatter", "get_formatter"]

FORMATTERS = {
    "table": TableFormatter,
    "json": JSONFormatter,
    "csv": CSVFormatter,
    "markdown": MarkdownFormatter,
}


def get_formatter(format_name: str) -> BaseFormatter:
    """
    Get formatter by name

    Args:
        format_name: One of table, json, csv, markdown

    Returns:
        Formatter instance

    Raises:
        ValueError: If formatter not found
    """
    if format_name not in FORMATTERS:
        available = ", ".join(FORMATTERS)
        raise ValueError(f"Unknown format: {format_name}. Available formats: {available}")

    return FORMATTERS[format_name]()
