"""
CSV formatter for Unix-friendly output
"""

import csv
import io

from r2sql.cli.formatters.base import BaseFormatter
from r2sql.core.types import QueryResult


class CSVFormatter(BaseFormatter):
    """Format results as CSV"""

    def format(self, result: QueryResult, **kwargs) -> str:
        """
        Format rows as CSV

        Nulls become empty fields and nested values are written as JSON.

        Args:
            result: Query result to format
            **kwargs: Options like 'delimiter', 'quote_all'

        Returns:
            CSV string
        """
        if not result.rows:
            return ""

        columns = self.columns(result.rows)
        output = io.StringIO()
        writer = csv.writer(
            output,
            delimiter=kwargs.get("delimiter", ","),
            quoting=csv.QUOTE_ALL if kwargs.get("quote_all") else csv.QUOTE_MINIMAL,
        )
        writer.writerow(columns)
        for row in result.rows:
            writer.writerow(["" if row.get(col) is None else self.cell(row.get(col)) for col in columns])

        return output.getvalue()
