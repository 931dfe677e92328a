"""
Markdown formatter for documentation and sharing
"""

from r2sql.cli.formatters.base import BaseFormatter
from r2sql.core.types import QueryResult


class MarkdownFormatter(BaseFormatter):
    """Format results as a Markdown table"""

    def format(self, result: QueryResult, **kwargs) -> str:
        """
        Format rows as a Markdown table

        Args:
            result: Query result to format
            **kwargs: Options like 'show_footer'

        Returns:
            Markdown table string
        """
        if not result.rows:
            return "_No rows returned._"

        columns = self.columns(result.rows)
        lines = [
            "| " + " | ".join(self._escape(col) for col in columns) + " |",
            "| " + " | ".join("---" for _ in columns) + " |",
        ]
        for row in result.rows:
            lines.append("| " + " | ".join(self._escape(self.cell(row.get(col))) for col in columns) + " |")

        output = "\n".join(lines)
        if kwargs.get("show_footer", False):
            count = len(result.rows)
            output += f"\n\n_{count} row{'s' if count != 1 else ''}_"
        return output

    @staticmethod
    def _escape(text: str) -> str:
        return text.replace("|", "\\|").replace("\n", " ")
