"""
Base formatter interface

Formatters turn a QueryResult into a string for stdout, a file or the clipboard.
"""

import json
from typing import Any, Dict, List

from r2sql.core.types import QueryResult


class BaseFormatter:
    """Base class for all output formatters"""

    def format(self, result: QueryResult, **kwargs) -> str:
        """
        Format a query result

        Args:
            result: Query result to format
            **kwargs: Formatter-specific options

        Returns:
            Formatted string ready for output
        """
        raise NotImplementedError("Formatters must implement format() method")

    def get_name(self) -> str:
        """Get formatter name"""
        return self.__class__.__name__.replace("Formatter", "").lower()

    @staticmethod
    def columns(rows: List[Dict[str, Any]]) -> List[str]:
        """Union of row keys in first-seen order."""
        seen: Dict[str, None] = {}
        for row in rows:
            for key in row:
                seen.setdefault(key, None)
        return list(seen)

    @staticmethod
    def cell(value: Any) -> str:
        """Flatten a value to text; nested objects become compact JSON."""
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value, default=str)
        return str(value)
