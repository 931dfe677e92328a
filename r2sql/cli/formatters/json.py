"""
JSON formatter for machine-readable output
"""

import json
import math
from typing import Any

from r2sql.cli.formatters.base import BaseFormatter
from r2sql.core.types import QueryResult


def _clean(value: Any) -> Any:
    # NaN and infinity are not valid JSON
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    if isinstance(value, dict):
        return {k: _clean(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_clean(v) for v in value]
    return value


class JSONFormatter(BaseFormatter):
    """Format results as JSON"""

    def format(self, result: QueryResult, **kwargs) -> str:
        """
        Format rows as a JSON array

        Args:
            result: Query result to format
            **kwargs: Options like 'compact', 'indent', 'include_stats'

        Returns:
            JSON string; with include_stats, an object holding rows and stats
        """
        payload: Any = _clean(result.rows)
        if kwargs.get("include_stats") and result.stats is not None:
            payload = {"rows": payload, "stats": result.stats.to_dict()}

        if kwargs.get("compact", False):
            return json.dumps(payload, separators=(",", ":"), default=str)
        return json.dumps(payload, indent=kwargs.get("indent", 2), default=str)
