"""SQL text helpers: cosmetic formatting and lightweight highlighting."""

from __future__ import annotations

import sqlparse
from rich.text import Text

HIGHLIGHT_KEYWORDS = [
    "SELECT", "FROM", "WHERE", "ORDER", "BY", "LIMIT", "AND", "OR", "NOT",
    "LIKE", "IS", "NULL", "ASC", "DESC", "GROUP", "HAVING", "AS", "IN",
    "BETWEEN", "COUNT", "SUM", "AVG", "MIN", "MAX", "DISTINCT",
]

_KEYWORD_RE = r"(?i)\b(?:" + "|".join(HIGHLIGHT_KEYWORDS) + r")\b"


def format_sql(text: str) -> str:
    """Reindent a query and uppercase its keywords."""
    if not text.strip():
        return text
    return sqlparse.format(text, reindent=True, keyword_case="upper").strip()


def highlight_sql(text: str) -> Text:
    """Style keywords, string literals and numbers in a query."""
    result = Text(text)
    result.highlight_regex(r"\b\d+(?:\.\d+)?\b", "yellow")
    result.highlight_regex(_KEYWORD_RE, "bold #F38020")
    result.highlight_regex(r"'(?:[^'\\]|\\.)*'", "green")
    return result
