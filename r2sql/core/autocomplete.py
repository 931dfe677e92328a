"""
Query autocompletion

Suggestions are driven by the last SQL keyword typed and the word being
typed at the end of the editor text. This is a left-to-right heuristic, not a
parser: the cursor is assumed to sit at the end of the text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence

KEYWORDS = [
    "SELECT",
    "FROM",
    "WHERE",
    "ORDER BY",
    "LIMIT",
    "AND",
    "OR",
    "NOT",
    "LIKE",
    "IS NULL",
    "IS NOT NULL",
    "ASC",
    "DESC",
]

# Clause keywords that set the completion context, in priority order
CONTEXT_KEYWORDS = ["SELECT", "FROM", "WHERE", "ORDER BY", "LIMIT"]

WHERE_OPERATORS = ["AND", "OR", "NOT", "LIKE", "IS NULL", "IS NOT NULL"]
ORDER_DIRECTIONS = ["ASC", "DESC"]
WILDCARD = "*"

MAX_SUGGESTIONS = 15

_KEYWORD_PATTERNS = {
    keyword: re.compile(r"\b" + keyword.replace(" ", r"\s+") + r"\b", re.IGNORECASE)
    for keyword in CONTEXT_KEYWORDS
}
_CURRENT_WORD = re.compile(r"(\S*)$")
_EMPTY_SELECT = re.compile(r"\bSELECT\s+FROM\b", re.IGNORECASE)


@dataclass
class AutocompleteState:
    """Suggestion popup contents and cursor."""

    suggestions: List[str] = field(default_factory=list)
    cursor: int = 0
    visible: bool = False

    def show(self, suggestions: List[str]) -> None:
        self.suggestions = suggestions
        self.cursor = 0
        self.visible = bool(suggestions)

    def hide(self) -> None:
        self.suggestions = []
        self.cursor = 0
        self.visible = False

    def move(self, delta: int) -> None:
        if self.suggestions:
            self.cursor = (self.cursor + delta) % len(self.suggestions)

    @property
    def selected(self) -> Optional[str]:
        if not self.visible or not self.suggestions:
            return None
        return self.suggestions[self.cursor]


def current_word(text: str) -> str:
    """The whitespace-delimited word at the end of the text; empty after trailing whitespace."""
    return _CURRENT_WORD.search(text).group(1)


def last_keyword(text: str) -> Optional[str]:
    """The clause keyword whose last occurrence sits furthest right in the text."""
    best = None
    best_pos = -1
    for keyword, pattern in _KEYWORD_PATTERNS.items():
        for match in pattern.finditer(text):
            if match.start() > best_pos:
                best, best_pos = keyword, match.start()
    return best


def _has_keyword(text: str, keyword: str) -> bool:
    return _KEYWORD_PATTERNS[keyword].search(text) is not None


def _qualified_tables(index: Mapping[str, Sequence[str]]) -> List[str]:
    return [f"{namespace}.{table}" for namespace, tables in index.items() for table in tables]


def _dotted_suggestions(word: str, index: Mapping[str, Sequence[str]]) -> List[str]:
    lowered = word.lower()
    namespace = None
    for candidate in index:
        prefix = candidate.lower() + "."
        if lowered.startswith(prefix) and (namespace is None or len(candidate) > len(namespace)):
            namespace = candidate
    if namespace is None:
        # Still typing a multi-level namespace name
        return [ns for ns in index if ns.lower().startswith(lowered)]

    table_part = lowered[len(namespace) + 1:]
    return [f"{namespace}.{table}" for table in index[namespace] if table.lower().startswith(table_part)]


def suggest(text: str, index: Mapping[str, Sequence[str]]) -> List[str]:
    """
    Compute completion candidates for the end of the query text

    Args:
        text: Full query editor text
        index: Known namespaces mapped to their table names

    Returns:
        Deduplicated suggestions in discovery order, at most MAX_SUGGESTIONS
    """
    word = current_word(text)
    lowered = word.lower()
    keyword = last_keyword(text)
    has_select = _has_keyword(text, "SELECT")
    has_from = _has_keyword(text, "FROM")

    candidates: List[str] = []
    if "." in word:
        candidates = _dotted_suggestions(word, index)
    elif keyword == "WHERE":
        candidates = [op for op in WHERE_OPERATORS if op.startswith(word.upper())]
    elif keyword == "ORDER BY":
        candidates = [d for d in ORDER_DIRECTIONS if d.startswith(word.upper())]
    elif keyword == "SELECT" and not has_from:
        if not word or WILDCARD.startswith(word):
            candidates.append(WILDCARD)
        if "FROM".startswith(word.upper()):
            candidates.append("FROM")
    elif keyword == "FROM" or (has_select and has_from):
        for namespace, tables in index.items():
            for table in tables:
                qualified = f"{namespace}.{table}"
                if qualified.lower().startswith(lowered):
                    candidates.append(qualified)
            if namespace.lower().startswith(lowered):
                candidates.append(namespace)
    else:
        candidates = [kw for kw in KEYWORDS if kw.startswith(word.upper())]
        if word:
            candidates += [ns for ns in index if ns.lower().startswith(lowered)]
            candidates += [q for q in _qualified_tables(index) if q.lower().startswith(lowered)]

    return list(dict.fromkeys(candidates))[:MAX_SUGGESTIONS]


def accept(text: str, suggestion: str) -> str:
    """
    Replace the word being typed with a chosen suggestion

    Choosing a ``namespace.table`` reference also fills in ``SELECT *`` when the
    query has no column list yet.

    Args:
        text: Current editor text
        suggestion: Accepted suggestion

    Returns:
        New editor text, ending with a space
    """
    word = current_word(text)
    result = text[: len(text) - len(word)] + suggestion

    if "." in suggestion:
        if not _has_keyword(result, "SELECT"):
            result = f"SELECT * FROM {suggestion}"
        elif _has_keyword(result, "FROM"):
            result = _EMPTY_SELECT.sub("SELECT * FROM", result, count=1)

    return result + " "


def insert_table_reference(text: str, reference: str) -> str:
    """
    Put a table reference into the editor text

    An empty editor, or one not holding a SELECT statement, is replaced with a
    full ``SELECT * FROM`` query; otherwise the reference is appended.
    """
    current = text.strip()
    if not current or not current.upper().startswith("SELECT"):
        return f"SELECT * FROM {reference}"
    return f"{current} {reference}"

