"""
Search and filtering over the results pane

A search term filters whatever the results pane is showing: query rows,
schema fields, response headers or the catalog metadata tree. In data mode a
term of the form ``column:value`` restricts the match to one column.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple


@dataclass
class SearchState:
    """Active search term and the positions it matched."""

    active: bool = False
    term: str = ""
    matches: List[int] = field(default_factory=list)
    current_match: int = -1

    def reset(self) -> None:
        self.active = False
        self.term = ""
        self.matches = []
        self.current_match = -1

    def set_matches(self, term: str, matches: List[int]) -> None:
        self.active = True
        self.term = term
        self.matches = matches
        self.current_match = 0 if matches else -1

    @property
    def filtering(self) -> bool:
        """True when a non-blank term is applied."""
        return self.active and bool(self.term.strip())

    def next(self) -> Optional[int]:
        """Advance to the next match, wrapping around. None when there are no matches."""
        if not self.matches:
            return None
        self.current_match = (self.current_match + 1) % len(self.matches)
        return self.current_match

    def previous(self) -> Optional[int]:
        """Step back to the previous match, wrapping around."""
        if not self.matches:
            return None
        self.current_match = (self.current_match - 1) % len(self.matches)
        return self.current_match


def parse_column_filter(term: str) -> Optional[Tuple[str, str]]:
    """
    Split a ``column:value`` term

    Args:
        term: Raw search term

    Returns:
        Lowercased ``(column, value)``, or None when the term holds no colon or more than one
    """
    parts = term.split(":")
    if len(parts) != 2:
        return None
    return parts[0].strip().lower(), parts[1].strip().lower()


def searchable_text(value: Any) -> Optional[str]:
    """Lowercase text a value is matched against; None for nulls."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str).lower()
    return str(value).lower()


def _contains(value: Any, needle: str) -> bool:
    text = searchable_text(value)
    return text is not None and needle in text


def filter_rows(rows: Sequence[Dict[str, Any]], term: str) -> List[int]:
    """Indices of rows matching the term, in original order."""
    needle = term.strip().lower()
    if not needle:
        return list(range(len(rows)))

    column_filter = parse_column_filter(term)
    matches = []
    for index, row in enumerate(rows):
        if column_filter is not None:
            column, wanted = column_filter
            hit = any(
                str(key).lower() == column and _contains(value, wanted) for key, value in row.items()
            )
        else:
            hit = any(needle in str(key).lower() for key in row) or any(
                _contains(value, needle) for value in row.values()
            )
        if hit:
            matches.append(index)
    return matches


def filter_schema(schema: Sequence[Any], term: str) -> List[int]:
    """Indices of schema fields whose keys or values contain the term."""
    needle = term.strip().lower()
    matches = []
    for index, item in enumerate(schema):
        if isinstance(item, dict):
            hit = any(needle in str(key).lower() for key in item) or any(
                _contains(value, needle) for value in item.values()
            )
        else:
            hit = _contains(item, needle)
        if hit:
            matches.append(index)
    return matches


def filter_headers(headers: Dict[str, Any], term: str) -> List[int]:
    """Positions of headers whose name or value contains the term."""
    needle = term.strip().lower()
    return [
        index
        for index, (key, value) in enumerate(headers.items())
        if needle in str(key).lower() or _contains(value, needle)
    ]


def filter_tree(node: Any, term: str) -> Any:
    """
    Structurally filter a JSON-like tree

    Scalars survive when their text contains the term. Lists keep surviving
    children. Objects keep a key whole when the key itself matches, otherwise
    only with its filtered value.

    Args:
        node: Tree to filter
        term: Search term (matched case-insensitively)

    Returns:
        The pruned tree, or None when nothing matches
    """
    needle = term.strip().lower()
    return _prune(node, needle)


def _prune(node: Any, needle: str) -> Any:
    if isinstance(node, dict):
        kept = {}
        for key, value in node.items():
            if needle in str(key).lower():
                kept[key] = value
                continue
            pruned = _prune(value, needle)
            if pruned is not None:
                kept[key] = pruned
        return kept or None
    if isinstance(node, list):
        kept_items = [pruned for pruned in (_prune(item, needle) for item in node) if pruned is not None]
        return kept_items or None
    return node if _contains(node, needle) else None
