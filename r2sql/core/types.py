"""Shared value types for the shell: view state enums and result containers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Mode(Enum):
    """Input mode of the shell."""

    NAVIGATION = "navigation"
    INSERT = "insert"
    VISUAL = "visual"

    def __str__(self) -> str:
        return self.value


class ActiveTab(Enum):
    """Which pane occupies the slot above the results."""

    QUERY = "query"
    HISTORY = "history"
    FAVORITES = "favorites"


class Focus(Enum):
    """Logical input focus."""

    SIDEBAR = "sidebar"
    QUERY_EDITOR = "queryEditor"
    RESULTS_PANE = "resultsPane"
    HISTORY_LIST = "historyList"
    SEARCH_BOX = "searchBox"
    AUTOCOMPLETE_BOX = "autocompleteBox"
    HELP_OVERLAY = "helpOverlay"

    def is_overlay(self) -> bool:
        """Check if the focus target is a transient overlay."""
        return self in (Focus.AUTOCOMPLETE_BOX, Focus.HELP_OVERLAY, Focus.SEARCH_BOX)


class ViewMode(Enum):
    """Text layout of the results pane."""

    TABLE = "table"
    LIST = "list"

    def toggle(self) -> "ViewMode":
        return ViewMode.LIST if self is ViewMode.TABLE else ViewMode.TABLE


class DisplayMode(Enum):
    """What the results pane is showing."""

    DATA = "data"
    SCHEMA = "schema"
    HEADERS = "headers"
    METADATA = "metadata"

    def next(self) -> "DisplayMode":
        """Cycle data -> schema -> headers -> metadata -> data."""
        members = list(DisplayMode)
        return members[(members.index(self) + 1) % len(members)]


@dataclass
class QueryStats:
    """Execution statistics reported by the query service."""

    row_count: Optional[int] = None
    r2_requests_count: Optional[int] = None
    files_scanned: Optional[int] = None
    bytes_scanned: Optional[int] = None
    execution_time: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rowCount": self.row_count,
            "r2RequestsCount": self.r2_requests_count,
            "filesScanned": self.files_scanned,
            "bytesScanned": self.bytes_scanned,
            "executionTime": self.execution_time,
        }


@dataclass
class QueryResult:
    """Outcome of a single query execution.

    Either ``error`` is set, or ``rows`` holds the returned records. Schema,
    headers and stats are optional and depend on what the service sent back.
    """

    rows: List[Dict[str, Any]] = field(default_factory=list)
    schema: Optional[List[Dict[str, Any]]] = None
    headers: Optional[Dict[str, str]] = None
    stats: Optional[QueryStats] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, message: str) -> "QueryResult":
        return cls(error=message)


@dataclass
class TableMetadata:
    """Catalog view of one table: its current schema plus the raw metadata tree."""

    namespace: str
    name: str
    schema: Dict[str, Any] = field(default_factory=dict)
    full_metadata: Any = None

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}"

    @property
    def fields(self) -> List[Dict[str, Any]]:
        fields = self.schema.get("fields") if isinstance(self.schema, dict) else None
        return fields if isinstance(fields, list) else []


@dataclass
class ViewState:
    """Mode, focus and tab of the shell. Mutated only by the controller."""

    mode: Mode = Mode.NAVIGATION
    focus: Focus = Focus.SIDEBAR
    active_tab: ActiveTab = ActiveTab.QUERY
    view_mode: ViewMode = ViewMode.LIST
    display_mode: DisplayMode = DisplayMode.DATA
