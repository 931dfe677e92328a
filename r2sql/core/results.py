"""Last-known query output and table metadata shown in the results pane."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from r2sql.core.types import DisplayMode, QueryResult, QueryStats, TableMetadata


class ResultStore:
    """
    Holds what the results pane can display

    A result with rows replaces rows, stats, schema and headers wholesale. A
    zero-row result replaces rows and stats but keeps the previous schema and
    headers unless the new response carries its own. Table metadata is a
    single slot, overwritten by each table selection.
    """

    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self.stats: Optional[QueryStats] = None
        self.schema: Optional[List[Dict[str, Any]]] = None
        self.headers: Optional[Dict[str, str]] = None
        self.table_metadata: Optional[TableMetadata] = None
        self.executed = False

    def apply(self, result: QueryResult) -> None:
        self.executed = True
        self.rows = list(result.rows)
        self.stats = result.stats
        if result.rows:
            self.schema = result.schema
            self.headers = result.headers
            return
        if result.schema is not None:
            self.schema = result.schema
        if result.headers is not None:
            self.headers = result.headers

    def set_table_metadata(self, metadata: Optional[TableMetadata]) -> None:
        self.table_metadata = metadata

    @property
    def metadata_tree(self) -> Any:
        if self.table_metadata is None:
            return None
        return self.table_metadata.full_metadata

    def has_content(self, mode: DisplayMode) -> bool:
        if mode is DisplayMode.DATA:
            return bool(self.rows)
        if mode is DisplayMode.SCHEMA:
            return bool(self.schema)
        if mode is DisplayMode.HEADERS:
            return bool(self.headers)
        return self.metadata_tree is not None

    @property
    def has_data(self) -> bool:
        """True when any display mode has something to search."""
        return any(self.has_content(mode) for mode in DisplayMode)
