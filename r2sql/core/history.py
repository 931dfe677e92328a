"""Executed-query history and saved favorites."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from rich.text import Text

from r2sql.core.sql import highlight_sql

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 80


class QueryList:
    """Ordered queries with a selection cursor, rendered as a numbered list."""

    empty_message = "No queries yet"

    def __init__(self) -> None:
        self.entries: List[str] = []
        self.cursor = 0

    def __len__(self) -> int:
        return len(self.entries)

    def move(self, delta: int) -> None:
        if self.entries:
            self.cursor = max(0, min(len(self.entries) - 1, self.cursor + delta))

    def to_top(self) -> None:
        self.cursor = 0

    def to_bottom(self) -> None:
        self.cursor = max(0, len(self.entries) - 1)

    @property
    def selected(self) -> Optional[str]:
        if not self.entries:
            return None
        return self.entries[self.cursor]

    def render(self, show_cursor: bool = True) -> Text:
        if not self.entries:
            return Text(self.empty_message, style="grey50")

        lines = []
        for position, query in enumerate(self.entries):
            preview = " ".join(query.split())
            if len(preview) > PREVIEW_LENGTH:
                preview = preview[: PREVIEW_LENGTH - 3] + "..."
            line = Text(f"{position + 1}. ", style="grey50")
            line.append_text(highlight_sql(preview))
            if show_cursor and position == self.cursor:
                line.stylize("reverse")
            lines.append(line)
        return Text("\n").join(lines)


class QueryHistory(QueryList):
    """
    Append-only history of executed queries

    Consecutive duplicates are recorded once. When a log path is given, every
    new entry is also appended to it as ``[timestamp] query``; a log that cannot
    be written is abandoned and history stays in memory.
    """

    empty_message = "No query history yet"

    def __init__(self, log_path: Optional[Union[str, Path]] = None):
        super().__init__()
        self.log_path = Path(log_path) if log_path else None
        self.recall_index = -1

    def append(self, query: str) -> bool:
        query = query.strip()
        self.recall_index = -1
        if not query or (self.entries and self.entries[-1] == query):
            return False
        self.entries.append(query)
        self._write_log(query)
        return True

    def _write_log(self, query: str) -> None:
        if self.log_path is None:
            return
        try:
            with self.log_path.open("a", encoding="utf-8") as f:
                f.write(f"[{datetime.now().isoformat()}] {query}\n")
        except OSError as e:
            logger.debug("Disabling history log %s: %s", self.log_path, e)
            self.log_path = None

    def previous(self) -> Optional[str]:
        """Step back through history for recall into the editor."""
        if not self.entries:
            return None
        if self.recall_index == -1:
            self.recall_index = len(self.entries) - 1
        elif self.recall_index > 0:
            self.recall_index -= 1
        return self.entries[self.recall_index]

    def next(self) -> Optional[str]:
        """Step forward; returns an empty string after the newest entry."""
        if not self.entries or self.recall_index == -1:
            return None
        if self.recall_index < len(self.entries) - 1:
            self.recall_index += 1
            return self.entries[self.recall_index]
        self.recall_index = -1
        return ""


class Favorites(QueryList):
    """Queries saved by the user, each at most once."""

    empty_message = "No favorites yet (press f on a query to save it)"

    def toggle(self, query: str) -> bool:
        """Add the query, or remove it if already saved. Returns True when added."""
        query = query.strip()
        if not query:
            return False
        if query in self.entries:
            self.entries.remove(query)
            self.cursor = min(self.cursor, max(0, len(self.entries) - 1))
            return False
        self.entries.append(query)
        return True
