"""
Terminal surface the controller drives.

The Textual app implements these protocols with real widgets; tests use
in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

from rich.text import Text

from r2sql.core.types import Focus


class Timer(Protocol):
    def stop(self) -> None: ...


class Panel(Protocol):
    def set_content(self, content: Text) -> None: ...

    def set_label(self, label: str) -> None: ...

    def show_panel(self, visible: bool) -> None: ...

    def scroll_by(self, delta: int) -> None: ...

    def scroll_to_line(self, line: int) -> None: ...

    @property
    def content_width(self) -> int: ...


class TextPanel(Panel, Protocol):
    def get_value(self) -> str: ...

    def set_value(self, value: str) -> None: ...

    def set_read_only(self, read_only: bool) -> None: ...


class Screen(Protocol):
    sidebar: Panel
    tab_bar: Panel
    query_editor: TextPanel
    history_list: Panel
    results: Panel
    status_bar: Panel
    search_box: TextPanel
    autocomplete: Panel

    def focus_panel(self, focus: Focus) -> None: ...

    def show_help(self) -> None: ...

    def hide_help(self) -> None: ...

    def spawn(self, work: Awaitable[Any]) -> None: ...

    def schedule(self, delay: float, callback: Callable[[], Any]) -> Timer: ...

    def quit(self) -> None: ...
