"""
Shell controller

Owns the view state (mode, focus, active tab, view and display mode) and turns
key presses into changes of that state, calls into the sidebar, search,
autocomplete and rendering components, and drives the screen panels with the
results. Work that waits on the query service or the catalog runs as spawned
tasks; responses whose context has moved on are dropped on arrival.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional

from rich.text import Text

from r2sql.cli.formatters import get_formatter
from r2sql.core.autocomplete import AutocompleteState, accept, insert_table_reference, suggest
from r2sql.core.exceptions import ClipboardError
from r2sql.core.history import Favorites, QueryHistory, QueryList
from r2sql.core.render import (
    ERROR_STYLE,
    MUTED_STYLE,
    WARNING_STYLE,
    RenderedView,
    render_error,
    render_headers,
    render_message,
    render_metadata,
    render_rows,
    render_schema,
    render_table_schema,
)
from r2sql.core.results import ResultStore
from r2sql.core.screen import Screen, Timer
from r2sql.core.search import SearchState, filter_headers, filter_rows, filter_schema, filter_tree
from r2sql.core.sidebar import NodeKind, SidebarTree
from r2sql.core.sql import format_sql
from r2sql.core.types import ActiveTab, DisplayMode, Focus, Mode, QueryResult, ViewState

logger = logging.getLogger(__name__)

DEBOUNCE_DELAY = 0.1
FLASH_DURATION = 2.0
EXECUTING_SUFFIX = "(executing...)"

# Keys honoured in every mode
GLOBAL_KEYS = {
    "ctrl+e": "execute_current",
    "f5": "execute_current",
    "ctrl+f": "format_query",
    "shift+f5": "format_query",
    "ctrl+l": "clear_query",
    "ctrl+up": "recall_previous",
    "ctrl+down": "recall_next",
}

NAVIGATION_KEYS = {
    "i": "enter_insert",
    "q": "quit",
    "1": "focus_sidebar",
    "2": "show_query_tab",
    "3": "focus_results",
    "4": "show_history_tab",
    "5": "show_favorites_tab",
    "x": "execute_current",
    "h": "move_left",
    "left": "move_left",
    "l": "activate",
    "right": "activate",
    "enter": "activate",
    "j": "cursor_down",
    "down": "cursor_down",
    "k": "cursor_up",
    "up": "cursor_up",
    "g": "cursor_top",
    "G": "cursor_bottom",
    "r": "refresh_namespaces",
    "t": "toggle_view_mode",
    "v": "cycle_display_mode",
    "/": "open_search",
    "n": "next_match",
    "N": "previous_match",
    "c": "copy_json",
    "m": "copy_markdown",
    "f": "toggle_favorite",
    "?": "show_help",
}

SHORTCUTS = {
    Mode.NAVIGATION: (
        "i insert  x run  1-5 panes  j/k move  l open  t table/list  v view  "
        "/ search  n/N match  c/m copy  f favorite  ? help  q quit"
    ),
    Mode.INSERT: "Esc navigation  Ctrl+E/F5 run  Tab complete  Ctrl+F format  Ctrl+L clear  Ctrl+Up/Down history",
    Mode.VISUAL: "Esc navigation",
}
SEARCH_SHORTCUTS = "Enter keep filter  Esc close  column:value filters one column"

TAB_TITLES = [(ActiveTab.QUERY, "query <2>"), (ActiveTab.HISTORY, "history <4>"), (ActiveTab.FAVORITES, "favorites <5>")]


class ShellController:
    """Key dispatch and orchestration for the interactive shell."""

    def __init__(
        self,
        screen: Screen,
        query_client: Any,
        catalog_client: Any,
        history: Optional[QueryHistory] = None,
        clipboard: Optional[Callable[[str], None]] = None,
        execute_on_start: Optional[str] = None,
    ):
        self.screen = screen
        self.query_client = query_client
        self.catalog_client = catalog_client
        self.view = ViewState()
        self.sidebar = SidebarTree(catalog_client)
        self.results = ResultStore()
        self.search = SearchState()
        self.autocomplete = AutocompleteState()
        self.history = history if history is not None else QueryHistory()
        self.favorites = Favorites()
        self.clipboard = clipboard
        self.execute_on_start = execute_on_start

        self.executing = False
        self.table_view: Optional[RenderedView] = None
        self._overlay_return: Focus = Focus.SIDEBAR
        self._query_generation = 0
        self._table_generation = 0
        self._pending_editor_text: Optional[str] = None
        self._search_timer: Optional[Timer] = None
        self._autocomplete_timer: Optional[Timer] = None
        self._flash_timer: Optional[Timer] = None
        self._flash: Optional[Text] = None
        self._results_suffix = ""

    # --- lifecycle ---

    def start(self) -> None:
        """Paint the initial screen and start loading the catalog."""
        self.screen.sidebar.set_label("Namespaces <1>")
        self.screen.search_box.show_panel(False)
        self.screen.autocomplete.show_panel(False)
        self.render_sidebar()
        self.render_results()
        self.refresh_chrome()
        self.screen.spawn(self.startup())

    async def startup(self) -> None:
        await self.load_sidebar()
        if self.execute_on_start:
            self.set_editor_text(self.execute_on_start)
            await self.execute_query(self.execute_on_start)

    # --- key dispatch ---

    def handle_key(self, key: str) -> bool:
        """
        Dispatch one key press

        Args:
            key: Key name (``escape``, ``ctrl+e``, ``down``) or the typed character

        Returns:
            True if the key was consumed; unrecognised keys are ignored
        """
        if self.view.focus is Focus.HELP_OVERLAY:
            self.close_help()
            return True
        if key == "escape":
            self.escape()
            return True
        if self.autocomplete.visible and self._autocomplete_key(key):
            return True

        action = GLOBAL_KEYS.get(key)
        if action is not None:
            getattr(self, action)()
            return True

        if self.view.focus is Focus.SEARCH_BOX:
            if key == "enter":
                self.commit_search()
                return True
            return False

        if self.view.mode is Mode.INSERT:
            if key == "tab":
                self.request_autocomplete()
                return True
            return False

        if self.view.mode is not Mode.NAVIGATION:
            return False

        action = NAVIGATION_KEYS.get(key)
        if action is None:
            return False
        getattr(self, action)()
        return True

    def _autocomplete_key(self, key: str) -> bool:
        if key == "down":
            self.autocomplete.move(1)
        elif key == "up":
            self.autocomplete.move(-1)
        elif key in ("tab", "enter"):
            self.accept_autocomplete()
            return True
        else:
            return False
        self.render_autocomplete()
        return True

    # --- mode, focus and tabs ---

    def set_focus(self, focus: Focus) -> None:
        self.view.focus = focus
        self.refresh_chrome()

    def sync_focus(self, focus: Focus) -> None:
        """Record a focus change made outside the key map, such as a mouse click."""
        if self.view.focus.is_overlay() or focus is self.view.focus:
            return
        if focus is Focus.QUERY_EDITOR and self.view.active_tab is not ActiveTab.QUERY:
            return
        self.view.focus = focus
        self.refresh_chrome(move_focus=False)

    def enter_insert(self) -> None:
        if self.view.active_tab is not ActiveTab.QUERY:
            return
        self.view.mode = Mode.INSERT
        self.set_focus(Focus.QUERY_EDITOR)

    def escape(self) -> None:
        focus = self.view.focus
        if focus is Focus.AUTOCOMPLETE_BOX:
            self.hide_autocomplete()
            self.refresh_chrome()
        elif focus is Focus.SEARCH_BOX:
            self.close_search()
        elif focus is Focus.QUERY_EDITOR or self.view.mode is Mode.INSERT:
            self.hide_autocomplete()
            self.view.mode = Mode.NAVIGATION
            self.set_focus(Focus.SIDEBAR)

    def focus_sidebar(self) -> None:
        self.set_focus(Focus.SIDEBAR)

    def focus_results(self) -> None:
        self.set_focus(Focus.RESULTS_PANE)

    def show_query_tab(self) -> None:
        self.view.active_tab = ActiveTab.QUERY
        self.set_focus(Focus.QUERY_EDITOR)

    def show_history_tab(self) -> None:
        self._show_list_tab(ActiveTab.HISTORY)

    def show_favorites_tab(self) -> None:
        self._show_list_tab(ActiveTab.FAVORITES)

    def _show_list_tab(self, tab: ActiveTab) -> None:
        self.view.active_tab = tab
        self.render_query_list()
        self.set_focus(Focus.HISTORY_LIST)

    def show_help(self) -> None:
        self._overlay_return = self.view.focus
        self.view.focus = Focus.HELP_OVERLAY
        self.screen.show_help()

    def close_help(self) -> None:
        self.screen.hide_help()
        self.set_focus(self._overlay_return)

    def quit(self) -> None:
        self.screen.quit()

    @property
    def query_list(self) -> QueryList:
        return self.favorites if self.view.active_tab is ActiveTab.FAVORITES else self.history

    # --- chrome ---

    def refresh_chrome(self, move_focus: bool = True) -> None:
        """Sync panels, tab bar and status bar with the view state."""
        on_query_tab = self.view.active_tab is ActiveTab.QUERY
        self.screen.query_editor.set_read_only(self.view.mode is not Mode.INSERT)
        self.screen.query_editor.show_panel(on_query_tab)
        self.screen.history_list.show_panel(not on_query_tab)
        self.screen.query_editor.set_label(self._editor_label())
        self.render_tab_bar()
        self.render_status()
        if move_focus:
            self.screen.focus_panel(self.view.focus)

    def _editor_label(self) -> str:
        label = "Query <2>"
        if self.executing:
            label += " (running...)"
        elif self.view.mode is Mode.INSERT:
            label += " [INSERT]"
        return label

    def render_tab_bar(self) -> None:
        bar = Text()
        for tab, title in TAB_TITLES:
            style = "bold reverse #F38020" if tab is self.view.active_tab else MUTED_STYLE
            bar.append(f" {title} ", style=style)
            bar.append(" ")
        self.screen.tab_bar.set_content(bar)

    def render_status(self) -> None:
        mode = self.view.mode
        status = Text(f" {mode.value.upper()} ", style="bold reverse #F38020" if mode is Mode.INSERT else "bold reverse")
        if self._flash is not None:
            status.append("  ")
            status.append_text(self._flash)
        status.append("\n")
        shortcuts = SEARCH_SHORTCUTS if self.view.focus is Focus.SEARCH_BOX else SHORTCUTS[mode]
        status.append(shortcuts, style=MUTED_STYLE)
        self.screen.status_bar.set_content(status)

    def flash(self, message: str, error: bool = False) -> None:
        """Show a status message that clears itself after a short delay."""
        if self._flash_timer is not None:
            self._flash_timer.stop()
        self._flash = Text(message, style=ERROR_STYLE if error else "bold green")
        self.render_status()
        self._flash_timer = self.screen.schedule(FLASH_DURATION, self._clear_flash)

    def _clear_flash(self) -> None:
        self._flash_timer = None
        self._flash = None
        self.render_status()

    def render_sidebar(self) -> None:
        self.screen.sidebar.set_content(self.sidebar.render())

    def render_query_list(self) -> None:
        title = "Favorites <5>" if self.view.active_tab is ActiveTab.FAVORITES else "History <4>"
        self.screen.history_list.set_label(title)
        self.screen.history_list.set_content(self.query_list.render())

    # --- editor ---

    def set_editor_text(self, text: str) -> None:
        self._pending_editor_text = text
        self.screen.query_editor.set_value(text)

    def on_query_changed(self, text: str) -> None:
        """React to edits in the query editor."""
        if self._pending_editor_text is not None:
            pending, self._pending_editor_text = self._pending_editor_text, None
            if text == pending:
                return
        if self.view.mode is not Mode.INSERT:
            return
        if not text.strip():
            self._cancel_timer("_autocomplete_timer")
            self.hide_autocomplete()
            return
        self._debounce("_autocomplete_timer", self._debounced_autocomplete)

    def format_query(self) -> None:
        if self.view.active_tab is not ActiveTab.QUERY:
            return
        text = self.screen.query_editor.get_value()
        if text.strip():
            self.hide_autocomplete()
            self.set_editor_text(format_sql(text))

    def clear_query(self) -> None:
        if self.view.active_tab is not ActiveTab.QUERY:
            return
        self.hide_autocomplete()
        self.set_editor_text("")

    def recall_previous(self) -> None:
        if self.view.active_tab is ActiveTab.QUERY:
            query = self.history.previous()
            if query is not None:
                self.set_editor_text(query)

    def recall_next(self) -> None:
        if self.view.active_tab is ActiveTab.QUERY:
            query = self.history.next()
            if query is not None:
                self.set_editor_text(query)

    # --- autocomplete ---

    def _debounced_autocomplete(self) -> None:
        self._autocomplete_timer = None
        self.show_suggestions(self.screen.query_editor.get_value())

    def request_autocomplete(self) -> None:
        self._cancel_timer("_autocomplete_timer")
        self.show_suggestions(self.screen.query_editor.get_value())

    def show_suggestions(self, text: str) -> None:
        if self.view.mode is not Mode.INSERT or not text.strip():
            self.hide_autocomplete()
            return
        suggestions = suggest(text, self.sidebar.index)
        if not suggestions:
            self.hide_autocomplete()
            return
        self.autocomplete.show(suggestions)
        if self.view.focus is not Focus.AUTOCOMPLETE_BOX:
            self._overlay_return = self.view.focus
            self.view.focus = Focus.AUTOCOMPLETE_BOX
        self.render_autocomplete()
        self.screen.autocomplete.show_panel(True)

    def render_autocomplete(self) -> None:
        lines = []
        for position, suggestion in enumerate(self.autocomplete.suggestions):
            style = "bold reverse #F38020" if position == self.autocomplete.cursor else "white"
            lines.append(Text(f" {suggestion} ", style=style))
        self.screen.autocomplete.set_content(Text("\n").join(lines))

    def hide_autocomplete(self) -> None:
        self.autocomplete.hide()
        self.screen.autocomplete.show_panel(False)
        if self.view.focus is Focus.AUTOCOMPLETE_BOX:
            self.view.focus = self._overlay_return

    def accept_autocomplete(self) -> None:
        choice = self.autocomplete.selected
        if choice is None:
            return
        text = accept(self.screen.query_editor.get_value(), choice)
        self.hide_autocomplete()
        self.set_editor_text(text)

    # --- timers ---

    def _cancel_timer(self, attr: str) -> None:
        timer = getattr(self, attr)
        if timer is not None:
            timer.stop()
            setattr(self, attr, None)

    def _debounce(self, attr: str, callback: Callable[[], None]) -> None:
        self._cancel_timer(attr)
        setattr(self, attr, self.screen.schedule(DEBOUNCE_DELAY, callback))

    # --- query execution ---

    def execute_current(self) -> None:
        if self.view.active_tab is not ActiveTab.QUERY:
            return
        self.hide_autocomplete()
        self._cancel_timer("_autocomplete_timer")
        self.screen.spawn(self.execute_query(self.screen.query_editor.get_value()))

    async def execute_query(self, text: str) -> None:
        query = text.strip()
        if not query:
            self._show_view(render_error("No query to execute"), "(error)")
            return

        self._query_generation += 1
        generation = self._query_generation
        self._table_generation += 1
        self.executing = True
        self.screen.query_editor.set_label(self._editor_label())
        self.screen.results.set_content(render_message("Executing query...").text)
        self.screen.results.set_label(self._results_label(EXECUTING_SUFFIX))

        try:
            result = await self.query_client.execute(query)
        except Exception as e:
            logger.debug("Query execution raised", exc_info=True)
            result = QueryResult.failure(f"Query failed: {e}")

        if generation != self._query_generation:
            logger.debug("Dropping result of superseded query %d", generation)
            return

        self.executing = False
        self.screen.query_editor.set_label(self._editor_label())
        if not result.ok:
            self._show_view(render_error(result.error), "(error)")
            return

        self.results.apply(result)
        self.table_view = None
        self.view.display_mode = DisplayMode.DATA
        self.search.reset()
        self.history.append(query)
        if self.view.active_tab is ActiveTab.HISTORY:
            self.render_query_list()
        self.render_results()

    # --- results pane ---

    def _results_label(self, suffix: str = "") -> str:
        label = "Results <3>"
        if self.table_view is not None:
            label += " [table schema]"
        else:
            label += f" [{self.view.display_mode.value} | {self.view.view_mode.value}]"
        if self.search.filtering:
            count = len(self.search.matches)
            position = self.search.current_match + 1 if count else 0
            label += f" /{self.search.term} ({position}/{count})"
        if suffix:
            label += f" {suffix}"
        return label

    def _show_view(self, view: RenderedView, suffix: str = "") -> None:
        if self.executing:
            # the pane belongs to the running query until it finishes
            self.screen.results.set_label(self._results_label(EXECUTING_SUFFIX))
            return
        self.screen.results.set_content(view.text)
        self.screen.results.set_label(self._results_label(suffix))

    def _build_view(self) -> RenderedView:
        if self.table_view is not None:
            return self.table_view

        store = self.results
        view_mode = self.view.view_mode
        width = max(1, self.screen.results.content_width)
        filtering = self.search.filtering
        matches = self.search.matches
        current = self.search.current_match if filtering and matches else None
        mode = self.view.display_mode

        if mode is DisplayMode.DATA:
            if not store.executed:
                return render_message(
                    "No query executed yet. Press 2 then i to write a query, Ctrl+E to run it.", MUTED_STYLE
                )
            if filtering:
                subset = [store.rows[i] for i in matches]
                return render_rows(subset, view_mode, width, store.stats, len(store.rows), matches, current)
            return render_rows(store.rows, view_mode, width, store.stats)

        if mode is DisplayMode.SCHEMA:
            if filtering and isinstance(store.schema, list):
                subset = [store.schema[i] for i in matches]
                return render_schema(subset, view_mode, width, len(store.schema), current)
            return render_schema(store.schema, view_mode, width)

        if mode is DisplayMode.HEADERS:
            if filtering and store.headers:
                items = list(store.headers.items())
                subset = dict(items[i] for i in matches)
                return render_headers(subset, view_mode, width, len(items), current)
            return render_headers(store.headers, view_mode, width)

        if filtering:
            return render_metadata(filter_tree(store.metadata_tree, self.search.term), filtered=True)
        return render_metadata(store.metadata_tree)

    def render_results(self, scroll_to_match: bool = False) -> None:
        """Redraw the results pane from stored data; never re-fetches."""
        if self.executing:
            self.screen.results.set_label(self._results_label(EXECUTING_SUFFIX))
            return
        try:
            view = self._build_view()
        except Exception as e:
            logger.exception("Rendering results failed")
            view = render_message(f"Unable to render results: {e}", ERROR_STYLE)
        self._show_view(view)
        if scroll_to_match and self.search.current_match >= 0:
            if self.search.current_match < len(view.anchors):
                self.screen.results.scroll_to_line(view.anchors[self.search.current_match])
            elif view.anchors:
                self.screen.results.scroll_to_line(view.anchors[0])

    def toggle_view_mode(self) -> None:
        self.view.view_mode = self.view.view_mode.toggle()
        self.table_view = None
        self.search.reset()
        self.render_results()

    def cycle_display_mode(self) -> None:
        self.view.display_mode = self.view.display_mode.next()
        self.table_view = None
        self.search.reset()
        self.render_results()

    # --- search ---

    def open_search(self) -> None:
        if not self.results.has_data:
            return
        self.table_view = None
        self._overlay_return = self.view.focus
        self.search.set_matches("", [])
        self.screen.search_box.set_value("")
        self.screen.search_box.show_panel(True)
        self.set_focus(Focus.SEARCH_BOX)

    def on_search_changed(self, value: str) -> None:
        self._debounce("_search_timer", self._debounced_search)

    def _debounced_search(self) -> None:
        self._search_timer = None
        if self.view.focus is Focus.SEARCH_BOX:
            self.apply_search(self.screen.search_box.get_value())

    def find_matches(self, term: str) -> list:
        store = self.results
        mode = self.view.display_mode
        if mode is DisplayMode.DATA:
            return filter_rows(store.rows, term)
        if mode is DisplayMode.SCHEMA:
            return filter_schema(store.schema, term) if isinstance(store.schema, list) else []
        if mode is DisplayMode.HEADERS:
            return filter_headers(store.headers, term) if store.headers else []
        return [0] if filter_tree(store.metadata_tree, term) is not None else []

    def apply_search(self, term: str) -> None:
        if not term.strip():
            self.search.set_matches("", [])
        else:
            self.search.set_matches(term, self.find_matches(term))
        self.render_results(scroll_to_match=True)

    def commit_search(self) -> None:
        self._cancel_timer("_search_timer")
        self.apply_search(self.screen.search_box.get_value())
        self.screen.search_box.show_panel(False)
        self.set_focus(Focus.RESULTS_PANE)

    def close_search(self) -> None:
        self._cancel_timer("_search_timer")
        self.search.reset()
        self.screen.search_box.show_panel(False)
        self.render_results()
        self.set_focus(Focus.RESULTS_PANE)

    def next_match(self) -> None:
        if self.search.filtering and self.search.next() is not None:
            self.render_results(scroll_to_match=True)

    def previous_match(self) -> None:
        if self.search.filtering and self.search.previous() is not None:
            self.render_results(scroll_to_match=True)

    # --- sidebar ---

    def refresh_namespaces(self) -> None:
        self.screen.spawn(self.load_sidebar())

    async def load_sidebar(self) -> None:
        """Load namespaces, then index every namespace's tables in the background."""
        self.sidebar.message = "Loading namespaces..."
        self.render_sidebar()
        try:
            loaded = await self.sidebar.load_namespaces()
        except Exception as e:
            logger.debug("Listing namespaces failed", exc_info=True)
            self.sidebar.message = f"Error loading namespaces: {e}"
            self.render_sidebar()
            return
        if loaded:
            self.render_sidebar()
            self.screen.spawn(self.sidebar.prefetch())

    def move_left(self) -> None:
        if self.view.focus is not Focus.SIDEBAR:
            self.focus_sidebar()
            return
        node = self.sidebar.node_at(self.sidebar.cursor)
        if node is not None and node.kind is NodeKind.TABLE:
            node = self.sidebar.node(node.parent)
        if node is not None and self.sidebar.collapse(node.id):
            self.render_sidebar()

    def activate(self) -> None:
        if self.view.focus is Focus.SIDEBAR:
            self.screen.spawn(self.activate_sidebar())
        elif self.view.focus is Focus.HISTORY_LIST:
            self.load_selected_query()

    async def activate_sidebar(self) -> None:
        node = self.sidebar.node_at(self.sidebar.cursor)
        if node is None:
            return
        if node.kind is NodeKind.TABLE:
            namespace, table = self.sidebar.select_table(node.id)
            await self.select_table(namespace, table)
            return
        if node.expanded:
            self.sidebar.collapse(node.id)
            self.render_sidebar()
            return

        self.screen.sidebar.set_label(f"Namespaces <1> (loading {node.name}...)")
        try:
            await self.sidebar.expand(node.id)
        except Exception as e:
            logger.debug("Listing tables of %s failed", node.name, exc_info=True)
            self._show_view(render_error(f"Failed to load tables for {node.name}: {e}"), "(error)")
        finally:
            self.screen.sidebar.set_label("Namespaces <1>")
            self.render_sidebar()

    async def select_table(self, namespace: str, table: str) -> None:
        """Reference a table in the editor and show its schema."""
        reference = f"{namespace}.{table}"
        self.set_editor_text(insert_table_reference(self.screen.query_editor.get_value(), reference))
        if self.view.active_tab is not ActiveTab.QUERY:
            self.view.active_tab = ActiveTab.QUERY
            self.refresh_chrome(move_focus=False)
        await self.show_table_schema(namespace, table)

    async def show_table_schema(self, namespace: str, table: str) -> None:
        self._table_generation += 1
        generation = self._table_generation
        self.table_view = None
        self._show_view(render_message("Loading table schema..."), "(loading...)")

        try:
            metadata = await self.catalog_client.get_table_metadata(namespace, table)
        except Exception as e:
            if generation == self._table_generation:
                logger.debug("Loading metadata of %s.%s failed", namespace, table, exc_info=True)
                self._show_view(render_error(f"Failed to load table {namespace}.{table}: {e}"), "(error)")
            return

        if generation != self._table_generation:
            logger.debug("Dropping stale metadata for %s.%s", namespace, table)
            return
        if metadata is None:
            self._show_view(render_message(f"Table {namespace}.{table} not found", WARNING_STYLE), "(error)")
            return

        self.results.set_table_metadata(metadata)
        self.search.reset()
        self.table_view = render_table_schema(metadata)
        self.render_results()

    # --- cursor movement ---

    def _move(self, delta: int) -> None:
        focus = self.view.focus
        if focus is Focus.SIDEBAR:
            self.sidebar.move(delta)
            self.render_sidebar()
        elif focus is Focus.HISTORY_LIST:
            self.query_list.move(delta)
            self.render_query_list()
        elif focus is Focus.RESULTS_PANE:
            self.screen.results.scroll_by(delta)

    def cursor_down(self) -> None:
        self._move(1)

    def cursor_up(self) -> None:
        self._move(-1)

    def cursor_top(self) -> None:
        focus = self.view.focus
        if focus is Focus.SIDEBAR:
            self.sidebar.to_top()
            self.render_sidebar()
        elif focus is Focus.HISTORY_LIST:
            self.query_list.to_top()
            self.render_query_list()
        elif focus is Focus.RESULTS_PANE:
            self.screen.results.scroll_to_line(0)

    def cursor_bottom(self) -> None:
        focus = self.view.focus
        if focus is Focus.SIDEBAR:
            self.sidebar.to_bottom()
            self.render_sidebar()
        elif focus is Focus.HISTORY_LIST:
            self.query_list.to_bottom()
            self.render_query_list()
        elif focus is Focus.RESULTS_PANE:
            self.screen.results.scroll_to_line(-1)

    # --- history and favorites ---

    def load_selected_query(self) -> None:
        query = self.query_list.selected
        if query is None:
            return
        self.set_editor_text(query)
        self.show_query_tab()

    def toggle_favorite(self) -> None:
        if self.view.active_tab is ActiveTab.QUERY:
            query = self.screen.query_editor.get_value()
        else:
            query = self.query_list.selected
        if not query or not query.strip():
            return
        added = self.favorites.toggle(query)
        self.flash("Added to favorites" if added else "Removed from favorites")
        if self.view.active_tab is ActiveTab.FAVORITES:
            self.render_query_list()

    # --- clipboard ---

    def _displayed_payload(self) -> Any:
        store = self.results
        mode = self.view.display_mode
        filtering = self.search.filtering
        matches = self.search.matches
        if mode is DisplayMode.DATA:
            return [store.rows[i] for i in matches] if filtering else store.rows
        if mode is DisplayMode.SCHEMA:
            if filtering and isinstance(store.schema, list):
                return [store.schema[i] for i in matches]
            return store.schema
        if mode is DisplayMode.HEADERS:
            if filtering and store.headers:
                items = list(store.headers.items())
                return dict(items[i] for i in matches)
            return store.headers
        if filtering:
            return filter_tree(store.metadata_tree, self.search.term)
        return store.metadata_tree

    def copy_json(self) -> None:
        payload = self._displayed_payload()
        if not payload:
            self.flash("Nothing to copy", error=True)
            return
        self._copy(json.dumps(payload, indent=2, default=str), "JSON")

    def copy_markdown(self) -> None:
        payload = self._displayed_payload()
        if not payload:
            self.flash("Nothing to copy", error=True)
            return
        if self.view.display_mode is not DisplayMode.DATA:
            self._copy(json.dumps(payload, indent=2, default=str), "JSON")
            return
        self._copy(get_formatter("markdown").format(QueryResult(rows=payload)), "Markdown")

    def _copy(self, text: str, label: str) -> None:
        if self.clipboard is None:
            self.flash("Clipboard unavailable", error=True)
            return
        try:
            self.clipboard(text)
        except ClipboardError as e:
            logger.debug("Clipboard copy failed: %s", e)
            self.flash(f"Copy failed: {e}", error=True)
            return
        self.flash(f"Copied as {label}!")

    def snapshot(self) -> Dict[str, str]:
        """Current mode, focus and tab, for display and debugging."""
        return {
            "mode": self.view.mode.value,
            "focus": self.view.focus.value,
            "tab": self.view.active_tab.value,
            "view": self.view.view_mode.value,
            "display": self.view.display_mode.value,
        }
