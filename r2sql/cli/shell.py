"""
R2 SQL Interactive Shell

Terminal UI for browsing an R2 Data Catalog and running R2 SQL queries,
built on Textual. The widgets here are thin panels; all state and key
handling lives in the ShellController, which drives them through the screen
protocol.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from rich.text import Text
from textual.actions import SkipAction
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical, VerticalScroll
from textual.events import DescendantFocus, Key
from textual.screen import ModalScreen
from textual.widgets import Input, Static, TextArea
from textual.worker import Worker, WorkerState

from r2sql import __version__
from r2sql.cli.clipboard import copy_text
from r2sql.cli.controller import ShellController
from r2sql.clients.catalog_client import IcebergCatalogClient
from r2sql.clients.query_client import R2SQLClient
from r2sql.core.config import SessionConfig, ShellOptions
from r2sql.core.history import QueryHistory
from r2sql.core.types import Focus, Mode

logger = logging.getLogger(__name__)

FOCUS_TARGETS = {
    Focus.SIDEBAR: "#sidebar",
    Focus.QUERY_EDITOR: "#query-editor",
    Focus.AUTOCOMPLETE_BOX: "#query-editor",
    Focus.RESULTS_PANE: "#results",
    Focus.HISTORY_LIST: "#history-list",
    Focus.SEARCH_BOX: "#search-box",
}


def key_name(event: Key) -> str:
    """Name a key press the way the controller expects: the typed character, or the key name."""
    character = event.character
    if (
        event.is_printable
        and character is not None
        and len(character) == 1
        and not event.key.startswith(("ctrl+", "alt+"))
    ):
        return character
    return event.key


class PanelMixin:
    """Label and visibility handling shared by every panel."""

    def set_label(self, label: str) -> None:
        self.border_title = label

    def show_panel(self, visible: bool) -> None:
        self.display = visible

    def scroll_by(self, delta: int) -> None:
        pass

    def scroll_to_line(self, line: int) -> None:
        pass

    @property
    def content_width(self) -> int:
        return self.content_region.width


class ContentPanel(PanelMixin, VerticalScroll, can_focus=True, inherit_bindings=False):
    """Scrollable, focusable pane of styled text."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._body = Static("", classes="panel-body")

    def compose(self) -> ComposeResult:
        yield self._body

    def set_content(self, content: Text) -> None:
        self._body.update(content)

    def scroll_by(self, delta: int) -> None:
        self.scroll_relative(y=delta, animate=False)

    def scroll_to_line(self, line: int) -> None:
        if line < 0:
            self.scroll_end(animate=False)
        else:
            self.scroll_to(y=line, animate=False)

    @property
    def content_width(self) -> int:
        return self.scrollable_content_region.width


class TextLine(PanelMixin, Static):
    """Single fixed pane of text: tab bar, status bar, suggestion list."""

    def set_content(self, content: Text) -> None:
        self.update(content)


class QueryEditor(PanelMixin, TextArea):
    """SQL editor. Read-only outside insert mode so navigation keys reach the shell."""

    def get_value(self) -> str:
        return self.text

    def set_value(self, value: str) -> None:
        self.load_text(value)
        self.move_cursor(self.document.end)

    def set_read_only(self, read_only: bool) -> None:
        self.read_only = read_only

    def set_content(self, content: Text) -> None:
        self.set_value(content.plain)

    def on_key(self, event: Key) -> None:
        """Route completion keys to the shell before the editor sees them."""
        controller = self.app.controller
        key = event.key
        if controller.autocomplete.visible and key in ("up", "down", "tab", "enter"):
            handled = controller.handle_key(key)
        elif controller.view.mode is Mode.INSERT and key == "tab":
            handled = controller.handle_key(key)
        else:
            return
        if handled:
            event.stop()
            event.prevent_default()


class SearchBox(PanelMixin, Input):
    """Search term input shown above the results."""

    def get_value(self) -> str:
        return self.value

    def set_value(self, value: str) -> None:
        self.value = value

    def set_read_only(self, read_only: bool) -> None:
        self.disabled = read_only

    def set_content(self, content: Text) -> None:
        self.value = content.plain


class HelpDialog(ModalScreen):
    """Modal dialog for showing keyboard shortcuts. Any key closes it."""

    def compose(self) -> ComposeResult:
        help_text = f"""[bold #F38020]R2 SQL Shell {__version__} - Keyboard Shortcuts[/bold #F38020]

[yellow]Modes:[white]
[bold]  i                      [not bold]Insert mode (edit the query)
[bold]  Esc                    [not bold]Back to navigation / close popups
[bold]  q                      [not bold]Quit (navigation mode)

[yellow]Panes:[white]
[bold]  1 / 2 / 3              [not bold]Sidebar / Query / Results
[bold]  4 / 5                  [not bold]History / Favorites
[bold]  h                      [not bold]Focus sidebar, collapse namespace

[yellow]Queries:[white]
[bold]  Ctrl+E / F5 / x        [not bold]Execute query
[bold]  Tab                    [not bold]Autocomplete (insert mode)
[bold]  Ctrl+F / Shift+F5      [not bold]Format query
[bold]  Ctrl+L                 [not bold]Clear editor
[bold]  Ctrl+Up / Ctrl+Down    [not bold]Previous / next query from history
[bold]  f                      [not bold]Toggle favorite

[yellow]Sidebar & Lists:[white]
[bold]  j / k, Up / Down       [not bold]Move cursor
[bold]  g / G                  [not bold]Top / bottom
[bold]  l / Enter              [not bold]Expand namespace, select table, load query
[bold]  r                      [not bold]Refresh namespaces

[yellow]Results:[white]
[bold]  t                      [not bold]Toggle table / list layout
[bold]  v                      [not bold]Cycle data / schema / headers / metadata
[bold]  /                      [not bold]Search (column:value filters one column)
[bold]  n / N                  [not bold]Next / previous match
[bold]  c / m                  [not bold]Copy as JSON / Markdown

[dim]Press any key to close[/dim]"""

        with Container(id="help-dialog"):
            with VerticalScroll(id="help-content"):
                yield Static(help_text, id="help-text")

    def on_key(self, event: Key) -> None:
        event.stop()
        self.app.controller.handle_key(key_name(event))


class R2SQLShellApp(App):
    """
    R2 SQL Interactive Shell Application.

    Sidebar with the catalog's namespaces and tables, a query editor with
    history and favorites tabs, and a results pane with table/list layouts
    and data, schema, headers and metadata views.
    """

    CSS = """
    Screen {
        background: $surface;
    }

    #main-container {
        width: 100%;
        height: 1fr;
    }

    #sidebar {
        width: 30;
        height: 100%;
        border: round $primary-darken-2;
        border-title-color: #F38020;
    }

    #center-panel {
        width: 1fr;
        height: 100%;
        layout: vertical;
    }

    #tab-bar {
        height: 1;
    }

    #query-container {
        height: 12;
    }

    #query-editor, #history-list {
        height: 1fr;
        border: round $primary-darken-2;
        border-title-color: #F38020;
    }

    #autocomplete {
        height: auto;
        max-height: 8;
        background: $panel;
        border: round #F38020;
    }

    #search-box {
        height: 3;
        border: round #F38020;
    }

    #results {
        height: 1fr;
        border: round $primary-darken-2;
        border-title-color: #F38020;
    }

    ContentPanel:focus, QueryEditor:focus {
        border: round #F38020;
    }

    #status-bar {
        height: 2;
        background: $panel;
    }

    #help-dialog {
        width: 80;
        height: 80%;
        border: thick #F38020;
        background: $surface;
        padding: 1 2;
    }

    HelpDialog {
        align: center middle;
    }
    """

    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        Binding("escape", "press('escape')", "Navigation", show=False, priority=True),
        Binding("ctrl+e", "press('ctrl+e')", "Execute", show=False, priority=True),
        Binding("f5", "press('f5')", "Execute", show=False, priority=True),
        Binding("ctrl+f", "press('ctrl+f')", "Format", show=False, priority=True),
        Binding("shift+f5", "press('shift+f5')", "Format", show=False, priority=True),
        Binding("ctrl+l", "press('ctrl+l')", "Clear", show=False, priority=True),
        Binding("ctrl+up", "press('ctrl+up')", "Prev Query", show=False, priority=True),
        Binding("ctrl+down", "press('ctrl+down')", "Next Query", show=False, priority=True),
    ]

    def __init__(
        self,
        query_client: Any,
        catalog_client: Any,
        history: Optional[QueryHistory] = None,
        execute_on_start: Optional[str] = None,
        clipboard: Optional[Callable[[str], None]] = copy_text,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.query_client = query_client
        self.catalog_client = catalog_client
        self.controller = ShellController(
            self,
            query_client,
            catalog_client,
            history=history,
            clipboard=clipboard,
            execute_on_start=execute_on_start,
        )

    def compose(self) -> ComposeResult:
        with Horizontal(id="main-container"):
            yield ContentPanel(id="sidebar")
            with Vertical(id="center-panel"):
                yield TextLine("", id="tab-bar")
                with Vertical(id="query-container"):
                    yield QueryEditor(id="query-editor", language="sql", read_only=True, soft_wrap=True)
                    yield ContentPanel(id="history-list")
                    yield TextLine("", id="autocomplete")
                yield SearchBox(placeholder="Search (column:value to filter one column)", id="search-box")
                yield ContentPanel(id="results")
        yield TextLine("", id="status-bar")

    def on_mount(self) -> None:
        """Wire the panels and start the controller."""
        self.title = "R2 SQL Shell"
        self.sidebar = self.query_one("#sidebar", ContentPanel)
        self.tab_bar = self.query_one("#tab-bar", TextLine)
        self.query_editor = self.query_one("#query-editor", QueryEditor)
        self.history_list = self.query_one("#history-list", ContentPanel)
        self.autocomplete = self.query_one("#autocomplete", TextLine)
        self.search_box = self.query_one("#search-box", SearchBox)
        self.results = self.query_one("#results", ContentPanel)
        self.status_bar = self.query_one("#status-bar", TextLine)
        self.controller.start()

    async def on_unmount(self) -> None:
        await self.query_client.aclose()
        await self.catalog_client.aclose()

    # --- screen protocol ---

    def focus_panel(self, focus: Focus) -> None:
        selector = FOCUS_TARGETS.get(focus)
        if selector is not None:
            self.query_one(selector).focus()

    def show_help(self) -> None:
        self.push_screen(HelpDialog())

    def hide_help(self) -> None:
        if isinstance(self.screen, HelpDialog):
            self.pop_screen()

    def spawn(self, work: Awaitable[Any]) -> None:
        self.run_worker(work, exit_on_error=False)

    def schedule(self, delay: float, callback: Callable[[], Any]):
        return self.set_timer(delay, callback)

    def quit(self) -> None:
        self.exit()

    # --- events ---

    def action_press(self, key: str) -> None:
        if not self.controller.handle_key(key):
            raise SkipAction()

    def on_key(self, event: Key) -> None:
        if self.controller.handle_key(key_name(event)):
            event.stop()
            event.prevent_default()

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        self.controller.on_query_changed(event.text_area.text)

    def on_input_changed(self, event: Input.Changed) -> None:
        self.controller.on_search_changed(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.controller.handle_key("enter")

    def on_descendant_focus(self, event: DescendantFocus) -> None:
        widget = self.focused
        if widget is None or widget.id is None:
            return
        for focus, selector in FOCUS_TARGETS.items():
            if focus is not Focus.AUTOCOMPLETE_BOX and selector == f"#{widget.id}":
                self.controller.sync_focus(focus)
                return

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.state is WorkerState.ERROR:
            logger.error("Background task failed: %s", event.worker.error)


def launch_shell(config: SessionConfig, options: ShellOptions) -> None:
    """
    Launch the interactive shell.

    Args:
        config: Resolved account, bucket and token
        options: Shell behaviour (startup query, history log)
    """
    history = QueryHistory(options.history_path if options.history_enabled else None)
    app = R2SQLShellApp(
        query_client=R2SQLClient(config),
        catalog_client=IcebergCatalogClient(config),
        history=history,
        execute_on_start=options.execute_on_start,
    )
    app.run()
