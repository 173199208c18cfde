"""Shared layout for every table screen: title, status line, filter/command input."""

from typing import Any, Dict, List, Optional

from textual.binding import Binding
from textual.containers import Vertical
from textual.message import Message
from textual.screen import Screen
from textual.widgets import Footer, Header, Static

from ..widgets.data_table import FilterableDataTable
from ..widgets.search_input import SearchInput


class BaseListScreen(Screen):
    """A titled, filterable table.

    Subclasses fill the table in ``load_data`` and decide what Enter and
    Escape mean. Enter and Escape are priority bindings so they reach the
    screen even while the input has focus; in that case they act on the input.
    """

    BINDINGS = [
        Binding("escape", "go_back", "Back", priority=True),
        Binding("enter", "select_item", "Open", priority=True),
        ("q", "quit", "Quit"),
        ("/", "focus_search", "Filter"),
        (":", "command_mode", "Command"),
    ]

    class ItemSelected(Message):
        """A row was chosen with Enter."""

        def __init__(self, item_data: Dict[str, Any]) -> None:
            super().__init__()
            self.item_data = item_data

    class GoBack(Message):
        pass

    def __init__(self, title: str, **kwargs):
        super().__init__(**kwargs)
        self.title = title
        self.data_table: Optional[FilterableDataTable] = None
        self.search_input: Optional[SearchInput] = None
        self.title_label: Optional[Static] = None
        self.status_label: Optional[Static] = None

    def compose(self):
        with Vertical():
            yield Header()
            yield Static(self.title, id="screen-title")
            yield SearchInput(id="search-input")
            yield FilterableDataTable(id="data-table")
            yield Static("", id="screen-status")
            yield Footer()

    def on_mount(self) -> None:
        self.data_table = self.query_one("#data-table", FilterableDataTable)
        self.search_input = self.query_one("#search-input", SearchInput)
        self.title_label = self.query_one("#screen-title", Static)
        self.status_label = self.query_one("#screen-status", Static)
        self.data_table.focus()
        self.load_data()

    def load_data(self) -> None:
        """Fill the table. Override in subclasses."""
        raise NotImplementedError("Subclasses must implement load_data()")

    def set_title(self, title: str) -> None:
        self.title = title
        if self.title_label:
            self.title_label.update(title)

    def set_data(self, columns: List[str], rows: List[Dict[str, Any]], navigable_column: Optional[str] = None) -> None:
        if not self.data_table:
            return
        self.data_table.set_data(columns, rows, navigable_column)
        self._update_status()

    def _update_status(self) -> None:
        if not (self.status_label and self.data_table):
            return
        visible, total = self.data_table.row_counts
        text = f"{visible} rows" if visible == total else f"{visible} of {total} rows"
        if self.data_table.navigable_column:
            text += f" | Enter drills into {self.data_table.navigable_column}"
        self.status_label.update(text)

    def _input_focused(self) -> bool:
        return bool(self.search_input and self.search_input.has_focus)

    def on_search_input_filter_changed(self, event: SearchInput.FilterChanged) -> None:
        if self.data_table:
            self.data_table.set_filter(event.filter_text)
            self._update_status()

    def action_select_item(self) -> None:
        if self._input_focused():
            # Enter in the input runs a ':' command; plain filter text just returns to the table
            self.search_input.submit_command()
            self.data_table.focus()
            return
        row = self.data_table.get_selected_row() if self.data_table else None
        if row:
            self.post_message(self.ItemSelected(row))

    def action_go_back(self) -> None:
        if self._input_focused():
            self.data_table.focus()
            return
        self.post_message(self.GoBack())

    def action_quit(self) -> None:
        self.app.exit()

    def action_focus_search(self) -> None:
        if self.search_input:
            self.search_input.focus()

    def action_command_mode(self) -> None:
        """Open the input with the ':' prefix already typed."""
        if not self.search_input:
            return
        self.search_input.value = ":"
        self.search_input.focus()
        self.search_input.cursor_position = 1
