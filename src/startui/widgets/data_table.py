"""Filterable data table widget for TUI."""

from typing import Any, Dict, List, Optional, Tuple

from rich.text import Text
from textual.widgets import DataTable
from textual.reactive import reactive

LINK_STYLE = "bold underline"


class FilterableDataTable(DataTable):
    """Data table with built-in filtering and an optional navigable column."""

    filter_text: reactive[str] = reactive("")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._columns: List[str] = []
        self._navigable_column: Optional[str] = None
        self._all_rows: List[Dict[str, Any]] = []
        self._filtered_rows: List[Dict[str, Any]] = []
        self.cursor_type = "row"

    @property
    def navigable_column(self) -> Optional[str]:
        return self._navigable_column

    @property
    def row_counts(self) -> Tuple[int, int]:
        """(visible, total) row counts after filtering."""
        return len(self._filtered_rows), len(self._all_rows)

    def set_data(
        self,
        columns: List[str],
        rows: List[Dict[str, Any]],
        navigable_column: Optional[str] = None,
    ) -> None:
        """Set the data for the table; ``navigable_column`` is drawn as a link."""
        self._columns = list(columns)
        self._navigable_column = navigable_column
        self._all_rows = rows.copy()
        self.clear(columns=True)  # Clear both rows and columns

        for col in self._columns:
            label = Text(col, style=LINK_STYLE) if col == navigable_column else col
            self.add_column(label, key=col)

        self.apply_filter()

    def apply_filter(self) -> None:
        """Apply current filter to the data."""
        if not self.filter_text:
            self._filtered_rows = self._all_rows.copy()
        else:
            # Case-insensitive search across all values
            filter_lower = self.filter_text.lower()
            self._filtered_rows = [
                row for row in self._all_rows
                if any(filter_lower in str(value).lower() for value in row.values() if value is not None)
            ]

        self.clear(columns=False)  # Keep columns, clear rows

        for row in self._filtered_rows:
            cells = []
            for key in self._columns:
                value = row.get(key)
                display = "" if value is None else str(value)
                if key == self._navigable_column and display:
                    cells.append(Text(display, style=LINK_STYLE))
                else:
                    cells.append(display)
            self.add_row(*cells)

    def set_filter(self, filter_text: str) -> None:
        """Set filter text and refresh display."""
        self.filter_text = filter_text
        self.apply_filter()

    def get_selected_row(self) -> Optional[Dict[str, Any]]:
        """Get the currently selected row data."""
        if not self._filtered_rows or self.cursor_row < 0:
            return None

        row_index = self.cursor_row
        if row_index >= len(self._filtered_rows):
            return None

        return self._filtered_rows[row_index]
