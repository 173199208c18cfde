"""Screens showing system function levels and custom query results."""

import logging

from textual.binding import Binding

from starlib.execution import QueryResult
from starlib.navigation import NavigationController, NavigationStatus
from starlib.render_spec import build_render_spec, clickable_descriptor

from .base_screen import BaseListScreen

logger = logging.getLogger(__name__)


class SystemFunctionScreen(BaseListScreen):
    """Browse one system function level by level.

    The screen holds no navigation state of its own; it re-renders from the
    app's ``NavigationController`` whenever that changes.
    """

    BINDINGS = BaseListScreen.BINDINGS + [
        Binding("r", "refresh", "Refresh"),
    ]

    def __init__(self, controller: NavigationController):
        self.controller = controller
        super().__init__(title=self._breadcrumb_title())

    def _breadcrumb_title(self) -> str:
        crumbs = self.controller.breadcrumb
        return " > ".join(crumbs) if crumbs else "System Functions"

    def load_data(self) -> None:
        self.render_state()

    def render_state(self) -> None:
        """Redraw title and table from the controller's current level."""
        if not self.data_table:
            return
        controller = self.controller
        if controller.status is NavigationStatus.IDLE:
            return

        self.set_title(self._breadcrumb_title())
        if controller.loading:
            self.set_data(["LOADING"], [{"LOADING": f"Loading {controller.current_frame.full_path}..."}])
            return
        if controller.error is not None:
            self.set_data(["ERROR"], [{"ERROR": str(controller.error)}])
            return

        schema = controller.schema
        if not schema.columns:
            self.set_data(["INFO"], [{"INFO": "No rows"}])
            return
        self.set_data(schema.columns, controller.rows, schema.navigable_column)

    def action_select_item(self) -> None:
        if self._input_focused():
            super().action_select_item()
            return
        row = self.data_table.get_selected_row() if self.data_table else None
        if not row:
            return
        schema = self.controller.schema
        link = clickable_descriptor(
            build_render_spec(schema.columns, schema.navigable_column, self.controller.drill_into)
        )
        if link is None:
            self.app.show_notification("This level has no drill-down")
            return
        link.activate(row)

    def action_go_back(self) -> None:
        if self._input_focused():
            self.data_table.focus()
            return
        # App pops this screen once the controller is idle again.
        self.controller.go_back()

    def action_refresh(self) -> None:
        self.controller.refresh_current()


class QueryResultScreen(BaseListScreen):
    """Flat result of a custom function; nothing is navigable here."""

    def __init__(self, result: QueryResult):
        self.result = result
        super().__init__(title=f"{result.function_name} (custom query)")

    def load_data(self) -> None:
        columns = self.result.schema.columns
        if not columns:
            self.set_data(["INFO"], [{"INFO": "Query returned no rows"}])
            return
        self.set_data(columns, self.result.rows)

    def action_select_item(self) -> None:
        if self._input_focused():
            super().action_select_item()
