"""Function list screen grouping system and custom functions by category."""

import logging

from .base_screen import BaseListScreen

logger = logging.getLogger(__name__)


class FunctionListScreen(BaseListScreen):
    """Screen for listing and opening system functions."""

    BINDINGS = BaseListScreen.BINDINGS + [
        ("f", "toggle_favorite", "Favorite"),
    ]

    def __init__(self):
        super().__init__(title="System Functions")

    def load_data(self) -> None:
        """Load function rows from the app's catalog snapshot."""
        catalog = getattr(self.app, "catalog", None)
        if catalog is None:
            logger.warning("Function catalog not yet loaded, setting empty data")
            self.set_data(["NAME"], [])
            return

        columns = ["CATEGORY", "NAME", "DESCRIPTION", "FAVORITE", "TYPE"]
        rows = []
        for category in catalog.categories(limit=None):
            for func in category.functions:
                rows.append({
                    "CATEGORY": category.name,
                    "NAME": func.name,
                    "DESCRIPTION": func.description or "—",
                    "FAVORITE": "★" if func.is_favorited else "",
                    "TYPE": "system" if func.is_system_defined else "custom",
                    "_function_key": func.key,  # Hidden field for selection
                })

        self.set_data(columns, rows)
        logger.info(f"Loaded {len(rows)} functions")

    def action_toggle_favorite(self) -> None:
        catalog = getattr(self.app, "catalog", None)
        row = self.data_table.get_selected_row() if self.data_table else None
        if catalog is None or not row:
            return
        func = catalog.find(row["_function_key"])
        if func is not None:
            self.app.toggle_favorite(func)
