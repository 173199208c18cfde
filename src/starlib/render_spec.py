"""Generic column descriptors handed to table renderers (TUI data table, CLI)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

ClickCallback = Callable[[Dict[str, Any], str], None]


@dataclass(frozen=True)
class ColumnDescriptor:
    key: str
    title: str
    clickable: bool = False
    on_click: Optional[ClickCallback] = None

    def activate(self, row: Dict[str, Any]) -> None:
        """Invoke the click callback for ``row``; no-op for plain columns."""
        if self.clickable and self.on_click is not None:
            self.on_click(row, self.key)


def build_render_spec(
    columns: Sequence[str],
    navigable_column: Optional[str],
    on_click: Optional[ClickCallback] = None,
) -> List[ColumnDescriptor]:
    """Emit one descriptor per column; only ``navigable_column`` is clickable."""
    descriptors = []
    for key in columns:
        clickable = key == navigable_column
        descriptors.append(
            ColumnDescriptor(
                key=key,
                title=key,
                clickable=clickable,
                on_click=on_click if clickable else None,
            )
        )
    return descriptors


def clickable_descriptor(descriptors: Sequence[ColumnDescriptor]) -> Optional[ColumnDescriptor]:
    for descriptor in descriptors:
        if descriptor.clickable:
            return descriptor
    return None
