"""Runtime schema inference for system function rows.

Levels returned by the console have no declared schema. Columns come from the
key order of the first row, and at most one column is marked navigable: its
cell values become the next segment of the drill path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

Row = Dict[str, Any]


@dataclass(frozen=True)
class ColumnSpec:
    key: str
    navigable: bool = False


@dataclass(frozen=True)
class InferredSchema:
    columns: List[str] = field(default_factory=list)
    navigable_column: Optional[str] = None

    @property
    def column_specs(self) -> List[ColumnSpec]:
        return [ColumnSpec(key=c, navigable=(c == self.navigable_column)) for c in self.columns]

    @property
    def is_navigable(self) -> bool:
        return self.navigable_column is not None


EMPTY_SCHEMA = InferredSchema()


def infer_columns(rows: Sequence[Row]) -> List[str]:
    """Return the column order of the batch.

    Only ``rows[0]`` is consulted; later rows with extra or missing keys are
    not reconciled.
    """
    if not rows:
        return []
    return list(rows[0].keys())


def pick_navigable_column(
    columns: Sequence[str],
    can_drill_down: bool,
    depth_allows_drill: bool = True,
) -> Optional[str]:
    """Pick the single clickable column, if any.

    The first column whose lower-cased name contains ``"id"`` wins. When no
    column contains ``"id"`` the first column is used instead.
    """
    if not can_drill_down or not depth_allows_drill or not columns:
        return None
    for column in columns:
        if "id" in column.lower():
            return column
    return columns[0]


def infer_schema(
    rows: Sequence[Row],
    can_drill_down: bool,
    depth_allows_drill: bool = True,
) -> InferredSchema:
    columns = infer_columns(rows)
    return InferredSchema(
        columns=columns,
        navigable_column=pick_navigable_column(columns, can_drill_down, depth_allows_drill),
    )
