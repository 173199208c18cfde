"""Route a selected function to the right execution path.

System functions are browsed through the navigation controller. User-defined
functions run their stored query and produce a flat result that is never
navigable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Union

from .errors import FetchFailure
from .functions import FunctionDescriptor
from .navigation import NavigationController
from .schema import EMPTY_SCHEMA, InferredSchema, Row, infer_schema

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    function_name: str
    rows: List[Row] = field(default_factory=list)
    schema: InferredSchema = EMPTY_SCHEMA


@dataclass(frozen=True)
class QueryTicket:
    """One issued query run; only the newest ticket may show its result."""

    function: FunctionDescriptor
    sequence: int


QueryRunner = Callable[[FunctionDescriptor], Sequence[Row]]
AccessTouch = Callable[[str], None]


class FunctionDispatcher:
    def __init__(
        self,
        controller: NavigationController,
        runner: QueryRunner,
        touch: Optional[AccessTouch] = None,
    ) -> None:
        self.controller = controller
        self._runner = runner
        self._touch = touch
        self._query_sequence = 0

    def open(self, func: FunctionDescriptor) -> Union[NavigationController, QueryResult]:
        if func.is_system_defined:
            return self._open_system(func)
        return self.run_query(self.begin_query(func).function)

    def begin_query(self, func: FunctionDescriptor) -> QueryTicket:
        """Start a user-defined run; supersedes any query still in flight."""
        # No drill-down ever applies to custom queries.
        self.controller.clear()
        self._query_sequence += 1
        return QueryTicket(func, self._query_sequence)

    def is_current_query(self, ticket: QueryTicket) -> bool:
        return ticket.sequence == self._query_sequence

    def invalidate_queries(self, *_args: Any) -> None:
        """Drop pending query results; bound to the active-cluster signal."""
        self._query_sequence += 1

    def _open_system(self, func: FunctionDescriptor) -> NavigationController:
        self.invalidate_queries()
        if self._touch is not None:
            try:
                self._touch(func.name)
            except FetchFailure as e:
                # access time only feeds "recently used" ordering
                logger.warning("Failed to update access time for '%s': %s", func.name, e)
        self.controller.select_root(func.name)
        return self.controller

    def run_query(self, func: FunctionDescriptor) -> QueryResult:
        """Run a user-defined function; raises FetchFailure on backend errors.

        Does not touch the controller, so it is safe to call from a worker thread.
        """
        logger.info("Executing user-defined function '%s' (id=%s)", func.name, func.id)
        try:
            rows = list(self._runner(func) or [])
        except FetchFailure:
            raise
        except Exception as e:
            raise FetchFailure(f"execute function '{func.name}'", str(e)) from e
        return QueryResult(
            function_name=func.name,
            rows=rows,
            schema=infer_schema(rows, can_drill_down=False),
        )
