"""Hierarchical navigation over system function levels.

A ``NavigationController`` owns a stack of ``NavigationFrame`` objects. Each
frame only records how to re-fetch its level (function name plus nested
path); rows for the top frame live in a side channel that is replaced on
every fetch.

Fetches are described by ``FetchRequest`` objects and resolved through
``complete``/``fail``. A response is applied only while its frame is still
the top of the stack and it is the newest fetch issued, so late answers for
levels the user already left, or superseded by a refresh, are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from .errors import FetchFailure
from .functions import can_drill_down
from .schema import EMPTY_SCHEMA, InferredSchema, Row, infer_schema

logger = logging.getLogger(__name__)


class NavigationStatus(Enum):
    IDLE = "idle"
    BROWSING = "browsing"


@dataclass(frozen=True)
class NavigationFrame:
    function_name: str
    nested_path: Optional[str] = None

    @property
    def breadcrumb(self) -> List[str]:
        parts = [self.function_name]
        if self.nested_path:
            parts.extend(self.nested_path.split("/"))
        return parts

    @property
    def full_path(self) -> str:
        return "/" + "/".join(self.breadcrumb)

    def child(self, segment: str) -> "NavigationFrame":
        path = f"{self.nested_path}/{segment}" if self.nested_path else segment
        return NavigationFrame(self.function_name, path)


@dataclass(frozen=True)
class FetchRequest:
    frame: NavigationFrame
    sequence: int


Fetcher = Callable[[str, Optional[str]], Sequence[Row]]
Scheduler = Callable[[FetchRequest], None]
ChangeListener = Callable[["NavigationController"], None]
ErrorListener = Callable[[FetchFailure], None]


def depth_allows_drill(depth: int, max_depth: Optional[int]) -> bool:
    """Whether a level at ``depth`` (root is 1) may still expose a navigable column."""
    return max_depth is None or depth < max_depth


def _cell_segment(value: Any) -> Optional[str]:
    if value is None:
        return None
    segment = str(value).strip()
    return segment or None


class NavigationController:
    """Navigation state machine for one session/cluster context.

    ``scheduler`` decides where fetches run. By default they run inline;
    UIs pass a scheduler that calls ``fetch_rows`` off the event loop and
    hands the outcome back to ``complete`` or ``fail`` on the UI thread.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        scheduler: Optional[Scheduler] = None,
        on_change: Optional[ChangeListener] = None,
        on_error: Optional[ErrorListener] = None,
        max_depth: Optional[int] = None,
    ) -> None:
        self._fetcher = fetcher
        self._scheduler = scheduler or self._run_inline
        self._on_change = on_change
        self._on_error = on_error
        self.max_depth = max_depth

        self._stack: List[NavigationFrame] = []
        self._sequence = 0
        self._latest_sequence = 0
        self._rows: List[Row] = []
        self._schema: InferredSchema = EMPTY_SCHEMA
        self._error: Optional[FetchFailure] = None
        self._loading = False

    # -- read-only views -------------------------------------------------

    @property
    def status(self) -> NavigationStatus:
        return NavigationStatus.BROWSING if self._stack else NavigationStatus.IDLE

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def frames(self) -> List[NavigationFrame]:
        return list(self._stack)

    @property
    def current_frame(self) -> Optional[NavigationFrame]:
        return self._stack[-1] if self._stack else None

    @property
    def breadcrumb(self) -> List[str]:
        frame = self.current_frame
        return frame.breadcrumb if frame else []

    @property
    def rows(self) -> List[Row]:
        return list(self._rows)

    @property
    def schema(self) -> InferredSchema:
        return self._schema

    @property
    def error(self) -> Optional[FetchFailure]:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    # -- operations --------------------------------------------------------

    def select_root(self, function_name: str) -> bool:
        """Start browsing ``function_name`` from its top level."""
        logger.info("Selecting system function '%s'", function_name)
        self._stack = [NavigationFrame(function_name)]
        self._fetch_top()
        return True

    def drill_into(self, row: Dict[str, Any], column_key: str) -> bool:
        """Open the child level keyed by ``row[column_key]``.

        Returns False without touching the stack when the column is not the
        current navigable column or the cell is empty.
        """
        frame = self.current_frame
        if frame is None:
            return False
        navigable = self._schema.navigable_column
        if navigable is None or column_key != navigable:
            logger.debug("Ignoring drill on non-navigable column '%s'", column_key)
            return False
        segment = _cell_segment(row.get(column_key))
        if segment is None:
            logger.debug("Ignoring drill on empty cell in column '%s'", column_key)
            return False

        child = frame.child(segment)
        logger.info("Drilling into %s", child.full_path)
        self._stack.append(child)
        self._fetch_top()
        return True

    def go_back(self) -> bool:
        """Pop one level and re-fetch the parent; from the root, return to idle."""
        if not self._stack:
            return False
        if len(self._stack) == 1:
            logger.info("Leaving %s", self._stack[0].full_path)
            self.clear()
            return True
        self._stack.pop()
        logger.info("Going back to %s", self._stack[-1].full_path)
        self._fetch_top()
        return True

    def refresh_current(self) -> bool:
        if not self._stack:
            return False
        logger.info("Refreshing %s", self._stack[-1].full_path)
        self._fetch_top()
        return True

    def reset_on_context_change(self, *_args: Any) -> None:
        """Drop all navigation state; bound to the active-cluster signal."""
        logger.info("Cluster context changed, resetting navigation")
        self.clear()

    def clear(self) -> None:
        self._stack = []
        # no request issued so far can match again
        self._latest_sequence = -1
        self._rows = []
        self._schema = EMPTY_SCHEMA
        self._error = None
        self._loading = False
        self._notify_change()

    # -- fetch plumbing ------------------------------------------------------

    def fetch_rows(self, request: FetchRequest) -> List[Row]:
        """Run the fetcher for ``request``; raises on transport errors."""
        frame = request.frame
        return list(self._fetcher(frame.function_name, frame.nested_path) or [])

    def is_current(self, request: FetchRequest) -> bool:
        """True only for the newest fetch issued for the frame still on top."""
        return request.sequence == self._latest_sequence and request.frame == self.current_frame

    def complete(self, request: FetchRequest, rows: Sequence[Row]) -> bool:
        """Apply fetched rows if ``request`` still matches the top frame."""
        if not self.is_current(request):
            logger.debug("Discarding stale response #%d for %s", request.sequence, request.frame.full_path)
            return False
        self._rows = list(rows)
        self._schema = infer_schema(
            self._rows,
            can_drill_down(request.frame.function_name),
            self._depth_allows_drill(),
        )
        self._error = None
        self._loading = False
        logger.info("Loaded %d rows for %s", len(self._rows), request.frame.full_path)
        self._notify_change()
        return True

    def fail(self, request: FetchRequest, error: Exception) -> bool:
        """Record a failed fetch; the stack is left as it is."""
        if not self.is_current(request):
            logger.debug("Discarding stale failure #%d for %s", request.sequence, request.frame.full_path)
            return False
        if isinstance(error, FetchFailure):
            failure = error
        else:
            failure = FetchFailure(f"load {request.frame.full_path}", str(error))
        self._rows = []
        self._schema = EMPTY_SCHEMA
        self._error = failure
        self._loading = False
        logger.error("Failed to load %s: %s", request.frame.full_path, failure)
        if self._on_error is not None:
            self._on_error(failure)
        self._notify_change()
        return True

    def _depth_allows_drill(self) -> bool:
        return depth_allows_drill(self.depth, self.max_depth)

    def _fetch_top(self) -> None:
        self._sequence += 1
        self._latest_sequence = self._sequence
        request = FetchRequest(self._stack[-1], self._sequence)
        self._rows = []
        self._schema = EMPTY_SCHEMA
        self._error = None
        self._loading = True
        self._notify_change()
        self._scheduler(request)

    def _run_inline(self, request: FetchRequest) -> None:
        try:
            rows = self.fetch_rows(request)
        except Exception as e:  # reported through fail(), never raised
            self.fail(request, e)
            return
        self.complete(request, rows)

    def _notify_change(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
