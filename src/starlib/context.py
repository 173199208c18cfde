"""Active cluster tracking and the context-change signal."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterRef:
    id: int
    name: str = ""

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "ClusterRef":
        return cls(id=int(payload["id"]), name=str(payload.get("name") or ""))


ContextListener = Callable[[Optional[ClusterRef]], None]


class ClusterContext:
    """Holds the active cluster and notifies listeners when its identity changes."""

    def __init__(self, active: Optional[ClusterRef] = None) -> None:
        self._active = active
        self._listeners: List[ContextListener] = []

    @property
    def active(self) -> Optional[ClusterRef]:
        return self._active

    def subscribe(self, listener: ContextListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: ContextListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_active(self, cluster: Optional[ClusterRef]) -> bool:
        """Switch the active cluster; returns True if listeners were notified."""
        old_id = self._active.id if self._active else None
        new_id = cluster.id if cluster else None
        self._active = cluster
        if old_id == new_id:
            return False
        logger.info("Active cluster changed: %s -> %s", old_id, new_id)
        for listener in list(self._listeners):
            listener(cluster)
        return True

    def clear(self) -> bool:
        return self.set_active(None)
