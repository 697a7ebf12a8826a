# queue_optimizer/analysis/inventory.py
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .models import FleetSnapshot, Node, QueueItem


class InventoryProvider(ABC):
    """Source of live fleet and queue state."""

    @abstractmethod
    def get_nodes(self) -> List[Node]:
        pass

    @abstractmethod
    def get_queue_items(self) -> List[QueueItem]:
        pass

    def snapshot(self) -> FleetSnapshot:
        return FleetSnapshot(
            nodes=self.get_nodes(),
            queue=self.get_queue_items(),
            taken_at=datetime.now(timezone.utc),
        )


class BuildHistory(ABC):
    """Source of currently running build counts per job."""

    @abstractmethod
    def running_builds(self) -> Dict[str, int]:
        pass


class StaticInventory(InventoryProvider):
    """In-memory inventory fed by an external collector."""

    def __init__(self, nodes: Optional[List[Node]] = None, queue: Optional[List[QueueItem]] = None):
        self._nodes = list(nodes or [])
        self._queue = list(queue or [])
        self._lock = threading.Lock()

    def update(self, nodes: List[Node], queue: List[QueueItem]) -> None:
        with self._lock:
            self._nodes = list(nodes)
            self._queue = list(queue)

    def get_nodes(self) -> List[Node]:
        with self._lock:
            return list(self._nodes)

    def get_queue_items(self) -> List[QueueItem]:
        with self._lock:
            return list(self._queue)

    def snapshot(self) -> FleetSnapshot:
        # both lists under one lock so an update cannot land in between
        with self._lock:
            return FleetSnapshot(
                nodes=list(self._nodes),
                queue=list(self._queue),
                taken_at=datetime.now(timezone.utc),
            )


class StaticBuildHistory(BuildHistory):
    def __init__(self, running: Optional[Dict[str, int]] = None):
        self._running = dict(running or {})

    def update(self, running: Dict[str, int]) -> None:
        self._running = dict(running)

    def running_builds(self) -> Dict[str, int]:
        return dict(self._running)
