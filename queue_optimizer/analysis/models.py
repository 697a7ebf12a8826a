# queue_optimizer/analysis/models.py
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

# Pressure value for a label that has demand but no executors at all
NO_CAPACITY = -1.0

_MAP_FIELDS = (
    "node_utilization",
    "available_executors",
    "label_demand",
    "label_capacity",
    "label_pressure",
    "label_agents",
    "label_busy",
)


class Node(BaseModel):
    name: str
    total_executors: int = Field(ge=0)
    busy_executors: int = Field(default=0, ge=0)
    offline: bool = False
    labels: Set[str] = Field(default_factory=set)
    # Parent job names of the jobs running on busy executors
    running_jobs: List[str] = Field(default_factory=list)


class QueueItem(BaseModel):
    item_id: str
    task_name: str
    in_queue_since: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    blocked: bool = False
    stuck: bool = False
    assigned_label: Optional[str] = None
    why: Optional[str] = None


class FleetSnapshot(BaseModel):
    nodes: List[Node] = Field(default_factory=list)
    queue: List[QueueItem] = Field(default_factory=list)
    taken_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class QueueAnalysisReport(BaseModel):
    """Point-in-time view of queue and executor load. Never mutated after analysis;
    the per-node and per-label maps are read-only views."""

    model_config = ConfigDict(frozen=True)

    queue_length: int = 0
    blocked_jobs: Tuple[str, ...] = ()
    stuck_jobs: Tuple[str, ...] = ()
    running_jobs: Tuple[str, ...] = ()
    offline_nodes: Tuple[str, ...] = ()

    node_utilization: Mapping[str, float] = Field(default_factory=dict)
    available_executors: Mapping[str, int] = Field(default_factory=dict)

    label_demand: Mapping[str, int] = Field(default_factory=dict)
    label_capacity: Mapping[str, int] = Field(default_factory=dict)
    label_pressure: Mapping[str, float] = Field(default_factory=dict)
    label_agents: Mapping[str, int] = Field(default_factory=dict)
    label_busy: Mapping[str, int] = Field(default_factory=dict)

    total_executors: int = 0
    busy_executors: int = 0
    offline_executors: int = 0
    average_wait_seconds: float = 0.0
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def _freeze_maps(self) -> "QueueAnalysisReport":
        for name in _MAP_FIELDS:
            # frozen=True only guards attribute assignment
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))
        return self

    @field_serializer(*_MAP_FIELDS)
    def _serialize_map(self, value: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(value)

    def has_capacity(self, label: str) -> bool:
        return self.label_capacity.get(label, 0) > 0

    def label_utilization(self, label: str) -> float:
        """Busy share of the label's online executors, 0 when it has none."""
        capacity = self.label_capacity.get(label, 0)
        if capacity <= 0:
            return 0.0
        return self.label_busy.get(label, 0) * 100.0 / capacity

    @property
    def online_executors(self) -> int:
        return self.total_executors - self.offline_executors

    @property
    def idle_executors(self) -> int:
        return self.online_executors - self.busy_executors

    @property
    def overall_utilization(self) -> float:
        if self.online_executors <= 0:
            return 0.0
        return self.busy_executors * 100.0 / self.online_executors
