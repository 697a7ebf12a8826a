# queue_optimizer/api/models.py
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from queue_optimizer.analysis.models import Node, QueueItem


class ThrottleSettings(BaseModel):
    max_concurrent: int = Field(ge=1)
    period_seconds: float = Field(default=0, ge=0)


class ThrottleResponse(BaseModel):
    namespace: str
    key: str
    max_concurrent: int
    period_seconds: float
    message: str


class ThrottleListResponse(BaseModel):
    job_throttles: Dict[str, ThrottleSettings] = Field(default_factory=dict)
    label_throttles: Dict[str, ThrottleSettings] = Field(default_factory=dict)


class AdmissionRequest(BaseModel):
    job_name: str = Field(min_length=1)
    label: Optional[str] = None
    job_running: int = Field(default=0, ge=0)
    label_running: int = Field(default=0, ge=0)


class AdmissionResponse(BaseModel):
    job_name: str
    label: Optional[str] = None
    allowed: bool


class InventoryUpdate(BaseModel):
    nodes: List[Node] = Field(default_factory=list)
    queue: List[QueueItem] = Field(default_factory=list)
    running_builds: Optional[Dict[str, int]] = None


class InventoryResponse(BaseModel):
    nodes: int
    queue_length: int
    message: str
