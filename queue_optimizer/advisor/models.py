# queue_optimizer/advisor/models.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScalingActionKind(str, Enum):
    PROVISION = "provision"
    TERMINATE = "terminate"


class ScalingAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    current_agents: int
    target_agents: int
    delta: int
    action: ScalingActionKind
    reason: str


class ScalingConfig(BaseModel):
    min_agents: int = Field(default=0, ge=0)
    max_agents: int = Field(default=10, ge=1)
    target_label: Optional[str] = None
    dry_run: bool = False

    @model_validator(mode="after")
    def _bounds(self) -> "ScalingConfig":
        if self.max_agents < self.min_agents:
            raise ValueError("max_agents must be >= min_agents")
        return self


class RecommendationType(str, Enum):
    CAPACITY = "capacity"
    EFFICIENCY = "efficiency"
    RELIABILITY = "reliability"
    COST = "cost"
    BALANCE = "balance"


class ResourceRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: RecommendationType
    description: str
    impact: str
    action: str
