# queue_optimizer/config.py
import logging
import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


_ENV_PREFIX = "QUEUE_OPTIMIZER_"


class OptimizerConfig(BaseModel):
    min_agents: int = Field(default=0, ge=0)
    max_agents: int = Field(default=10, ge=1)
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = "INFO"
    log_file: Optional[str] = "logs/queue_optimizer.log"
    throttle_log_level: str = "INFO"
    ray_log_level: str = "WARNING"
    ray_address: Optional[str] = None

    @field_validator("log_level", "throttle_log_level", "ray_log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def _agent_bounds(self) -> "OptimizerConfig":
        if self.max_agents < self.min_agents:
            raise ValueError(
                f"max_agents ({self.max_agents}) must be >= min_agents ({self.min_agents})"
            )
        return self

    @classmethod
    def from_env(cls) -> "OptimizerConfig":
        """Build a config from QUEUE_OPTIMIZER_* variables, falling back to defaults."""
        values = {}
        for name in ("min_agents", "max_agents", "host", "port", "log_level", "log_file", "throttle_log_level"):
            raw = os.environ.get(_ENV_PREFIX + name.upper())
            if raw is not None:
                values[name] = raw
        if "RAY_LOG_LEVEL" in os.environ:
            values["ray_log_level"] = os.environ["RAY_LOG_LEVEL"]
        if "RAY_ADDRESS" in os.environ:
            values["ray_address"] = os.environ["RAY_ADDRESS"]
        if values.get("log_file") == "":
            values["log_file"] = None
        return cls(**values)
