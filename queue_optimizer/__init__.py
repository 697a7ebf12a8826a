"""Queue analysis, throttle admission and scaling advice for executor fleets."""

from .exceptions import (
    OptimizerError,
    InvalidArgumentError,
    InventoryUnavailableError,
    UnknownKeyError,
)

__all__ = [
    "OptimizerError",
    "InvalidArgumentError",
    "InventoryUnavailableError",
    "UnknownKeyError",
]

__version__ = "1.0.0"
