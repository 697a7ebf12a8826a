# queue_optimizer/throttle/actors.py
from typing import Any, Dict, Optional

import ray

from queue_optimizer.log_handler import get_logger
from .config import ThrottleConfig

logger = get_logger(__name__)


@ray.remote
class ThrottleActor:
    """Ray actor owning the throttle state of one job or label.

    Ray runs the calls on an actor one at a time, so ``try_acquire`` is an
    atomic check-and-record for every dispatcher sharing the handle.
    """

    def __init__(self, key: str, max_concurrent: int, period_seconds: float = 0):
        self.key = key
        self.config = ThrottleConfig(max_concurrent, period_seconds)
        self.admitted = 0
        self.rejected = 0
        logger.info(f"Throttle actor for {key} initialized: {self.config.describe()}")

    def try_acquire(self, current_running: int) -> bool:
        """Check the throttle and record the execution when it is allowed."""
        return self.reserve(current_running) is not None

    def reserve(self, current_running: int) -> Optional[float]:
        """Like try_acquire, but return the recorded timestamp so it can be released."""
        if not self.config.is_allowed_to_start(current_running):
            self.rejected += 1
            return None
        self.config.record_execution()
        self.admitted += 1
        return self.config.execution_times[-1]

    def release(self, timestamp: float) -> bool:
        """Undo a reservation whose execution was refused elsewhere."""
        try:
            self.config.execution_times.remove(timestamp)
        except ValueError:
            return False
        self.admitted -= 1
        self.rejected += 1
        return True

    def is_allowed_to_start(self, current_running: int) -> bool:
        return self.config.is_allowed_to_start(current_running)

    def record_execution(self) -> None:
        self.config.record_execution()
        self.admitted += 1

    def get_stats(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            **self.config.to_dict(),
            "recent_executions": self.config.recent_executions() if self.config.rate_limited else None,
            "admitted": self.admitted,
            "rejected": self.rejected,
        }
