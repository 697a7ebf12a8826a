# queue_optimizer/throttle/config.py
import time
from enum import Enum
from typing import Any, Callable, Dict, List

from queue_optimizer.exceptions import InvalidArgumentError


class ThrottleNamespace(str, Enum):
    JOB = "job"
    LABEL = "label"


class ThrottleConfig:
    """Concurrency cap plus an optional sliding-window rate cap.

    NOTE: ``max_concurrent`` is both the ceiling on simultaneous executions
    and the number of executions allowed per ``period_seconds`` window.
    A period of 0 disables the rate window.

    Not thread-safe: callers pair ``is_allowed_to_start`` and
    ``record_execution`` under a lock (see ThrottleRegistry.try_acquire).
    """

    def __init__(
        self,
        max_concurrent: int,
        period_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if isinstance(max_concurrent, bool) or not isinstance(max_concurrent, int) or max_concurrent <= 0:
            raise InvalidArgumentError(
                f"max_concurrent must be a positive integer, got {max_concurrent!r}"
            )
        if period_seconds is None or period_seconds < 0:
            raise InvalidArgumentError(
                f"period_seconds must be >= 0, got {period_seconds!r}"
            )
        self.max_concurrent = max_concurrent
        self.period_seconds = period_seconds
        self.execution_times: List[float] = []
        self._clock = clock

    @property
    def rate_limited(self) -> bool:
        return self.period_seconds > 0

    def recent_executions(self) -> int:
        """Executions recorded inside the current window."""
        cutoff = self._clock() - self.period_seconds
        return sum(1 for ts in self.execution_times if ts >= cutoff)

    def is_allowed_to_start(self, current_running: int) -> bool:
        if current_running < 0:
            raise InvalidArgumentError(
                f"current_running must be >= 0, got {current_running}"
            )
        if current_running >= self.max_concurrent:
            return False

        if self.rate_limited and self.recent_executions() >= self.max_concurrent:
            return False

        return True

    def record_execution(self) -> None:
        """Record an execution that has actually started."""
        now = self._clock()
        self.execution_times.append(now)

        if self.rate_limited:
            # keep two windows of history
            cleanup_cutoff = now - self.period_seconds * 2
            self.execution_times = [
                ts for ts in self.execution_times if ts >= cleanup_cutoff
            ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_concurrent": self.max_concurrent,
            "period_seconds": self.period_seconds,
        }

    def describe(self) -> str:
        text = f"max {self.max_concurrent} concurrent"
        if self.rate_limited:
            text += f", max {self.max_concurrent} per {self.period_seconds:g}s"
        return text

    def __repr__(self) -> str:
        return (
            f"ThrottleConfig(max_concurrent={self.max_concurrent}, "
            f"period_seconds={self.period_seconds})"
        )
