# queue_optimizer/advisor/optimizer.py
from typing import Dict, List, Mapping

from queue_optimizer.log_handler import get_logger
from queue_optimizer.throttle import ThrottleRegistry

logger = get_logger(__name__)

# A job is a throttling candidate above this many concurrent builds
CONCURRENCY_THRESHOLD = 3

# (running builds strictly above, suggested ceiling), checked in order
THROTTLE_TIERS = ((10, 8), (5, 5))
DEFAULT_THROTTLE_LIMIT = 3


def recommended_limit(current_concurrent: int) -> int:
    for above, limit in THROTTLE_TIERS:
        if current_concurrent > above:
            return limit
    return DEFAULT_THROTTLE_LIMIT


class AutoOptimizer:
    """Suggests job throttles from observed concurrency and applies them."""

    def __init__(self, registry: ThrottleRegistry):
        self.registry = registry

    def calculate_throttle_settings(self, running_builds: Mapping[str, int]) -> Dict[str, int]:
        """Suggested ceilings for jobs running more than CONCURRENCY_THRESHOLD builds at once."""
        return {
            job_name: recommended_limit(running)
            for job_name, running in running_builds.items()
            if running > CONCURRENCY_THRESHOLD
        }

    def pending_changes(self, running_builds: Mapping[str, int]) -> Dict[str, int]:
        """Suggested settings that differ from what the registry already enforces."""
        changes = {}
        for job_name, limit in self.calculate_throttle_settings(running_builds).items():
            existing = self.registry.get_job_throttle(job_name)
            if existing is None or existing.max_concurrent != limit:
                changes[job_name] = limit
        return changes

    def auto_optimize(self, running_builds: Mapping[str, int]) -> List[str]:
        """Apply every suggested throttle as a job throttle and describe the changes."""
        applied = []
        for job_name, limit in self.calculate_throttle_settings(running_builds).items():
            self.registry.set_job_throttle(job_name, limit)
            applied.append(f"Set throttle for {job_name}: max {limit} concurrent builds")

        logger.info(f"Auto-optimize applied {len(applied)} throttle settings")
        return applied
