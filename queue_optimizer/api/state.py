# queue_optimizer/api/state.py
from typing import Optional

from queue_optimizer.advisor import AutoOptimizer, Provisioner, RecommendationEngine, ScalingAdvisor
from queue_optimizer.analysis import (
    BuildHistory,
    InventoryProvider,
    QueueAnalyzer,
    StaticBuildHistory,
    StaticInventory,
)
from queue_optimizer.config import OptimizerConfig
from queue_optimizer.throttle import RayThrottleService, ThrottleRegistry


class AppState:
    """Services shared by the request handlers of one application."""

    def __init__(
        self,
        config: Optional[OptimizerConfig] = None,
        registry: Optional[ThrottleRegistry] = None,
        inventory: Optional[InventoryProvider] = None,
        build_history: Optional[BuildHistory] = None,
        provisioner: Optional[Provisioner] = None,
    ):
        self.config = config or OptimizerConfig()
        self.registry = registry or ThrottleRegistry()
        self.inventory = inventory or StaticInventory()
        self.build_history = build_history or StaticBuildHistory()
        self.provisioner = provisioner

        self.analyzer = QueueAnalyzer(self.inventory)
        self.optimizer = AutoOptimizer(self.registry)
        self.engine = RecommendationEngine(self.registry, self.optimizer)
        self.advisor = ScalingAdvisor()

        self.ray_throttles: Optional[RayThrottleService] = None
        self.is_shutting_down: bool = False
