# queue_optimizer/advisor/scaling.py
import math
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from queue_optimizer.analysis.models import QueueAnalysisReport
from queue_optimizer.log_handler import get_logger
from .models import ScalingAction, ScalingActionKind, ScalingConfig

logger = get_logger(__name__)

# Labels below this utilization (percent) with no queued work may shed agents
SCALE_DOWN_UTILIZATION_THRESHOLD = 30.0

_PAST_TENSE = {
    ScalingActionKind.PROVISION: "Provisioned",
    ScalingActionKind.TERMINATE: "Terminated",
}


class Provisioner(ABC):
    """Creates and removes agents carrying a label. Returns how many it handled."""

    @abstractmethod
    def provision(self, label: str, count: int) -> int:
        pass

    @abstractmethod
    def terminate(self, label: str, count: int) -> int:
        pass


class ScalingAdvisor:
    """Derives per-label provision/terminate actions from a queue analysis."""

    def determine_actions(
        self,
        report: QueueAnalysisReport,
        config: Optional[ScalingConfig] = None,
    ) -> List[ScalingAction]:
        config = config or ScalingConfig()

        if config.target_label:
            if report.label_agents.get(config.target_label, 0) <= 0:
                logger.warning(f"Label '{config.target_label}' has no online agents")
                return []
            labels = [config.target_label]
        else:
            labels = [label for label, agents in report.label_agents.items() if agents > 0]

        actions = []
        for label in labels:
            action = self._evaluate_label(report, label, config)
            if action is not None:
                actions.append(action)
        return actions

    def _evaluate_label(
        self,
        report: QueueAnalysisReport,
        label: str,
        config: ScalingConfig,
    ) -> Optional[ScalingAction]:
        agents = report.label_agents[label]
        demand = report.label_demand.get(label, 0)
        target = agents
        reason = ""

        if demand > 0:
            wanted = min(agents + math.ceil(demand / 2), config.max_agents)
            if wanted > agents:
                target = wanted
                reason = f"Queue length is {demand}, need more capacity"
        else:
            executors = report.label_capacity.get(label, 0)
            busy = report.label_busy.get(label, 0)
            utilization = report.label_utilization(label)

            if utilization < SCALE_DOWN_UTILIZATION_THRESHOLD and agents > config.min_agents and executors > 0:
                # idle executors / executors per agent, in integer arithmetic
                idle_agents = (executors - busy) * agents // executors
                wanted = max(agents - idle_agents, config.min_agents)
                if wanted < agents:
                    target = wanted
                    reason = f"Low utilization ({utilization:.1f}%), can reduce capacity"

        if target == agents:
            return None

        return ScalingAction(
            label=label,
            current_agents=agents,
            target_agents=target,
            delta=target - agents,
            action=ScalingActionKind.PROVISION if target > agents else ScalingActionKind.TERMINATE,
            reason=reason,
        )

    def apply(
        self,
        actions: Iterable[ScalingAction],
        provisioner: Provisioner,
        dry_run: bool = False,
    ) -> List[str]:
        """Hand each action to the provisioner and describe the outcome."""
        outcomes = []
        for action in actions:
            count = abs(action.delta)
            if dry_run:
                outcomes.append(f"Would {action.action.value} {count} agent(s) for label '{action.label}'")
                continue

            try:
                if action.action == ScalingActionKind.PROVISION:
                    done = provisioner.provision(action.label, count)
                else:
                    done = provisioner.terminate(action.label, count)
            except Exception as e:
                logger.error(f"Error applying {action.action.value} for label {action.label}: {str(e)}")
                outcomes.append(f"Failed to {action.action.value} agents for label '{action.label}': {str(e)}")
                continue

            logger.info(f"Applied {action.action.value} for label {action.label}: {done} of {count}")
            outcomes.append(f"{_PAST_TENSE[action.action]} {done} of {count} agent(s) for label '{action.label}'")
        return outcomes
