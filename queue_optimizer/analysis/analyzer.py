# queue_optimizer/analysis/analyzer.py
from typing import Dict, List

from queue_optimizer.exceptions import InvalidArgumentError, InventoryUnavailableError
from queue_optimizer.log_handler import get_logger
from .inventory import InventoryProvider
from .models import NO_CAPACITY, FleetSnapshot, Node, QueueAnalysisReport

logger = get_logger(__name__)

# Labels the platform attaches to every node for self-addressing
INTERNAL_LABEL_PREFIX = "node-"


def is_internal_label(label: str) -> bool:
    return not label or label.startswith(INTERNAL_LABEL_PREFIX)


def _validate_node(node: Node) -> None:
    if node.total_executors < 0 or node.busy_executors < 0:
        raise InvalidArgumentError(f"Node {node.name} reports negative executor counts")
    if node.busy_executors > node.total_executors:
        raise InvalidArgumentError(
            f"Node {node.name} reports {node.busy_executors} busy executors "
            f"but only has {node.total_executors}"
        )
    if len(node.running_jobs) > node.busy_executors:
        raise InvalidArgumentError(
            f"Node {node.name} reports {len(node.running_jobs)} running jobs "
            f"on {node.busy_executors} busy executors"
        )


def analyze_snapshot(snapshot: FleetSnapshot) -> QueueAnalysisReport:
    """
    Compute queue, executor and label pressure metrics for one snapshot.

    Offline nodes are listed in ``offline_nodes`` and contribute no capacity;
    they are absent from the utilization tables rather than shown as idle.
    Every label seen in demand or capacity gets a pressure value, with
    NO_CAPACITY (-1) for labels that have demand but no executors.

    Raises:
        InvalidArgumentError: if a node reports impossible executor counts
    """
    blocked_jobs: List[str] = []
    stuck_jobs: List[str] = []
    running_jobs: List[str] = []
    offline_nodes: List[str] = []
    label_demand: Dict[str, int] = {}
    total_wait = 0.0

    for item in snapshot.queue:
        if item.blocked:
            blocked_jobs.append(item.task_name)
        if item.stuck:
            stuck_jobs.append(item.task_name)
        if item.assigned_label:
            label_demand[item.assigned_label] = label_demand.get(item.assigned_label, 0) + 1
        total_wait += max(0.0, (snapshot.taken_at - item.in_queue_since).total_seconds())

    node_utilization: Dict[str, float] = {}
    available_executors: Dict[str, int] = {}
    label_capacity: Dict[str, int] = {}
    label_agents: Dict[str, int] = {}
    label_busy: Dict[str, int] = {}
    total_executors = busy_executors = offline_executors = 0

    for node in snapshot.nodes:
        _validate_node(node)
        total_executors += node.total_executors

        if node.offline:
            offline_nodes.append(node.name)
            offline_executors += node.total_executors
            continue

        busy_executors += node.busy_executors
        running_jobs.extend(node.running_jobs)

        if node.total_executors > 0:
            node_utilization[node.name] = node.busy_executors * 100.0 / node.total_executors
            available_executors[node.name] = node.total_executors - node.busy_executors

        for label in sorted(node.labels):
            if is_internal_label(label):
                continue
            label_capacity[label] = label_capacity.get(label, 0) + node.total_executors
            label_agents[label] = label_agents.get(label, 0) + 1
            label_busy[label] = label_busy.get(label, 0) + node.busy_executors

    label_pressure: Dict[str, float] = {}
    for label in sorted(set(label_demand) | set(label_capacity)):
        demand = label_demand.setdefault(label, 0)
        capacity = label_capacity.setdefault(label, 0)
        if capacity > 0:
            label_pressure[label] = demand * 100.0 / capacity
        else:
            label_pressure[label] = NO_CAPACITY

    queue_length = len(snapshot.queue)
    return QueueAnalysisReport(
        queue_length=queue_length,
        blocked_jobs=tuple(blocked_jobs),
        stuck_jobs=tuple(stuck_jobs),
        running_jobs=tuple(running_jobs),
        offline_nodes=tuple(offline_nodes),
        node_utilization=node_utilization,
        available_executors=available_executors,
        label_demand=label_demand,
        label_capacity=label_capacity,
        label_pressure=label_pressure,
        label_agents=label_agents,
        label_busy=label_busy,
        total_executors=total_executors,
        busy_executors=busy_executors,
        offline_executors=offline_executors,
        average_wait_seconds=total_wait / queue_length if queue_length else 0.0,
        generated_at=snapshot.taken_at,
    )


class QueueAnalyzer:
    """Turns the live inventory into a QueueAnalysisReport on demand."""

    def __init__(self, inventory: InventoryProvider):
        self.inventory = inventory

    def analyze(self) -> QueueAnalysisReport:
        try:
            snapshot = self.inventory.snapshot()
        except Exception as e:
            logger.error(f"Error reading fleet inventory: {str(e)}")
            raise InventoryUnavailableError(f"Fleet inventory unavailable: {str(e)}") from e

        report = analyze_snapshot(snapshot)
        logger.debug(
            f"Analyzed queue: {report.queue_length} queued, "
            f"{len(report.offline_nodes)} offline nodes, "
            f"{len(report.label_pressure)} labels"
        )
        return report
