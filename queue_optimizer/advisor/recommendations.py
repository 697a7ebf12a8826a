# queue_optimizer/advisor/recommendations.py
from typing import List, Mapping, Optional

from queue_optimizer.analysis.models import NO_CAPACITY, QueueAnalysisReport
from queue_optimizer.throttle import ThrottleRegistry
from .models import RecommendationType, ResourceRecommendation
from .optimizer import AutoOptimizer

# Scheduling recommendation thresholds (percent)
HIGH_PRESSURE_THRESHOLD = 90.0
LOW_NODE_UTILIZATION_THRESHOLD = 30.0

# Resource recommendation thresholds
CAPACITY_QUEUED_ITEMS = 3
CAPACITY_MIN_AGENTS = 3
UNDERUTILIZED_PERCENT = 20.0
UNDERUTILIZED_AGENT_COUNT = 3
OFFLINE_AGENT_COUNT = 3
COST_UTILIZATION_PERCENT = 30.0
OVERUTILIZED_LABEL_PERCENT = 80.0
UNDERUTILIZED_LABEL_MIN_AGENTS = 2


class RecommendationEngine:
    """Turns a queue analysis into ordered recommendations.

    Every rule is evaluated on its own, so one report can yield
    recommendations of all kinds at once.
    """

    def __init__(self, registry: ThrottleRegistry, optimizer: Optional[AutoOptimizer] = None):
        self.registry = registry
        self.optimizer = optimizer or AutoOptimizer(registry)

    def generate(
        self,
        report: QueueAnalysisReport,
        running_builds: Optional[Mapping[str, int]] = None,
    ) -> List[str]:
        """
        Scheduling recommendations as text lines.

        Args:
            report: Queue analysis to evaluate
            running_builds: Currently running build count per job, used for
                            throttle suggestions

        Returns:
            Recommendations in rule order: label pressure, node utilization,
            stuck jobs, throttle suggestions
        """
        recommendations = []

        for label, pressure in report.label_pressure.items():
            if pressure != NO_CAPACITY and pressure > HIGH_PRESSURE_THRESHOLD:
                recommendations.append(
                    f"High demand for label '{label}': Consider adding more executors "
                    f"({pressure:.1f}% utilization)"
                )

        for node, utilization in report.node_utilization.items():
            if utilization < LOW_NODE_UTILIZATION_THRESHOLD:
                recommendations.append(
                    f"Low utilization for node '{node}': Consider consolidating workloads "
                    f"({utilization:.1f}% utilization)"
                )

        if report.stuck_jobs:
            recommendations.append(
                f"{len(report.stuck_jobs)} stuck jobs detected: {', '.join(report.stuck_jobs)}"
            )

        for job_name, limit in self.optimizer.pending_changes(running_builds or {}).items():
            recommendations.append(
                f"Consider throttling job '{job_name}' to max {limit} concurrent builds"
            )

        return recommendations

    def resource_recommendations(self, report: QueueAnalysisReport) -> List[ResourceRecommendation]:
        """Typed capacity, efficiency, reliability, cost and balance recommendations."""
        recommendations = []

        for label, demand in report.label_demand.items():
            agents = report.label_agents.get(label, 0)
            if demand > CAPACITY_QUEUED_ITEMS and agents < CAPACITY_MIN_AGENTS:
                recommendations.append(ResourceRecommendation(
                    type=RecommendationType.CAPACITY,
                    description=f"Label '{label}' has {demand} queued items but only {agents} agents",
                    impact="Jobs are waiting unnecessarily in the queue",
                    action="Increase max agents for this label or add more static agents",
                ))

        underutilized = [
            node for node, utilization in report.node_utilization.items()
            if utilization < UNDERUTILIZED_PERCENT
        ]
        if len(underutilized) > UNDERUTILIZED_AGENT_COUNT:
            recommendations.append(ResourceRecommendation(
                type=RecommendationType.EFFICIENCY,
                description=f"Found {len(underutilized)} agents with utilization under {UNDERUTILIZED_PERCENT:.0f}%",
                impact="Wasting cloud resources and increasing costs",
                action="Reduce minimum agent counts or consolidate jobs onto fewer agents",
            ))

        if len(report.offline_nodes) > OFFLINE_AGENT_COUNT:
            recommendations.append(ResourceRecommendation(
                type=RecommendationType.RELIABILITY,
                description=f"Found {len(report.offline_nodes)} offline agents",
                impact="Reduced capacity and potential job failures",
                action="Investigate agent connectivity issues or terminate and replace failing agents",
            ))

        if (
            report.online_executors > 0
            and report.overall_utilization < COST_UTILIZATION_PERCENT
            and report.queue_length == 0
        ):
            recommendations.append(ResourceRecommendation(
                type=RecommendationType.COST,
                description=(
                    f"Overall executor utilization is only {report.overall_utilization:.1f}% "
                    f"with no queued jobs"
                ),
                impact="Paying for more cloud resources than needed",
                action="Reduce the minimum number of agents or use smaller instance types",
            ))

        overutilized_labels = [
            label for label in report.label_capacity
            if report.label_utilization(label) > OVERUTILIZED_LABEL_PERCENT
        ]
        underutilized_labels = [
            label for label in report.label_capacity
            if report.label_utilization(label) < UNDERUTILIZED_PERCENT
            and report.label_agents.get(label, 0) > UNDERUTILIZED_LABEL_MIN_AGENTS
        ]
        if overutilized_labels and underutilized_labels:
            recommendations.append(ResourceRecommendation(
                type=RecommendationType.BALANCE,
                description=(
                    f"Resource imbalance across labels: {len(overutilized_labels)} overutilized "
                    f"and {len(underutilized_labels)} underutilized"
                ),
                impact="Some jobs wait while resources sit idle",
                action="Redistribute jobs or adjust agent provisioning across labels",
            ))

        return recommendations
