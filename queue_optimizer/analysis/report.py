# queue_optimizer/analysis/report.py
from typing import Dict, Iterable, List, Mapping, Sequence

from .models import QueueAnalysisReport


def _by_value_desc(values: Mapping[str, float]) -> List:
    return sorted(values.items(), key=lambda kv: (-kv[1], kv[0]))


def render_report(report: QueueAnalysisReport) -> str:
    """Render the full text analysis report."""
    lines = [
        "Queue Analysis Report",
        "=====================",
        f"Generated: {report.generated_at.isoformat()}",
        "",
        "Queue Status:",
        f"- Queue size: {report.queue_length}",
        f"- Blocked jobs: {len(report.blocked_jobs)}",
        f"- Stuck jobs: {len(report.stuck_jobs)}",
        f"- Average wait: {format_duration(report.average_wait_seconds)}",
        "",
        "Node Status:",
    ]
    if report.offline_nodes:
        lines.append(f"- Offline nodes: {', '.join(report.offline_nodes)}")
    else:
        lines.append("- All nodes online")

    lines.append("")
    lines.append("Executor Utilization:")
    for node, utilization in _by_value_desc(report.node_utilization):
        available = report.available_executors.get(node, 0)
        lines.append(f"- {node:<20}: {utilization:5.1f}% ({available} available executors)")

    lines.append("")
    lines.append("Label Resource Pressure:")
    for label, pressure in _by_value_desc(report.label_pressure):
        demand = report.label_demand.get(label, 0)
        if pressure >= 0:
            capacity = report.label_capacity.get(label, 0)
            lines.append(
                f"- {label:<20}: {pressure:5.1f}% (Demand: {demand}, Capacity: {capacity})"
            )
        else:
            lines.append(f"- {label:<20}: No capacity (Demand: {demand})")

    return "\n".join(lines) + "\n"


def render_summary(report: QueueAnalysisReport, recommendations: Sequence[str], top: int = 3) -> str:
    """Short overview: top utilization, top pressure points and the first recommendations."""
    lines = [
        "Job Scheduling Summary",
        f"Queue size: {report.queue_length}",
        f"Blocked jobs: {len(report.blocked_jobs)}",
    ]
    if report.offline_nodes:
        lines.append(f"Offline nodes: {', '.join(report.offline_nodes)}")

    lines.append("")
    lines.append(f"Top {top} Node Utilization:")
    for node, utilization in _by_value_desc(report.node_utilization)[:top]:
        lines.append(f"- {node:<20}: {utilization:5.1f}%")

    lines.append("")
    lines.append(f"Top {top} Label Pressure Points:")
    for label, pressure in _by_value_desc(report.label_pressure)[:top]:
        if pressure >= 0:
            lines.append(f"- {label:<20}: {pressure:5.1f}%")

    lines.append("")
    lines.append("Recommendations:")
    if not recommendations:
        lines.append("No recommendations at this time")
    else:
        lines.extend(f"- {rec}" for rec in recommendations[:top])
        if len(recommendations) > top:
            lines.append(f"...and {len(recommendations) - top} more recommendations")

    return "\n".join(lines) + "\n"


def render_recommendations(recommendations: Sequence[str]) -> str:
    lines = ["Scheduling Recommendations:"]
    if not recommendations:
        lines.append("No recommendations at this time")
    else:
        lines.extend(f"{i}. {rec}" for i, rec in enumerate(recommendations, start=1))
    return "\n".join(lines) + "\n"


def render_throttles(job_throttles: Dict, label_throttles: Dict) -> str:
    """List throttle settings; values are ThrottleConfig instances."""
    lines = ["Current Throttle Settings:"]
    if not job_throttles and not label_throttles:
        lines.append("No throttle settings configured")
        return "\n".join(lines) + "\n"

    for title, throttles in (("Job Throttles:", job_throttles), ("Label Throttles:", label_throttles)):
        if not throttles:
            continue
        lines.append("")
        lines.append(title)
        for name in sorted(throttles):
            lines.append(f"- {name:<30}: {throttles[name].describe()}")

    return "\n".join(lines) + "\n"


def render_scaling_actions(actions: Iterable, dry_run: bool = False) -> str:
    """Render ScalingAction values for an operator."""
    actions = list(actions)
    lines = ["Agent Scaling Actions:"]
    if not actions:
        lines.append("No scaling actions needed at this time.")
        return "\n".join(lines) + "\n"

    for action in actions:
        lines.append("")
        lines.append(f"Label: {action.label}")
        lines.append(f"  Current Agents: {action.current_agents}")
        lines.append(f"  Target Agents: {action.target_agents}")
        lines.append(f"  Action: {action.action.value.upper()} {abs(action.delta)} agent(s)")
        lines.append(f"  Reason: {action.reason}")
    if dry_run:
        lines.append("")
        lines.append("DRY RUN: No changes were made")
    return "\n".join(lines) + "\n"


def format_duration(seconds: float) -> str:
    """Format a duration in seconds as e.g. '1h 02m 03s', '4m 05s' or '2.5s'."""
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(int(minutes), 60)
    if hours > 0:
        return f"{hours}h {minutes:02d}m {int(secs):02d}s"
    if minutes > 0:
        return f"{minutes}m {int(secs):02d}s"
    return f"{secs:.1f}s"
