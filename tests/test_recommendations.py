import pytest

from queue_optimizer.advisor import (
    AutoOptimizer,
    RecommendationEngine,
    RecommendationType,
    recommended_limit,
)
from queue_optimizer.analysis import FleetSnapshot, Node, QueueItem, analyze_snapshot
from queue_optimizer.throttle import ThrottleRegistry


def queue_for(label, count):
    return [QueueItem(item_id=f"{label}-{i}", task_name=f"{label}-job-{i}", assigned_label=label)
            for i in range(count)]


@pytest.fixture
def registry():
    return ThrottleRegistry()


@pytest.fixture
def engine(registry):
    return RecommendationEngine(registry)


def test_high_label_pressure(engine):
    report = analyze_snapshot(FleetSnapshot(
        nodes=[Node(name="b1", total_executors=4, busy_executors=4, labels={"build"})],
        queue=queue_for("build", 4),
    ))

    recommendations = engine.generate(report)

    assert recommendations == [
        "High demand for label 'build': Consider adding more executors (100.0% utilization)"
    ]


def test_pressure_at_threshold_is_not_reported(engine):
    report = analyze_snapshot(FleetSnapshot(
        nodes=[Node(name="b1", total_executors=10, busy_executors=10, labels={"build"})],
        queue=queue_for("build", 9),
    ))
    assert report.label_pressure["build"] == 90.0
    assert engine.generate(report) == []


def test_zero_capacity_label_is_not_reported_as_high_pressure(engine):
    report = analyze_snapshot(FleetSnapshot(
        nodes=[Node(name="cpu", total_executors=2, busy_executors=2, labels={"linux"})],
        queue=queue_for("gpu", 5),
    ))

    recommendations = engine.generate(report)

    assert report.label_pressure["gpu"] == -1
    assert not any("gpu" in rec for rec in recommendations)


def test_low_node_utilization(engine):
    report = analyze_snapshot(FleetSnapshot(nodes=[
        Node(name="idle-1", total_executors=10, busy_executors=2),
        Node(name="busy-1", total_executors=10, busy_executors=3),
    ]))

    assert engine.generate(report) == [
        "Low utilization for node 'idle-1': Consider consolidating workloads (20.0% utilization)"
    ]


def test_stuck_jobs_are_named(engine):
    report = analyze_snapshot(FleetSnapshot(queue=[
        QueueItem(item_id="1", task_name="release", stuck=True),
        QueueItem(item_id="2", task_name="nightly", stuck=True),
        QueueItem(item_id="3", task_name="lint"),
    ]))

    assert engine.generate(report) == ["2 stuck jobs detected: release, nightly"]


def test_all_rules_fire_independently(engine):
    report = analyze_snapshot(FleetSnapshot(
        nodes=[
            Node(name="b1", total_executors=2, busy_executors=2, labels={"build"}),
            Node(name="spare", total_executors=4, busy_executors=0),
        ],
        queue=queue_for("build", 3) + [QueueItem(item_id="s", task_name="stuck-job", stuck=True)],
    ))

    recommendations = engine.generate(report, {"api-tests": 7})

    assert len(recommendations) == 4
    assert recommendations[0].startswith("High demand for label 'build'")
    assert recommendations[1].startswith("Low utilization for node 'spare'")
    assert recommendations[2] == "1 stuck jobs detected: stuck-job"
    assert recommendations[3] == "Consider throttling job 'api-tests' to max 5 concurrent builds"


@pytest.mark.parametrize("running,limit", [(3, 3), (4, 3), (5, 3), (6, 5), (10, 5), (11, 8), (40, 8)])
def test_recommended_limit_tiers(running, limit):
    assert recommended_limit(running) == limit


def test_throttle_suggestions(engine, registry):
    running = {"small": 4, "medium": 6, "large": 11, "quiet": 3}

    assert engine.optimizer.calculate_throttle_settings(running) == {"small": 3, "medium": 5, "large": 8}

    # A job already throttled at the suggested value is not suggested again
    registry.set_job_throttle("medium", 5)
    registry.set_job_throttle("large", 2)
    recommendations = engine.generate(analyze_snapshot(FleetSnapshot()), running)

    assert recommendations == [
        "Consider throttling job 'small' to max 3 concurrent builds",
        "Consider throttling job 'large' to max 8 concurrent builds",
    ]


def test_auto_optimize_applies_job_throttles(registry):
    optimizer = AutoOptimizer(registry)

    applied = optimizer.auto_optimize({"deploy": 12, "lint": 1})

    assert applied == ["Set throttle for deploy: max 8 concurrent builds"]
    assert registry.get_job_throttle("deploy").max_concurrent == 8
    assert registry.get_job_throttle("lint") is None
    assert optimizer.pending_changes({"deploy": 12}) == {}


def test_capacity_recommendation_for_unbacked_label(engine):
    report = analyze_snapshot(FleetSnapshot(
        nodes=[Node(name="cpu", total_executors=2, busy_executors=1, labels={"linux"})],
        queue=queue_for("gpu", 5),
    ))

    recommendations = engine.resource_recommendations(report)

    capacity = [r for r in recommendations if r.type == RecommendationType.CAPACITY]
    assert len(capacity) == 1
    assert capacity[0].description == "Label 'gpu' has 5 queued items but only 0 agents"


def test_efficiency_reliability_and_cost_recommendations(engine):
    nodes = [Node(name=f"idle-{i}", total_executors=4, busy_executors=0) for i in range(4)]
    nodes += [Node(name=f"down-{i}", total_executors=4, offline=True) for i in range(4)]

    types = [r.type for r in engine.resource_recommendations(analyze_snapshot(FleetSnapshot(nodes=nodes)))]

    assert types == [RecommendationType.EFFICIENCY, RecommendationType.RELIABILITY, RecommendationType.COST]


def test_no_cost_recommendation_with_queued_work(engine):
    report = analyze_snapshot(FleetSnapshot(
        nodes=[Node(name="n1", total_executors=4, busy_executors=0)],
        queue=[QueueItem(item_id="1", task_name="waiting")],
    ))
    assert engine.resource_recommendations(report) == []


def test_balance_recommendation(engine):
    nodes = [Node(name="hot-1", total_executors=2, busy_executors=2, labels={"hot"})]
    nodes += [Node(name=f"cold-{i}", total_executors=2, busy_executors=0, labels={"cold"}) for i in range(3)]
    report = analyze_snapshot(FleetSnapshot(nodes=nodes, queue=[QueueItem(item_id="1", task_name="x")]))

    types = [r.type for r in engine.resource_recommendations(report)]

    assert types == [RecommendationType.BALANCE]
