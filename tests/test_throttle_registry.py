import threading

import pytest

from queue_optimizer.exceptions import InvalidArgumentError, UnknownKeyError
from queue_optimizer.throttle import ThrottleNamespace, ThrottleRegistry


class FakeClock:
    def __init__(self, now: float = 500.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def registry():
    return ThrottleRegistry(clock=FakeClock())


def test_set_get_and_overwrite(registry):
    registry.set_job_throttle("build-app", 2)
    assert registry.get_job_throttle("build-app").max_concurrent == 2

    registry.set_job_throttle("build-app", 4, 60)
    config = registry.get_job_throttle("build-app")
    assert config.max_concurrent == 4
    assert config.period_seconds == 60


def test_namespaces_are_independent(registry):
    registry.set_job_throttle("database", 1)

    assert registry.get_label_throttle("database") is None
    assert registry.get(ThrottleNamespace.JOB, "database") is not None
    assert registry.get("job", "database") is not None


def test_remove_throttle(registry):
    registry.set_label_throttle("gpu", 3)

    assert registry.remove_label_throttle("gpu") is True
    assert registry.get_label_throttle("gpu") is None
    # Removing again is a no-op
    assert registry.remove_label_throttle("gpu") is False
    assert registry.remove_job_throttle("never-set") is False


def test_require_unknown_key(registry):
    with pytest.raises(UnknownKeyError):
        registry.require(ThrottleNamespace.JOB, "missing")


@pytest.mark.parametrize("max_concurrent", [0, -3])
def test_set_rejects_non_positive_max(registry, max_concurrent):
    with pytest.raises(InvalidArgumentError):
        registry.set_job_throttle("job", max_concurrent)
    assert registry.get_job_throttle("job") is None


def test_set_rejects_blank_key_and_unknown_namespace(registry):
    with pytest.raises(InvalidArgumentError):
        registry.set_job_throttle("  ", 1)
    with pytest.raises(InvalidArgumentError):
        registry.set_throttle("node", "x", 1)


def test_listing_returns_copies(registry):
    registry.set_job_throttle("a", 1)
    registry.set_label_throttle("linux", 2)

    jobs = registry.job_throttles()
    jobs.clear()

    assert set(registry.job_throttles()) == {"a"}
    assert set(registry.label_throttles()) == {"linux"}


def test_try_acquire_unknown_key_is_unrestricted(registry):
    assert registry.try_acquire(ThrottleNamespace.JOB, "free-job", 100) is True


def test_try_acquire_records_only_admitted_executions(registry):
    registry.set_job_throttle("deploy", 2, period_seconds=60)

    assert registry.try_acquire("job", "deploy", 0) is True
    assert registry.try_acquire("job", "deploy", 5) is False
    assert registry.try_acquire("job", "deploy", 1) is True
    assert registry.try_acquire("job", "deploy", 0) is False

    assert len(registry.get_job_throttle("deploy").execution_times) == 2


def test_admit_requires_both_job_and_label(registry):
    registry.set_job_throttle("integration-tests", 5, period_seconds=60)
    registry.set_label_throttle("database", 1, period_seconds=60)

    assert registry.admit("integration-tests", "database") is True
    # Label window is full, so the job must not be charged either
    assert registry.admit("integration-tests", "database") is False

    assert len(registry.get_job_throttle("integration-tests").execution_times) == 1
    assert len(registry.get_label_throttle("database").execution_times) == 1


def test_admit_with_running_counts(registry):
    registry.set_job_throttle("nightly", 2)
    registry.set_label_throttle("linux", 4)

    assert registry.admit("nightly", "linux", job_running=1, label_running=3) is True
    assert registry.admit("nightly", "linux", job_running=2, label_running=0) is False
    assert registry.admit("nightly", "linux", job_running=0, label_running=4) is False
    assert registry.admit("nightly", job_running=1) is True
    assert registry.admit("other-job", "unthrottled-label") is True


def test_concurrent_admission_never_exceeds_cap():
    """Many threads racing for the same key admit exactly max_concurrent starts per window"""
    registry = ThrottleRegistry()
    registry.set_job_throttle("hot-job", 5, period_seconds=3600)

    threads_count = 50
    barrier = threading.Barrier(threads_count)
    results = []
    results_lock = threading.Lock()

    def worker():
        barrier.wait()
        allowed = registry.try_acquire(ThrottleNamespace.JOB, "hot-job", 0)
        with results_lock:
            results.append(allowed)

    threads = [threading.Thread(target=worker) for _ in range(threads_count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 5
    assert len(registry.get_job_throttle("hot-job").execution_times) == 5


def test_unthrottled_keys_leave_no_state(registry):
    """Admission on keys without a policy keeps nothing per key"""
    for i in range(10000):
        assert registry.admit(f"job-{i}", label=f"label-{i}") is True
        assert registry.try_acquire("label", f"pool-{i}", 0) is True

    registry.set_job_throttle("short-lived", 1)
    assert len(registry._key_locks) == 1
    registry.remove_job_throttle("short-lived")

    assert registry._key_locks == {}
    assert registry.job_throttles() == {}
    assert registry.label_throttles() == {}


def test_replaced_policy_starts_with_fresh_history(registry):
    registry.set_label_throttle("gpu", 1, period_seconds=60)
    assert registry.admit("train", "gpu") is True
    assert registry.admit("train", "gpu") is False

    registry.set_label_throttle("gpu", 1, period_seconds=60)

    assert registry.admit("train", "gpu") is True
