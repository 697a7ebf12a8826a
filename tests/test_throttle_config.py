import pytest

from queue_optimizer.exceptions import InvalidArgumentError
from queue_optimizer.throttle import ThrottleConfig


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def test_concurrency_cap_without_period(clock):
    """Without a period only the instantaneous cap applies"""
    config = ThrottleConfig(max_concurrent=2, period_seconds=0, clock=clock)

    assert config.is_allowed_to_start(0) is True
    assert config.is_allowed_to_start(1) is True
    assert config.is_allowed_to_start(2) is False
    assert config.is_allowed_to_start(5) is False

    # Recorded executions never matter when rate limiting is off
    for _ in range(10):
        config.record_execution()
    assert config.is_allowed_to_start(0) is True


def test_rate_cap_applies_with_nothing_running(clock):
    """max_concurrent doubles as the number of starts allowed per period"""
    config = ThrottleConfig(max_concurrent=3, period_seconds=60, clock=clock)

    for _ in range(3):
        assert config.is_allowed_to_start(0) is True
        config.record_execution()
        clock.advance(5)

    assert config.is_allowed_to_start(0) is False

    # Oldest start leaves the window after 60s
    clock.advance(46)
    assert config.is_allowed_to_start(0) is True


def test_window_boundary_is_inclusive(clock):
    config = ThrottleConfig(max_concurrent=1, period_seconds=30, clock=clock)
    config.record_execution()

    clock.advance(30)
    assert config.is_allowed_to_start(0) is False

    clock.advance(0.001)
    assert config.is_allowed_to_start(0) is True


def test_record_prunes_entries_older_than_two_periods(clock):
    config = ThrottleConfig(max_concurrent=5, period_seconds=10, clock=clock)

    config.record_execution()          # t=1000
    clock.advance(15)
    config.record_execution()          # t=1015, 1000 is still within 2 periods
    assert len(config.execution_times) == 2

    clock.advance(10)
    config.record_execution()          # t=1025, cutoff 1005 drops t=1000
    assert config.execution_times == [1015.0, 1025.0]
    assert config.recent_executions() == 2


def test_recording_does_not_change_earlier_decisions(clock):
    """A decision already taken stays valid; only later checks see the new record"""
    config = ThrottleConfig(max_concurrent=1, period_seconds=60, clock=clock)

    decision = config.is_allowed_to_start(0)
    config.record_execution()

    assert decision is True
    assert config.is_allowed_to_start(0) is False


def test_execution_times_never_in_the_future(clock):
    config = ThrottleConfig(max_concurrent=2, period_seconds=60, clock=clock)
    for _ in range(5):
        config.record_execution()
        clock.advance(1)
    assert all(ts <= clock.now for ts in config.execution_times)


@pytest.mark.parametrize("max_concurrent", [0, -1, 2.5, True, None])
def test_invalid_max_concurrent(max_concurrent):
    with pytest.raises(InvalidArgumentError):
        ThrottleConfig(max_concurrent=max_concurrent)


def test_invalid_period():
    with pytest.raises(InvalidArgumentError):
        ThrottleConfig(max_concurrent=1, period_seconds=-5)


def test_negative_running_count_rejected(clock):
    config = ThrottleConfig(max_concurrent=1, clock=clock)
    with pytest.raises(InvalidArgumentError):
        config.is_allowed_to_start(-1)


def test_describe_and_to_dict():
    assert ThrottleConfig(3).describe() == "max 3 concurrent"
    assert ThrottleConfig(5, 60).describe() == "max 5 concurrent, max 5 per 60s"
    assert ThrottleConfig(5, 60).to_dict() == {"max_concurrent": 5, "period_seconds": 60}
