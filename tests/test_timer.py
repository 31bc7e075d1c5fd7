import pytest

from pingloop.utils.timer import IntervalTimer


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_first_firing_is_immediate():
    clock = FakeClock(100.0)
    timer = IntervalTimer(1.0, clock=clock)
    assert not timer.armed
    assert timer.time_left() is None
    timer.arm()
    assert timer.due()
    assert timer.time_left() == 0.0


def test_acknowledge_moves_deadline_by_interval():
    clock = FakeClock()
    timer = IntervalTimer(1.0, clock=clock)
    timer.arm()
    assert timer.acknowledge() == 1
    assert not timer.due()
    clock.now = 0.25
    assert timer.time_left() == 0.75
    clock.now = 1.0
    assert timer.due()


def test_missed_intervals_are_coalesced():
    clock = FakeClock()
    timer = IntervalTimer(1.0, clock=clock)
    timer.arm()
    timer.acknowledge()
    clock.now = 3.5
    assert timer.acknowledge() == 3
    assert timer.time_left() == 0.5


def test_acknowledge_before_due_raises():
    clock = FakeClock()
    timer = IntervalTimer(1.0, clock=clock)
    timer.arm()
    timer.acknowledge()
    with pytest.raises(RuntimeError):
        timer.acknowledge()


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        IntervalTimer(0)
