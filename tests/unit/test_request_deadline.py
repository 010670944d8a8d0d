from __future__ import annotations

from line_relay.domain.deadline import RequestDeadline


class _FakeClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_remaining_subtracts_margin_from_time_left() -> None:
    clock = _FakeClock(100.0)
    deadline = RequestDeadline.after(60.0, clock=clock)

    clock.now = 110.0

    assert deadline.remaining() == 50.0
    assert deadline.remaining(margin_seconds=1.0) == 49.0


def test_remaining_never_goes_below_zero() -> None:
    clock = _FakeClock(0.0)
    deadline = RequestDeadline.after(1.0, clock=clock)

    clock.now = 0.95

    assert deadline.remaining(margin_seconds=0.1) == 0.0
    assert not deadline.expired()

    clock.now = 2.0

    assert deadline.expired()
