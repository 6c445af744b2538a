"""Tests for the single-threaded timer queue and its cancellation scopes."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from math_arcade.timers import TimerQueue


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_call_later_fires_once_when_due() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    scope = timers.scope("test")
    fired: list[float] = []

    timers.call_later(1.0, lambda: fired.append(clock.t), scope=scope)

    clock.advance(0.5)
    assert timers.run_due() == 0
    clock.advance(0.5)
    assert timers.run_due() == 1
    assert fired == [1.0]

    clock.advance(5.0)
    assert timers.run_due() == 0
    assert timers.pending() == 0


def test_periodic_entries_catch_up_one_run_per_missed_period() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    scope = timers.scope("ticks")
    count = 0

    def tick() -> None:
        nonlocal count
        count += 1

    timers.call_every(0.8, tick, scope=scope)
    clock.advance(2.5)
    assert timers.run_due() == 3
    assert count == 3
    assert timers.pending(scope) == 1


def test_due_entries_fire_in_due_then_schedule_order() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    scope = timers.scope("order")
    order: list[str] = []

    timers.call_later(1.0, lambda: order.append("a"), scope=scope)
    timers.call_later(1.0, lambda: order.append("b"), scope=scope)
    timers.call_later(0.5, lambda: order.append("c"), scope=scope)

    clock.advance(2.0)
    timers.run_due()
    assert order == ["c", "a", "b"]


def test_cancelled_scope_drops_entries_and_ignores_new_ones() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    doomed = timers.scope("doomed")
    kept = timers.scope("kept")
    fired: list[str] = []

    timers.call_every(0.1, lambda: fired.append("doomed"), scope=doomed)
    timers.call_later(0.5, lambda: fired.append("kept"), scope=kept)
    doomed.cancel()
    assert not doomed.active
    assert timers.pending(doomed) == 0

    handle = timers.call_later(0.1, lambda: fired.append("late"), scope=doomed)
    assert handle.cancelled
    assert timers.pending() == 1

    clock.advance(1.0)
    timers.run_due()
    assert fired == ["kept"]


def test_callback_can_cancel_its_own_periodic_scope() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    scope = timers.scope("self-cancel")
    runs = 0

    def tick() -> None:
        nonlocal runs
        runs += 1
        if runs == 2:
            scope.cancel()

    timers.call_every(1.0, tick, scope=scope)
    clock.advance(10.0)
    timers.run_due()
    assert runs == 2
    assert timers.pending() == 0


def test_individual_handle_cancel() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    scope = timers.scope("handles")
    fired: list[int] = []

    first = timers.call_later(1.0, lambda: fired.append(1), scope=scope)
    timers.call_later(1.0, lambda: fired.append(2), scope=scope)
    first.cancel()

    clock.advance(1.0)
    timers.run_due()
    assert fired == [2]


def test_invalid_delays_are_rejected() -> None:
    timers = TimerQueue(FakeClock())
    scope = timers.scope("bad")
    with pytest.raises(ValueError):
        timers.call_later(-0.1, lambda: None, scope=scope)
    with pytest.raises(ValueError):
        timers.call_every(0.0, lambda: None, scope=scope)
