"""Single-threaded timer queue with cancellation scopes.

Every delayed or periodic piece of session behaviour (spawn ticks, expiry
timeouts, motion ticks, hit resolution delays, auto-advance delays) is an
entry in a :class:`TimerQueue`.  Nothing runs in parallel: the host calls
:meth:`TimerQueue.run_due` once per frame and due callbacks fire one after
another, each seeing the state left by the previous one.

Entries are ordered by ``(due time, schedule sequence)``, so a callback
scheduled earlier fires no later than one scheduled after it with an equal or
longer delay.  Nothing is promised between unrelated families of timers.

Each entry belongs to a :class:`TimerScope`.  Cancelling the scope drops all
of its entries, and an entry whose scope is no longer active when it comes
due is discarded instead of run.  Mechanics open a scope per question (or per
session) and cancel it when that question or session ends.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Callable

from .clock import Clock

logger = logging.getLogger(__name__)


class TimerScope:
    """Cancellation token shared by a family of timer entries."""

    def __init__(self, queue: "TimerQueue", name: str) -> None:
        self._queue = queue
        self._name = name
        self._active = True

    @property
    def name(self) -> str:
        return self._name

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._queue._drop_scope(self)

    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"TimerScope({self._name!r}, {state})"


class TimerHandle:
    """A single scheduled callback.  Periodic handles re-arm after each run."""

    def __init__(
        self,
        *,
        scope: TimerScope,
        callback: Callable[[], None],
        due_s: float,
        period_s: float | None,
    ) -> None:
        self.scope = scope
        self.callback = callback
        self.due_s = due_s
        self.period_s = period_s
        self._cancelled = not scope.active

    @property
    def cancelled(self) -> bool:
        return self._cancelled or not self.scope.active

    def cancel(self) -> None:
        self._cancelled = True


class TimerQueue:
    """Delayed/periodic callbacks driven by an injected :class:`Clock`."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._heap: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    @property
    def clock(self) -> Clock:
        return self._clock

    def now(self) -> float:
        return self._clock.now()

    def scope(self, name: str) -> TimerScope:
        return TimerScope(self, name)

    def call_later(self, delay_s: float, callback: Callable[[], None], *, scope: TimerScope) -> TimerHandle:
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        handle = TimerHandle(
            scope=scope,
            callback=callback,
            due_s=self._clock.now() + float(delay_s),
            period_s=None,
        )
        self._push(handle)
        return handle

    def call_every(
        self,
        period_s: float,
        callback: Callable[[], None],
        *,
        scope: TimerScope,
    ) -> TimerHandle:
        """Run ``callback`` every ``period_s`` seconds, first after one period."""

        if period_s <= 0:
            raise ValueError("period_s must be > 0")
        handle = TimerHandle(
            scope=scope,
            callback=callback,
            due_s=self._clock.now() + float(period_s),
            period_s=float(period_s),
        )
        self._push(handle)
        return handle

    def run_due(self) -> int:
        """Fire every entry due at the current clock time.  Returns the count fired.

        A periodic entry that fell several periods behind fires once per
        missed period, each run re-armed at ``due + period``.
        """

        now = self._clock.now()
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            if handle.period_s is not None:
                # Re-arm first so the callback may cancel its own handle.
                handle.due_s += handle.period_s
                self._push(handle)
            handle.callback()
            fired += 1
        return fired

    def pending(self, scope: TimerScope | None = None) -> int:
        return sum(
            1
            for _, _, h in self._heap
            if not h.cancelled and (scope is None or h.scope is scope)
        )

    def _push(self, handle: TimerHandle) -> None:
        if handle.cancelled:
            logger.debug("ignoring schedule on cancelled scope %s", handle.scope.name)
            return
        heapq.heappush(self._heap, (handle.due_s, next(self._seq), handle))

    def _drop_scope(self, scope: TimerScope) -> None:
        before = len(self._heap)
        self._heap = [entry for entry in self._heap if entry[2].scope is not scope]
        heapq.heapify(self._heap)
        logger.debug("cancelled scope %s (%d entries dropped)", scope.name, before - len(self._heap))
