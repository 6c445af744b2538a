"""Timed target spawning for the Whack-a-mole template.

A fixed row of slots is filled one target at a time on a periodic tick.  Each
target carries either the live question's answer or a distractor from its
options, stays up for a fixed time and then drops back unless it was hit
first.  No more than ``max_visible`` targets are ever up at once.

The scheduler and the question index are only loosely coupled: moving on to
the next question does not clear targets spawned for the previous one.  Those
targets can still be hit (they disappear) but never score.
"""

from __future__ import annotations

import functools
import itertools
import logging
from dataclasses import dataclass

from .clock import Deadline
from .results import EndReason, SessionResult
from .rng import SeededRng
from .session import SessionController
from .timers import TimerQueue, TimerScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SpawnConfig:
    tick_period_s: float = 0.8
    visible_duration_s: float = 1.5
    max_visible: int = 3
    slot_count: int = 9
    correct_probability: float = 0.5
    duration_budget_s: float = 30.0

    def __post_init__(self) -> None:
        if self.tick_period_s <= 0 or self.visible_duration_s <= 0:
            raise ValueError("tick_period_s and visible_duration_s must be > 0")
        if self.duration_budget_s <= 0:
            raise ValueError("duration_budget_s must be > 0")
        if not (1 <= self.max_visible <= self.slot_count):
            raise ValueError("max_visible must be in [1, slot_count]")
        if not (0.0 <= self.correct_probability <= 1.0):
            raise ValueError("correct_probability must be in [0.0, 1.0]")


@dataclass(frozen=True, slots=True)
class SpawnEntity:
    id: int
    slot: int
    payload_value: int
    is_correct: bool
    created_at_s: float
    question_index: int


class SpawnScheduler:
    """Periodic, capacity-bounded creation and expiry of targets."""

    def __init__(
        self,
        session: SessionController,
        timers: TimerQueue,
        *,
        rng: SeededRng,
        config: SpawnConfig | None = None,
    ) -> None:
        self._session = session
        self._timers = timers
        self._rng = rng
        self._cfg = config or SpawnConfig()
        self._slots: list[SpawnEntity | None] = [None] * self._cfg.slot_count
        self._ids = itertools.count(1)
        self._scope: TimerScope | None = None
        self._deadline: Deadline | None = None

    @property
    def config(self) -> SpawnConfig:
        return self._cfg

    @property
    def running(self) -> bool:
        return self._scope is not None and self._scope.active

    def start(self) -> None:
        if self._scope is not None or self._session.complete:
            return
        self._scope = self._timers.scope("spawn")
        self._deadline = Deadline.starting_now(self._timers.clock, self._cfg.duration_budget_s)
        self._timers.call_every(self._cfg.tick_period_s, self._on_tick, scope=self._scope)
        self._timers.call_later(self._cfg.duration_budget_s, self._on_time_up, scope=self._scope)
        self._session.observe(self._on_session_complete)
        logger.info("spawn scheduler started (%d slots, budget %.1fs)", len(self._slots), self._cfg.duration_budget_s)

    def stop(self) -> None:
        if self._scope is not None:
            self._scope.cancel()

    def time_remaining_s(self) -> float:
        if self._deadline is None:
            return self._cfg.duration_budget_s
        if not self.running:
            return 0.0
        return self._deadline.remaining_s()

    def slots(self) -> tuple[SpawnEntity | None, ...]:
        return tuple(self._slots)

    def visible_entities(self) -> list[SpawnEntity]:
        return [e for e in self._slots if e is not None]

    def whack(self, slot: int) -> bool:
        """Hit the target in ``slot``.  Returns True if a visible target was hit."""

        if not self.running or not (0 <= slot < len(self._slots)):
            return False
        entity = self._slots[slot]
        if entity is None:
            return False

        self._slots[slot] = None
        logger.debug("whacked slot %d value=%d correct=%s", slot, entity.payload_value, entity.is_correct)
        if entity.is_correct:
            if self._session.submit_answer(entity.payload_value, question_index=entity.question_index):
                self._session.advance()
        return True

    def _on_tick(self) -> None:
        if self._session.complete:
            self.stop()
            return
        if len(self.visible_entities()) >= self._cfg.max_visible:
            return
        empty = [i for i, e in enumerate(self._slots) if e is None]
        if not empty:
            return

        slot = self._rng.choice(empty)
        question = self._session.current_question
        distractors = question.distractors()
        is_correct = not distractors or self._rng.random() < self._cfg.correct_probability
        value = question.answer if is_correct else self._rng.choice(distractors)

        entity = SpawnEntity(
            id=next(self._ids),
            slot=slot,
            payload_value=value,
            is_correct=is_correct,
            created_at_s=self._timers.now(),
            question_index=self._session.index,
        )
        self._slots[slot] = entity
        assert self._scope is not None
        self._timers.call_later(
            self._cfg.visible_duration_s,
            functools.partial(self._on_expire, slot, entity.id),
            scope=self._scope,
        )
        logger.debug("spawned #%d in slot %d value=%d correct=%s", entity.id, slot, value, is_correct)

    def _on_expire(self, slot: int, entity_id: int) -> None:
        current = self._slots[slot]
        # The slot may have been hit and refilled since this expiry was armed.
        if current is not None and current.id == entity_id:
            self._slots[slot] = None
            logger.debug("expired #%d in slot %d", entity_id, slot)

    def _on_time_up(self) -> None:
        self._session.finish(EndReason.TIME_UP)

    def _on_session_complete(self, result: SessionResult) -> None:
        _ = result
        self.stop()
        self._slots = [None] * len(self._slots)
