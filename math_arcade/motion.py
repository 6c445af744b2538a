"""Fixed-tick motion and delayed hit resolution for the Airplane template.

Positions are in percent of the play area.  Targets (one per answer option)
enter from the left and drift right at their own speed; projectiles leave a
fixed origin and travel right until they pass the far edge.

A hit is not a geometric collision.  Firing at a target starts a two-phase
resolution:

1. after ``hit_delay_s`` the target is marked resolved and the answer is
   locked in with the session controller;
2. after a further ``settle_delay_s`` a correct hit moves on to the next
   question (clearing targets and projectiles), while a wrong hit clears the
   resolved marker and reopens the same question.

Only one resolution may be outstanding; firing again meanwhile is ignored.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

from .results import SessionResult
from .rng import SeededRng
from .session import SessionController
from .timers import TimerQueue, TimerScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MotionConfig:
    tick_period_s: float = 0.05
    hit_delay_s: float = 0.5
    settle_delay_s: float = 1.0
    projectile_speed: float = 2.0
    origin_x: float = 5.0
    origin_y: float = 50.0
    bounds_x: float = 120.0
    entry_x: float = -20.0
    lane_top_y: float = 15.0
    lane_spacing_y: float = 20.0
    speed_min: float = 0.3
    speed_jitter: float = 0.2

    def __post_init__(self) -> None:
        if self.tick_period_s <= 0:
            raise ValueError("tick_period_s must be > 0")
        if self.hit_delay_s < 0 or self.settle_delay_s < 0:
            raise ValueError("resolution delays must be >= 0")
        if self.speed_min < 0 or self.speed_jitter < 0:
            raise ValueError("speeds must be >= 0")


@dataclass(slots=True)
class MovingEntity:
    id: str
    payload_value: int
    is_correct: bool
    x: float
    y: float
    speed: float
    visible: bool = True


@dataclass(slots=True)
class Projectile:
    id: str
    x: float
    y: float
    vx: float


@dataclass(frozen=True, slots=True)
class _PendingShot:
    target_id: str
    question_index: int


class MotionUpdater:
    """Owns the moving targets, the projectiles and the single pending shot."""

    def __init__(
        self,
        session: SessionController,
        timers: TimerQueue,
        *,
        rng: SeededRng,
        config: MotionConfig | None = None,
    ) -> None:
        self._session = session
        self._timers = timers
        self._rng = rng
        self._cfg = config or MotionConfig()

        self._entities: list[MovingEntity] = []
        self._projectiles: list[Projectile] = []
        self._projectile_ids = itertools.count(1)
        self._pending: _PendingShot | None = None
        self._resolved_id: str | None = None

        # Ticks live for the whole session; resolution timers for one question.
        self._tick_scope: TimerScope | None = None
        self._question_scope: TimerScope | None = None

    @property
    def config(self) -> MotionConfig:
        return self._cfg

    @property
    def running(self) -> bool:
        return self._tick_scope is not None and self._tick_scope.active

    @property
    def pending(self) -> bool:
        return self._pending is not None

    @property
    def resolved_id(self) -> str | None:
        return self._resolved_id

    def entities(self) -> tuple[MovingEntity, ...]:
        return tuple(self._entities)

    def projectiles(self) -> tuple[Projectile, ...]:
        return tuple(self._projectiles)

    def entity(self, entity_id: str) -> MovingEntity | None:
        for e in self._entities:
            if e.id == entity_id:
                return e
        return None

    def start(self) -> None:
        if self._tick_scope is not None or self._session.complete:
            return
        self._tick_scope = self._timers.scope("motion-ticks")
        self._timers.call_every(self._cfg.tick_period_s, self._step_entities, scope=self._tick_scope)
        self._timers.call_every(self._cfg.tick_period_s, self._step_projectiles, scope=self._tick_scope)
        self._session.observe(self._on_session_complete)
        self._build_question()
        logger.info("motion updater started")

    def stop(self) -> None:
        if self._tick_scope is not None:
            self._tick_scope.cancel()
        if self._question_scope is not None:
            self._question_scope.cancel()
        self._pending = None

    def fire(self, entity_id: str) -> bool:
        """Shoot at a target.  Returns True if a resolution was started."""

        if not self.running or self._pending is not None or self._session.locked:
            return False
        target = self.entity(entity_id)
        if target is None or not target.visible:
            return False

        self._projectiles.append(
            Projectile(
                id=f"bullet-{next(self._projectile_ids)}",
                x=self._cfg.origin_x,
                y=self._cfg.origin_y,
                vx=self._cfg.projectile_speed,
            )
        )
        self._pending = _PendingShot(target_id=entity_id, question_index=self._session.index)
        assert self._question_scope is not None
        self._timers.call_later(self._cfg.hit_delay_s, self._resolve_hit, scope=self._question_scope)
        logger.debug("fired at %s", entity_id)
        return True

    def _build_question(self) -> None:
        if self._question_scope is not None:
            self._question_scope.cancel()
        index = self._session.index
        self._question_scope = self._timers.scope(f"motion-q{index}")
        question = self._session.current_question
        self._entities = [
            MovingEntity(
                id=f"{index}-{i}",
                payload_value=value,
                is_correct=value == question.answer,
                x=self._cfg.entry_x,
                y=self._cfg.lane_top_y + i * self._cfg.lane_spacing_y,
                speed=self._cfg.speed_min + self._rng.uniform(0.0, self._cfg.speed_jitter),
            )
            for i, value in enumerate(question.option_values())
        ]
        self._projectiles = []
        self._pending = None
        self._resolved_id = None

    def _step_entities(self) -> None:
        for e in self._entities:
            if not e.visible:
                continue
            e.x += e.speed
            if e.x >= self._cfg.bounds_x:
                e.visible = False

    def _step_projectiles(self) -> None:
        for p in self._projectiles:
            p.x += p.vx
        self._projectiles = [p for p in self._projectiles if p.x < self._cfg.bounds_x]

    def _resolve_hit(self) -> None:
        shot = self._pending
        if shot is None or shot.question_index != self._session.index:
            return
        target = self.entity(shot.target_id)
        if target is None:
            self._pending = None
            return

        self._resolved_id = target.id
        self._session.submit_answer(target.payload_value, question_index=shot.question_index)
        logger.debug("resolved %s correct=%s", target.id, target.is_correct)
        assert self._question_scope is not None
        self._timers.call_later(self._cfg.settle_delay_s, self._settle, scope=self._question_scope)

    def _settle(self) -> None:
        if self._session.last_correct:
            self._session.advance()
            if not self._session.complete:
                self._build_question()
            return
        self._resolved_id = None
        self._pending = None
        self._session.reopen()

    def _on_session_complete(self, result: SessionResult) -> None:
        _ = result
        self.stop()
        self._projectiles = []
