from __future__ import annotations

from dataclasses import dataclass

from math_arcade.motion import MotionConfig, MotionUpdater
from math_arcade.questions import Question
from math_arcade.results import EndReason
from math_arcade.rng import SeededRng
from math_arcade.session import Phase, SessionController
from math_arcade.timers import TimerQueue


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def _questions(n: int) -> list[Question]:
    return [Question(display=f"{i} × 2", answer=i * 2, options=(i * 2, i * 2 + 1, i * 2 + 3)) for i in range(n)]


def _build(
    n: int = 3, *, config: MotionConfig | None = None
) -> tuple[FakeClock, TimerQueue, SessionController, MotionUpdater]:
    clock = FakeClock()
    timers = TimerQueue(clock)
    session = SessionController(_questions(n), template="airplane")
    motion = MotionUpdater(session, timers, rng=SeededRng(4), config=config)
    motion.start()
    return clock, timers, session, motion


def _step(clock: FakeClock, timers: TimerQueue, dt: float) -> None:
    clock.advance(dt)
    timers.run_due()


def _target_id(motion: MotionUpdater, *, correct: bool) -> str:
    for e in motion.entities():
        if e.is_correct is correct:
            return e.id
    raise AssertionError("no such target")


def test_targets_are_laid_out_one_per_option() -> None:
    _, _, session, motion = _build()
    entities = motion.entities()
    assert [e.payload_value for e in entities] == list(session.current_question.options or ())
    assert [e.id for e in entities] == ["0-0", "0-1", "0-2"]
    assert [e.y for e in entities] == [15.0, 35.0, 55.0]
    assert all(e.x == -20.0 for e in entities)
    assert all(0.3 <= e.speed <= 0.5 for e in entities)
    assert sum(e.is_correct for e in entities) == 1


def test_targets_drift_right_each_tick() -> None:
    clock, timers, _, motion = _build()
    before = {e.id: e.x for e in motion.entities()}
    _step(clock, timers, 0.5)
    for e in motion.entities():
        assert e.x > before[e.id]


def test_only_one_shot_may_be_pending() -> None:
    _, _, _, motion = _build()
    target = _target_id(motion, correct=True)
    assert motion.fire(target) is True
    assert motion.pending
    assert len(motion.projectiles()) == 1
    assert motion.projectiles()[0].id == "bullet-1"

    assert motion.fire(target) is False
    assert motion.fire(_target_id(motion, correct=False)) is False
    assert len(motion.projectiles()) == 1


def test_hit_resolves_after_delay_then_settles() -> None:
    clock, timers, session, motion = _build()
    target = _target_id(motion, correct=True)
    motion.fire(target)

    _step(clock, timers, 0.4)
    assert motion.resolved_id is None
    assert session.phase is Phase.PRESENTING

    _step(clock, timers, 0.2)
    assert motion.resolved_id == target
    assert session.phase is Phase.ANSWERED
    assert session.score == 1

    _step(clock, timers, 0.8)
    assert session.index == 0

    _step(clock, timers, 0.2)
    assert session.index == 1
    assert session.phase is Phase.PRESENTING
    assert not motion.pending
    assert motion.resolved_id is None
    assert motion.projectiles() == ()
    assert [e.id for e in motion.entities()] == ["1-0", "1-1", "1-2"]


def test_wrong_hit_reopens_same_question() -> None:
    clock, timers, session, motion = _build()
    wrong = _target_id(motion, correct=False)
    assert motion.fire(wrong) is True

    _step(clock, timers, 0.6)
    assert motion.resolved_id == wrong
    assert session.last_correct is False
    assert motion.fire(_target_id(motion, correct=True)) is False

    _step(clock, timers, 1.0)
    assert session.index == 0
    assert session.score == 0
    assert session.phase is Phase.PRESENTING
    assert motion.resolved_id is None
    assert not motion.pending

    assert motion.fire(_target_id(motion, correct=True)) is True
    _step(clock, timers, 0.6)
    assert session.score == 1


def test_correct_hit_on_last_question_completes() -> None:
    clock, timers, session, motion = _build(1)
    motion.fire(_target_id(motion, correct=True))
    _step(clock, timers, 0.6)
    _step(clock, timers, 1.0)

    assert session.complete
    assert session.result is not None
    assert session.result.ended_by is EndReason.EXHAUSTED
    assert session.result.score == 1
    assert not motion.running
    assert timers.pending() == 0
    assert motion.projectiles() == ()


def test_unknown_or_hidden_targets_cannot_be_fired_at() -> None:
    clock, timers, _, motion = _build(config=MotionConfig(bounds_x=0.0, speed_min=5.0, speed_jitter=0.0))
    assert motion.fire("nope") is False

    _step(clock, timers, 1.0)
    assert all(not e.visible for e in motion.entities())
    assert all(e.x >= 0.0 for e in motion.entities())
    assert motion.fire(motion.entities()[0].id) is False
    assert not motion.pending


def test_projectiles_leave_past_the_far_edge() -> None:
    clock, timers, _, motion = _build()
    motion.fire(_target_id(motion, correct=False))
    _step(clock, timers, 1.0)
    assert len(motion.projectiles()) == 1
    assert motion.projectiles()[0].x > 5.0

    _step(clock, timers, 2.5)
    assert motion.projectiles() == ()


def test_stop_cancels_ticks_and_pending_resolution() -> None:
    clock, timers, session, motion = _build()
    motion.fire(_target_id(motion, correct=True))
    motion.stop()
    assert timers.pending() == 0
    assert not motion.running

    _step(clock, timers, 2.0)
    assert session.phase is Phase.PRESENTING
    assert session.score == 0
