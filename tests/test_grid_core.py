from __future__ import annotations

import random
from dataclasses import dataclass

import pytest

from math_arcade.grid import ORIGIN, CollectibleItem, Direction, GridConfig, GridNavigator, GridPosition
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
    return [Question(display=f"{i} + 5", answer=i + 5, options=(i + 4, i + 5, i + 6)) for i in range(n)]


def _build(
    questions: list[Question], *, grid_size: int = 6, seed: int = 3
) -> tuple[FakeClock, TimerQueue, SessionController, GridNavigator]:
    clock = FakeClock()
    timers = TimerQueue(clock)
    session = SessionController(questions, template="maze")
    nav = GridNavigator(session, timers, rng=SeededRng(seed), config=GridConfig(grid_size=grid_size))
    nav.start()
    return clock, timers, session, nav


def _walk_to(nav: GridNavigator, pos: GridPosition) -> None:
    # Starts from the origin: right along the top row, then down.
    for _ in range(pos.x):
        nav.move(Direction.RIGHT)
    for _ in range(pos.y):
        nav.move(Direction.DOWN)


def _adjacent_wrong(nav: GridNavigator) -> CollectibleItem:
    for item in nav.items():
        if not item.is_correct and item.position in (GridPosition(1, 0), GridPosition(0, 1)):
            return item
    raise AssertionError("no wrong item next to the origin")


def _correct(nav: GridNavigator) -> CollectibleItem:
    return next(item for item in nav.items() if item.is_correct)


def test_step_clamps_to_grid() -> None:
    assert ORIGIN.step(-1, 0, size=6) == ORIGIN
    assert ORIGIN.step(0, -1, size=6) == ORIGIN
    assert GridPosition(5, 5).step(1, 1, size=6) == GridPosition(5, 5)
    assert GridPosition(2, 3).step(1, 0, size=6) == GridPosition(3, 3)


def test_placement_invariants() -> None:
    for seed in range(20):
        _, _, session, nav = _build(_questions(1), seed=seed)
        items = nav.items()
        positions = [item.position for item in items]
        assert nav.player == ORIGIN
        assert len(items) == 3
        assert len(set(positions)) == 3
        assert ORIGIN not in positions
        assert all(0 <= p.x < 6 and 0 <= p.y < 6 for p in positions)
        assert [item.answer_value for item in items] == list(session.current_question.options or ())
        assert sum(item.is_correct for item in items) == 1
        assert not any(item.collected for item in items)


def test_random_moves_stay_in_bounds() -> None:
    clock, timers, _, nav = _build(_questions(5))
    rng = random.Random(17)
    for _ in range(300):
        nav.move(rng.choice(list(Direction)))
        p = nav.player
        assert 0 <= p.x < nav.grid_size
        assert 0 <= p.y < nav.grid_size
        clock.advance(0.25)
        timers.run_due()


def test_wrong_item_is_collected_and_stays_inert() -> None:
    _, _, session, nav = _build(_questions(2), grid_size=2)
    wrong = _adjacent_wrong(nav)
    _walk_to(nav, wrong.position)

    assert nav.player == wrong.position
    assert wrong.collected
    assert session.score == 0
    assert session.phase is Phase.PRESENTING
    assert not nav.advance_pending

    # Walking back over it does nothing further.
    nav.move(Direction.LEFT if wrong.position.x else Direction.UP)
    _walk_to(nav, wrong.position)
    assert session.phase is Phase.PRESENTING
    assert nav.item_at(wrong.position) is wrong


def test_correct_item_scores_then_advances_after_delay() -> None:
    clock, timers, session, nav = _build(_questions(2), grid_size=2)
    correct = _correct(nav)
    _walk_to(nav, correct.position)

    assert correct.collected
    assert session.score == 1
    assert session.phase is Phase.ANSWERED
    assert nav.advance_pending
    assert nav.move(Direction.LEFT) is False

    clock.advance(0.5)
    timers.run_due()
    assert session.index == 0

    clock.advance(0.6)
    timers.run_due()
    assert session.index == 1
    assert session.phase is Phase.PRESENTING
    assert nav.player == ORIGIN
    assert not nav.advance_pending
    assert not any(item.collected for item in nav.items())
    assert [item.answer_value for item in nav.items()] == [5, 6, 7]


def test_last_correct_item_completes_session() -> None:
    clock, timers, session, nav = _build(_questions(1), grid_size=2)
    _walk_to(nav, _correct(nav).position)
    clock.advance(1.1)
    timers.run_due()

    assert session.complete
    assert session.result is not None
    assert session.result.ended_by is EndReason.EXHAUSTED
    assert session.result.score == 1
    assert timers.pending() == 0
    assert nav.move(Direction.RIGHT) is False


def test_too_many_options_for_grid_are_rejected() -> None:
    clock = FakeClock()
    session = SessionController([Question(display="1 + 1", answer=2, options=(1, 2, 3, 4))])
    with pytest.raises(ValueError):
        GridNavigator(session, TimerQueue(clock), rng=SeededRng(0), config=GridConfig(grid_size=2))


def test_question_without_options_places_single_answer_item() -> None:
    _, _, _, nav = _build([Question(display="4 + 4", answer=8)])
    items = nav.items()
    assert len(items) == 1
    assert items[0].answer_value == 8
    assert items[0].is_correct


def test_move_before_start_is_ignored() -> None:
    session = SessionController(_questions(1))
    nav = GridNavigator(session, TimerQueue(FakeClock()), rng=SeededRng(0))
    assert nav.move(Direction.RIGHT) is False
    assert nav.player == ORIGIN
