"""Tests for the generic question progression shared by all templates."""

from __future__ import annotations

import random

import pytest

from math_arcade.questions import Question
from math_arcade.results import EndReason, SessionResult
from math_arcade.session import Phase, SessionController


def _questions(n: int) -> list[Question]:
    return [Question(display=f"{i} + 1", answer=i + 1, options=(i + 1, i + 2, i + 3)) for i in range(n)]


def test_empty_question_supply_is_rejected() -> None:
    with pytest.raises(ValueError):
        SessionController([])


def test_initial_state_presents_first_question() -> None:
    session = SessionController(_questions(2))
    state = session.snapshot()
    assert state.index == 0
    assert state.score == 0
    assert state.phase is Phase.PRESENTING
    assert not state.locked
    assert not state.complete


def test_second_submission_on_a_question_is_ignored() -> None:
    session = SessionController(_questions(2))
    assert session.submit_answer(1) is True
    before = session.snapshot()

    assert session.submit_answer(1) is False
    assert session.submit_answer(99) is False
    assert session.snapshot() == before
    assert session.score == 1


def test_wrong_answer_is_permanent_for_that_question() -> None:
    session = SessionController(_questions(2))
    assert session.submit_answer(7) is True
    assert session.last_correct is False
    assert session.submit_answer(1) is False
    assert session.score == 0
    assert session.reopen() is True
    assert session.phase is Phase.PRESENTING
    assert session.submit_answer(1) is True
    assert session.score == 1


def test_reopen_refuses_after_correct_answer_or_while_presenting() -> None:
    session = SessionController(_questions(2))
    assert session.reopen() is False
    session.submit_answer(1)
    assert session.reopen() is False
    assert session.locked


def test_advance_only_from_answered() -> None:
    session = SessionController(_questions(2))
    assert session.advance() is False
    assert session.index == 0
    session.submit_answer(1)
    assert session.advance() is True
    assert session.index == 1
    assert session.phase is Phase.PRESENTING


def test_stale_answer_for_previous_question_is_ignored() -> None:
    session = SessionController(_questions(3))
    session.submit_answer(1, question_index=0)
    session.advance()
    assert session.submit_answer(1, question_index=0) is False
    assert session.phase is Phase.PRESENTING
    assert session.submit_answer(2, question_index=1) is True


def test_three_correct_answers_complete_with_full_score() -> None:
    results: list[SessionResult] = []
    qs = _questions(3)
    session = SessionController(qs, on_complete=results.append)

    for q in qs:
        assert session.submit_answer(q.answer) is True
        assert session.advance() is True

    assert session.score == 3
    assert session.complete
    assert session.index == 2
    assert results == [SessionResult(template="quiz", score=3, total=3, ended_by=EndReason.EXHAUSTED)]

    assert session.submit_answer(qs[-1].answer) is False
    assert session.advance() is False
    assert session.finish() is False
    assert len(results) == 1


def test_finish_ends_early_and_notifies_late_observers() -> None:
    session = SessionController(_questions(4))
    session.submit_answer(1)
    session.advance()

    assert session.finish(EndReason.TIME_UP) is True
    assert session.complete
    assert session.result is not None
    assert session.result.score == 1
    assert session.result.ended_by is EndReason.TIME_UP

    seen: list[SessionResult] = []
    session.observe(seen.append)
    assert seen == [session.result]


def test_score_is_monotonic_and_bounded_for_random_input() -> None:
    rng = random.Random(2024)
    qs = _questions(8)
    session = SessionController(qs)

    last_score = 0
    last_index = 0
    for _ in range(500):
        action = rng.randint(0, 3)
        if action == 0:
            session.submit_answer(session.current_question.answer)
        elif action == 1:
            session.submit_answer(-1)
        elif action == 2:
            session.advance()
        else:
            session.reopen()
        assert session.score >= last_score
        assert session.index >= last_index
        assert session.score <= session.index + 1 <= len(qs)
        last_score, last_index = session.score, session.index
        if session.complete:
            break
