"""Generic per-question progression shared by every game template.

The controller is a small state machine::

    PRESENTING --submit_answer--> ANSWERED --advance--> PRESENTING (next index)
                                           \\--advance--> COMPLETE (after last)

``COMPLETE`` is terminal.  Inputs that do not apply in the current state are
ignored and reported as ``False``; nothing is queued for later.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from .questions import Question, question_sequence
from .results import EndReason, SessionResult

logger = logging.getLogger(__name__)

CompletionObserver = Callable[[SessionResult], None]


class Phase(StrEnum):
    PRESENTING = "presenting"
    ANSWERED = "answered"
    COMPLETE = "complete"


@dataclass(frozen=True, slots=True)
class SessionState:
    """View of the controller (pure data)."""

    index: int
    total: int
    score: int
    phase: Phase
    last_correct: bool | None = None
    ended_by: EndReason | None = None

    @property
    def locked(self) -> bool:
        return self.phase is not Phase.PRESENTING

    @property
    def complete(self) -> bool:
        return self.phase is Phase.COMPLETE


class SessionController:
    """Question progression, answer locking, scoring and completion.

    - At most one scored submission per question.
    - ``index`` and ``score`` never decrease; ``score`` never exceeds the
      number of questions.
    - Observers hear about completion exactly once.
    """

    def __init__(
        self,
        questions: Iterable[Question],
        *,
        template: str = "quiz",
        on_complete: CompletionObserver | None = None,
    ) -> None:
        self._questions = question_sequence(questions)
        self._template = template
        self._index = 0
        self._score = 0
        self._phase = Phase.PRESENTING
        self._last_correct: bool | None = None
        self._ended_by: EndReason | None = None
        self._result: SessionResult | None = None
        self._observers: list[CompletionObserver] = []
        if on_complete is not None:
            self._observers.append(on_complete)

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def index(self) -> int:
        return self._index

    @property
    def score(self) -> int:
        return self._score

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def locked(self) -> bool:
        return self._phase is not Phase.PRESENTING

    @property
    def complete(self) -> bool:
        return self._phase is Phase.COMPLETE

    @property
    def last_correct(self) -> bool | None:
        return self._last_correct

    @property
    def current_question(self) -> Question:
        return self._questions[self._index]

    @property
    def is_last_question(self) -> bool:
        return self._index == len(self._questions) - 1

    @property
    def result(self) -> SessionResult | None:
        return self._result

    def observe(self, callback: CompletionObserver) -> None:
        """Register a completion observer.  Late observers are called immediately."""
        if self._result is not None:
            callback(self._result)
            return
        self._observers.append(callback)

    def submit_answer(self, value: int, *, question_index: int | None = None) -> bool:
        """Lock in an answer for the live question.  Returns True if accepted.

        ``question_index`` names the question the input was aimed at; input
        aimed at a question that is no longer live is ignored.
        """

        if self._phase is not Phase.PRESENTING:
            return False
        if question_index is not None and question_index != self._index:
            logger.debug("ignoring stale answer for question %d (live %d)", question_index, self._index)
            return False

        correct = value == self.current_question.answer
        self._phase = Phase.ANSWERED
        self._last_correct = correct
        if correct:
            self._score += 1
        logger.debug("question %d answered %r (correct=%s)", self._index, value, correct)
        return True

    def advance(self) -> bool:
        if self._phase is not Phase.ANSWERED:
            return False
        if self.is_last_question:
            self._complete(EndReason.EXHAUSTED)
            return True
        self._index += 1
        self._phase = Phase.PRESENTING
        self._last_correct = None
        return True

    def reopen(self) -> bool:
        """Allow another attempt at the live question after a wrong answer."""
        if self._phase is not Phase.ANSWERED or self._last_correct is not False:
            return False
        self._phase = Phase.PRESENTING
        self._last_correct = None
        return True

    def finish(self, reason: EndReason = EndReason.EXITED) -> bool:
        """End the session early (time budget spent, host exit)."""
        if self._phase is Phase.COMPLETE:
            return False
        self._complete(reason)
        return True

    def snapshot(self) -> SessionState:
        return SessionState(
            index=self._index,
            total=len(self._questions),
            score=self._score,
            phase=self._phase,
            last_correct=self._last_correct,
            ended_by=self._ended_by,
        )

    def _complete(self, reason: EndReason) -> None:
        self._phase = Phase.COMPLETE
        self._ended_by = reason
        self._result = SessionResult(
            template=self._template,
            score=self._score,
            total=len(self._questions),
            ended_by=reason,
        )
        logger.info(
            "%s session complete: %d/%d (%s)",
            self._template,
            self._score,
            len(self._questions),
            reason.value,
        )
        observers, self._observers = self._observers, []
        for callback in observers:
            callback(self._result)
