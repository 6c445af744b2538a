"""Question records and the host-side arithmetic question supply.

The session engine only ever sees an ordered, immutable sequence of
:class:`Question` plus a :class:`GameSettings` record.  The generator in this
module is what the pygame shell uses to produce that sequence; the engine does
not depend on it.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from .rng import SeededRng


class Operation(StrEnum):
    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    MULTIPLICATION = "multiplication"
    DIVISION = "division"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_SYMBOLS: dict[Operation, str] = {
    Operation.ADDITION: "+",
    Operation.SUBTRACTION: "-",
    Operation.MULTIPLICATION: "×",
    Operation.DIVISION: "÷",
}

_FUNCS: dict[Operation, Callable[[int, int], int]] = {
    Operation.ADDITION: operator.add,
    Operation.SUBTRACTION: operator.sub,
    Operation.MULTIPLICATION: operator.mul,
    Operation.DIVISION: operator.floordiv,
}


@dataclass(frozen=True, slots=True)
class Question:
    display: str
    answer: int
    options: tuple[int, ...] | None = None

    def __post_init__(self) -> None:
        if self.options is None:
            return
        opts = tuple(int(o) for o in self.options)
        if opts.count(int(self.answer)) != 1:
            raise ValueError(f"options {opts} must contain answer {self.answer} exactly once")
        object.__setattr__(self, "options", opts)

    def option_values(self) -> tuple[int, ...]:
        """Options to present; a question without options offers only its answer."""
        return self.options if self.options is not None else (self.answer,)

    def distractors(self) -> tuple[int, ...]:
        return tuple(o for o in self.option_values() if o != self.answer)


@dataclass(frozen=True, slots=True)
class GameSettings:
    operation: Operation = Operation.ADDITION
    min_number: int = 1
    max_number: int = 10
    question_count: int = 10

    def __post_init__(self) -> None:
        if self.question_count < 1:
            raise ValueError("question_count must be >= 1")
        if self.min_number > self.max_number:
            raise ValueError("min_number must be <= max_number")
        if self.operation is Operation.DIVISION and self.max_number < 1:
            raise ValueError("division needs max_number >= 1")


def question_sequence(questions: Iterable[Question]) -> tuple[Question, ...]:
    """Freeze a question supply into the tuple every session consumes."""

    seq = tuple(questions)
    if not seq:
        raise ValueError("a session needs at least one question")
    return seq


class ArithmeticQuestionGenerator:
    """Seeded generator of single-operation arithmetic questions.

    Subtraction never goes negative and division always has an integer
    quotient.  Each question carries ``option_count`` unique options, exactly
    one of which is the answer.
    """

    def __init__(self, *, seed: int, settings: GameSettings, option_count: int = 4) -> None:
        if option_count < 1:
            raise ValueError("option_count must be >= 1")
        self._rng = SeededRng(seed)
        self._settings = settings
        self._option_count = option_count

    def generate(self) -> tuple[Question, ...]:
        return tuple(self.next_question() for _ in range(self._settings.question_count))

    def next_question(self) -> Question:
        op = self._settings.operation
        a, b = self._operands(op)
        answer = _FUNCS[op](a, b)
        return Question(
            display=f"{a} {op.symbol} {b}",
            answer=answer,
            options=self._options_for(answer),
        )

    def _operands(self, op: Operation) -> tuple[int, int]:
        lo = self._settings.min_number
        hi = self._settings.max_number
        if op is Operation.DIVISION:
            divisor = self._rng.randint(max(1, lo), hi)
            quotient = self._rng.randint(lo, hi)
            return divisor * quotient, divisor
        a = self._rng.randint(lo, hi)
        b = self._rng.randint(lo, hi)
        if op is Operation.SUBTRACTION and b > a:
            a, b = b, a
        return a, b

    def _options_for(self, answer: int) -> tuple[int, ...]:
        spread = max(5, self._option_count * 2)
        pool = [answer + d for d in range(-spread, spread + 1) if d != 0]
        if answer >= 0:
            pool = [v for v in pool if v >= 0]
        picks = self._rng.sample(pool, k=min(len(pool), self._option_count - 1))
        options = [answer, *picks]
        self._rng.shuffle(options)
        return tuple(options)
