from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class EndReason(StrEnum):
    EXHAUSTED = "exhausted"  # last question advanced past
    TIME_UP = "time_up"
    SOLVED = "solved"  # rank order accepted
    EXITED = "exited"  # host tore the session down


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Final outcome delivered once to the completion observer.

    ``score`` is always within ``[0, total]``.
    """

    template: str
    score: int
    total: int
    ended_by: EndReason

    @property
    def accuracy(self) -> float:
        return 0.0 if self.total == 0 else self.score / self.total

    @property
    def perfect(self) -> bool:
        return self.total > 0 and self.score == self.total

    def headline(self) -> str:
        if self.perfect:
            return "Perfect score!"
        if self.score >= self.total * 0.7:
            return "Great job!"
        return "Keep practicing!"
