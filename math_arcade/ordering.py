"""Order validation for the Rank order template.

A small sample of questions becomes a list of :class:`RankItem` shown in a
shuffled order.  The player rearranges the list freely and asks for a
check; the list is right when its ids match, position by position, a copy of
the items sorted by value ascending (ties keep their current relative order).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .questions import Question, question_sequence
from .results import EndReason, SessionResult
from .rng import SeededRng
from .session import CompletionObserver
from .timers import TimerQueue, TimerScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OrderConfig:
    sample_size: int = 6
    success_hold_s: float = 2.0

    def __post_init__(self) -> None:
        if self.sample_size < 1:
            raise ValueError("sample_size must be >= 1")
        if self.success_hold_s < 0:
            raise ValueError("success_hold_s must be >= 0")


@dataclass(frozen=True, slots=True)
class RankItem:
    id: str
    display: str
    value: int


def reference_order(items: Sequence[RankItem]) -> tuple[RankItem, ...]:
    return tuple(sorted(items, key=lambda item: item.value))


def matches_reference(items: Sequence[RankItem]) -> bool:
    ref = reference_order(items)
    return all(a.id == b.id for a, b in zip(items, ref))


class OrderValidator:
    """Live ordering, checks, and the delayed success signal."""

    def __init__(
        self,
        questions: Iterable[Question],
        timers: TimerQueue,
        *,
        rng: SeededRng,
        config: OrderConfig | None = None,
        template: str = "rankorder",
        on_complete: CompletionObserver | None = None,
    ) -> None:
        self._timers = timers
        self._cfg = config or OrderConfig()
        self._template = template

        sample = question_sequence(questions)[: self._cfg.sample_size]
        items = [RankItem(id=f"item-{i}", display=q.display, value=q.answer) for i, q in enumerate(sample)]
        rng.shuffle(items)
        self._items: list[RankItem] = items

        self._checked = False
        self._correct = False
        self._scope: TimerScope | None = None
        self._result: SessionResult | None = None
        self._observers: list[CompletionObserver] = []
        if on_complete is not None:
            self._observers.append(on_complete)

    @classmethod
    def from_items(
        cls,
        items: Sequence[RankItem],
        timers: TimerQueue,
        *,
        config: OrderConfig | None = None,
    ) -> "OrderValidator":
        """Build a validator over an explicit live order (no sampling, no shuffle)."""

        questions = [Question(display=item.display, answer=item.value) for item in items]
        validator = cls(questions, timers, rng=SeededRng(0), config=config)
        validator._items = [
            RankItem(id=item.id, display=item.display, value=item.value) for item in items
        ][: validator._cfg.sample_size]
        return validator

    @property
    def checked(self) -> bool:
        return self._checked

    @property
    def correct(self) -> bool:
        return self._correct

    @property
    def complete(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> SessionResult | None:
        return self._result

    @property
    def total(self) -> int:
        return len(self._items)

    def items(self) -> tuple[RankItem, ...]:
        return tuple(self._items)

    def reference_order(self) -> tuple[RankItem, ...]:
        return reference_order(self._items)

    def position_marks(self) -> tuple[bool, ...] | None:
        """Per-position marks for the live order while a check is shown, else None."""
        if not self._checked:
            return None
        return self._marks_for(self._items)

    def observe(self, callback: CompletionObserver) -> None:
        if self._result is not None:
            callback(self._result)
            return
        self._observers.append(callback)

    def start(self) -> None:
        if self._scope is None:
            self._scope = self._timers.scope("rank-order")

    def stop(self) -> None:
        if self._scope is not None:
            self._scope.cancel()

    def reorder(self, ids: Sequence[str]) -> bool:
        """Replace the live order with a permutation of the current ids."""

        if self._correct or self.complete or self._stopped():
            return False
        by_id = {item.id: item for item in self._items}
        if len(ids) != len(by_id) or set(ids) != set(by_id):
            return False
        self._items = [by_id[i] for i in ids]
        return True

    def move(self, item_id: str, new_index: int) -> bool:
        ids = [item.id for item in self._items]
        if item_id not in ids or not (0 <= new_index < len(ids)):
            return False
        ids.remove(item_id)
        ids.insert(new_index, item_id)
        return self.reorder(ids)

    def check(self) -> bool:
        """Compare the live order against the reference order."""

        if self._correct or self.complete:
            return self._correct
        if self._stopped():
            return False
        marks = self._marks_for(self._items)
        self._correct = all(marks)
        self._checked = True
        logger.debug("rank order check: %d/%d in place", sum(marks), len(marks))
        if self._correct:
            self.start()
            assert self._scope is not None
            self._timers.call_later(self._cfg.success_hold_s, self._on_hold_elapsed, scope=self._scope)
        return self._correct

    def try_again(self) -> bool:
        if not self._checked or self._correct:
            return False
        self._checked = False
        return True

    def finish(self, reason: EndReason = EndReason.EXITED) -> bool:
        if self.complete:
            return False
        self._complete(reason)
        return True

    def _stopped(self) -> bool:
        return self._scope is not None and not self._scope.active

    @staticmethod
    def _marks_for(items: Sequence[RankItem]) -> tuple[bool, ...]:
        ref = reference_order(items)
        return tuple(a.id == b.id for a, b in zip(items, ref))

    def _on_hold_elapsed(self) -> None:
        if not self.complete:
            self._complete(EndReason.SOLVED)

    def _complete(self, reason: EndReason) -> None:
        self.stop()
        in_place = sum(self._marks_for(self._items))
        self._result = SessionResult(
            template=self._template,
            score=in_place,
            total=len(self._items),
            ended_by=reason,
        )
        logger.info("%s session complete: %d/%d (%s)", self._template, in_place, len(self._items), reason.value)
        observers, self._observers = self._observers, []
        for callback in observers:
            callback(self._result)
