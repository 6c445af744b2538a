from __future__ import annotations

import random
from collections.abc import MutableSequence, Sequence
from typing import TypeVar

T = TypeVar("T")


class SeededRng:
    """Seeded RNG wrapper to keep deterministic streams explicit.

    Every mechanic that places or spawns things takes one of these so a
    headless run with the same seed replays the same session.
    """

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def random(self) -> float:
        return self._rng.random()

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def sample(self, population: Sequence[T], *, k: int) -> list[T]:
        return self._rng.sample(population, k)

    def shuffle(self, items: MutableSequence[T]) -> None:
        self._rng.shuffle(items)
