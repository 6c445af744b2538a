"""Discrete grid navigation for the Maze chase template."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .results import SessionResult
from .rng import SeededRng
from .session import SessionController
from .timers import TimerQueue, TimerScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GridConfig:
    grid_size: int = 6
    advance_delay_s: float = 1.0

    def __post_init__(self) -> None:
        if self.grid_size < 2:
            raise ValueError("grid_size must be >= 2")
        if self.advance_delay_s < 0:
            raise ValueError("advance_delay_s must be >= 0")


@dataclass(frozen=True, slots=True)
class GridPosition:
    x: int
    y: int

    def step(self, dx: int, dy: int, *, size: int) -> "GridPosition":
        """Move by (dx, dy), clamped to ``[0, size-1]`` on both axes."""
        return GridPosition(
            x=max(0, min(size - 1, self.x + dx)),
            y=max(0, min(size - 1, self.y + dy)),
        )


ORIGIN = GridPosition(0, 0)


class Direction(Enum):
    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    @property
    def delta(self) -> tuple[int, int]:
        return self.value


@dataclass(slots=True)
class CollectibleItem:
    id: int
    position: GridPosition
    answer_value: int
    is_correct: bool
    collected: bool = False


class GridNavigator:
    """Player movement and item collection on a square grid.

    Collecting the correct item scores and, after a short delay, moves on to
    the next question: items are placed afresh and the player returns to the
    origin.  A wrong item is collected and stays inert.  Nothing fails a
    question outright, so a layout where every wrong item is collected first
    leaves the correct one waiting.
    """

    def __init__(
        self,
        session: SessionController,
        timers: TimerQueue,
        *,
        rng: SeededRng,
        config: GridConfig | None = None,
    ) -> None:
        self._session = session
        self._timers = timers
        self._rng = rng
        self._cfg = config or GridConfig()

        free_cells = self._cfg.grid_size * self._cfg.grid_size - 1
        widest = max(len(q.option_values()) for q in session.questions)
        if widest > free_cells:
            raise ValueError(f"{widest} options do not fit on a {self._cfg.grid_size}x{self._cfg.grid_size} grid")

        self._player = ORIGIN
        self._items: list[CollectibleItem] = []
        self._scope: TimerScope | None = None
        self._advance_pending = False

    @property
    def config(self) -> GridConfig:
        return self._cfg

    @property
    def grid_size(self) -> int:
        return self._cfg.grid_size

    @property
    def player(self) -> GridPosition:
        return self._player

    @property
    def advance_pending(self) -> bool:
        return self._advance_pending

    def items(self) -> tuple[CollectibleItem, ...]:
        return tuple(self._items)

    def item_at(self, pos: GridPosition) -> CollectibleItem | None:
        for item in self._items:
            if item.position == pos:
                return item
        return None

    def start(self) -> None:
        if self._scope is not None or self._session.complete:
            return
        self._session.observe(self._on_session_complete)
        self._place_items()
        logger.info("grid navigator started (%dx%d)", self._cfg.grid_size, self._cfg.grid_size)

    def stop(self) -> None:
        if self._scope is not None:
            self._scope.cancel()
        self._advance_pending = False

    def move(self, direction: Direction) -> bool:
        """Move the player one cell.  Returns True if the move was taken."""

        if self._scope is None or not self._scope.active or self._advance_pending:
            return False
        dx, dy = direction.delta
        self._player = self._player.step(dx, dy, size=self._cfg.grid_size)
        self._collect_at(self._player)
        return True

    def _collect_at(self, pos: GridPosition) -> None:
        for item in self._items:
            if item.position != pos or item.collected:
                continue
            item.collected = True
            logger.debug("collected %d at (%d, %d) correct=%s", item.answer_value, pos.x, pos.y, item.is_correct)
            if item.is_correct and self._session.submit_answer(item.answer_value):
                self._advance_pending = True
                assert self._scope is not None
                self._timers.call_later(self._cfg.advance_delay_s, self._advance, scope=self._scope)
            return

    def _advance(self) -> None:
        self._advance_pending = False
        self._session.advance()
        if not self._session.complete:
            self._place_items()

    def _place_items(self) -> None:
        if self._scope is not None:
            self._scope.cancel()
        self._scope = self._timers.scope(f"grid-q{self._session.index}")
        self._player = ORIGIN

        question = self._session.current_question
        size = self._cfg.grid_size
        taken: set[GridPosition] = {ORIGIN}
        items: list[CollectibleItem] = []
        for i, value in enumerate(question.option_values()):
            while True:
                pos = GridPosition(self._rng.randint(0, size - 1), self._rng.randint(0, size - 1))
                if pos not in taken:
                    break
            taken.add(pos)
            items.append(
                CollectibleItem(
                    id=i,
                    position=pos,
                    answer_value=value,
                    is_correct=value == question.answer,
                )
            )
        self._items = items

    def _on_session_complete(self, result: SessionResult) -> None:
        _ = result
        self.stop()
