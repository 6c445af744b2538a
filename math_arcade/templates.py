"""The ten game templates and the factory that assembles a session.

A template is a session controller plus exactly one mechanic:

* choice templates (Quiz, Match up, True or false, Find the match, Gameshow
  quiz, Balloon pop) answer through :class:`ChoiceRound`;
* Whack-a-mole uses :class:`~math_arcade.spawn.SpawnScheduler`;
* Airplane uses :class:`~math_arcade.motion.MotionUpdater`;
* Maze chase uses :class:`~math_arcade.grid.GridNavigator`;
* Rank order uses :class:`~math_arcade.ordering.OrderValidator` on its own.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from .grid import GridConfig, GridNavigator
from .motion import MotionConfig, MotionUpdater
from .ordering import OrderConfig, OrderValidator
from .questions import GameSettings, Question, question_sequence
from .results import EndReason, SessionResult
from .rng import SeededRng
from .session import CompletionObserver, SessionController
from .spawn import SpawnConfig, SpawnScheduler
from .timers import TimerQueue, TimerScope

logger = logging.getLogger(__name__)


class TemplateKind(StrEnum):
    QUIZ = "quiz"
    MATCH_UP = "matchup"
    TRUE_FALSE = "truefalse"
    FIND_MATCH = "findmatch"
    WHACK_A_MOLE = "whackamole"
    GAMESHOW = "gameshow"
    BALLOON_POP = "balloon"
    MAZE_CHASE = "maze"
    RANK_ORDER = "rankorder"
    AIRPLANE = "airplane"


class MechanicKind(StrEnum):
    CHOICE = "choice"
    SPAWN = "spawn"
    MOTION = "motion"
    GRID = "grid"
    ORDER = "order"


@dataclass(frozen=True, slots=True)
class TemplateInfo:
    kind: TemplateKind
    name: str
    description: str
    mechanic: MechanicKind
    auto_advance_s: float | None = None  # choice templates only


TEMPLATES: tuple[TemplateInfo, ...] = (
    TemplateInfo(TemplateKind.QUIZ, "Quiz", "Standard quiz format", MechanicKind.CHOICE),
    TemplateInfo(TemplateKind.MATCH_UP, "Match up", "Matching pairs game", MechanicKind.CHOICE, 1.0),
    TemplateInfo(TemplateKind.TRUE_FALSE, "True or false", "Binary choice questions", MechanicKind.CHOICE, 1.5),
    TemplateInfo(TemplateKind.FIND_MATCH, "Find the match", "Memory card game", MechanicKind.CHOICE, 1.0),
    TemplateInfo(TemplateKind.WHACK_A_MOLE, "Whack-a-mole", "Interactive whack game", MechanicKind.SPAWN),
    TemplateInfo(TemplateKind.GAMESHOW, "Gameshow quiz", "TV-style gameshow", MechanicKind.CHOICE),
    TemplateInfo(TemplateKind.BALLOON_POP, "Balloon pop", "Pop balloons game", MechanicKind.CHOICE, 1.0),
    TemplateInfo(TemplateKind.MAZE_CHASE, "Maze chase", "Maze navigation game", MechanicKind.GRID),
    TemplateInfo(TemplateKind.RANK_ORDER, "Rank order", "Ordering items game", MechanicKind.ORDER),
    TemplateInfo(TemplateKind.AIRPLANE, "Airplane", "Flying game format", MechanicKind.MOTION),
)

TEMPLATES_BY_KIND: dict[TemplateKind, TemplateInfo] = {t.kind: t for t in TEMPLATES}


@dataclass(frozen=True, slots=True)
class ChoiceConfig:
    auto_advance_s: float | None = None

    def __post_init__(self) -> None:
        if self.auto_advance_s is not None and self.auto_advance_s < 0:
            raise ValueError("auto_advance_s must be >= 0")


class ChoiceRound:
    """Pick-one-option answering, with optional timed auto-advance."""

    def __init__(
        self,
        session: SessionController,
        timers: TimerQueue,
        *,
        config: ChoiceConfig | None = None,
    ) -> None:
        self._session = session
        self._timers = timers
        self._cfg = config or ChoiceConfig()
        self._scope: TimerScope | None = None
        self._selected: int | None = None

    @property
    def config(self) -> ChoiceConfig:
        return self._cfg

    @property
    def selected(self) -> int | None:
        return self._selected

    def start(self) -> None:
        if self._scope is not None or self._session.complete:
            return
        self._scope = self._timers.scope(f"choice-q{self._session.index}")
        self._session.observe(self._on_session_complete)

    def stop(self) -> None:
        if self._scope is not None:
            self._scope.cancel()

    def choose(self, value: int) -> bool:
        if self._scope is None or not self._session.submit_answer(value):
            return False
        self._selected = value
        if self._cfg.auto_advance_s is not None:
            self._timers.call_later(self._cfg.auto_advance_s, self.next, scope=self._scope)
        return True

    def next(self) -> bool:
        if not self._session.advance():
            return False
        self._selected = None
        if not self._session.complete:
            # Fresh scope per question so a stray auto-advance cannot fire twice.
            assert self._scope is not None
            self._scope.cancel()
            self._scope = self._timers.scope(f"choice-q{self._session.index}")
        return True

    def _on_session_complete(self, result: SessionResult) -> None:
        _ = result
        self.stop()


def true_false_questions(questions: Iterable[Question], *, rng: SeededRng) -> tuple[Question, ...]:
    """Turn each question into a statement to judge: answer 1 is true, 0 is false.

    Half the statements show the real answer; the rest show it shifted by a
    non-zero offset in ``[-3, 2]``.
    """

    out: list[Question] = []
    for q in question_sequence(questions):
        truthful = rng.random() < 0.5
        shown = q.answer if truthful else q.answer + rng.choice((-3, -2, -1, 1, 2))
        out.append(
            Question(
                display=f"{q.display} = {shown}",
                answer=1 if truthful else 0,
                options=(1, 0),
            )
        )
    return tuple(out)


Mechanic = ChoiceRound | SpawnScheduler | MotionUpdater | GridNavigator | OrderValidator
MechanicConfig = ChoiceConfig | SpawnConfig | MotionConfig | GridConfig | OrderConfig


@dataclass(eq=False, slots=True)
class GameSession:
    """One template in play: a controller and its single mechanic.

    Rank order has no per-question controller; its validator is both the
    mechanic and the answer source.
    """

    info: TemplateInfo
    mechanic: Mechanic
    controller: SessionController | None

    @property
    def kind(self) -> TemplateKind:
        return self.info.kind

    @property
    def complete(self) -> bool:
        if self.controller is not None:
            return self.controller.complete
        assert isinstance(self.mechanic, OrderValidator)
        return self.mechanic.complete

    @property
    def result(self) -> SessionResult | None:
        if self.controller is not None:
            return self.controller.result
        assert isinstance(self.mechanic, OrderValidator)
        return self.mechanic.result

    def observe(self, callback: CompletionObserver) -> None:
        if self.controller is not None:
            self.controller.observe(callback)
        else:
            assert isinstance(self.mechanic, OrderValidator)
            self.mechanic.observe(callback)

    def start(self) -> None:
        self.mechanic.start()

    def stop(self) -> None:
        """Tear down every timer the session owns and end it if still running."""
        self.mechanic.stop()
        if self.controller is not None:
            self.controller.finish(EndReason.EXITED)
        else:
            assert isinstance(self.mechanic, OrderValidator)
            self.mechanic.finish(EndReason.EXITED)


def build_session(
    kind: TemplateKind | str,
    questions: Iterable[Question],
    settings: GameSettings,
    *,
    timers: TimerQueue,
    seed: int,
    on_complete: CompletionObserver | None = None,
    config: MechanicConfig | None = None,
) -> GameSession:
    """Factory for a template session over a question supply."""

    info = TEMPLATES_BY_KIND[TemplateKind(kind)]
    qs = question_sequence(questions)[: settings.question_count]
    rng = SeededRng(seed)
    logger.info("building %s session over %d questions", info.kind.value, len(qs))

    if info.mechanic is MechanicKind.ORDER:
        order_cfg = config if isinstance(config, OrderConfig) else None
        validator = OrderValidator(
            qs,
            timers,
            rng=rng,
            config=order_cfg,
            template=info.kind.value,
            on_complete=on_complete,
        )
        return GameSession(info=info, mechanic=validator, controller=None)

    if info.kind is TemplateKind.TRUE_FALSE:
        qs = true_false_questions(qs, rng=rng)
    controller = SessionController(qs, template=info.kind.value, on_complete=on_complete)

    mechanic: Mechanic
    if info.mechanic is MechanicKind.SPAWN:
        mechanic = SpawnScheduler(
            controller, timers, rng=rng, config=config if isinstance(config, SpawnConfig) else None
        )
    elif info.mechanic is MechanicKind.MOTION:
        mechanic = MotionUpdater(
            controller, timers, rng=rng, config=config if isinstance(config, MotionConfig) else None
        )
    elif info.mechanic is MechanicKind.GRID:
        mechanic = GridNavigator(
            controller, timers, rng=rng, config=config if isinstance(config, GridConfig) else None
        )
    else:
        choice_cfg = config if isinstance(config, ChoiceConfig) else ChoiceConfig(info.auto_advance_s)
        mechanic = ChoiceRound(controller, timers, config=choice_cfg)

    return GameSession(info=info, mechanic=mechanic, controller=controller)
