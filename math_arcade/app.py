"""Pygame UI shell for Math Arcade.

A main menu lists the ten game templates.  Choosing one generates a fresh
question set and opens a :class:`GameScreen` for it.

Deterministic timing/scoring/RNG/state lives in the core modules; this layer
only renders and forwards input.  Each frame the game screen pumps its timer
queue so spawn ticks, motion ticks and resolution delays fire.
"""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .clock import RealClock
from .grid import Direction, GridNavigator
from .motion import MotionUpdater
from .ordering import OrderValidator
from .questions import ArithmeticQuestionGenerator, GameSettings
from .results import SessionResult
from .spawn import SpawnScheduler
from .templates import TEMPLATES, ChoiceRound, GameSession, TemplateInfo, TemplateKind, build_session
from .timers import TimerQueue

logger = logging.getLogger(__name__)

SEED_ENV = "MATH_ARCADE_SEED"
LOG_LEVEL_ENV = "MATH_ARCADE_LOG_LEVEL"

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

BG = (3, 9, 78)
PANEL_BG = (8, 18, 104)
BORDER = (226, 236, 255)
TEXT_MAIN = (238, 245, 255)
TEXT_MUTED = (186, 200, 224)
GOOD = (90, 200, 120)
BAD = (220, 90, 90)
ACCENT = (244, 200, 60)

_DIGIT_KEYS = {
    pygame.K_1: 0,
    pygame.K_2: 1,
    pygame.K_3: 2,
    pygame.K_4: 3,
    pygame.K_5: 4,
    pygame.K_6: 5,
    pygame.K_7: 6,
    pygame.K_8: 7,
    pygame.K_9: 8,
}

_ARROW_KEYS = {
    pygame.K_UP: Direction.UP,
    pygame.K_w: Direction.UP,
    pygame.K_DOWN: Direction.DOWN,
    pygame.K_s: Direction.DOWN,
    pygame.K_LEFT: Direction.LEFT,
    pygame.K_a: Direction.LEFT,
    pygame.K_RIGHT: Direction.RIGHT,
    pygame.K_d: Direction.RIGHT,
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the last/root screen; root handles its own quit/back behavior.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        for screen in self._screens:
            if isinstance(screen, GameScreen):
                screen.close()
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 30)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def _activate(self) -> None:
        if not self._items:
            return
        self._items[self._selected].action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill(BG)

        frame = pygame.Rect(20, 20, max(260, w - 40), max(220, h - 40))
        pygame.draw.rect(surface, PANEL_BG, frame)
        pygame.draw.rect(surface, BORDER, frame, 2)

        title = self._title_font.render(self._title, True, TEXT_MAIN)
        surface.blit(title, title.get_rect(midtop=(frame.centerx, frame.y + 14)))

        row_h = max(24, min(36, (frame.h - 110) // max(1, len(self._items))))
        y = frame.y + 64
        for idx, item in enumerate(self._items):
            row = pygame.Rect(frame.x + 40, y, frame.w - 80, row_h - 4)
            selected = idx == self._selected
            if selected:
                pygame.draw.rect(surface, (244, 248, 255), row)
            color = (14, 26, 74) if selected else TEXT_MAIN
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h

        foot = self._hint_font.render("Enter/Space: Select  |  Esc/Backspace: Back", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


class GameScreen:
    """Plays one template session and shows its result.

    Esc ends the session early (scored as exited) and returns to the menu.
    """

    def __init__(
        self,
        app: App,
        *,
        info: TemplateInfo,
        session_factory: Callable[[TimerQueue], GameSession],
        timers: TimerQueue,
    ) -> None:
        self._app = app
        self._info = info
        self._timers = timers
        self._session = session_factory(timers)
        self._result: SessionResult | None = None
        self._session.observe(self._on_complete)
        self._session.start()

        self._rank_cursor = 0
        self._small_font = pygame.font.Font(None, 26)
        self._big_font = pygame.font.Font(None, 64)

    @property
    def session(self) -> GameSession:
        return self._session

    def close(self) -> None:
        self._session.stop()

    def _on_complete(self, result: SessionResult) -> None:
        self._result = result

    # -- Event handling -----------------------------------------------------
    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_ESCAPE:
            self.close()
            self._app.pop()
            return
        if self._result is not None:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                self._app.pop()
            return

        mechanic = self._session.mechanic
        if isinstance(mechanic, ChoiceRound):
            self._handle_choice_key(mechanic, event.key)
        elif isinstance(mechanic, SpawnScheduler):
            slot = _DIGIT_KEYS.get(event.key)
            if slot is not None:
                mechanic.whack(slot)
        elif isinstance(mechanic, MotionUpdater):
            idx = _DIGIT_KEYS.get(event.key)
            entities = mechanic.entities()
            if idx is not None and idx < len(entities):
                mechanic.fire(entities[idx].id)
        elif isinstance(mechanic, GridNavigator):
            direction = _ARROW_KEYS.get(event.key)
            if direction is not None:
                mechanic.move(direction)
        elif isinstance(mechanic, OrderValidator):
            self._handle_rank_key(mechanic, event)

    def _handle_choice_key(self, choice: ChoiceRound, key: int) -> None:
        controller = self._session.controller
        assert controller is not None
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            choice.next()
            return
        idx = _DIGIT_KEYS.get(key)
        options = controller.current_question.option_values()
        if idx is not None and idx < len(options):
            choice.choose(options[idx])

    def _handle_rank_key(self, validator: OrderValidator, event: pygame.event.Event) -> None:
        count = validator.total
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if validator.checked and not validator.correct:
                validator.try_again()
            else:
                validator.check()
            return
        delta = -1 if event.key == pygame.K_UP else 1 if event.key == pygame.K_DOWN else 0
        if delta == 0:
            return
        target = max(0, min(count - 1, self._rank_cursor + delta))
        if getattr(event, "mod", 0) & pygame.KMOD_SHIFT:
            item = validator.items()[self._rank_cursor]
            if validator.move(item.id, target):
                self._rank_cursor = target
        else:
            self._rank_cursor = target

    # -- Rendering ----------------------------------------------------------
    def render(self, surface: pygame.Surface) -> None:
        self._timers.run_due()
        surface.fill(BG)
        if self._result is not None:
            self._render_result(surface, self._result)
            return

        title = self._app.font.render(self._info.name, True, TEXT_MAIN)
        surface.blit(title, (24, 16))

        mechanic = self._session.mechanic
        if isinstance(mechanic, OrderValidator):
            self._render_rank(surface, mechanic)
            return

        controller = self._session.controller
        assert controller is not None
        state = controller.snapshot()
        header = f"Question {state.index + 1}/{state.total}   Score: {state.score}"
        if isinstance(mechanic, SpawnScheduler):
            header += f"   Time: {int(mechanic.time_remaining_s())}s"
        surface.blit(self._small_font.render(header, True, TEXT_MUTED), (24, 56))
        prompt = self._big_font.render(f"{controller.current_question.display} = ?", True, TEXT_MAIN)
        surface.blit(prompt, (24, 84))

        if isinstance(mechanic, ChoiceRound):
            self._render_choice(surface, mechanic)
        elif isinstance(mechanic, SpawnScheduler):
            self._render_spawn(surface, mechanic)
        elif isinstance(mechanic, MotionUpdater):
            self._render_motion(surface, mechanic)
        elif isinstance(mechanic, GridNavigator):
            self._render_grid(surface, mechanic)

    def _render_choice(self, surface: pygame.Surface, choice: ChoiceRound) -> None:
        controller = self._session.controller
        assert controller is not None
        question = controller.current_question
        labels = ("True", "False") if self._info.kind is TemplateKind.TRUE_FALSE else None
        y = 170
        for i, value in enumerate(question.option_values()):
            color = TEXT_MAIN
            if choice.selected is not None:
                if value == question.answer:
                    color = GOOD
                elif value == choice.selected:
                    color = BAD
            label = labels[i] if labels is not None else str(value)
            surface.blit(self._app.font.render(f"{i + 1}. {label}", True, color), (60, y))
            y += 44
        if controller.locked and choice.config.auto_advance_s is None:
            hint = self._small_font.render("Press Enter for the next question", True, TEXT_MUTED)
            surface.blit(hint, (24, surface.get_height() - 40))

    def _render_spawn(self, surface: pygame.Surface, spawn: SpawnScheduler) -> None:
        cell = 90
        x0, y0 = 60, 170
        for i, entity in enumerate(spawn.slots()):
            rect = pygame.Rect(x0 + (i % 3) * (cell + 12), y0 + (i // 3) * (cell // 2 + 12), cell, cell // 2)
            pygame.draw.rect(surface, (20, 90, 40), rect)
            pygame.draw.rect(surface, BORDER, rect, 1)
            if entity is not None:
                text = self._small_font.render(f"{i + 1}: {entity.payload_value}", True, ACCENT)
                surface.blit(text, text.get_rect(center=rect.center))

    def _render_motion(self, surface: pygame.Surface, motion: MotionUpdater) -> None:
        area = pygame.Rect(24, 170, surface.get_width() - 48, surface.get_height() - 200)
        pygame.draw.rect(surface, BORDER, area, 1)

        def to_px(x: float, y: float) -> tuple[int, int]:
            return area.x + int(area.w * x / 100.0), area.y + int(area.h * y / 100.0)

        for i, e in enumerate(motion.entities()):
            if not e.visible:
                continue
            color = BAD if e.id == motion.resolved_id else TEXT_MAIN
            text = self._small_font.render(f"[{i + 1}] {e.payload_value}", True, color)
            surface.blit(text, to_px(e.x, e.y))
        for p in motion.projectiles():
            pygame.draw.circle(surface, ACCENT, to_px(p.x, p.y), 4)

    def _render_grid(self, surface: pygame.Surface, grid: GridNavigator) -> None:
        size = grid.grid_size
        cell = max(20, min(56, (surface.get_height() - 190) // size))
        x0, y0 = 60, 170
        for gy in range(size):
            for gx in range(size):
                rect = pygame.Rect(x0 + gx * cell, y0 + gy * cell, cell - 2, cell - 2)
                pygame.draw.rect(surface, PANEL_BG, rect)
        for item in grid.items():
            rect = pygame.Rect(x0 + item.position.x * cell, y0 + item.position.y * cell, cell - 2, cell - 2)
            label = "ok" if item.collected else str(item.answer_value)
            text = self._small_font.render(label, True, TEXT_MUTED if item.collected else ACCENT)
            surface.blit(text, text.get_rect(center=rect.center))
        p = grid.player
        pygame.draw.circle(
            surface,
            GOOD,
            (x0 + p.x * cell + cell // 2, y0 + p.y * cell + cell // 2),
            cell // 3,
        )

    def _render_rank(self, surface: pygame.Surface, validator: OrderValidator) -> None:
        hint = "Smallest to largest. Up/Down: select, Shift+Up/Down: move, Enter: check"
        surface.blit(self._small_font.render(hint, True, TEXT_MUTED), (24, 56))
        marks = validator.position_marks()
        y = 96
        for i, item in enumerate(validator.items()):
            color = TEXT_MAIN
            if marks is not None:
                color = GOOD if marks[i] else BAD
            prefix = ">" if i == self._rank_cursor else " "
            surface.blit(self._app.font.render(f"{prefix} {i + 1}. {item.display}", True, color), (40, y))
            y += 40
        if validator.checked:
            msg = "Perfect order!" if validator.correct else "Not quite right. Press Enter to try again."
            surface.blit(self._small_font.render(msg, True, GOOD if validator.correct else BAD), (24, y + 10))

    def _render_result(self, surface: pygame.Surface, result: SessionResult) -> None:
        lines = [
            f"{self._info.name} complete",
            "",
            f"Score: {result.score}/{result.total}",
            result.headline(),
            "",
            "Press Enter to return to the menu",
        ]
        y = 60
        for line in lines:
            surface.blit(self._app.font.render(line, True, TEXT_MAIN), (40, y))
            y += 40


def _new_seed() -> int:
    raw = os.environ.get(SEED_ENV)
    if raw:
        return int(raw)
    return random.SystemRandom().randint(1, 2**31 - 1)


def _configure_logging() -> None:
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format="%(levelname)s %(name)s: %(message)s")


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    _configure_logging()
    pygame.init()

    pygame.display.set_caption("Math Arcade")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    real_clock = RealClock()
    settings = GameSettings()

    def open_template(info: TemplateInfo) -> None:
        seed = _new_seed()
        questions = ArithmeticQuestionGenerator(seed=seed, settings=settings).generate()
        app.push(
            GameScreen(
                app,
                info=info,
                timers=TimerQueue(real_clock),
                session_factory=lambda timers: build_session(
                    info.kind,
                    questions,
                    settings,
                    timers=timers,
                    seed=seed,
                ),
            )
        )

    items = [MenuItem(f"{t.name} - {t.description}", lambda t=t: open_template(t)) for t in TEMPLATES]
    items.append(MenuItem("Quit", app.quit))
    app.push(MenuScreen(app, "Math Arcade", items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
