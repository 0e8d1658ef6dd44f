"""Session controller coordinating item loading, layout and interaction."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Protocol

from .config import DEFAULT_CONFIG, EngineConfig
from .games import GameStrategy, game_for
from .interaction import InteractionStateMachine
from .models import Canvas, FocusMode, GameKind, Outcome, Point, PracticeItem
from .scheduler import AfterFn
from .state import Progress, SessionState

_LOGGER = logging.getLogger("dragdrill.session")


class PracticeItemSource(Protocol):
    """Supplies ordered practice items for the selected lists."""

    def load_items(self, list_ids: Sequence[int], focus: FocusMode) -> list[PracticeItem]: ...


class OutcomeRecorder(Protocol):
    """Consumes one result per resolved attempt."""

    def record_outcome(self, item_id: int, success: bool, kind: GameKind) -> None: ...


class SessionController:
    """Owns the session state and applies every transition to it."""

    def __init__(
        self,
        game: GameStrategy,
        source: PracticeItemSource,
        recorder: OutcomeRecorder,
        *,
        after: AfterFn,
        list_ids: Sequence[int] = (),
        focus: FocusMode = FocusMode.ALL,
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> None:
        """Create an idle session; nothing is loaded until ``initialize`` receives a canvas."""
        self.game = game
        self.source = source
        self.recorder = recorder
        self.list_ids = tuple(list_ids)
        self.focus = focus
        self.config = config
        self._after = after
        self._state = SessionState(kind=game.kind)
        self._initialized = False
        self._machine = InteractionStateMachine(game, self, config)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def progress(self) -> Progress:
        return self._state.progress

    @property
    def complete(self) -> bool:
        return self._state.complete

    @property
    def is_empty(self) -> bool:
        return self._initialized and self._state.is_empty

    def apply(self, state: SessionState) -> None:
        """Replace the state, then run any resize deferred until feedback ended."""
        pending = state.pending_canvas
        if pending is not None and not state.busy:
            state = replace(state, pending_canvas=None)
            if pending != state.canvas:
                _LOGGER.debug("Applying deferred resize to %sx%s", pending.width, pending.height)
                state = self.game.relayout(state, pending)
        self._state = state

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        """Run ``callback`` after ``delay_ms`` unless the session was reset meanwhile."""
        generation = self._state.generation

        def fire() -> None:
            if self._state.generation != generation:
                _LOGGER.debug("Dropped stale timer from generation %d (now %d)", generation, self._state.generation)
                return
            callback()

        self._after(delay_ms, fire)

    def record(self, outcomes: Sequence[Outcome]) -> None:
        for outcome in outcomes:
            self.recorder.record_outcome(outcome.item_id, outcome.success, outcome.kind)

    def replenish(self, resolved: frozenset[int]) -> None:
        self.apply(self.game.settle(self._state, resolved))

    def advance_word(self) -> None:
        self.apply(self.game.advance(self._state))

    def _load(self, canvas: Canvas, generation: int) -> None:
        items = self.game.prepare_items(self.source.load_items(self.list_ids, self.focus))
        self.apply(self.game.begin(SessionState(kind=self.game.kind, generation=generation), items, canvas))
        self._initialized = True
        _LOGGER.info(
            "Started %s session: items=%d generation=%d focus=%s",
            self.game.kind.value,
            len(items),
            generation,
            self.focus.value,
        )

    def initialize(self, canvas: Canvas) -> None:
        """Load items and build the session once the canvas size is known."""
        if self._initialized:
            self.resize(canvas)
            return
        self._load(canvas, self._state.generation)

    def resize(self, canvas: Canvas) -> None:
        """Lay the session out for a new canvas, deferring while feedback runs."""
        if not self._initialized:
            self.initialize(canvas)
            return
        state = self._state
        if canvas == state.canvas and state.pending_canvas is None:
            return
        if state.busy:
            _LOGGER.debug("Deferring resize to %sx%s until feedback ends", canvas.width, canvas.height)
            self._state = replace(state, pending_canvas=canvas)
            return
        self.apply(self.game.relayout(replace(state, pending_canvas=None), canvas))

    def reset_session(self) -> None:
        """Start over with a fresh shuffle; timers from the old session become no-ops."""
        canvas = self._state.pending_canvas or self._state.canvas
        generation = self._state.generation + 1
        if canvas is None:
            self._state = SessionState(kind=self.game.kind, generation=generation)
            return
        _LOGGER.info("Resetting %s session", self.game.kind.value)
        self._load(canvas, generation)

    def token_at(self, point: Point) -> int | None:
        return self._machine.token_at(point)

    def drag_start(self, token_id: int, pointer: Point) -> bool:
        return self._machine.drag_start(token_id, pointer)

    def drag_move(self, pointer: Point) -> None:
        self._machine.drag_move(pointer)

    def drag_end(self) -> bool | None:
        return self._machine.drag_end()

    def skip_word(self) -> bool:
        return self._machine.skip_word()


def create_session(
    kind: GameKind | str,
    source: PracticeItemSource,
    recorder: OutcomeRecorder,
    *,
    after: AfterFn,
    list_ids: Sequence[int] = (),
    focus: FocusMode | str = FocusMode.ALL,
    rng: random.Random | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> SessionController:
    """Build a controller for the requested game."""
    focus_mode = focus if isinstance(focus, FocusMode) else FocusMode(focus)
    game = game_for(kind, config, rng)
    return SessionController(game, source, recorder, after=after, list_ids=list_ids, focus=focus_mode, config=config)
