"""Drag-and-drop validation and timed feedback."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Protocol

from .config import DEFAULT_CONFIG, EngineConfig
from .games import GameStrategy
from .models import GameKind, Outcome, Point
from .state import Interaction, Phase, SessionState, Traversal

_LOGGER = logging.getLogger("dragdrill.interaction")


class SessionHost(Protocol):
    """Owner of the session state that the state machine drives."""

    @property
    def state(self) -> SessionState: ...

    def apply(self, state: SessionState) -> None: ...

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> None: ...

    def record(self, outcomes: Sequence[Outcome]) -> None: ...

    def replenish(self, resolved: frozenset[int]) -> None: ...

    def advance_word(self) -> None: ...


class InteractionStateMachine:
    """Turn pointer events into validated attempts with timed feedback.

    Input is rejected at entry while ``interaction.blocked`` is set. Correct
    drops hold their feedback for ``correct_hold_ms`` before the host
    replenishes; incorrect drops block input for the game's incorrect hold
    and then revert.
    """

    def __init__(self, game: GameStrategy, host: SessionHost, config: EngineConfig = DEFAULT_CONFIG) -> None:
        self.game = game
        self.host = host
        self.config = config

    def _accepts_input(self, state: SessionState, event: str) -> bool:
        if state.complete or state.interaction.blocked:
            _LOGGER.debug("Ignored %s: complete=%s blocked=%s", event, state.complete, state.interaction.blocked)
            return False
        return True

    def token_at(self, point: Point) -> int | None:
        """Return the draggable id under ``point``, if any."""
        return self.game.token_at(self.host.state, point)

    def drag_start(self, token_id: int, pointer: Point) -> bool:
        state = self.host.state
        if not self._accepts_input(state, "drag_start"):
            return False
        if state.interaction.phase is Phase.DRAGGING:
            _LOGGER.debug("Ignored drag_start for %s: drag already in progress", token_id)
            return False
        if not self.game.can_drag(state, token_id):
            _LOGGER.debug("Ignored drag_start for unknown or resolved token %s", token_id)
            return False
        self.host.apply(
            replace(state, interaction=Interaction(phase=Phase.DRAGGING, selected=token_id, pointer=pointer))
        )
        return True

    def drag_move(self, pointer: Point) -> None:
        state = self.host.state
        interaction = state.interaction
        if interaction.blocked or interaction.phase is not Phase.DRAGGING or interaction.selected is None:
            return
        hovered = self.game.drop_target(state, pointer, interaction.selected)
        self.host.apply(replace(state, interaction=replace(interaction, pointer=pointer, hovered=hovered)))

    def drag_end(self) -> bool | None:
        """Validate the drop; returns True/False for an attempt and None when the gesture was cancelled."""
        state = self.host.state
        interaction = state.interaction
        if interaction.blocked or interaction.phase is not Phase.DRAGGING or interaction.selected is None:
            return None
        token_id, target_id = interaction.selected, interaction.hovered
        if target_id is None or not self.game.can_drag(state, token_id):
            self.host.apply(replace(state, interaction=Interaction()))
            return None
        if self.game.is_correct(state, token_id, target_id):
            self._on_correct(state, token_id, target_id)
            return True
        self._on_incorrect(state, token_id, target_id)
        return False

    def _on_correct(self, state: SessionState, token_id: int, target_id: int) -> None:
        before = state.confirmed
        updated, outcomes = self.game.accept(state, token_id, target_id)
        resolved = updated.confirmed - before
        self.host.apply(replace(updated, interaction=Interaction(phase=Phase.FEEDBACK_CORRECT)))
        self.host.record(outcomes)
        _LOGGER.debug("Correct drop: token=%s target=%s", token_id, target_id)
        self.host.schedule(self.config.timings.correct_hold_ms, lambda: self._settle(resolved))

    def _on_incorrect(self, state: SessionState, token_id: int, target_id: int) -> None:
        updated, outcomes = self.game.reject(state, token_id, target_id)
        self.host.apply(replace(updated, interaction=Interaction(phase=Phase.FEEDBACK_INCORRECT, blocked=True)))
        self.host.record(outcomes)
        _LOGGER.debug("Incorrect drop: token=%s target=%s", token_id, target_id)
        self.host.schedule(self.game.incorrect_hold_ms, self._revert)

    def _settle(self, resolved: frozenset[int]) -> None:
        self.host.replenish(resolved)
        state = self.host.state
        if state.interaction.phase is Phase.FEEDBACK_CORRECT and not state.confirmed:
            self.host.apply(replace(state, interaction=Interaction()))
            state = self.host.state
        if self.game.word_solved(state):
            self._finish_word(state)

    def _revert(self) -> None:
        state = self.game.revert(self.host.state)
        self.host.apply(replace(state, interaction=Interaction()))

    def _finish_word(self, state: SessionState) -> None:
        self.host.apply(replace(state, word_complete=True, interaction=Interaction(blocked=True)))
        timings = self.config.timings
        path = self.game.celebration_path(self.host.state)
        if path:
            self.host.schedule(timings.traversal_lead_in_ms, lambda: self._traverse(path, 0))
        else:
            self.host.schedule(timings.celebration_ms, self._complete_word)

    def _traverse(self, path: list[Point], step: int) -> None:
        state = self.host.state
        if step >= len(path):
            self.host.apply(replace(state, traversal=Traversal()))
            self._complete_word()
            return
        self.host.apply(replace(state, traversal=Traversal(active=True, step=step, position=path[step])))
        self.host.schedule(self.config.timings.traversal_step_ms, lambda: self._traverse(path, step + 1))

    def _complete_word(self) -> None:
        state, outcomes = self.game.finish_word(self.host.state)
        self.host.apply(state)
        self.host.record(outcomes)
        self.host.schedule(self.config.timings.advance_delay_ms, self.host.advance_word)

    def skip_word(self) -> bool:
        """Reveal the current word, then count it as a failure and move on."""
        if self.game.kind is GameKind.PAIRING:
            raise ValueError("Pairing sessions cannot skip words.")
        state = self.host.state
        if not self._accepts_input(state, "skip_word") or state.word_complete or state.current_item is None:
            return False
        self.host.apply(self.game.reveal_solution(state))
        self.host.schedule(self.config.timings.skip_reveal_ms, self._finish_skip)
        return True

    def _finish_skip(self) -> None:
        state, outcomes = self.game.skip_outcome(self.host.state)
        self.host.apply(state)
        self.host.record(outcomes)
        self.host.advance_word()
