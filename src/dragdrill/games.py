"""Game strategies plugged into the shared session engine."""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import replace

from .config import DEFAULT_CONFIG, EngineConfig
from .layout import (
    WordLayout,
    build_word_layout,
    nearest_target,
    relayout_word,
    token_rect,
    traversal_path,
)
from .models import (
    Canvas,
    Card,
    DraggableToken,
    GameKind,
    LayoutMode,
    LetterTarget,
    Outcome,
    Point,
    PracticeItem,
    Rect,
    Side,
    Size,
)
from .placement import place_tokens
from .sequence import build_card_sequence, capacity_for_canvas
from .state import Interaction, Progress, SessionState, Traversal

_LOGGER = logging.getLogger("dragdrill.games")


class GameStrategy(ABC):
    """Rules of one practice game expressed as pure state transitions."""

    kind: GameKind

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG, rng: random.Random | None = None) -> None:
        self.config = config
        self.rng = rng or random.Random()

    def prepare_items(self, items: Iterable[PracticeItem]) -> list[PracticeItem]:
        """Drop items the game cannot present."""
        return list(items)

    @abstractmethod
    def begin(self, state: SessionState, items: Sequence[PracticeItem], canvas: Canvas) -> SessionState:
        """Build the opening state for ``items`` on ``canvas``."""

    @abstractmethod
    def relayout(self, state: SessionState, canvas: Canvas) -> SessionState:
        """Recompute positions for a new canvas, keeping resolved progress."""

    @property
    @abstractmethod
    def hover_radius(self) -> float:
        """Maximum pointer distance from a target center that still counts as hovering."""

    @property
    @abstractmethod
    def incorrect_hold_ms(self) -> int:
        """How long incorrect feedback blocks input."""

    @abstractmethod
    def can_drag(self, state: SessionState, token_id: int) -> bool:
        """Whether ``token_id`` may start a drag."""

    @abstractmethod
    def token_at(self, state: SessionState, point: Point) -> int | None:
        """Return the draggable id under ``point``."""

    @abstractmethod
    def drop_target(self, state: SessionState, pointer: Point, token_id: int) -> int | None:
        """Return the nearest valid target for the dragged token."""

    @abstractmethod
    def is_correct(self, state: SessionState, token_id: int, target_id: int) -> bool:
        """Validate a drop."""

    @abstractmethod
    def accept(self, state: SessionState, token_id: int, target_id: int) -> tuple[SessionState, list[Outcome]]:
        """Apply a correct drop; returns the resolved ids through ``state.confirmed``."""

    @abstractmethod
    def reject(self, state: SessionState, token_id: int, target_id: int) -> tuple[SessionState, list[Outcome]]:
        """Apply an incorrect drop."""

    @abstractmethod
    def revert(self, state: SessionState) -> SessionState:
        """Undo incorrect feedback."""

    @abstractmethod
    def settle(self, state: SessionState, resolved: frozenset[int]) -> SessionState:
        """Finish a correct hold for ``resolved`` ids."""

    def word_solved(self, state: SessionState) -> bool:
        return False

    def celebration_path(self, state: SessionState) -> list[Point]:
        return []

    def finish_word(self, state: SessionState) -> tuple[SessionState, list[Outcome]]:
        raise ValueError(f"{self.kind.value} sessions have no words to finish.")

    def advance(self, state: SessionState) -> SessionState:
        raise ValueError(f"{self.kind.value} sessions have no words to advance.")

    def reveal_solution(self, state: SessionState) -> SessionState:
        raise ValueError(f"{self.kind.value} sessions cannot skip words.")

    def skip_outcome(self, state: SessionState) -> tuple[SessionState, list[Outcome]]:
        raise ValueError(f"{self.kind.value} sessions cannot skip words.")


class PairingGame(GameStrategy):
    """Match each prompt card with its answer card."""

    kind = GameKind.PAIRING

    @property
    def card_size(self) -> Size:
        return Size(self.config.geometry.card_width, self.config.geometry.card_height)

    @property
    def hover_radius(self) -> float:
        geometry = self.config.geometry
        return geometry.card_hover_factor * max(geometry.card_width, geometry.card_height)

    @property
    def incorrect_hold_ms(self) -> int:
        return self.config.timings.pairing_incorrect_ms

    def card_area(self, canvas: Canvas) -> Rect:
        edge = self.config.geometry.edge_margin
        return Rect(edge, edge, max(0.0, canvas.width - 2 * edge), max(0.0, canvas.height - 2 * edge))

    def _place(self, cards: Sequence[Card], canvas: Canvas, existing: dict[int, Rect]) -> dict[int, Rect]:
        result = place_tokens(
            [card.slot_id for card in cards],
            self.card_area(canvas),
            self.card_size,
            existing,
            spacing=self.config.geometry.min_spacing,
            attempts=self.config.placement_attempts,
            rng=self.rng,
        )
        return result.positions

    def _rotations(self, cards: Sequence[Card]) -> dict[int, float]:
        spread = self.config.geometry.card_rotation
        return {card.slot_id: self.rng.uniform(-spread, spread) for card in cards}

    def begin(self, state: SessionState, items: Sequence[PracticeItem], canvas: Canvas) -> SessionState:
        capacity = capacity_for_canvas(canvas, self.config)
        sequence = tuple(build_card_sequence(items, capacity, self.rng, self.config))
        visible = sequence[:capacity]
        return replace(
            state,
            canvas=canvas,
            items=tuple(items),
            capacity=capacity,
            sequence=sequence,
            next_index=len(visible),
            cards=visible,
            placements=self._place(visible, canvas, {}),
            rotations=self._rotations(visible),
            progress=Progress(total=len(items)),
            complete=not sequence,
        )

    def relayout(self, state: SessionState, canvas: Canvas) -> SessionState:
        return replace(
            state,
            canvas=canvas,
            placements=self._place(state.cards, canvas, {}),
            interaction=Interaction(),
        )

    def can_drag(self, state: SessionState, token_id: int) -> bool:
        if token_id in state.confirmed or token_id in state.rejected:
            return False
        return state.card(token_id) is not None

    def token_at(self, state: SessionState, point: Point) -> int | None:
        for card in reversed(state.cards):
            rect = state.placements.get(card.slot_id)
            if rect is not None and rect.contains(point) and self.can_drag(state, card.slot_id):
                return card.slot_id
        return None

    def drop_target(self, state: SessionState, pointer: Point, token_id: int) -> int | None:
        best: int | None = None
        best_distance = self.hover_radius
        for card in state.cards:
            if card.slot_id == token_id or not self.can_drag(state, card.slot_id):
                continue
            rect = state.placements.get(card.slot_id)
            if rect is None:
                continue
            distance = pointer.distance_to(rect.center)
            if distance <= best_distance:
                best, best_distance = card.slot_id, distance
        return best

    def is_correct(self, state: SessionState, token_id: int, target_id: int) -> bool:
        dragged, target = state.card(token_id), state.card(target_id)
        return dragged is not None and target is not None and dragged.matches(target)

    def accept(self, state: SessionState, token_id: int, target_id: int) -> tuple[SessionState, list[Outcome]]:
        card = _require_card(state, token_id)
        progress = replace(state.progress, correct=state.progress.correct + 1)
        updated = replace(state, confirmed=state.confirmed | {token_id, target_id}, progress=progress)
        return updated, [Outcome(card.item_id, True, self.kind)]

    def reject(self, state: SessionState, token_id: int, target_id: int) -> tuple[SessionState, list[Outcome]]:
        dragged, target = _require_card(state, token_id), _require_card(state, target_id)
        charged = next((card for card in (dragged, target) if card.side is Side.PROMPT), dragged)
        progress = replace(state.progress, incorrect=state.progress.incorrect + 1)
        updated = replace(state, rejected=frozenset({token_id, target_id}), progress=progress)
        return updated, [Outcome(charged.item_id, False, self.kind)]

    def revert(self, state: SessionState) -> SessionState:
        return replace(state, rejected=frozenset())

    def settle(self, state: SessionState, resolved: frozenset[int]) -> SessionState:
        """Remove a matched pair and deal up to two replacement cards."""
        remaining = tuple(card for card in state.cards if card.slot_id not in resolved)
        placements = {slot: rect for slot, rect in state.placements.items() if slot not in resolved}
        rotations = {slot: angle for slot, angle in state.rotations.items() if slot not in resolved}
        incoming = state.sequence[state.next_index : state.next_index + len(resolved)]
        if incoming and state.canvas is not None:
            placements.update(self._place(incoming, state.canvas, placements))
            rotations.update(self._rotations(incoming))
        next_index = state.next_index + len(incoming)
        cards = remaining + incoming
        complete = next_index >= len(state.sequence) and not cards
        if complete:
            _LOGGER.info(
                "Pairing session complete: correct=%d incorrect=%d", state.progress.correct, state.progress.incorrect
            )
        return replace(
            state,
            cards=cards,
            placements=placements,
            rotations=rotations,
            next_index=next_index,
            confirmed=state.confirmed - resolved,
            complete=complete,
        )


class SpellingGame(GameStrategy):
    """Shared rules for games that spell the answer one letter at a time."""

    layout_mode: LayoutMode
    subset: bool = False

    @property
    def hover_radius(self) -> float:
        geometry = self.config.geometry
        return geometry.letter_size * geometry.letter_hover_factor

    @property
    def incorrect_hold_ms(self) -> int:
        return self.config.timings.spelling_incorrect_ms

    def prepare_items(self, items: Iterable[PracticeItem]) -> list[PracticeItem]:
        return [item for item in items if item.answer.strip()]

    def _load_word(self, state: SessionState, index: int) -> SessionState:
        canvas = state.canvas
        if canvas is None:
            raise ValueError("Cannot lay out a word before the canvas size is known.")
        layout = build_word_layout(
            state.items[index].answer,
            canvas,
            self.layout_mode,
            self.rng,
            subset=self.subset,
            config=self.config,
            start_token_id=state.next_token_id,
        )
        return replace(
            state,
            word_index=index,
            word=layout.word,
            targets=layout.targets,
            tokens=layout.tokens,
            next_token_id=max(layout.next_token_id, state.next_token_id),
            word_mistakes=0,
            word_complete=False,
            showing_solution=False,
            confirmed=frozenset(),
            rejected=frozenset(),
            interaction=Interaction(),
            traversal=Traversal(),
        )

    def begin(self, state: SessionState, items: Sequence[PracticeItem], canvas: Canvas) -> SessionState:
        order = list(items)
        self.rng.shuffle(order)
        started = replace(state, canvas=canvas, items=tuple(order), progress=Progress(total=len(order)))
        if not order:
            return replace(started, complete=True)
        return self._load_word(started, 0)

    def relayout(self, state: SessionState, canvas: Canvas) -> SessionState:
        if state.complete or not state.targets:
            return replace(state, canvas=canvas)
        layout = relayout_word(
            WordLayout(word=state.word, targets=state.targets, tokens=state.tokens),
            canvas,
            self.layout_mode,
            self.rng,
            self.config,
            start_token_id=state.next_token_id,
        )
        return replace(
            state,
            canvas=canvas,
            targets=layout.targets,
            tokens=layout.tokens,
            next_token_id=max(layout.next_token_id, state.next_token_id),
            interaction=Interaction(),
        )

    def can_drag(self, state: SessionState, token_id: int) -> bool:
        return not state.word_complete and state.token(token_id) is not None

    def token_at(self, state: SessionState, point: Point) -> int | None:
        for token in reversed(state.tokens):
            if token_rect(token, self.config).contains(point):
                return token.token_id
        return None

    def drop_target(self, state: SessionState, pointer: Point, token_id: int) -> int | None:
        target = nearest_target(pointer, state.targets, self.hover_radius, self.config)
        return None if target is None else target.index

    def is_correct(self, state: SessionState, token_id: int, target_id: int) -> bool:
        token = state.token(token_id)
        if token is None or not 0 <= target_id < len(state.targets):
            return False
        return token.char.casefold() == state.targets[target_id].expected.casefold()

    def _fill(self, state: SessionState, target_id: int, char: str, correct: bool) -> tuple[LetterTarget, ...]:
        targets = list(state.targets)
        targets[target_id] = targets[target_id].fill(char, correct)
        return tuple(targets)

    def accept(self, state: SessionState, token_id: int, target_id: int) -> tuple[SessionState, list[Outcome]]:
        token = _require_token(state, token_id)
        updated = replace(
            state,
            targets=self._fill(state, target_id, token.char, True),
            tokens=tuple(item for item in state.tokens if item.token_id != token_id),
            confirmed=state.confirmed | {target_id},
        )
        return updated, []

    def reject(self, state: SessionState, token_id: int, target_id: int) -> tuple[SessionState, list[Outcome]]:
        token = _require_token(state, token_id)
        updated = replace(
            state,
            targets=self._fill(state, target_id, token.char, False),
            rejected=frozenset({target_id}),
            word_mistakes=state.word_mistakes + 1,
            progress=replace(state.progress, mistakes=state.progress.mistakes + 1),
        )
        return updated, []

    def revert(self, state: SessionState) -> SessionState:
        targets = tuple(target.clear() if target.correct is False else target for target in state.targets)
        return replace(state, targets=targets, rejected=frozenset())

    def settle(self, state: SessionState, resolved: frozenset[int]) -> SessionState:
        return replace(state, confirmed=state.confirmed - resolved)

    def word_solved(self, state: SessionState) -> bool:
        if state.word_complete or state.showing_solution or not state.targets:
            return False
        return all(target.is_satisfied for target in state.targets)

    def finish_word(self, state: SessionState) -> tuple[SessionState, list[Outcome]]:
        """Record the finished word as a success only when it had no mistakes."""
        item = _require_item(state)
        success = state.word_mistakes == 0
        progress = state.progress
        if success:
            progress = replace(progress, correct=progress.correct + 1)
        else:
            progress = replace(progress, incorrect=progress.incorrect + 1)
        _LOGGER.info("Word finished: item=%s success=%s mistakes=%d", item.id, success, state.word_mistakes)
        return replace(state, progress=progress, traversal=Traversal()), [Outcome(item.id, success, self.kind)]

    def advance(self, state: SessionState) -> SessionState:
        index = state.word_index + 1
        if index >= len(state.items):
            _LOGGER.info(
                "Spelling session complete: correct=%d incorrect=%d", state.progress.correct, state.progress.incorrect
            )
            return replace(
                state,
                word_index=index,
                word="",
                targets=(),
                tokens=(),
                word_complete=False,
                showing_solution=False,
                confirmed=frozenset(),
                rejected=frozenset(),
                interaction=Interaction(),
                traversal=Traversal(),
                complete=True,
            )
        return self._load_word(state, index)

    def reveal_solution(self, state: SessionState) -> SessionState:
        targets = tuple(
            target if target.is_satisfied else target.fill(target.expected, None) for target in state.targets
        )
        return replace(
            state,
            targets=targets,
            tokens=(),
            showing_solution=True,
            confirmed=frozenset(),
            rejected=frozenset(),
            interaction=Interaction(blocked=True),
        )

    def skip_outcome(self, state: SessionState) -> tuple[SessionState, list[Outcome]]:
        item = _require_item(state)
        progress = replace(state.progress, incorrect=state.progress.incorrect + 1)
        _LOGGER.info("Word skipped: item=%s", item.id)
        return replace(state, progress=progress), [Outcome(item.id, False, self.kind)]


class FillGame(SpellingGame):
    """Fill a few blanks of a word laid out in centered rows."""

    kind = GameKind.FILL
    layout_mode = LayoutMode.GRID
    subset = True


class PathGame(SpellingGame):
    """Spell the whole word along a winding path, then walk it."""

    kind = GameKind.PATH
    layout_mode = LayoutMode.CURVE

    def celebration_path(self, state: SessionState) -> list[Point]:
        return traversal_path(state.targets, self.config.timings.traversal_steps, self.config)


GAMES: dict[GameKind, type[GameStrategy]] = {
    GameKind.PAIRING: PairingGame,
    GameKind.FILL: FillGame,
    GameKind.PATH: PathGame,
}


def game_for(
    kind: GameKind | str, config: EngineConfig = DEFAULT_CONFIG, rng: random.Random | None = None
) -> GameStrategy:
    """Instantiate the strategy for ``kind``."""
    try:
        game_kind = kind if isinstance(kind, GameKind) else GameKind(kind)
    except ValueError:
        raise ValueError(f"Unknown game kind: {kind}") from None
    return GAMES[game_kind](config, rng)


def _require_card(state: SessionState, slot_id: int) -> Card:
    card = state.card(slot_id)
    if card is None:
        raise KeyError(slot_id)
    return card


def _require_token(state: SessionState, token_id: int) -> DraggableToken:
    token = state.token(token_id)
    if token is None:
        raise KeyError(token_id)
    return token


def _require_item(state: SessionState) -> PracticeItem:
    item = state.current_item
    if item is None:
        raise KeyError(state.word_index)
    return item
