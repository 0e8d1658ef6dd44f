"""Immutable session state replaced wholesale on every transition."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .models import Canvas, Card, DraggableToken, GameKind, LetterTarget, Point, PracticeItem, Rect


class Phase(Enum):
    """Drag interaction phase."""

    IDLE = "idle"
    DRAGGING = "dragging"
    FEEDBACK_CORRECT = "feedback_correct"
    FEEDBACK_INCORRECT = "feedback_incorrect"


@dataclass(frozen=True)
class Interaction:
    """Pointer and input-lock substate."""

    phase: Phase = Phase.IDLE
    selected: int | None = None
    pointer: Point | None = None
    hovered: int | None = None
    blocked: bool = False


@dataclass(frozen=True)
class Progress:
    """Session counters."""

    correct: int = 0
    incorrect: int = 0
    total: int = 0
    mistakes: int = 0


@dataclass(frozen=True)
class Traversal:
    """Affirmative path animation position."""

    active: bool = False
    step: int = 0
    position: Point | None = None


@dataclass(frozen=True)
class SessionState:
    """Everything a renderer needs for one frame of a practice session.

    Pairing sessions use ``sequence``/``cards``/``placements``; spelling
    sessions use ``word``/``targets``/``tokens``. ``confirmed`` and
    ``rejected`` hold card slot ids or target indices currently showing
    correct or incorrect feedback.
    """

    kind: GameKind
    generation: int = 0
    canvas: Canvas | None = None
    items: tuple[PracticeItem, ...] = ()
    progress: Progress = field(default_factory=Progress)
    interaction: Interaction = field(default_factory=Interaction)
    confirmed: frozenset[int] = frozenset()
    rejected: frozenset[int] = frozenset()
    complete: bool = False
    pending_canvas: Canvas | None = None
    # pairing
    capacity: int = 0
    sequence: tuple[Card, ...] = ()
    next_index: int = 0
    cards: tuple[Card, ...] = ()
    placements: dict[int, Rect] = field(default_factory=dict)
    rotations: dict[int, float] = field(default_factory=dict)
    # spelling
    word_index: int = 0
    word: str = ""
    targets: tuple[LetterTarget, ...] = ()
    tokens: tuple[DraggableToken, ...] = ()
    next_token_id: int = 0
    word_mistakes: int = 0
    word_complete: bool = False
    showing_solution: bool = False
    traversal: Traversal = field(default_factory=Traversal)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def busy(self) -> bool:
        """Whether feedback or an animation is running."""
        return (
            self.interaction.blocked
            or bool(self.confirmed)
            or bool(self.rejected)
            or self.word_complete
            or self.showing_solution
            or self.traversal.active
        )

    @property
    def current_item(self) -> PracticeItem | None:
        if self.kind is GameKind.PAIRING or not 0 <= self.word_index < len(self.items):
            return None
        return self.items[self.word_index]

    def card(self, slot_id: int) -> Card | None:
        return next((card for card in self.cards if card.slot_id == slot_id), None)

    def token(self, token_id: int) -> DraggableToken | None:
        return next((token for token in self.tokens if token.token_id == token_id), None)
