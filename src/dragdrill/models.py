"""Core domain models for drag-and-drop vocabulary practice."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class Side(Enum):
    """Which half of a practice item a card shows."""

    PROMPT = "prompt"
    ANSWER = "answer"

    @property
    def opposite(self) -> Side:
        """Return the complementary side."""
        return Side.ANSWER if self is Side.PROMPT else Side.PROMPT


class GameKind(Enum):
    """Practice game variants sharing one session engine."""

    PAIRING = "pairing"
    FILL = "fill"
    PATH = "path"


class FocusMode(Enum):
    """Item selection filter applied when a session loads items."""

    ALL = "all"
    STARRED = "starred"
    HARD = "hard"


class Orientation(Enum):
    """Canvas orientation derived from its dimensions."""

    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class LayoutMode(Enum):
    """Letter target arrangement."""

    GRID = "grid"
    CURVE = "curve"


@dataclass(frozen=True)
class PracticeItem:
    """One prompt/answer pair owned by the external repository."""

    id: int
    prompt: str
    answer: str
    starred: bool = False
    streak: int = 0


@dataclass(frozen=True)
class Point:
    """Position in canvas units."""

    x: float
    y: float

    def offset(self, dx: float, dy: float) -> Point:
        return Point(self.x + dx, self.y + dy)

    def distance_to(self, other: Point) -> float:
        return ((self.x - other.x) ** 2 + (self.y - other.y) ** 2) ** 0.5


@dataclass(frozen=True)
class Size:
    """Width and height in canvas units."""

    width: float
    height: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle anchored at its top-left corner."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def at(cls, origin: Point, size: Size) -> Rect:
        """Build a rectangle of ``size`` whose top-left corner is ``origin``."""
        return cls(origin.x, origin.y, size.width, size.height)

    @property
    def origin(self) -> Point:
        return Point(self.x, self.y)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, point: Point) -> bool:
        """Return whether ``point`` lies inside the rectangle, edges included."""
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom

    def expanded(self, margin: float) -> Rect:
        """Grow the rectangle by ``margin`` on every side."""
        return Rect(self.x - margin, self.y - margin, self.width + 2 * margin, self.height + 2 * margin)

    def intersects(self, other: Rect) -> bool:
        """Return whether the interiors of two rectangles overlap."""
        return self.x < other.right and other.x < self.right and self.y < other.bottom and other.y < self.bottom


@dataclass(frozen=True)
class Canvas:
    """Drawable area reported by the host."""

    width: float
    height: float

    @property
    def orientation(self) -> Orientation:
        return Orientation.PORTRAIT if self.height > self.width else Orientation.LANDSCAPE

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)


@dataclass(frozen=True)
class Card:
    """Pairing-game card showing one side of an item."""

    slot_id: int
    item_id: int
    side: Side

    def matches(self, other: Card) -> bool:
        """Return whether two cards complete the same item from opposite sides."""
        return self.item_id == other.item_id and self.side is other.side.opposite


@dataclass(frozen=True)
class LetterTarget:
    """Letter position in a spelling game word."""

    index: int
    expected: str
    position: Point
    filled: str | None = None
    correct: bool | None = None

    @property
    def is_resolved(self) -> bool:
        return self.filled is not None and self.correct is not False

    @property
    def is_satisfied(self) -> bool:
        return self.filled is not None and self.filled.casefold() == self.expected.casefold()

    def fill(self, char: str, correct: bool | None) -> LetterTarget:
        return replace(self, filled=char, correct=correct)

    def clear(self) -> LetterTarget:
        return replace(self, filled=None, correct=None)


@dataclass(frozen=True)
class DraggableToken:
    """Letter token waiting in the tray."""

    token_id: int
    char: str
    contributes: bool
    base: Point
    jitter: Point = Point(0.0, 0.0)
    rotation: float = 0.0

    @property
    def draw_position(self) -> Point:
        """Position including the cosmetic jitter; never used for hit testing."""
        return self.base.offset(self.jitter.x, self.jitter.y)


@dataclass(frozen=True)
class Outcome:
    """One recorded practice result."""

    item_id: int
    success: bool
    kind: GameKind
