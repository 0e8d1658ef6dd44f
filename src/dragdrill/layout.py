"""Letter target and token tray layout for the spelling games."""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .config import DEFAULT_CONFIG, EngineConfig
from .models import Canvas, DraggableToken, LayoutMode, LetterTarget, Orientation, Point, Rect, Size

_LOGGER = logging.getLogger("dragdrill.layout")

# (max letters, amplitude as a share of the cross-axis extent)
AMPLITUDE_TIERS = ((3, 0.2), (6, 0.3))
DEFAULT_AMPLITUDE = 0.35
# (max letters, frequency in radians over the whole word)
FREQUENCY_TIERS = ((3, math.pi / 2), (6, math.pi), (10, 1.5 * math.pi))
DEFAULT_FREQUENCY = 2 * math.pi


@dataclass(frozen=True)
class WordLayout:
    """Targets and tray tokens for one word."""

    word: str
    targets: tuple[LetterTarget, ...]
    tokens: tuple[DraggableToken, ...]

    @property
    def next_token_id(self) -> int:
        return max((token.token_id for token in self.tokens), default=-1) + 1


def normalize_word(word: str) -> str:
    """Upper-case each character without changing the word length."""
    normalized: list[str] = []
    for char in word.strip():
        upper = char.upper()
        normalized.append(upper if len(upper) == 1 else char)
    return "".join(normalized)


def letter_footprint(config: EngineConfig = DEFAULT_CONFIG) -> Size:
    size = config.geometry.letter_size
    return Size(size, size)


def _row_lengths(count: int, per_row: int) -> list[int]:
    rows = [per_row] * (count // per_row)
    if count % per_row:
        rows.append(count % per_row)
    return rows


def _centered_grid(count: int, band: Rect, spacing: float, config: EngineConfig) -> list[Point]:
    """Wrap ``count`` letter squares into rows centered inside ``band``."""
    geometry = config.geometry
    size = geometry.letter_size
    per_row = max(1, int((band.width + spacing) // (size + spacing)))
    rows = _row_lengths(count, per_row)
    block_height = len(rows) * size + max(0, len(rows) - 1) * geometry.row_spacing
    top = band.y + max(0.0, (band.height - block_height) / 2)
    positions: list[Point] = []
    for row, length in enumerate(rows):
        row_width = length * size + (length - 1) * spacing
        left = band.x + (band.width - row_width) / 2
        y = top + row * (size + geometry.row_spacing)
        positions.extend(Point(left + column * (size + spacing), y) for column in range(length))
    return positions


def tray_grid(count: int, tray: Rect, config: EngineConfig = DEFAULT_CONFIG) -> list[Point]:
    """Top-left tray slots for ``count`` tokens, kept inside ``tray``.

    Rows use the letter spacing both ways. When the rows needed at full pitch
    do not fit the tray height, the row count is capped and the column pitch
    shrinks so tokens overlap horizontally instead of leaving the tray.
    """
    if count <= 0:
        return []
    geometry = config.geometry
    size = geometry.letter_size
    spacing = geometry.letter_spacing
    per_row = max(1, int((tray.width + spacing) // (size + spacing)))
    max_rows = max(1, int((tray.height + spacing) // (size + spacing)))
    pitch = size + spacing
    if math.ceil(count / per_row) > max_rows:
        per_row = math.ceil(count / max_rows)
        pitch = min(pitch, max(0.0, tray.width - size) / max(1, per_row - 1))
    rows = _row_lengths(count, per_row)
    block_height = len(rows) * size + (len(rows) - 1) * spacing
    top = tray.y + max(0.0, (tray.height - block_height) / 2)
    positions: list[Point] = []
    for row, length in enumerate(rows):
        row_width = (length - 1) * pitch + size
        left = tray.x + max(0.0, (tray.width - row_width) / 2)
        y = top + row * (size + spacing)
        positions.extend(Point(left + column * pitch, y) for column in range(length))
    return positions


def grid_positions(count: int, canvas: Canvas, config: EngineConfig = DEFAULT_CONFIG) -> list[Point]:
    """Top-left positions of ``count`` targets laid out in centered rows."""
    if count <= 0:
        return []
    geometry = config.geometry
    band = Rect(
        geometry.edge_margin,
        geometry.top_reserved,
        max(0.0, canvas.width - 2 * geometry.edge_margin),
        max(0.0, canvas.height - geometry.top_reserved - geometry.bottom_reserved),
    )
    return _centered_grid(count, band, geometry.letter_spacing, config)


def curve_shape(count: int) -> tuple[float, float]:
    """Return (amplitude share, frequency) for a word of ``count`` letters."""
    amplitude = next((share for limit, share in AMPLITUDE_TIERS if count <= limit), DEFAULT_AMPLITUDE)
    frequency = next((value for limit, value in FREQUENCY_TIERS if count <= limit), DEFAULT_FREQUENCY)
    return amplitude, frequency


def curve_positions(count: int, canvas: Canvas, config: EngineConfig = DEFAULT_CONFIG) -> list[Point]:
    """Top-left positions of ``count`` targets along a sine path.

    Portrait canvases progress downwards with a horizontal offset; landscape
    canvases progress rightwards with a vertical offset.
    """
    if count <= 0:
        return []
    geometry = config.geometry
    edge = geometry.edge_margin
    half = geometry.letter_size / 2
    available_width = max(0.0, canvas.width - 2 * edge)
    available_height = max(0.0, canvas.height - geometry.top_reserved - geometry.bottom_reserved - 2 * edge)
    share, frequency = curve_shape(count)
    positions: list[Point] = []
    for index in range(count):
        t = index / max(1, count - 1)
        wave = math.sin(frequency * t)
        if canvas.orientation is Orientation.PORTRAIT:
            step = available_height / (count + 1)
            x = canvas.width / 2 + share * available_width * wave
            y = geometry.top_reserved + edge + step * (index + 1)
        else:
            step = available_width / (count + 1)
            x = edge + step * (index + 1)
            y = geometry.top_reserved + edge + available_height / 2 + share * available_height * wave
        positions.append(Point(x - half, y - half))
    return positions


def target_positions(
    count: int, canvas: Canvas, mode: LayoutMode, config: EngineConfig = DEFAULT_CONFIG
) -> list[Point]:
    if mode is LayoutMode.CURVE:
        return curve_positions(count, canvas, config)
    return grid_positions(count, canvas, config)


def tray_area(canvas: Canvas, config: EngineConfig = DEFAULT_CONFIG) -> Rect:
    """Bottom band reserved for draggable tokens."""
    geometry = config.geometry
    return Rect(
        geometry.edge_margin,
        max(0.0, canvas.height - geometry.bottom_reserved),
        max(0.0, canvas.width - 2 * geometry.edge_margin),
        geometry.bottom_reserved,
    )


def build_token_pool(
    letters: Sequence[str],
    word: str,
    canvas: Canvas,
    rng: random.Random,
    config: EngineConfig = DEFAULT_CONFIG,
    start_id: int = 0,
) -> list[DraggableToken]:
    """Shuffle the needed letters with decoys and lay them out in the tray."""
    if not letters:
        return []
    geometry = config.geometry
    used = {char.upper() for char in word}
    decoy_letters = [char for char in config.alphabet if char not in used]
    decoys = [rng.choice(decoy_letters) for _ in range(max(1, len(letters) // 2))] if decoy_letters else []
    chars = [(char, True) for char in letters] + [(char, False) for char in decoys]
    rng.shuffle(chars)
    slots = tray_grid(len(chars), tray_area(canvas, config), config)
    tokens: list[DraggableToken] = []
    for offset, ((char, contributes), base) in enumerate(zip(chars, slots, strict=True)):
        tokens.append(
            DraggableToken(
                token_id=start_id + offset,
                char=char,
                contributes=contributes,
                base=base,
                jitter=Point(
                    rng.uniform(-geometry.jitter, geometry.jitter), rng.uniform(-geometry.jitter, geometry.jitter)
                ),
                rotation=rng.uniform(-geometry.letter_rotation, geometry.letter_rotation),
            )
        )
    return tokens


def choose_blanks(letter_indices: Sequence[int], rng: random.Random, max_blanks: int) -> set[int]:
    """Pick which letters the learner must supply, leaving at least one filled when possible."""
    if not letter_indices:
        return set()
    count = min(max_blanks, max(1, len(letter_indices) - 1))
    return set(rng.sample(list(letter_indices), count))


def build_word_layout(
    word: str,
    canvas: Canvas,
    mode: LayoutMode,
    rng: random.Random,
    *,
    subset: bool = False,
    config: EngineConfig = DEFAULT_CONFIG,
    start_token_id: int = 0,
) -> WordLayout:
    """Lay out targets and tokens for ``word``.

    Whitespace is always pre-filled. In subset mode only a random selection
    of letters is blanked; every other letter is shown pre-filled.
    """
    letters = normalize_word(word)
    positions = target_positions(len(letters), canvas, mode, config)
    letter_indices = [index for index, char in enumerate(letters) if not char.isspace()]
    if subset:
        blanks = choose_blanks(letter_indices, rng, config.max_blanks)
    else:
        blanks = set(letter_indices)
    targets = tuple(
        LetterTarget(index=index, expected=char, position=position, filled=None if index in blanks else char)
        for index, (char, position) in enumerate(zip(letters, positions, strict=True))
    )
    needed = [letters[index] for index in sorted(blanks)]
    tokens = build_token_pool(needed, letters, canvas, rng, config, start_token_id)
    _LOGGER.debug(
        "Laid out word: length=%d blanks=%d tokens=%d mode=%s", len(letters), len(blanks), len(tokens), mode.value
    )
    return WordLayout(word=letters, targets=targets, tokens=tuple(tokens))


def relayout_word(
    layout: WordLayout,
    canvas: Canvas,
    mode: LayoutMode,
    rng: random.Random,
    config: EngineConfig = DEFAULT_CONFIG,
    start_token_id: int | None = None,
) -> WordLayout:
    """Recompute positions for a new canvas, keeping filled targets by index."""
    positions = target_positions(len(layout.targets), canvas, mode, config)
    targets = tuple(
        LetterTarget(
            index=target.index,
            expected=target.expected,
            position=position,
            filled=target.filled if target.correct is not False else None,
            correct=target.correct if target.correct is not False else None,
        )
        for target, position in zip(layout.targets, positions, strict=True)
    )
    needed = [target.expected for target in targets if target.filled is None]
    first_id = layout.next_token_id if start_token_id is None else start_token_id
    tokens = build_token_pool(needed, layout.word, canvas, rng, config, first_id)
    return WordLayout(word=layout.word, targets=targets, tokens=tuple(tokens))


def target_center(target: LetterTarget, config: EngineConfig = DEFAULT_CONFIG) -> Point:
    half = config.geometry.letter_size / 2
    return target.position.offset(half, half)


def traversal_path(
    targets: Sequence[LetterTarget], steps: int, config: EngineConfig = DEFAULT_CONFIG
) -> list[Point]:
    """Interpolate target centers into discrete animation points.

    Steps are split evenly across segments, the last segment takes the
    remainder and the final center is appended.
    """
    centers = [target_center(target, config) for target in targets]
    if len(centers) < 2:
        return centers
    segments = len(centers) - 1
    per_segment = max(1, steps // segments)
    path: list[Point] = []
    for segment in range(segments):
        start, end = centers[segment], centers[segment + 1]
        count = per_segment if segment < segments - 1 else max(1, steps - per_segment * (segments - 1))
        for step in range(count):
            fraction = step / count
            path.append(Point(start.x + (end.x - start.x) * fraction, start.y + (end.y - start.y) * fraction))
    path.append(centers[-1])
    return path


def nearest_target(
    point: Point,
    targets: Iterable[LetterTarget],
    radius: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> LetterTarget | None:
    """Return the closest unfilled target whose center lies within ``radius``."""
    best: LetterTarget | None = None
    best_distance = radius
    for target in targets:
        if target.filled is not None:
            continue
        distance = point.distance_to(target_center(target, config))
        if distance <= best_distance:
            best, best_distance = target, distance
    return best


def token_rect(token: DraggableToken, config: EngineConfig = DEFAULT_CONFIG) -> Rect:
    """Hit-test rectangle of a token at its un-jittered tray slot."""
    return Rect.at(token.base, letter_footprint(config))
