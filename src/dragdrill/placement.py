"""Randomized non-overlapping placement with a deterministic grid fallback."""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from .models import Point, Rect, Size

_LOGGER = logging.getLogger("dragdrill.placement")

DEFAULT_ATTEMPTS = 100


@dataclass(frozen=True)
class PlacementResult:
    """Positions for one placement call."""

    positions: dict[int, Rect]
    fallback_ids: tuple[int, ...] = field(default=())

    @property
    def used_fallback(self) -> bool:
        return bool(self.fallback_ids)


def overlaps(candidate: Rect, placed: Iterable[Rect], spacing: float) -> bool:
    """Return whether ``candidate`` grown by ``spacing`` touches any placed rectangle."""
    grown = candidate.expanded(spacing)
    return any(grown.intersects(other) for other in placed)


def fallback_cell(index: int, area: Rect, footprint: Size) -> Rect:
    """Return the grid cell used when random placement gives up."""
    columns = max(2, int(math.sqrt(max(area.width, 0.0) / footprint.width)))
    column = index % columns
    row = index // columns
    cell_width = area.width / columns
    x = area.x + column * cell_width
    y = area.y + row * footprint.height
    x = min(max(x, area.x), max(area.x, area.right - footprint.width))
    y = min(max(y, area.y), max(area.y, area.bottom - footprint.height))
    return Rect(x, y, footprint.width, footprint.height)


def place_tokens(
    ids: Sequence[int],
    area: Rect,
    footprint: Size,
    existing: Mapping[int, Rect] | None = None,
    *,
    spacing: float = 8.0,
    attempts: int = DEFAULT_ATTEMPTS,
    rng: random.Random | None = None,
) -> PlacementResult:
    """Place one ``footprint`` rectangle per id inside ``area``.

    Tries ``attempts`` uniformly random positions per id and keeps the first
    one that stays ``spacing`` away from every existing and newly placed
    rectangle. When all attempts collide the id gets a grid cell derived from
    the running placement count instead; that cell may overlap.
    """
    rng = rng or random.Random()
    placed: list[Rect] = list((existing or {}).values())
    positions: dict[int, Rect] = {}
    fallback: list[int] = []
    max_x = max(area.x, area.right - footprint.width)
    max_y = max(area.y, area.bottom - footprint.height)

    for token_id in ids:
        chosen: Rect | None = None
        for _ in range(attempts):
            candidate = Rect.at(Point(rng.uniform(area.x, max_x), rng.uniform(area.y, max_y)), footprint)
            if not overlaps(candidate, placed, spacing):
                chosen = candidate
                break
        if chosen is None:
            chosen = fallback_cell(len(placed), area, footprint)
            fallback.append(token_id)
            _LOGGER.warning("Placement fell back to grid for id=%s after %d attempts", token_id, attempts)
        positions[token_id] = chosen
        placed.append(chosen)

    return PlacementResult(positions=positions, fallback_ids=tuple(fallback))
