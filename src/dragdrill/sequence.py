"""Card ordering for the pairing game."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from itertools import islice

from .config import DEFAULT_CONFIG, EngineConfig
from .models import Canvas, Card, PracticeItem, Side

_LOGGER = logging.getLogger("dragdrill.sequence")

MIN_CONSTRAINED_ITEMS = 3
MAX_REQUIRED_PAIRS = 3


def clamp_capacity(capacity: int, config: EngineConfig = DEFAULT_CONFIG) -> int:
    """Round capacity down to an even count inside the configured bounds."""
    capacity -= capacity % 2
    return max(config.min_capacity, min(config.max_capacity, capacity))


def capacity_for_canvas(canvas: Canvas, config: EngineConfig = DEFAULT_CONFIG) -> int:
    """Return how many cards fit on ``canvas`` at once."""
    geometry = config.geometry
    usable_width = max(0.0, canvas.width - 2 * geometry.edge_margin)
    usable_height = max(0.0, canvas.height - 2 * geometry.edge_margin)
    cell_width = geometry.card_width + 2 * geometry.card_cell_inset
    cell_height = geometry.card_height + 2 * geometry.card_cell_inset
    cells = int((usable_width * usable_height) // (cell_width * cell_height))
    return clamp_capacity(cells, config)


def required_pairs(item_count: int, capacity: int) -> int:
    """Return the minimum complete pairs every visible window must hold."""
    if item_count < MIN_CONSTRAINED_ITEMS:
        return 0
    return min(MAX_REQUIRED_PAIRS, capacity // 2)


def count_complete_pairs(cards: Sequence[Card]) -> int:
    """Count items shown from both sides within ``cards``."""
    sides: dict[int, set[Side]] = {}
    for card in cards:
        sides.setdefault(card.item_id, set()).add(card.side)
    return sum(1 for shown in sides.values() if len(shown) == 2)


def build_card_sequence(
    items: Sequence[PracticeItem],
    capacity: int,
    rng: random.Random | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[Card]:
    """Order both sides of every item so each capacity-sized window keeps complete pairs.

    Seeds ``k`` complete pairs, then keeps ``capacity - 2k`` single spare cards
    outstanding. Each further step deals the complement of a spare dealt at
    most that many slots earlier plus one new spare, so every window of
    ``capacity`` slots holds at least ``k`` complete pairs. Leftover spares
    are flushed youngest first.
    """
    rng = rng or random.Random()
    capacity = clamp_capacity(capacity, config)
    pool = list(items)
    rng.shuffle(pool)

    if len(pool) < MIN_CONSTRAINED_ITEMS:
        unconstrained = [(item.id, side) for item in pool for side in (Side.PROMPT, Side.ANSWER)]
        rng.shuffle(unconstrained)
        return _number(unconstrained)

    pairs = required_pairs(len(pool), capacity)
    spare_target = capacity - 2 * pairs
    halves: list[tuple[int, Side]] = []
    remaining = iter(pool)
    # position in ``halves`` -> card dealt without its complement yet
    outstanding: dict[int, tuple[int, Side]] = {}

    def deal_spare(item: PracticeItem) -> None:
        side = rng.choice((Side.PROMPT, Side.ANSWER))
        outstanding[len(halves)] = (item.id, side)
        halves.append((item.id, side))

    for item in islice(remaining, pairs):
        first = rng.choice((Side.PROMPT, Side.ANSWER))
        halves.extend([(item.id, first), (item.id, first.opposite)])

    if spare_target > 0:
        for item in islice(remaining, spare_target):
            deal_spare(item)
        for item in remaining:
            position = len(halves)
            eligible = [index for index in outstanding if position - index <= spare_target]
            item_id, side = outstanding.pop(rng.choice(eligible))
            halves.append((item_id, side.opposite))
            deal_spare(item)
        for index in sorted(outstanding, reverse=True):
            item_id, side = outstanding[index]
            halves.append((item_id, side.opposite))
        outstanding.clear()

    for item in remaining:
        first = rng.choice((Side.PROMPT, Side.ANSWER))
        halves.extend([(item.id, first), (item.id, first.opposite)])

    _LOGGER.debug("Built card sequence: items=%d capacity=%d pairs=%d", len(pool), capacity, pairs)
    return _number(halves)


def _number(halves: list[tuple[int, Side]]) -> list[Card]:
    """Assign sequential slot ids."""
    return [Card(slot_id=index, item_id=item_id, side=side) for index, (item_id, side) in enumerate(halves)]
