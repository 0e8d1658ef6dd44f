import math
import random
from collections import Counter
from dataclasses import replace

import pytest

from dragdrill.layout import (
    build_word_layout,
    curve_positions,
    curve_shape,
    grid_positions,
    nearest_target,
    normalize_word,
    relayout_word,
    traversal_path,
    token_rect,
    tray_area,
)
from dragdrill.models import Canvas, LayoutMode, LetterTarget, Point

PORTRAIT = Canvas(400, 800)
LANDSCAPE = Canvas(900, 500)


def test_normalize_word_keeps_length() -> None:
    assert normalize_word("hello") == "HELLO"
    assert normalize_word("  Ice cream ") == "ICE CREAM"
    assert len(normalize_word("straße")) == 6


def test_grid_positions_single_row_is_centered() -> None:
    positions = grid_positions(5, PORTRAIT)
    assert positions[0] == Point(44, 357)
    assert positions[4] == Point(300, 357)


def test_grid_positions_wrap_into_rows() -> None:
    positions = grid_positions(7, PORTRAIT)
    assert positions[0].y == 323
    assert positions[5] == Point(140, 391)
    assert positions[6] == Point(204, 391)


def test_curve_shape_tiers() -> None:
    assert curve_shape(3) == (0.2, math.pi / 2)
    assert curve_shape(5) == (0.3, math.pi)
    assert curve_shape(8) == (0.35, 1.5 * math.pi)
    assert curve_shape(12) == (0.35, 2 * math.pi)


def test_curve_portrait_progresses_downwards() -> None:
    positions = curve_positions(3, PORTRAIT)
    assert positions[0] == Point(172, 240.5)
    assert positions[2].x == pytest.approx(200 + 0.2 * 336 - 28)
    ys = [position.y for position in curve_positions(9, PORTRAIT)]
    assert ys == sorted(ys)
    assert len(set(ys)) == 9


def test_curve_landscape_progresses_rightwards() -> None:
    positions = curve_positions(6, LANDSCAPE)
    xs = [position.x for position in positions]
    assert xs == sorted(xs)
    assert positions[0].y == pytest.approx(120 + 32 + (500 - 270 - 64) / 2 - 28)


def test_full_layout_blanks_every_letter() -> None:
    layout = build_word_layout("cat", PORTRAIT, LayoutMode.CURVE, random.Random(1))
    assert layout.word == "CAT"
    assert [target.filled for target in layout.targets] == [None, None, None]
    contributing = [token.char for token in layout.tokens if token.contributes]
    assert Counter(contributing) == Counter("CAT")
    decoys = [token.char for token in layout.tokens if not token.contributes]
    assert len(decoys) == 1
    assert not set(decoys) & set("CAT")


def test_subset_layout_prefills_some_letters() -> None:
    layout = build_word_layout("banana", PORTRAIT, LayoutMode.GRID, random.Random(3), subset=True)
    blanks = [target for target in layout.targets if target.filled is None]
    prefilled = [target for target in layout.targets if target.filled is not None]
    assert len(blanks) == 5
    assert len(prefilled) == 1
    assert prefilled[0].filled == prefilled[0].expected
    assert prefilled[0].correct is None
    assert Counter(token.char for token in layout.tokens if token.contributes) == Counter(
        target.expected for target in blanks
    )
    assert len([token for token in layout.tokens if not token.contributes]) == 2


def test_subset_layout_caps_blanks() -> None:
    layout = build_word_layout("extraordinary", PORTRAIT, LayoutMode.GRID, random.Random(8), subset=True)
    assert len([target for target in layout.targets if target.filled is None]) == 5


def test_whitespace_is_prefilled() -> None:
    layout = build_word_layout("ice cream", PORTRAIT, LayoutMode.GRID, random.Random(2))
    assert layout.targets[3].filled == " "
    assert len([token for token in layout.tokens if token.contributes]) == 8


def test_tokens_sit_in_tray_with_bounded_jitter() -> None:
    layout = build_word_layout("window", PORTRAIT, LayoutMode.GRID, random.Random(6))
    tray = tray_area(PORTRAIT)
    ids = [token.token_id for token in layout.tokens]
    assert ids == list(range(len(ids)))
    for token in layout.tokens:
        assert token.base.y >= tray.y
        assert abs(token.jitter.x) <= 4 and abs(token.jitter.y) <= 4
        assert abs(token.rotation) <= 15


def test_relayout_keeps_filled_targets_and_fresh_token_ids() -> None:
    layout = build_word_layout("cat", PORTRAIT, LayoutMode.GRID, random.Random(1))
    targets = list(layout.targets)
    targets[0] = targets[0].fill("C", True)
    played = replace(layout, targets=tuple(targets), tokens=tuple(t for t in layout.tokens if t.char != "C"))
    moved = relayout_word(played, LANDSCAPE, LayoutMode.GRID, random.Random(2))
    assert moved.targets[0].filled == "C"
    assert moved.targets[0].correct is True
    assert moved.targets[0].position != layout.targets[0].position
    assert Counter(token.char for token in moved.tokens if token.contributes) == Counter("AT")
    assert min(token.token_id for token in moved.tokens) >= played.next_token_id


def test_traversal_path_visits_every_target() -> None:
    targets = [
        LetterTarget(index=0, expected="A", position=Point(0, 0)),
        LetterTarget(index=1, expected="B", position=Point(100, 0)),
        LetterTarget(index=2, expected="C", position=Point(100, 100)),
    ]
    path = traversal_path(targets, 60)
    assert len(path) == 61
    assert path[0] == Point(28, 28)
    assert path[30] == Point(128, 28)
    assert path[-1] == Point(128, 128)


def test_nearest_target_skips_filled_and_far_targets() -> None:
    targets = [
        LetterTarget(index=0, expected="A", position=Point(0, 0), filled="A", correct=True),
        LetterTarget(index=1, expected="B", position=Point(70, 0)),
    ]
    assert nearest_target(Point(28, 28), targets, 84) == targets[1]
    assert nearest_target(Point(28, 28), targets, 30) is None
    assert nearest_target(Point(400, 400), targets, 84) is None


@pytest.mark.parametrize("canvas", [PORTRAIT, LANDSCAPE])
@pytest.mark.parametrize("word", ["responsibility", "extraordinarily", "internationalization"])
def test_long_word_tokens_stay_inside_tray(canvas: Canvas, word: str) -> None:
    layout = build_word_layout(word, canvas, LayoutMode.CURVE, random.Random(1))
    tray = tray_area(canvas)
    assert len([token for token in layout.tokens if token.contributes]) == len(word)
    for token in layout.tokens:
        rect = token_rect(token)
        assert 0 <= rect.x and rect.right <= canvas.width
        assert 0 <= rect.y and rect.bottom <= canvas.height
        assert tray.y <= rect.y and rect.bottom <= tray.bottom


@pytest.mark.parametrize("canvas", [PORTRAIT, LANDSCAPE])
def test_crowded_tray_keeps_every_token_reachable(canvas: Canvas) -> None:
    layout = build_word_layout("internationalization", canvas, LayoutMode.CURVE, random.Random(4))
    for token in layout.tokens:
        topmost = next(other for other in reversed(layout.tokens) if token_rect(other).contains(token.base))
        assert topmost.token_id == token.token_id
