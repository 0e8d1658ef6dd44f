import random

import pytest

from dragdrill.models import Canvas, Card, GameKind, Point, Side
from dragdrill.scheduler import ManualScheduler
from dragdrill.session import SessionController, create_session
from dragdrill.state import Phase
from dragdrill.store import MemoryPracticeStore

CANVAS = Canvas(1000, 1000)


def _session(
    store: MemoryPracticeStore, scheduler: ManualScheduler, words: int, seed: int = 7
) -> tuple[SessionController, int]:
    word_list = store.create_list("pairs")
    store.add_items(word_list.id, [(f"prompt-{index}", f"answer-{index}") for index in range(words)])
    session = create_session(
        GameKind.PAIRING,
        store,
        store,
        after=scheduler.call_later,
        list_ids=[word_list.id],
        rng=random.Random(seed),
    )
    session.initialize(CANVAS)
    return session, word_list.id


def _center(session: SessionController, card: Card) -> Point:
    return session.state.placements[card.slot_id].center


def _matching_pair(session: SessionController) -> tuple[Card, Card]:
    cards = session.state.cards
    for first in cards:
        for second in cards:
            if first.matches(second) and first.slot_id not in session.state.confirmed:
                return first, second
    raise AssertionError("no complete pair visible")


def _mismatched_pair(session: SessionController) -> tuple[Card, Card]:
    cards = session.state.cards
    for first in cards:
        for second in cards:
            if first.item_id != second.item_id:
                return first, second
    raise AssertionError("no mismatched pair visible")


def _drop(session: SessionController, dragged: Card, target: Card) -> bool | None:
    assert session.drag_start(dragged.slot_id, _center(session, dragged)) is True
    session.drag_move(_center(session, target))
    assert session.state.interaction.hovered == target.slot_id
    return session.drag_end()


def test_initial_state_fills_capacity(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 20)
    state = session.state
    assert state.capacity == 16
    assert len(state.cards) == 16
    assert len(state.sequence) == 40
    assert state.next_index == 16
    assert set(state.placements) == {card.slot_id for card in state.cards}
    assert session.progress.total == 20
    assert session.complete is False


def test_correct_match_holds_then_replenishes(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 20)
    first, second = _matching_pair(session)

    assert _drop(session, first, second) is True
    assert session.progress.correct == 1
    assert session.state.confirmed == {first.slot_id, second.slot_id}
    assert session.state.interaction.phase is Phase.FEEDBACK_CORRECT
    assert session.state.interaction.blocked is False
    assert [outcome.success for outcome in store.history(first.item_id)] == [True]
    assert store.get_item(first.item_id).streak == 1

    scheduler.advance(999)
    assert first in session.state.cards

    scheduler.advance(1)
    state = session.state
    slot_ids = {card.slot_id for card in state.cards}
    assert first.slot_id not in slot_ids and second.slot_id not in slot_ids
    assert len(state.cards) == 16
    assert state.next_index == 18
    assert {16, 17} <= slot_ids
    assert set(state.placements) == slot_ids
    assert state.confirmed == frozenset()
    assert state.interaction.phase is Phase.IDLE


def test_input_stays_open_during_correct_feedback(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 20)
    first, second = _matching_pair(session)
    _drop(session, first, second)
    third, fourth = _matching_pair(session)
    assert _drop(session, third, fourth) is True
    assert session.progress.correct == 2
    scheduler.advance(1000)
    assert len(session.state.cards) == 16
    assert session.state.next_index == 20


def test_incorrect_match_blocks_then_reverts(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 20)
    first, second = _mismatched_pair(session)
    cards_before = session.state.cards
    placements_before = dict(session.state.placements)

    assert _drop(session, first, second) is False
    state = session.state
    assert state.progress.incorrect == 1
    assert state.progress.correct == 0
    assert state.rejected == {first.slot_id, second.slot_id}
    assert state.interaction.blocked is True
    assert state.interaction.phase is Phase.FEEDBACK_INCORRECT

    charged = first if first.side is Side.PROMPT else second if second.side is Side.PROMPT else first
    assert [outcome.success for outcome in store.history(charged.item_id)] == [False]

    other = next(card for card in state.cards if card.slot_id not in state.rejected)
    assert session.drag_start(other.slot_id, _center(session, other)) is False

    scheduler.advance(1499)
    assert session.state.interaction.blocked is True

    scheduler.advance(1)
    state = session.state
    assert state.interaction.blocked is False
    assert state.rejected == frozenset()
    assert state.cards == cards_before
    assert state.placements == placements_before
    assert state.progress.correct == 0


def test_drop_away_from_cards_cancels(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, list_id = _session(store, scheduler, 5)
    card = session.state.cards[0]
    assert session.drag_start(card.slot_id, _center(session, card)) is True
    session.drag_move(Point(-500, -500))
    assert session.state.interaction.hovered is None
    assert session.drag_end() is None
    assert session.state.interaction.phase is Phase.IDLE
    assert session.progress.correct == 0 and session.progress.incorrect == 0
    assert all(not store.history(item.id) for item in store.load_items([list_id], session.focus))
    assert scheduler.pending == 0


def test_unknown_card_is_ignored(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 5)
    assert session.drag_start(999, Point(0, 0)) is False
    assert session.state.interaction.phase is Phase.IDLE


def test_token_at_hits_card_rectangle(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 5)
    card = session.state.cards[0]
    point = _center(session, card)
    hit = session.token_at(point)
    assert hit is not None
    assert session.state.placements[hit].contains(point)
    assert session.token_at(Point(-10, -10)) is None


def test_session_completes_after_last_match(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 3)
    assert len(session.state.cards) == 6
    for _ in range(3):
        first, second = _matching_pair(session)
        assert _drop(session, first, second) is True
        scheduler.advance(1000)
    assert session.complete is True
    assert session.state.cards == ()
    assert session.progress.correct == 3


def test_empty_selection_is_complete_immediately(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session = create_session("pairing", store, store, after=scheduler.call_later, rng=random.Random(1))
    session.initialize(CANVAS)
    assert session.is_empty is True
    assert session.complete is True
    assert session.state.cards == ()


def test_reset_drops_stale_timers(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 20)
    first, second = _mismatched_pair(session)
    _drop(session, first, second)
    assert session.state.interaction.blocked is True

    session.reset_session()
    reset_state = session.state
    assert reset_state.generation == 1
    assert reset_state.interaction.blocked is False
    assert reset_state.progress.incorrect == 0
    assert len(reset_state.cards) == 16

    scheduler.run_all()
    assert session.state is reset_state


def test_reset_after_correct_match_ignores_pending_replenish(
    store: MemoryPracticeStore, scheduler: ManualScheduler
) -> None:
    session, _ = _session(store, scheduler, 20)
    first, second = _matching_pair(session)
    _drop(session, first, second)
    session.reset_session()
    reset_state = session.state
    scheduler.advance(1000)
    assert session.state is reset_state
    assert session.progress.correct == 0


def test_resize_is_deferred_during_feedback(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 20)
    first, second = _mismatched_pair(session)
    visible = {card.slot_id for card in session.state.cards}
    _drop(session, first, second)

    wider = Canvas(1400, 900)
    session.resize(wider)
    assert session.state.canvas == CANVAS
    assert session.state.pending_canvas == wider

    scheduler.advance(1500)
    state = session.state
    assert state.canvas == wider
    assert state.pending_canvas is None
    assert {card.slot_id for card in state.cards} == visible
    assert state.capacity == 16
    for rect in state.placements.values():
        assert rect.right <= wider.width and rect.bottom <= wider.height


def test_initialize_with_same_canvas_is_ignored(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 8)
    before = session.state
    session.initialize(CANVAS)
    assert session.state is before


def test_skip_word_is_not_available_for_pairing(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    session, _ = _session(store, scheduler, 4)
    with pytest.raises(ValueError):
        session.skip_word()


def test_unknown_game_kind_raises(store: MemoryPracticeStore, scheduler: ManualScheduler) -> None:
    with pytest.raises(ValueError, match="Unknown game kind"):
        create_session("memory", store, store, after=scheduler.call_later)
