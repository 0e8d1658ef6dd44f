"""In-memory practice item repository."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from .models import FocusMode, GameKind, Outcome, PracticeItem

_LOGGER = logging.getLogger("dragdrill.store")

HARD_WINDOW = 3


@dataclass(frozen=True)
class WordList:
    """Named group of practice items."""

    id: int
    name: str


class MemoryPracticeStore:
    """Practice item source and outcome recorder backed by plain dictionaries."""

    def __init__(self) -> None:
        self._lists: dict[int, WordList] = {}
        self._items: dict[int, PracticeItem] = {}
        self._membership: dict[int, int] = {}
        self._history: dict[int, list[Outcome]] = {}
        self._next_list_id = 1
        self._next_item_id = 1

    def create_list(self, name: str) -> WordList:
        """Create a word list."""
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("List name cannot be empty.")
        word_list = WordList(id=self._next_list_id, name=cleaned)
        self._lists[word_list.id] = word_list
        self._next_list_id += 1
        return word_list

    def list_lists(self) -> list[WordList]:
        return sorted(self._lists.values(), key=lambda item: item.id)

    def add_item(self, list_id: int, prompt: str, answer: str, starred: bool = False) -> PracticeItem:
        """Add a prompt/answer pair to a list."""
        if list_id not in self._lists:
            raise KeyError(list_id)
        item = PracticeItem(id=self._next_item_id, prompt=prompt.strip(), answer=answer.strip(), starred=starred)
        self._items[item.id] = item
        self._membership[item.id] = list_id
        self._next_item_id += 1
        return item

    def add_items(self, list_id: int, pairs: Iterable[tuple[str, str]]) -> list[PracticeItem]:
        return [self.add_item(list_id, prompt, answer) for prompt, answer in pairs]

    def set_starred(self, item_id: int, starred: bool) -> PracticeItem:
        item = self.get_item(item_id)
        updated = replace(item, starred=starred)
        self._items[item_id] = updated
        return updated

    def get_item(self, item_id: int) -> PracticeItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise KeyError(item_id) from None

    def history(self, item_id: int) -> list[Outcome]:
        return list(self._history.get(item_id, []))

    def is_hard(self, item_id: int) -> bool:
        """Whether any of the item's last few outcomes was a failure."""
        recent = self._history.get(item_id, [])[-HARD_WINDOW:]
        return any(not outcome.success for outcome in recent)

    def load_items(self, list_ids: Sequence[int], focus: FocusMode) -> list[PracticeItem]:
        """Return items of the selected lists (all lists when none are selected) passing ``focus``."""
        selected = set(list_ids) if list_ids else set(self._lists)
        items = [item for item_id, item in self._items.items() if self._membership[item_id] in selected]
        if focus is FocusMode.STARRED:
            items = [item for item in items if item.starred]
        elif focus is FocusMode.HARD:
            items = [item for item in items if self.is_hard(item.id)]
        return items

    def record_outcome(self, item_id: int, success: bool, kind: GameKind) -> None:
        """Append to the item's history and update its running streak."""
        item = self.get_item(item_id)
        self._history.setdefault(item_id, []).append(Outcome(item_id, success, kind))
        self._items[item_id] = replace(item, streak=item.streak + 1 if success else 0)
        _LOGGER.debug("Recorded %s outcome for item %s: success=%s", kind.value, item_id, success)
