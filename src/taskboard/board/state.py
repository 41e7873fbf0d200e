"""In-memory board state: the single source of truth for rendering.

Every mutation builds the complete new card mapping first and swaps it in
with one assignment, then notifies listeners. A listener (the renderer)
therefore only ever observes whole steps.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from taskboard.board.errors import ValidationError
from taskboard.board.models import DEFAULT_LISTS, BoardList, Card

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)


def _order_key(card: Card) -> tuple[int, str]:
    return (card.position, card.id)


def renumber(
    cards: Iterable[Card],
    moved_id: str | None = None,
    *,
    after_ties: bool = False,
) -> list[Card]:
    """Densely reassign positions 0..n-1 to one list's cards.

    Cards are ordered by position, ties broken by id. The card *moved_id*
    goes in front of cards sharing its position, or behind them when
    *after_ties* is set.

    Returns:
        The cards in their new order. Cards whose position is unchanged are
        returned as the same objects.
    """
    tie_bias = 1 if after_ties else -1

    def key(card: Card) -> tuple[int, int, str]:
        bias = tie_bias if card.id == moved_id else 0
        return (card.position, bias, card.id)

    ordered = sorted(cards, key=key)
    return [
        card if card.position == index else card.placed(card.list_id, index)
        for index, card in enumerate(ordered)
    ]


class LocalBoardState:
    """Cards of one board, grouped by list and ordered by position."""

    def __init__(self, lists: Sequence[BoardList] = DEFAULT_LISTS) -> None:
        self._lists: tuple[BoardList, ...] = tuple(lists)
        self._list_ids: frozenset[str] = frozenset(lst.id for lst in self._lists)
        self._cards: dict[str, Card] = {}
        self._listeners: list[Callable[[], None]] = []

    # --- queries ---

    @property
    def lists(self) -> tuple[BoardList, ...]:
        return self._lists

    def is_known_list(self, list_id: str) -> bool:
        return list_id in self._list_ids

    def get(self, card_id: str) -> Card | None:
        return self._cards.get(card_id)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._cards

    def __len__(self) -> int:
        return len(self._cards)

    def cards_in_list(self, list_id: str) -> list[Card]:
        """Return the list's cards ordered by position (ties broken by id)."""
        return sorted(
            (c for c in self._cards.values() if c.list_id == list_id),
            key=_order_key,
        )

    def all_cards(self) -> list[Card]:
        """Return every card, list by list in board order."""
        return [card for lst in self._lists for card in self.cards_in_list(lst.id)]

    def positions(self, list_id: str) -> list[int]:
        return [card.position for card in self.cards_in_list(list_id)]

    def snapshot(self) -> dict[str, Card]:
        """Return a copy of the id -> card mapping. Cards are immutable."""
        return dict(self._cards)

    def filter_cards(
        self,
        query: str,
        label_names: Mapping[str, str] | None = None,
    ) -> list[Card]:
        """Return cards matching *query* by title, label name or due date.

        Args:
            query: Case-insensitive search text. Empty matches everything.
            label_names: Board label id -> display name.
        """
        cards = self.all_cards()
        needle = query.strip().lower()
        if not needle:
            return cards
        names = label_names or {}

        def matches(card: Card) -> bool:
            if needle in card.title.lower():
                return True
            if card.due_date and needle in card.due_date.lower():
                return True
            return any(
                needle in names.get(label_id, "").lower() for label_id in card.labels
            )

        return [card for card in cards if matches(card)]

    # --- listeners ---

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked after every completed mutation."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _commit(self, cards: dict[str, Card]) -> None:
        self._cards = cards
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                logger.exception("Board state listener failed")

    def _check_list(self, card: Card) -> None:
        if card.list_id not in self._list_ids:
            msg = f"card {card.id} references unknown list {card.list_id!r}"
            raise ValidationError(msg)

    # --- mutation primitives ---

    def load(self, cards: Iterable[Card]) -> None:
        """Replace the whole state with a board snapshot."""
        loaded: dict[str, Card] = {}
        for card in cards:
            self._check_list(card)
            loaded[card.id] = card
        self._commit(loaded)

    def upsert(self, card: Card) -> None:
        """Insert *card*, or replace the record with the same id."""
        self._check_list(card)
        self._commit({**self._cards, card.id: card})

    def remove(self, card_id: str) -> Card | None:
        """Remove a card by id. Removing a missing id is a no-op."""
        if card_id not in self._cards:
            return None
        remaining = dict(self._cards)
        removed = remaining.pop(card_id)
        self._commit(remaining)
        return removed

    def restore(self, cards: Iterable[Card]) -> None:
        """Put previously captured records back in one step."""
        restored = {card.id: card for card in cards}
        if restored:
            self._commit({**self._cards, **restored})

    def move(
        self,
        card_id: str,
        list_id: str,
        position: int,
        *,
        after_ties: bool = False,
    ) -> list[Card]:
        """Place a card and renumber its destination list.

        Only the destination list is renumbered; the source list keeps its
        gap, which ordering tolerates.

        Returns:
            The destination list's cards after renumbering, in order.

        Raises:
            KeyError: If the card is not present.
            ValidationError: If *list_id* is not a known list.
        """
        card = self._cards[card_id]
        if list_id not in self._list_ids:
            msg = f"unknown list {list_id!r}"
            raise ValidationError(msg)

        moved = card.placed(list_id, position)
        members = [c for c in self._cards.values() if c.list_id == list_id]
        members = [c for c in members if c.id != card_id] + [moved]
        renumbered = renumber(members, card_id, after_ties=after_ties)

        updated = dict(self._cards)
        updated.update((c.id, c) for c in renumbered)
        self._commit(updated)
        logger.debug(
            "Moved card %s to %s (requested %d, now %d)",
            card_id,
            list_id,
            position,
            updated[card_id].position,
        )
        return renumbered
