"""Folds change-stream events into local board state.

Events are idempotent upserts and removals. While a local write for a card
is in flight, events for that card are held back; when the write resolves
they are replayed so that a stale notification cannot undo the optimistic
move that is being confirmed.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING

from taskboard.board.errors import ValidationError
from taskboard.board.events import CardDeleted, CardInserted, CardUpdated

if TYPE_CHECKING:
    from collections.abc import Iterable

    from taskboard.board.events import ChangeEvent
    from taskboard.board.state import LocalBoardState

logger = logging.getLogger(__name__)


class RemoteChangeMerger:
    """Applies remote inserts, updates and deletes to a LocalBoardState."""

    def __init__(self, state: LocalBoardState) -> None:
        self._state = state
        self._in_flight: Counter[str] = Counter()
        self._buffered: dict[str, list[ChangeEvent]] = {}
        self._detached = False

    @property
    def detached(self) -> bool:
        return self._detached

    def is_pending(self, card_id: str) -> bool:
        """True while a local write for *card_id* has not resolved."""
        return self._in_flight[card_id] > 0

    def buffered_count(self, card_id: str) -> int:
        return len(self._buffered.get(card_id, ()))

    def apply(self, event: ChangeEvent) -> None:
        """Fold one event into local state, or hold it if a write is pending."""
        if self._detached:
            logger.debug("Dropping %s for %s after teardown", event.kind, event.card_id)
            return
        if self.is_pending(event.card_id):
            logger.debug(
                "Buffering %s for %s until local write resolves",
                event.kind,
                event.card_id,
            )
            self._buffered.setdefault(event.card_id, []).append(event)
            return
        self._fold(event, keep_local_placement=False)

    def begin_local_write(self, card_ids: Iterable[str]) -> None:
        """Mark cards as having a local write in flight."""
        for card_id in card_ids:
            self._in_flight[card_id] += 1

    def end_local_write(
        self,
        card_ids: Iterable[str],
        *,
        succeeded: bool,
        moved: Iterable[str] = (),
    ) -> None:
        """Resolve a local write and replay events held back meanwhile.

        After a successful write a *moved* card keeps the list and position
        that were just written; anything else its held events carry still
        applies. Held events for the other cards of the write, and all held
        events after a failed write, apply unchanged.
        """
        keep = frozenset(moved) if succeeded else frozenset()
        for card_id in card_ids:
            self._in_flight[card_id] -= 1
            if self._in_flight[card_id] > 0:
                continue
            del self._in_flight[card_id]
            held = self._buffered.pop(card_id, [])
            if self._detached:
                continue
            for event in held:
                self._fold(event, keep_local_placement=card_id in keep)

    def detach(self) -> None:
        """Stop processing events. Used on session teardown."""
        self._detached = True
        self._buffered.clear()

    def _fold(self, event: ChangeEvent, *, keep_local_placement: bool) -> None:
        match event:
            case CardDeleted(card_id=card_id):
                if self._state.remove(card_id) is None:
                    logger.debug("Delete for unknown card %s ignored", card_id)
            case CardInserted(card=card) | CardUpdated(card=card):
                prior = self._state.get(card.id)
                merged = card.merged_over(prior)
                if keep_local_placement and prior is not None:
                    merged = merged.placed(prior.list_id, prior.position)
                try:
                    self._state.upsert(merged)
                except ValidationError:
                    logger.warning(
                        "Dropping %s for card %s: unknown list %r",
                        event.kind,
                        card.id,
                        card.list_id,
                    )
