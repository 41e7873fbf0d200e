"""Local-first card mutations.

Moves are applied to local state immediately and then persisted; if the
write fails, the cards the move touched are put back. Adds, deletes, edits
and checklist changes wait for the store and are folded in through the
merger afterwards. Recorded activity comes back as the card's history.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from taskboard.board.errors import BoardError, NotFound, ValidationError
from taskboard.board.events import CardDeleted, CardInserted, CardUpdated
from taskboard.board.positions import allocate_position
from taskboard.board.protocol import CardPlacement

if TYPE_CHECKING:
    from collections.abc import Iterable

    from taskboard.board.merger import RemoteChangeMerger
    from taskboard.board.models import Card
    from taskboard.board.positions import DropTarget, Placement
    from taskboard.board.protocol import ActivityLog, BoardNotifier, CardWriter
    from taskboard.board.state import LocalBoardState

logger = logging.getLogger(__name__)

# Fields update_card may change. list_id/position only move through apply_move.
EDITABLE_FIELDS: frozenset[str] = frozenset({"title", "due_date", "labels"})


class OptimisticMutator:
    """Applies user gestures to local state and the remote store."""

    def __init__(
        self,
        board_id: str,
        state: LocalBoardState,
        merger: RemoteChangeMerger,
        writer: CardWriter,
        activity_log: ActivityLog,
        notifier: BoardNotifier,
    ) -> None:
        self._board_id = board_id
        self._state = state
        self._merger = merger
        self._writer = writer
        self._activity_log = activity_log
        self._notifier = notifier

    async def apply_move(self, card_id: str, target: DropTarget | None) -> bool:
        """Move a card to where it was dropped.

        Returns:
            True if the move was applied and persisted. False for a no-op
            or a failed write (which has been reverted and reported).
        """
        placement = allocate_position(self._state, card_id, target)
        if placement is None:
            return False

        before = self._state.get(card_id)
        assert before is not None  # allocate_position checked it
        if not self._reorders(before, target, placement):
            return False

        previous = self._state.snapshot()
        renumbered = self._state.move(
            card_id,
            placement.list_id,
            placement.position,
            after_ties=placement.after_ties,
        )
        applied = {card.id: card for card in renumbered}
        moved = applied[card_id]
        placements = [
            CardPlacement(card_id=c.id, list_id=c.list_id, position=c.position)
            for c in renumbered
        ]

        ids = list(applied)
        self._merger.begin_local_write(ids)
        succeeded = False
        try:
            await self._writer.write_positions(self._board_id, card_id, placements)
            succeeded = True
        except BoardError:
            logger.warning(
                "Moving card %s to %s failed, reverting",
                card_id,
                placement.list_id,
                exc_info=True,
            )
        finally:
            if not succeeded:
                self._revert(applied, previous)
            self._merger.end_local_write(ids, succeeded=succeeded, moved=[card_id])

        if not succeeded:
            self._notifier.error("Failed to move card")
            return False

        self._notifier.success("Card moved")
        await self._record(
            card_id,
            "moved_card",
            {
                "from_list": before.list_id,
                "to_list": moved.list_id,
                "position": moved.position,
            },
        )
        return True

    def _reorders(
        self, card: Card, target: DropTarget | None, placement: Placement
    ) -> bool:
        """True if applying *placement* would change the board.

        A placement equal to the card's current slot still reorders the list
        when the card was dropped on another card sharing that slot.
        """
        if (placement.list_id, placement.position) != (card.list_id, card.position):
            return True
        if target is None or target.kind != "card" or target.id == card.id:
            return False
        over = self._state.get(target.id)
        return (
            over is not None
            and over.list_id == card.list_id
            and over.position == card.position
        )

    def _revert(self, applied: dict[str, Card], previous: dict[str, Card]) -> None:
        """Restore pre-move records of cards still holding the optimistic value.

        A card changed by something else since the move keeps that change.
        """
        restore = [
            previous[card_id]
            for card_id, card in applied.items()
            if self._state.get(card_id) is card and card_id in previous
        ]
        self._state.restore(restore)

    async def add_card(
        self,
        list_id: str,
        title: str,
        *,
        due_date: str | None = None,
        labels: Iterable[str] = (),
    ) -> Card | None:
        """Create a card at the end of *list_id*.

        Returns:
            The stored card, or None if validation or the write failed.
        """
        try:
            clean_title = _validate_title(title)
            if not self._state.is_known_list(list_id):
                msg = "Select a list for the new card"
                raise ValidationError(msg)
        except ValidationError as exc:
            self._notifier.error(str(exc))
            return None

        positions = self._state.positions(list_id)
        fields: dict[str, Any] = {
            "list_id": list_id,
            "title": clean_title,
            "position": max(positions) + 1 if positions else 0,
            "due_date": due_date,
            "labels": list(labels),
        }
        try:
            card = await self._writer.insert_card(self._board_id, fields)
        except BoardError as exc:
            logger.warning("Adding card to %s failed: %s", list_id, exc)
            self._notifier.error(f"Failed to add card: {exc}")
            return None

        self._merger.apply(CardInserted(card=card))
        self._notifier.success("Card added")
        await self._record(card.id, "created_card", {"title": clean_title})
        return card

    async def delete_card(self, card_id: str) -> bool:
        """Delete a card remotely, then drop it locally."""
        try:
            await self._writer.delete_card(card_id)
        except NotFound:
            logger.info("Card %s was already deleted", card_id)
        except BoardError as exc:
            logger.warning("Deleting card %s failed: %s", card_id, exc)
            self._notifier.error(f"Failed to delete card: {exc}")
            return False

        self._merger.apply(CardDeleted(card_id=card_id))
        self._notifier.success("Card deleted")
        await self._record(card_id, "deleted_card", {})
        return True

    async def update_card(self, card_id: str, **changes: Any) -> Card | None:
        """Change a card's title, due date or labels.

        Returns:
            The stored card, or None if validation or the write failed.
        """
        try:
            unknown = set(changes) - EDITABLE_FIELDS
            if unknown:
                msg = f"Cannot edit {', '.join(sorted(unknown))}"
                raise ValidationError(msg)
            if "title" in changes:
                changes["title"] = _validate_title(changes["title"])
            if "labels" in changes:
                changes["labels"] = list(changes["labels"])
        except ValidationError as exc:
            self._notifier.error(str(exc))
            return None

        try:
            card = await self._writer.write_card(card_id, changes)
        except BoardError as exc:
            logger.warning("Updating card %s failed: %s", card_id, exc)
            self._notifier.error(f"Failed to update card: {exc}")
            return None

        self._merger.apply(CardUpdated(card=card))
        self._notifier.success("Card updated")
        return card

    async def add_checklist_item(self, card_id: str, title: str) -> Card | None:
        """Append an item to a card's checklist.

        Returns:
            The stored card with its checklist, or None on failure.
        """
        clean_title = title.strip()
        if not clean_title:
            self._notifier.error("Enter checklist title")
            return None

        try:
            card = await self._writer.add_checklist_item(card_id, clean_title)
        except BoardError as exc:
            logger.warning("Adding checklist item to %s failed: %s", card_id, exc)
            self._notifier.error(f"Failed to add checklist item: {exc}")
            return None

        self._merger.apply(CardUpdated(card=card))
        self._notifier.success("Checklist item added")
        await self._record(card_id, "added_checklist", {"title": clean_title})
        return card

    async def toggle_checklist_item(
        self, card_id: str, item_id: str, *, completed: bool
    ) -> Card | None:
        """Mark a checklist item done or not done."""
        try:
            card = await self._writer.set_checklist_item(card_id, item_id, completed)
        except BoardError as exc:
            logger.warning("Updating checklist item %s failed: %s", item_id, exc)
            self._notifier.error(f"Failed to update checklist: {exc}")
            return None

        self._merger.apply(CardUpdated(card=card))
        self._notifier.success("Checklist updated")
        return card

    async def _record(self, card_id: str, action: str, details: dict[str, Any]) -> None:
        """Record an activity and show the card's refreshed history locally.

        The history is left alone while a move of the card is in flight; a
        revert must still find the record it placed.
        """
        try:
            history = await self._activity_log.record(card_id, action, details)
        except Exception:
            logger.warning(
                "Activity %s for card %s not recorded", action, card_id, exc_info=True
            )
            return
        card = self._state.get(card_id)
        if card is None or self._merger.detached or self._merger.is_pending(card_id):
            return
        self._state.upsert(card.with_history(history))


def _validate_title(title: str) -> str:
    clean = title.strip()
    if not clean:
        msg = "Card title cannot be empty"
        raise ValidationError(msg)
    return clean
