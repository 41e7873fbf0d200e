"""Database-backed collaborators for a board session.

DatabaseBoardBackend implements SnapshotLoader and CardWriter on top of
the CRUD functions and publishes a ChangeEvent to the ChangeHub after each
committed write, so every open client of the board sees it.
DatabaseActivityLog implements ActivityLog for one board and hands back
the card's recent history after each entry.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from taskboard.board.errors import NotFound, TransportError, ValidationError
from taskboard.board.events import CardDeleted, CardInserted, CardUpdated
from taskboard.db import activities, cards, checklists

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from taskboard.board.models import ActivityRecord, Card
    from taskboard.board.protocol import CardPlacement
    from taskboard.db.models import BoardCard, CardChecklistItem
    from taskboard.realtime import ChangeHub

logger = logging.getLogger(__name__)


def _as_uuid(value: str, kind: str) -> UUID:
    """Parse an opaque id. A malformed id cannot name an existing row."""
    try:
        return UUID(value)
    except ValueError:
        raise NotFound(kind, value) from None


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Translate database failures into the board error taxonomy."""
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database error while trying to %s: %s", action, exc)
        msg = f"could not {action}"
        raise TransportError(msg) from exc
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


class DatabaseBoardBackend:
    """Loader and writer shared by every session of the process."""

    def __init__(self, hub: ChangeHub) -> None:
        self._hub = hub

    async def load_board_cards(self, board_id: str) -> list[Card] | None:
        board_uuid = _as_uuid(board_id, "board")
        with _store_errors("load board"):
            return await cards.load_board_cards(board_uuid)

    async def insert_card(self, board_id: str, fields: dict[str, Any]) -> Card:
        board_uuid = _as_uuid(board_id, "board")
        with _store_errors("add card"):
            row = await cards.insert_card(board_uuid, fields)
        card = cards.card_to_domain(row)
        self._hub.publish(board_id, CardInserted(card=card))
        return card

    async def write_card(self, card_id: str, changes: dict[str, Any]) -> Card:
        card_uuid = _as_uuid(card_id, "card")
        with _store_errors("update card"):
            row = await cards.update_card_fields(card_uuid, changes)
        if row is None:
            raise NotFound("card", card_id)
        card = cards.card_to_domain(row)
        self._hub.publish(str(row.board_id), CardUpdated(card=card))
        return card

    async def write_positions(
        self, board_id: str, card_id: str, placements: Sequence[CardPlacement]
    ) -> None:
        board_uuid = _as_uuid(board_id, "board")
        moved_uuid = _as_uuid(card_id, "card")
        triples = [
            (_as_uuid(p.card_id, "card"), p.list_id, p.position) for p in placements
        ]
        with _store_errors("move card"):
            rows = await cards.write_positions(board_uuid, moved_uuid, triples)
        if rows is None:
            raise NotFound("card", card_id)
        logger.debug(
            "Moved card %s on board %s: %d of %d rows written",
            card_id,
            board_id,
            len(rows),
            len(placements),
        )
        for row in rows:
            self._hub.publish(board_id, CardUpdated(card=cards.card_to_domain(row)))

    async def add_checklist_item(self, card_id: str, title: str) -> Card:
        card_uuid = _as_uuid(card_id, "card")
        with _store_errors("add checklist item"):
            result = await checklists.add_checklist_item(card_uuid, title)
        if result is None:
            raise NotFound("card", card_id)
        return self._publish_checklist(*result)

    async def set_checklist_item(
        self, card_id: str, item_id: str, is_completed: bool
    ) -> Card:
        card_uuid = _as_uuid(card_id, "card")
        item_uuid = _as_uuid(item_id, "checklist item")
        with _store_errors("update checklist"):
            result = await checklists.set_checklist_item_completed(
                card_uuid, item_uuid, is_completed
            )
        if result is None:
            raise NotFound("checklist item", item_id)
        return self._publish_checklist(*result)

    def _publish_checklist(
        self, row: BoardCard, items: list[CardChecklistItem]
    ) -> Card:
        card = cards.card_to_domain(row, checklists=items)
        self._hub.publish(str(row.board_id), CardUpdated(card=card))
        return card

    async def delete_card(self, card_id: str) -> None:
        card_uuid = _as_uuid(card_id, "card")
        with _store_errors("delete card"):
            board_uuid = await cards.delete_card(card_uuid)
        if board_uuid is None:
            raise NotFound("card", card_id)
        self._hub.publish(str(board_uuid), CardDeleted(card_id=card_id))


class DatabaseActivityLog:
    """Card history for one board."""

    def __init__(self, board_id: str, user_id: str | None = None) -> None:
        self._board_id = board_id
        self._user_id = user_id

    async def record(
        self, card_id: str, action: str, details: dict[str, Any]
    ) -> list[ActivityRecord]:
        card_uuid = _as_uuid(card_id, "card")
        with _store_errors("record activity"):
            await activities.record_activity(
                _as_uuid(self._board_id, "board"),
                card_uuid,
                action,
                details,
                user_id=self._user_id,
            )
            history = await activities.list_card_activities(card_uuid)
        return [cards.activity_to_domain(entry) for entry in history]
