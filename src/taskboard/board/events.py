"""Change events delivered by the board's change stream.

The in-process ChangeHub publishes the typed classes directly. Transports
that deliver loosely typed records instead (a database notification
channel, a websocket relay) decode them with ``parse_change_event`` before
publishing; nothing past that point handles raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from taskboard.board.errors import InvalidChangeEvent
from taskboard.board.models import Card, card_from_row


@dataclass(frozen=True)
class CardInserted:
    """A card was created. Carries the full card row."""

    card: Card
    kind: Literal["inserted"] = "inserted"

    @property
    def card_id(self) -> str:
        return self.card.id


@dataclass(frozen=True)
class CardUpdated:
    """A card changed. Carries the full card row after the change."""

    card: Card
    kind: Literal["updated"] = "updated"

    @property
    def card_id(self) -> str:
        return self.card.id


@dataclass(frozen=True)
class CardDeleted:
    """A card was removed."""

    card_id: str
    kind: Literal["deleted"] = "deleted"


type ChangeEvent = CardInserted | CardUpdated | CardDeleted

# Discriminator spellings accepted from upstream
_KIND_ALIASES: dict[str, str] = {
    "insert": "inserted",
    "inserted": "inserted",
    "update": "updated",
    "updated": "updated",
    "delete": "deleted",
    "deleted": "deleted",
}


def _kind_of(payload: dict[str, Any]) -> str:
    raw = payload.get("kind", payload.get("eventType"))
    if not isinstance(raw, str):
        msg = f"change event has no kind: {payload!r}"
        raise InvalidChangeEvent(msg)
    kind = _KIND_ALIASES.get(raw.lower())
    if kind is None:
        msg = f"unknown change event kind {raw!r}"
        raise InvalidChangeEvent(msg)
    return kind


def parse_change_event(payload: dict[str, Any]) -> ChangeEvent:
    """Convert an upstream notification into a typed ChangeEvent.

    This is the decoding point for any transport other than the in-process
    hub.

    Accepts both ``{"eventType": "UPDATE", "new": {...}, "old": {...}}``
    records and ``{"kind": "updated", "card": {...}}`` records. Deletions
    carry the id either under ``old`` or as ``card_id``.

    Raises:
        InvalidChangeEvent: If the payload has no usable kind or card data.
    """
    kind = _kind_of(payload)

    if kind == "deleted":
        old = payload.get("old") or {}
        card_id = payload.get("card_id", old.get("id"))
        if not card_id:
            msg = f"delete event without card id: {payload!r}"
            raise InvalidChangeEvent(msg)
        return CardDeleted(card_id=str(card_id))

    row = payload.get("card", payload.get("new"))
    if not isinstance(row, dict):
        msg = f"{kind} event without card record: {payload!r}"
        raise InvalidChangeEvent(msg)
    try:
        card = card_from_row(row)
    except (KeyError, TypeError, ValueError) as exc:
        msg = f"{kind} event has an invalid card record: {exc}"
        raise InvalidChangeEvent(msg) from exc

    if kind == "inserted":
        return CardInserted(card=card)
    return CardUpdated(card=card)
