"""Data models for board cards and lists.

These are plain frozen dataclasses for in-memory use. Local board state
replaces whole records instead of mutating fields, so a reader never sees
a half-applied change.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True)
class BoardList:
    """One of the fixed buckets a card can belong to."""

    id: str
    title: str


DEFAULT_LISTS: tuple[BoardList, ...] = (
    BoardList(id="todo", title="To Do"),
    BoardList(id="inprogress", title="In Progress"),
    BoardList(id="done", title="Done"),
)


@dataclass(frozen=True)
class Attachment:
    """File metadata attached to a card. The file itself lives elsewhere."""

    id: str
    file_name: str
    file_path: str
    file_type: str = ""
    created_at: str | None = None


@dataclass(frozen=True)
class ChecklistItem:
    """A checklist entry on a card."""

    id: str
    title: str
    is_completed: bool = False
    position: int = 0
    created_at: str | None = None


@dataclass(frozen=True)
class ActivityRecord:
    """An entry in a card's activity history."""

    id: str
    action: str
    details: dict[str, Any]
    user_id: str | None = None
    created_at: str | None = None


# Nested collections that a change-stream row does not carry. ``None`` on a
# Card means "unknown here, keep whatever the previous record had".
NESTED_FIELDS: tuple[str, ...] = ("attachments", "checklists", "activities")


@dataclass(frozen=True)
class Card:
    """A card on a board.

    Attributes:
        id: Opaque unique identifier.
        title: Non-empty display title.
        list_id: Identifier of the owning list.
        position: Non-negative ordinal within the list.
        due_date: ISO timestamp, or None.
        labels: Board label ids applied to the card.
        attachments: Attached files, or None when not carried.
        checklists: Checklist items, or None when not carried.
        activities: Activity history, or None when not carried.
        created_at: ISO timestamp of creation, if known.
    """

    id: str
    title: str
    list_id: str
    position: int = 0
    due_date: str | None = None
    labels: tuple[str, ...] = ()
    attachments: tuple[Attachment, ...] | None = None
    checklists: tuple[ChecklistItem, ...] | None = None
    activities: tuple[ActivityRecord, ...] | None = None
    created_at: str | None = None

    def placed(self, list_id: str, position: int) -> Card:
        """Return a copy of this card at a new list and position."""
        return replace(self, list_id=list_id, position=position)

    def with_history(self, activities: Iterable[ActivityRecord]) -> Card:
        """Return a copy carrying *activities* (newest first) as its history."""
        return replace(self, activities=tuple(activities))

    def merged_over(self, prior: Card | None) -> Card:
        """Return this record with fields it does not carry taken from *prior*."""
        if prior is None:
            return self
        carried = {
            name: getattr(prior, name)
            for name in NESTED_FIELDS
            if getattr(self, name) is None
        }
        return replace(self, **carried) if carried else self


CARD_FIELDS: frozenset[str] = frozenset(f.name for f in fields(Card))


def _nested(
    raw: Any, factory: type[Any], allowed: frozenset[str]
) -> tuple[Any, ...] | None:
    if raw is None:
        return None
    return tuple(
        factory(**{k: v for k, v in item.items() if k in allowed}) for item in raw
    )


_ATTACHMENT_FIELDS = frozenset(f.name for f in fields(Attachment))
_CHECKLIST_FIELDS = frozenset(f.name for f in fields(ChecklistItem))
_ACTIVITY_FIELDS = frozenset(f.name for f in fields(ActivityRecord))


def card_from_row(row: dict[str, Any]) -> Card:
    """Build a Card from a loosely-typed record (store row or event payload).

    Unknown keys (``board_id``, ``updated_at`` ...) are ignored. Nested
    collections stay None when the record does not include them.

    Raises:
        KeyError: If ``id``, ``title`` or ``list_id`` is missing.
        TypeError, ValueError: If a field has an unusable value.
    """
    raw_position = row.get("position")
    position = int(raw_position) if raw_position is not None else 0
    if position < 0:
        msg = f"negative position {position} for card {row['id']}"
        raise ValueError(msg)
    title = str(row["title"])
    if not title.strip():
        msg = f"empty title for card {row['id']}"
        raise ValueError(msg)
    labels = row.get("labels") or ()
    return Card(
        id=str(row["id"]),
        title=title,
        list_id=str(row["list_id"]),
        position=position,
        due_date=row.get("due_date"),
        labels=tuple(str(label) for label in labels),
        attachments=_nested(row.get("attachments"), Attachment, _ATTACHMENT_FIELDS),
        checklists=_nested(row.get("checklists"), ChecklistItem, _CHECKLIST_FIELDS),
        activities=_nested(row.get("activities"), ActivityRecord, _ACTIVITY_FIELDS),
        created_at=row.get("created_at"),
    )
