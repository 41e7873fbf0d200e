"""CRUD operations for boards, labels and cards.

Position writes for a move are a single transaction so a client never
persists half of a renumbered list.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlmodel import col, select

from taskboard.board.models import ActivityRecord, Attachment, Card, ChecklistItem
from taskboard.db.engine import get_session
from taskboard.db.models import (
    Board,
    BoardCard,
    BoardLabel,
    CardActivity,
    CardAttachment,
    CardChecklistItem,
    _utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

# Columns insert_card/update_card_fields accept from callers.
WRITABLE_COLUMNS: frozenset[str] = frozenset(
    {"list_id", "title", "position", "due_date", "labels"}
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_due_date(value: str | datetime | None) -> datetime | None:
    """Accept an ISO date or timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def activity_to_domain(activity: CardActivity) -> ActivityRecord:
    return ActivityRecord(
        id=str(activity.id),
        action=activity.action,
        details=dict(activity.details or {}),
        user_id=activity.user_id,
        created_at=_iso(activity.created_at),
    )


def card_to_domain(
    row: BoardCard,
    *,
    attachments: Iterable[CardAttachment] | None = None,
    checklists: Iterable[CardChecklistItem] | None = None,
    activities: Iterable[CardActivity] | None = None,
) -> Card:
    """Convert a card row (and optionally its children) to a board Card.

    Children left as None stay None on the Card, meaning "not carried".
    """
    return Card(
        id=str(row.id),
        title=row.title,
        list_id=row.list_id,
        position=row.position,
        due_date=_iso(row.due_date),
        labels=tuple(row.labels or ()),
        attachments=None
        if attachments is None
        else tuple(
            Attachment(
                id=str(a.id),
                file_name=a.file_name,
                file_path=a.file_path,
                file_type=a.file_type,
                created_at=_iso(a.created_at),
            )
            for a in attachments
        ),
        checklists=None
        if checklists is None
        else tuple(
            ChecklistItem(
                id=str(item.id),
                title=item.title,
                is_completed=item.is_completed,
                position=item.position,
                created_at=_iso(item.created_at),
            )
            for item in checklists
        ),
        activities=None
        if activities is None
        else tuple(activity_to_domain(act) for act in activities),
        created_at=_iso(row.created_at),
    )


def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
    unknown = set(fields) - WRITABLE_COLUMNS
    if unknown:
        msg = f"Unknown card fields: {', '.join(sorted(unknown))}"
        raise ValueError(msg)
    values = dict(fields)
    if "due_date" in values:
        values["due_date"] = parse_due_date(values["due_date"])
    if "labels" in values:
        values["labels"] = [str(label) for label in values["labels"] or ()]
    return values


# ── Board CRUD ───────────────────────────────────────────────────────


async def create_board(title: str, cover_url: str | None = None) -> Board:
    """Create an empty board."""
    async with get_session() as session:
        board = Board(title=title, cover_url=cover_url)
        session.add(board)
        await session.flush()
        await session.refresh(board)
        return board


async def get_board(board_id: UUID) -> Board | None:
    """Get a Board by ID."""
    async with get_session() as session:
        return await session.get(Board, board_id)


async def list_boards() -> list[Board]:
    """List all boards, newest first."""
    async with get_session() as session:
        result = await session.exec(
            select(Board).order_by(col(Board.created_at).desc())
        )
        return list(result.all())


async def create_label(
    board_id: UUID, name: str, color: str = "green"
) -> BoardLabel:
    """Define a label on a board."""
    async with get_session() as session:
        label = BoardLabel(board_id=board_id, name=name, color=color)
        session.add(label)
        await session.flush()
        await session.refresh(label)
        return label


async def list_board_labels(board_id: UUID) -> list[BoardLabel]:
    """List a board's labels in creation order."""
    async with get_session() as session:
        result = await session.exec(
            select(BoardLabel)
            .where(BoardLabel.board_id == board_id)
            .order_by(col(BoardLabel.created_at))
        )
        return list(result.all())


# ── Card CRUD ────────────────────────────────────────────────────────


async def load_board_cards(board_id: UUID) -> list[Card] | None:
    """Load every card of a board with attachments, checklists and activities.

    All queries run in one session so the result reflects a single point
    in time.

    Returns:
        The board's cards, or None if the board does not exist.
    """
    async with get_session() as session:
        if await session.get(Board, board_id) is None:
            return None

        rows = list(
            (
                await session.exec(
                    select(BoardCard)
                    .where(BoardCard.board_id == board_id)
                    .order_by(col(BoardCard.list_id), col(BoardCard.position))
                )
            ).all()
        )
        card_ids = [row.id for row in rows]
        if not card_ids:
            return []

        attachments: dict[UUID, list[CardAttachment]] = defaultdict(list)
        for attachment in (
            await session.exec(
                select(CardAttachment)
                .where(col(CardAttachment.card_id).in_(card_ids))
                .order_by(col(CardAttachment.created_at))
            )
        ).all():
            attachments[attachment.card_id].append(attachment)

        checklists: dict[UUID, list[CardChecklistItem]] = defaultdict(list)
        for item in (
            await session.exec(
                select(CardChecklistItem)
                .where(col(CardChecklistItem.card_id).in_(card_ids))
                .order_by(col(CardChecklistItem.position))
            )
        ).all():
            checklists[item.card_id].append(item)

        activities: dict[UUID, list[CardActivity]] = defaultdict(list)
        for activity in (
            await session.exec(
                select(CardActivity)
                .where(col(CardActivity.card_id).in_(card_ids))
                .order_by(col(CardActivity.created_at).desc())
            )
        ).all():
            activities[activity.card_id].append(activity)

        return [
            card_to_domain(
                row,
                attachments=attachments[row.id],
                checklists=checklists[row.id],
                activities=activities[row.id],
            )
            for row in rows
        ]


async def insert_card(board_id: UUID, fields: dict[str, Any]) -> BoardCard:
    """Create a card on a board.

    Raises:
        ValueError: If *fields* names a column callers may not set.
    """
    values = _column_values(fields)
    async with get_session() as session:
        card = BoardCard(board_id=board_id, **values)
        session.add(card)
        await session.flush()
        await session.refresh(card)
        return card


async def update_card_fields(
    card_id: UUID, changes: dict[str, Any]
) -> BoardCard | None:
    """Apply partial column changes to a card.

    Returns:
        The updated row, or None if the card does not exist.
    """
    values = _column_values(changes)
    async with get_session() as session:
        card = await session.get(BoardCard, card_id)
        if card is None:
            return None
        for name, value in values.items():
            setattr(card, name, value)
        card.updated_at = _utcnow()
        session.add(card)
        await session.flush()
        await session.refresh(card)
        return card


async def write_positions(
    board_id: UUID,
    moved_id: UUID,
    placements: Sequence[tuple[UUID, str, int]],
) -> list[BoardCard] | None:
    """Persist a card move and the renumbering of its destination list.

    The moved card gets both list and position. Every other card only gets
    its position, and only while it is still in the list the placement
    names; rows another client moved away or deleted are skipped. The rows
    are locked for the duration of the transaction.

    Returns:
        The rows actually written, in *placements* order, or None (with
        nothing written) if the moved card is not on the board.
    """
    ids = [card_id for card_id, _, _ in placements]
    if moved_id not in ids:
        return None
    async with get_session() as session:
        result = await session.exec(
            select(BoardCard)
            .where(BoardCard.board_id == board_id)
            .where(col(BoardCard.id).in_(ids))
            .with_for_update()
        )
        rows = {row.id: row for row in result.all()}
        if moved_id not in rows:
            return None

        now = _utcnow()
        written: list[BoardCard] = []
        for card_id, list_id, position in placements:
            row = rows.get(card_id)
            if row is None:
                continue
            if card_id == moved_id:
                row.list_id = list_id
            elif row.list_id != list_id or row.position == position:
                continue
            row.position = position
            row.updated_at = now
            session.add(row)
            written.append(row)
        await session.flush()
        return written


async def delete_card(card_id: UUID) -> UUID | None:
    """Delete a card and, by cascade, its attachments and checklist.

    Returns:
        The owning board's id, or None if the card did not exist.
    """
    async with get_session() as session:
        card = await session.get(BoardCard, card_id)
        if card is None:
            return None
        board_id = card.board_id
        await session.delete(card)
        return board_id
