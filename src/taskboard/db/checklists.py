"""Card checklist items.

Every write returns the card row together with its whole checklist so the
caller can publish a card record that carries the complete list.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlmodel import col, select

from taskboard.db.engine import get_session
from taskboard.db.models import BoardCard, CardChecklistItem, _utcnow

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession


async def _checklist(session: AsyncSession, card_id: UUID) -> list[CardChecklistItem]:
    result = await session.exec(
        select(CardChecklistItem)
        .where(CardChecklistItem.card_id == card_id)
        .order_by(col(CardChecklistItem.position), col(CardChecklistItem.created_at))
    )
    return list(result.all())


async def add_checklist_item(
    card_id: UUID, title: str
) -> tuple[BoardCard, list[CardChecklistItem]] | None:
    """Append an item to the end of a card's checklist.

    The card row is locked so concurrent appends get distinct positions.

    Returns:
        The card row and its checklist in order, or None if the card does
        not exist.

    Raises:
        ValueError: If *title* is blank.
    """
    clean = title.strip()
    if not clean:
        msg = "Checklist item title cannot be empty"
        raise ValueError(msg)
    async with get_session() as session:
        card = (
            await session.exec(
                select(BoardCard).where(BoardCard.id == card_id).with_for_update()
            )
        ).first()
        if card is None:
            return None
        items = await _checklist(session, card_id)
        item = CardChecklistItem(
            card_id=card_id,
            title=clean,
            position=max((i.position for i in items), default=-1) + 1,
        )
        session.add(item)
        card.updated_at = _utcnow()
        session.add(card)
        await session.flush()
        return card, [*items, item]


async def set_checklist_item_completed(
    card_id: UUID, item_id: UUID, is_completed: bool
) -> tuple[BoardCard, list[CardChecklistItem]] | None:
    """Mark a checklist item done or not done.

    Returns:
        The card row and its checklist in order, or None if the item does
        not exist on that card.
    """
    async with get_session() as session:
        item = await session.get(CardChecklistItem, item_id)
        if item is None or item.card_id != card_id:
            return None
        card = await session.get(BoardCard, card_id)
        if card is None:
            return None
        item.is_completed = is_completed
        session.add(item)
        card.updated_at = _utcnow()
        session.add(card)
        await session.flush()
        return card, await _checklist(session, card_id)
