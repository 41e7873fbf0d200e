"""Card activity history."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlmodel import col, select

from taskboard.db.engine import get_session
from taskboard.db.models import CardActivity

if TYPE_CHECKING:
    from uuid import UUID


async def record_activity(
    board_id: UUID,
    card_id: UUID,
    action: str,
    details: dict[str, Any],
    user_id: str | None = None,
) -> CardActivity:
    """Append an entry to a card's history."""
    async with get_session() as session:
        activity = CardActivity(
            board_id=board_id,
            card_id=card_id,
            action=action,
            details=details,
            user_id=user_id,
        )
        session.add(activity)
        await session.flush()
        await session.refresh(activity)
        return activity


async def list_card_activities(
    card_id: UUID, limit: int = 50
) -> list[CardActivity]:
    """Most recent entries first."""
    async with get_session() as session:
        result = await session.exec(
            select(CardActivity)
            .where(CardActivity.card_id == card_id)
            .order_by(col(CardActivity.created_at).desc())
            .limit(limit)
        )
        return list(result.all())
