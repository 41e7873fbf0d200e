"""SQLModel database models for Taskboard.

Boards own cards; cards own attachments, checklist items and activity
records. Card ids are UUIDs in the database and opaque strings in the
board core.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Uuid
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def _timestamptz_column() -> Any:
    """Create a TIMESTAMP WITH TIME ZONE column for PostgreSQL."""
    return Column(DateTime(timezone=True), nullable=False)


def _cascade_fk_column(target: str) -> Any:
    """Create a UUID foreign key column with CASCADE DELETE."""
    return Column(Uuid(), ForeignKey(target, ondelete="CASCADE"), nullable=False)


class Board(SQLModel, table=True):
    """A named collection of lists and cards.

    Attributes:
        id: Primary key UUID, auto-generated.
        title: Display title.
        cover_url: Optional header image.
        created_at: Timestamp when the board was created.
    """

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(max_length=200)
    cover_url: str | None = Field(default=None, max_length=500)
    created_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )


class BoardLabel(SQLModel, table=True):
    """A coloured label defined on a board and applied to its cards."""

    __tablename__ = "board_label"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    board_id: UUID = Field(sa_column=_cascade_fk_column("board.id"))
    name: str = Field(max_length=100)
    color: str = Field(default="green", max_length=20)
    created_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )


class BoardCard(SQLModel, table=True):
    """A card in one of the board's fixed lists.

    Attributes:
        id: Primary key UUID, auto-generated.
        board_id: Foreign key to Board (CASCADE DELETE).
        list_id: Identifier of the fixed list the card is in.
        title: Non-empty title.
        position: Ordinal within the list (0-based, gaps tolerated).
        due_date: Optional due date.
        labels: BoardLabel ids (as strings) applied to the card.
        created_at: Timestamp when the card was created.
        updated_at: Timestamp of the last write.
    """

    __tablename__ = "card"
    __table_args__ = (
        CheckConstraint("position >= 0", name="ck_card_position_non_negative"),
        CheckConstraint("length(trim(title)) > 0", name="ck_card_title_not_empty"),
        Index("ix_card_board_list_position", "board_id", "list_id", "position"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    board_id: UUID = Field(sa_column=_cascade_fk_column("board.id"))
    list_id: str = Field(max_length=50)
    title: str = Field(max_length=500)
    position: int = Field(default=0)
    due_date: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    labels: list[str] = Field(
        default_factory=list,
        sa_column=Column(sa.JSON, nullable=False, server_default="[]"),
    )
    created_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )
    updated_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )


class CardAttachment(SQLModel, table=True):
    """Metadata for a file attached to a card. Bytes live in file storage."""

    __tablename__ = "card_attachment"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    card_id: UUID = Field(sa_column=_cascade_fk_column("card.id"))
    user_id: str | None = Field(default=None, max_length=100)
    file_name: str = Field(max_length=255)
    file_path: str = Field(max_length=500)
    file_type: str = Field(default="", max_length=100)
    file_size: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )


class CardChecklistItem(SQLModel, table=True):
    """A checklist entry on a card."""

    __tablename__ = "card_checklist"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    card_id: UUID = Field(sa_column=_cascade_fk_column("card.id"))
    title: str = Field(max_length=500)
    is_completed: bool = Field(default=False)
    position: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )


class CardActivity(SQLModel, table=True):
    """Activity history entry for a card.

    ``card_id`` is deliberately not a foreign key: ``deleted_card`` entries
    outlive the card they describe. ``board_id`` scopes them instead.
    """

    __tablename__ = "card_activity"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    board_id: UUID = Field(sa_column=_cascade_fk_column("board.id"))
    card_id: UUID = Field(index=True)
    user_id: str | None = Field(default=None, max_length=100)
    action: str = Field(max_length=50)
    details: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(sa.JSON, nullable=False, server_default="{}"),
    )
    created_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )
