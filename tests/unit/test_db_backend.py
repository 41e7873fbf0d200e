"""Unit tests for the database backend without a database.

CRUD functions are patched with AsyncMocks; these tests cover id parsing,
error translation, row conversion and publishing to the ChangeHub.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from taskboard.board import (
    CardDeleted,
    CardInserted,
    CardPlacement,
    CardUpdated,
    NotFound,
    TransportError,
    ValidationError,
)
from taskboard.db.backend import DatabaseActivityLog, DatabaseBoardBackend
from taskboard.db.bootstrap import _split_database_url, mask_password
from taskboard.db.cards import card_to_domain, parse_due_date
from taskboard.db.models import BoardCard, CardActivity, CardChecklistItem

if TYPE_CHECKING:
    from taskboard.board import ChangeEvent
    from taskboard.realtime import ChangeHub

BOARD_UUID = uuid4()


def _row(**overrides: object) -> BoardCard:
    values: dict[str, object] = {
        "id": uuid4(),
        "board_id": BOARD_UUID,
        "list_id": "todo",
        "title": "Row card",
        "position": 1,
        "labels": ["l1"],
        "created_at": datetime(2026, 1, 2, tzinfo=UTC),
    }
    values.update(overrides)
    return BoardCard(**values)


@pytest.fixture
def published(hub: ChangeHub) -> list[ChangeEvent]:
    events: list[ChangeEvent] = []
    hub.subscribe(str(BOARD_UUID), events.append)
    return events


class TestConversion:
    def test_card_to_domain_without_children(self) -> None:
        row = _row(due_date=datetime(2026, 3, 1, tzinfo=UTC))

        card = card_to_domain(row)

        assert card.id == str(row.id)
        assert card.labels == ("l1",)
        assert card.due_date == "2026-03-01T00:00:00+00:00"
        assert card.checklists is None

    def test_card_to_domain_with_children(self) -> None:
        row = _row()
        item = CardChecklistItem(card_id=row.id, title="step", is_completed=True)

        card = card_to_domain(row, attachments=[], checklists=[item], activities=[])

        assert card.attachments == ()
        assert card.checklists is not None
        assert card.checklists[0].title == "step"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, None),
            ("", None),
            ("2026-03-01", datetime(2026, 3, 1, tzinfo=UTC)),
            ("2026-03-01T10:00:00+00:00", datetime(2026, 3, 1, 10, tzinfo=UTC)),
        ],
    )
    def test_parse_due_date(self, raw: str | None, expected: datetime | None) -> None:
        assert parse_due_date(raw) == expected


class TestBootstrapHelpers:
    def test_split_database_url(self) -> None:
        maintenance, name = _split_database_url(
            "postgresql+asyncpg://u:p@localhost:5432/taskboard?ssl=disable"
        )

        assert maintenance == "postgresql://u:p@localhost:5432/postgres?ssl=disable"
        assert name == "taskboard"

    def test_mask_password(self) -> None:
        assert (
            mask_password("postgresql+asyncpg://user:secret@db:5432/taskboard")
            == "postgresql+asyncpg://user:***@db:5432/taskboard"
        )
        assert mask_password("sqlite:///local.db") == "sqlite:///local.db"


class TestBackend:
    @pytest.mark.asyncio
    async def test_malformed_board_id_is_not_found(self, hub: ChangeHub) -> None:
        backend = DatabaseBoardBackend(hub)

        with pytest.raises(NotFound):
            await backend.load_board_cards("not-a-uuid")

    @pytest.mark.asyncio
    async def test_database_error_becomes_transport_error(
        self, hub: ChangeHub
    ) -> None:
        backend = DatabaseBoardBackend(hub)
        failing = AsyncMock(side_effect=OperationalError("SELECT", {}, OSError()))

        with (
            patch("taskboard.db.backend.cards.load_board_cards", failing),
            pytest.raises(TransportError),
        ):
            await backend.load_board_cards(str(BOARD_UUID))

    @pytest.mark.asyncio
    async def test_value_error_becomes_validation_error(self, hub: ChangeHub) -> None:
        backend = DatabaseBoardBackend(hub)
        failing = AsyncMock(side_effect=ValueError("Unknown card fields: colour"))

        with (
            patch("taskboard.db.backend.cards.insert_card", failing),
            pytest.raises(ValidationError),
        ):
            await backend.insert_card(str(BOARD_UUID), {"colour": "red"})

    @pytest.mark.asyncio
    async def test_insert_publishes(
        self, hub: ChangeHub, published: list[ChangeEvent]
    ) -> None:
        row = _row()
        backend = DatabaseBoardBackend(hub)

        with patch(
            "taskboard.db.backend.cards.insert_card", AsyncMock(return_value=row)
        ):
            card = await backend.insert_card(str(BOARD_UUID), {"title": "Row card"})

        assert published == [CardInserted(card=card)]

    @pytest.mark.asyncio
    async def test_write_card_missing_is_not_found(
        self, hub: ChangeHub, published: list[ChangeEvent]
    ) -> None:
        backend = DatabaseBoardBackend(hub)

        with (
            patch(
                "taskboard.db.backend.cards.update_card_fields",
                AsyncMock(return_value=None),
            ),
            pytest.raises(NotFound),
        ):
            await backend.write_card(str(uuid4()), {"title": "x"})

        assert published == []

    @pytest.mark.asyncio
    async def test_write_positions_publishes_each_card(
        self, hub: ChangeHub, published: list[ChangeEvent]
    ) -> None:
        first, second = _row(position=0), _row(position=1)
        backend = DatabaseBoardBackend(hub)
        write = AsyncMock(return_value=[first, second])
        placements = [
            CardPlacement(str(first.id), "todo", 0),
            CardPlacement(str(second.id), "todo", 1),
        ]

        with patch("taskboard.db.backend.cards.write_positions", write):
            await backend.write_positions(
                str(BOARD_UUID), str(first.id), placements
            )

        write.assert_awaited_once_with(
            BOARD_UUID, first.id, [(first.id, "todo", 0), (second.id, "todo", 1)]
        )
        assert [e.card_id for e in published] == [str(first.id), str(second.id)]
        assert all(isinstance(e, CardUpdated) for e in published)

    @pytest.mark.asyncio
    async def test_write_positions_missing_card(self, hub: ChangeHub) -> None:
        backend = DatabaseBoardBackend(hub)
        card_id = str(uuid4())

        with (
            patch(
                "taskboard.db.backend.cards.write_positions",
                AsyncMock(return_value=None),
            ),
            pytest.raises(NotFound),
        ):
            await backend.write_positions(
                str(BOARD_UUID), card_id, [CardPlacement(card_id, "todo", 0)]
            )

    @pytest.mark.asyncio
    async def test_write_positions_publishes_only_written_rows(
        self, hub: ChangeHub, published: list[ChangeEvent]
    ) -> None:
        moved = _row(list_id="done", position=0)
        backend = DatabaseBoardBackend(hub)
        placements = [
            CardPlacement(str(moved.id), "done", 0),
            CardPlacement(str(uuid4()), "done", 1),
        ]

        with patch(
            "taskboard.db.backend.cards.write_positions",
            AsyncMock(return_value=[moved]),
        ):
            await backend.write_positions(str(BOARD_UUID), str(moved.id), placements)

        assert [e.card_id for e in published] == [str(moved.id)]

    @pytest.mark.asyncio
    async def test_add_checklist_item_publishes_full_checklist(
        self, hub: ChangeHub, published: list[ChangeEvent]
    ) -> None:
        row = _row()
        items = [
            CardChecklistItem(card_id=row.id, title="one", position=0),
            CardChecklistItem(card_id=row.id, title="two", position=1),
        ]
        backend = DatabaseBoardBackend(hub)

        with patch(
            "taskboard.db.backend.checklists.add_checklist_item",
            AsyncMock(return_value=(row, items)),
        ):
            card = await backend.add_checklist_item(str(row.id), "two")

        assert card.checklists is not None
        assert [item.title for item in card.checklists] == ["one", "two"]
        assert published == [CardUpdated(card=card)]

    @pytest.mark.asyncio
    async def test_missing_checklist_item_is_not_found(
        self, hub: ChangeHub, published: list[ChangeEvent]
    ) -> None:
        backend = DatabaseBoardBackend(hub)

        with (
            patch(
                "taskboard.db.backend.checklists.set_checklist_item_completed",
                AsyncMock(return_value=None),
            ),
            pytest.raises(NotFound, match="checklist item"),
        ):
            await backend.set_checklist_item(str(uuid4()), str(uuid4()), True)

        assert published == []

    @pytest.mark.asyncio
    async def test_delete_publishes_to_owning_board(
        self, hub: ChangeHub, published: list[ChangeEvent]
    ) -> None:
        card_id = str(uuid4())
        backend = DatabaseBoardBackend(hub)

        with patch(
            "taskboard.db.backend.cards.delete_card",
            AsyncMock(return_value=BOARD_UUID),
        ):
            await backend.delete_card(card_id)

        assert published == [CardDeleted(card_id=card_id)]

    @pytest.mark.asyncio
    async def test_delete_missing_is_not_found(self, hub: ChangeHub) -> None:
        backend = DatabaseBoardBackend(hub)

        with (
            patch(
                "taskboard.db.backend.cards.delete_card", AsyncMock(return_value=None)
            ),
            pytest.raises(NotFound),
        ):
            await backend.delete_card(str(uuid4()))


class TestActivityLog:
    @pytest.mark.asyncio
    async def test_records_with_board_scope_and_returns_history(self) -> None:
        card_id = uuid4()
        log = DatabaseActivityLog(str(BOARD_UUID), user_id="u1")
        record = AsyncMock()
        entry = CardActivity(
            board_id=BOARD_UUID,
            card_id=card_id,
            action="moved_card",
            details={"to_list": "done"},
            user_id="u1",
        )
        history = AsyncMock(return_value=[entry])

        with (
            patch("taskboard.db.backend.activities.record_activity", record),
            patch("taskboard.db.backend.activities.list_card_activities", history),
        ):
            result = await log.record(str(card_id), "moved_card", {"to_list": "done"})

        record.assert_awaited_once_with(
            BOARD_UUID, card_id, "moved_card", {"to_list": "done"}, user_id="u1"
        )
        history.assert_awaited_once_with(card_id)
        assert [(r.action, r.details) for r in result] == [
            ("moved_card", {"to_list": "done"})
        ]
