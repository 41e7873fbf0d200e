"""Tests for parse_change_event and card_from_row."""

from __future__ import annotations

from typing import Any

import pytest

from taskboard.board import (
    CardDeleted,
    CardInserted,
    CardUpdated,
    InvalidChangeEvent,
    ValidationError,
    parse_change_event,
)


def _row(**overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": "c1",
        "title": "Write tests",
        "list_id": "todo",
        "position": 2,
        "board_id": "board-1",
        "updated_at": "2026-01-01T00:00:00+00:00",
    }
    row.update(overrides)
    return row


class TestParseChangeEvent:
    def test_kind_card_shape(self) -> None:
        event = parse_change_event({"kind": "updated", "card": _row()})

        assert isinstance(event, CardUpdated)
        assert event.card_id == "c1"
        assert event.card.position == 2

    @pytest.mark.parametrize("raw_kind", ["INSERT", "insert", "inserted"])
    def test_event_type_new_shape(self, raw_kind: str) -> None:
        event = parse_change_event({"eventType": raw_kind, "new": _row()})

        assert isinstance(event, CardInserted)

    def test_delete_with_old_record(self) -> None:
        event = parse_change_event({"eventType": "DELETE", "old": {"id": "c1"}})

        assert event == CardDeleted(card_id="c1")

    def test_delete_with_card_id(self) -> None:
        event = parse_change_event({"kind": "deleted", "card_id": "c9"})

        assert event == CardDeleted(card_id="c9")

    def test_unknown_keys_ignored(self) -> None:
        event = parse_change_event({"kind": "updated", "card": _row(extra=1)})

        assert isinstance(event, CardUpdated)

    def test_nested_collections_absent_stay_none(self) -> None:
        event = parse_change_event({"kind": "updated", "card": _row()})

        assert isinstance(event, CardUpdated)
        assert event.card.attachments is None
        assert event.card.checklists is None

    def test_nested_collections_parsed(self) -> None:
        row = _row(
            checklists=[{"id": "i1", "title": "step", "is_completed": True}],
            attachments=[],
        )

        event = parse_change_event({"kind": "inserted", "card": row})

        assert isinstance(event, CardInserted)
        assert event.card.attachments == ()
        assert event.card.checklists is not None
        assert event.card.checklists[0].is_completed

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"kind": 3, "card": {}},
            {"kind": "renamed", "card": {}},
            {"kind": "updated"},
            {"kind": "updated", "card": "not a record"},
            {"kind": "deleted"},
            {"kind": "updated", "card": {"id": "c1"}},
            {"kind": "updated", "card": _row(position=-1)},
            {"kind": "updated", "card": _row(title="  ")},
            {"kind": "updated", "card": _row(position="first")},
        ],
    )
    def test_invalid_payloads(self, payload: dict[str, Any]) -> None:
        with pytest.raises(InvalidChangeEvent):
            parse_change_event(payload)

    def test_invalid_event_is_a_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            parse_change_event({"kind": "nope"})
