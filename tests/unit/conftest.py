"""Shared fixtures and fakes for board unit tests.

The fakes implement the collaborator protocols in memory. FakeWriter and
FakeLoader can hold a call open on an asyncio.Event so a test can act
while a write or load is in flight.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import TYPE_CHECKING, Any

import pytest

from taskboard.board import (
    BoardError,
    BoardSession,
    Card,
    LocalBoardState,
    NotFound,
    OptimisticMutator,
    RemoteChangeMerger,
    TransportError,
)
from taskboard.board.models import ActivityRecord, ChecklistItem
from taskboard.realtime import ChangeHub

if TYPE_CHECKING:
    from collections.abc import Sequence

    from taskboard.board import CardPlacement

BOARD_ID = "board-1"


def make_card(
    card_id: str,
    list_id: str = "todo",
    position: int = 0,
    title: str | None = None,
    **extra: Any,
) -> Card:
    """Build a Card with a title derived from its id."""
    return Card(
        id=card_id,
        title=title if title is not None else f"Card {card_id}",
        list_id=list_id,
        position=position,
        **extra,
    )


def order_of(state: LocalBoardState, list_id: str) -> list[tuple[str, int]]:
    """(id, position) pairs of a list in display order."""
    return [(c.id, c.position) for c in state.cards_in_list(list_id)]


class RecordingNotifier:
    """BoardNotifier that remembers what the user would have seen."""

    def __init__(self) -> None:
        self.successes: list[str] = []
        self.errors: list[str] = []
        self.left_board = 0

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def leave_board(self) -> None:
        self.left_board += 1


class FakeActivityLog:
    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []
        self.fail = False

    async def record(
        self, card_id: str, action: str, details: dict[str, Any]
    ) -> list[ActivityRecord]:
        if self.fail:
            raise TransportError("activity store unavailable")
        self.records.append((card_id, action, details))
        return [
            ActivityRecord(id=f"act-{index}", action=entry_action, details=entry)
            for index, (entry_card, entry_action, entry) in reversed(
                list(enumerate(self.records))
            )
            if entry_card == card_id
        ]


class FakeWriter:
    """CardWriter over an in-memory card table.

    Set ``fail_with`` to make the next writes raise; call ``hold()`` to
    block writes until the returned event is set.
    """

    def __init__(self, cards: Sequence[Card] = ()) -> None:
        self.cards: dict[str, Card] = {card.id: card for card in cards}
        self.fail_with: BoardError | None = None
        self.gate: asyncio.Event | None = None
        self.position_writes: list[list[CardPlacement]] = []
        self.inserted: list[dict[str, Any]] = []
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.deleted: list[str] = []
        self.checklist_writes: list[tuple[Any, ...]] = []
        self._next_id = 0

    def hold(self) -> asyncio.Event:
        self.gate = asyncio.Event()
        return self.gate

    async def _resolve(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with

    async def write_positions(
        self, board_id: str, card_id: str, placements: Sequence[CardPlacement]
    ) -> None:
        self.position_writes.append(list(placements))
        await self._resolve()
        if card_id not in self.cards:
            raise NotFound("card", card_id)
        for p in placements:
            stored = self.cards.get(p.card_id)
            if stored is None:
                continue
            if p.card_id == card_id:
                self.cards[p.card_id] = stored.placed(p.list_id, p.position)
            elif stored.list_id == p.list_id:
                self.cards[p.card_id] = stored.placed(stored.list_id, p.position)

    async def insert_card(self, board_id: str, fields: dict[str, Any]) -> Card:
        self.inserted.append(fields)
        await self._resolve()
        self._next_id += 1
        card = Card(
            id=f"new-{self._next_id}",
            title=fields["title"],
            list_id=fields["list_id"],
            position=fields["position"],
            due_date=fields.get("due_date"),
            labels=tuple(fields.get("labels", ())),
        )
        self.cards[card.id] = card
        return card

    async def write_card(self, card_id: str, changes: dict[str, Any]) -> Card:
        self.updates.append((card_id, changes))
        await self._resolve()
        if card_id not in self.cards:
            raise NotFound("card", card_id)
        values = dict(changes)
        if "labels" in values:
            values["labels"] = tuple(values["labels"])
        self.cards[card_id] = replace(self.cards[card_id], **values)
        return self.cards[card_id]

    async def add_checklist_item(self, card_id: str, title: str) -> Card:
        self.checklist_writes.append((card_id, title))
        await self._resolve()
        if card_id not in self.cards:
            raise NotFound("card", card_id)
        items = self.cards[card_id].checklists or ()
        item = ChecklistItem(id=f"item-{len(items)}", title=title, position=len(items))
        self.cards[card_id] = replace(self.cards[card_id], checklists=(*items, item))
        return self.cards[card_id]

    async def set_checklist_item(
        self, card_id: str, item_id: str, is_completed: bool
    ) -> Card:
        self.checklist_writes.append((card_id, item_id, is_completed))
        await self._resolve()
        items = self.cards[card_id].checklists if card_id in self.cards else None
        if not items or item_id not in {item.id for item in items}:
            raise NotFound("checklist item", item_id)
        self.cards[card_id] = replace(
            self.cards[card_id],
            checklists=tuple(
                replace(item, is_completed=is_completed) if item.id == item_id else item
                for item in items
            ),
        )
        return self.cards[card_id]

    async def delete_card(self, card_id: str) -> None:
        await self._resolve()
        if self.cards.pop(card_id, None) is None:
            raise NotFound("card", card_id)
        self.deleted.append(card_id)


class FakeLoader:
    def __init__(
        self,
        cards: list[Card] | None = None,
        *,
        error: BoardError | None = None,
    ) -> None:
        self.cards = cards
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls = 0

    def hold(self) -> asyncio.Event:
        self.gate = asyncio.Event()
        return self.gate

    async def load_board_cards(self, board_id: str) -> list[Card] | None:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.cards


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def activity_log() -> FakeActivityLog:
    return FakeActivityLog()


@pytest.fixture
def hub() -> ChangeHub:
    return ChangeHub()


@pytest.fixture
def board_cards() -> list[Card]:
    """todo: [a0, b1, c2]; inprogress: [d0]; done: empty."""
    return [
        make_card("a", "todo", 0),
        make_card("b", "todo", 1),
        make_card("c", "todo", 2),
        make_card("d", "inprogress", 0),
    ]


@pytest.fixture
def state(board_cards: list[Card]) -> LocalBoardState:
    board_state = LocalBoardState()
    board_state.load(board_cards)
    return board_state


@pytest.fixture
def merger(state: LocalBoardState) -> RemoteChangeMerger:
    return RemoteChangeMerger(state)


@pytest.fixture
def writer(board_cards: list[Card]) -> FakeWriter:
    return FakeWriter(board_cards)


@pytest.fixture
def mutator(
    state: LocalBoardState,
    merger: RemoteChangeMerger,
    writer: FakeWriter,
    activity_log: FakeActivityLog,
    notifier: RecordingNotifier,
) -> OptimisticMutator:
    return OptimisticMutator(BOARD_ID, state, merger, writer, activity_log, notifier)


@pytest.fixture
def loader(board_cards: list[Card]) -> FakeLoader:
    return FakeLoader(list(board_cards))


@pytest.fixture
def session(
    loader: FakeLoader,
    writer: FakeWriter,
    hub: ChangeHub,
    activity_log: FakeActivityLog,
    notifier: RecordingNotifier,
) -> BoardSession:
    return BoardSession(
        BOARD_ID,
        loader=loader,
        writer=writer,
        stream=hub,
        activity_log=activity_log,
        notifier=notifier,
    )
