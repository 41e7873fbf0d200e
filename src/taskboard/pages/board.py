"""Kanban board page.

Route: /board/{board_id}

Each browser tab gets its own BoardSession. The page renders from the
session's local state and re-renders whenever that state changes, whether
the change came from this tab or from another client via the ChangeHub.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from nicegui import ui
from sqlalchemy.exc import SQLAlchemyError

from taskboard.board import BoardSession
from taskboard.config import get_settings
from taskboard.db import (
    DatabaseActivityLog,
    DatabaseBoardBackend,
    get_board,
    list_board_labels,
)
from taskboard.pages.board_drag import (
    DragState,
    make_draggable_card,
    make_drop_card,
    make_drop_column,
)
from taskboard.pages.layout import page_layout
from taskboard.pages.registry import page_route
from taskboard.realtime import get_change_hub

if TYPE_CHECKING:
    from nicegui import Client
    from nicegui.events import ValueChangeEventArguments

    from taskboard.board import Card
    from taskboard.board.models import ActivityRecord
    from taskboard.db import BoardLabel

logger = logging.getLogger(__name__)


class ClientNotifier:
    """BoardNotifier that toasts and navigates in one NiceGUI client."""

    def __init__(self, client: Client) -> None:
        self._client = client

    def success(self, message: str) -> None:
        with self._client:
            ui.notify(message, type="positive")

    def error(self, message: str) -> None:
        with self._client:
            ui.notify(message, type="negative")

    def leave_board(self) -> None:
        with self._client:
            ui.navigate.to("/")


async def _board_details(board_id: str) -> tuple[str, list[BoardLabel]]:
    """Title and labels for the header and filters. Failures degrade quietly."""
    board_uuid = UUID(board_id)
    try:
        board = await get_board(board_uuid)
        labels = await list_board_labels(board_uuid)
    except SQLAlchemyError:
        logger.warning("Could not load details for board %s", board_id, exc_info=True)
        return "Board", []
    return (board.title if board is not None else "Board"), labels


def _activity_line(entry: ActivityRecord) -> str:
    when = (entry.created_at or "")[:16].replace("T", " ")
    line = f"{when}: {entry.action}" if when else entry.action
    if entry.details:
        line += f" ({', '.join(f'{k}={v}' for k, v in entry.details.items())})"
    return line


def _open_edit_dialog(session: BoardSession, card: Card) -> None:
    activity_limit = get_settings().board.activity_panel_size

    with ui.dialog() as dialog, ui.card().classes("w-96"):
        ui.label("Edit card").classes("text-lg font-semibold")
        title_input = ui.input("Title", value=card.title).classes("w-full")
        due_input = ui.input("Due date", value=(card.due_date or "")[:10]).props(
            "type=date"
        )

        async def on_toggle(item_id: str, completed: bool) -> None:
            await session.mutator.toggle_checklist_item(
                card.id, item_id, completed=completed
            )

        @ui.refreshable
        def render_details() -> None:
            current = session.state.get(card.id) or card
            ui.label("Checklist").classes("font-medium")
            for item in current.checklists or ():
                ui.switch(
                    item.title,
                    value=item.is_completed,
                    on_change=lambda e, i=item.id: on_toggle(i, e.value),
                ).props(f'data-testid="checklist-{item.id}"')
            history = (current.activities or ())[:activity_limit]
            if history:
                ui.label("Activity").classes("font-medium")
                for entry in history:
                    ui.label(_activity_line(entry)).classes("text-caption text-grey-7")

        render_details()
        checklist_input = ui.input("Add checklist item...").classes("w-full")

        async def on_add_item() -> None:
            added = await session.mutator.add_checklist_item(
                card.id, checklist_input.value or ""
            )
            if added is not None:
                checklist_input.value = ""

        checklist_input.on("keydown.enter", on_add_item)

        async def on_save() -> None:
            updated = await session.mutator.update_card(
                card.id,
                title=title_input.value or "",
                due_date=due_input.value or None,
            )
            if updated is not None:
                dialog.close()

        with ui.row().classes("justify-end w-full"):
            ui.button("Cancel", on_click=dialog.close).props("flat")
            ui.button("Save", on_click=on_save)

    def on_visibility(e: ValueChangeEventArguments) -> None:
        if not e.value:
            session.state.remove_listener(render_details.refresh)

    session.state.add_listener(render_details.refresh)
    dialog.on_value_change(on_visibility)
    dialog.open()


@page_route(
    "/board/{board_id}",
    title="Board",
    icon="view_kanban",
    category="hidden",
)
async def board_page(board_id: str) -> None:
    """One board: columns of draggable cards, add form and search."""
    await ui.context.client.connected()
    client = ui.context.client
    settings = get_settings()

    hub = get_change_hub()
    backend = DatabaseBoardBackend(hub)
    session = BoardSession(
        board_id,
        loader=backend,
        writer=backend,
        stream=hub,
        activity_log=DatabaseActivityLog(board_id),
        notifier=ClientNotifier(client),
        lists=settings.board.board_lists(),
    )
    client.on_disconnect(session.close)

    if not await session.open():
        return

    title, labels = await _board_details(board_id)
    label_names = {str(label.id): label.name for label in labels}
    label_colors = {str(label.id): label.color for label in labels}
    drag_state = DragState()
    search = {"query": ""}

    async def on_drop(card_id: str, over_id: str) -> None:
        await session.handle_drag_end(card_id, over_id)

    async def on_delete(card_id: str) -> None:
        await session.mutator.delete_card(card_id)

    def render_card(card: Card) -> None:
        with ui.card().classes("w-full q-pa-sm") as card_el:
            with ui.row().classes("items-center justify-between w-full no-wrap"):
                ui.label(card.title).classes("font-medium")
                with ui.row().classes("gap-0 no-wrap"):
                    ui.button(
                        icon="edit",
                        on_click=lambda c=card: _open_edit_dialog(session, c),
                    ).props("flat dense size=sm")
                    ui.button(
                        icon="delete",
                        on_click=lambda c=card: on_delete(c.id),
                    ).props("flat dense size=sm color=negative")
            if card.labels:
                with ui.row().classes("gap-1"):
                    for label_id in card.labels:
                        ui.badge(
                            label_names.get(label_id, label_id),
                            color=label_colors.get(label_id, "grey"),
                        )
            if card.due_date:
                ui.label(f"Due {card.due_date[:10]}").classes("text-caption")
            if card.checklists:
                done = sum(1 for item in card.checklists if item.is_completed)
                ui.label(f"{done}/{len(card.checklists)} done").classes(
                    "text-caption text-grey-7"
                )
        card_el.props(f'data-testid="card-{card.id}"')
        make_draggable_card(card_el, card.id, card.list_id, drag_state)
        make_drop_card(card_el, card.id, on_drop, drag_state)

    @ui.refreshable
    def render_columns() -> None:
        query = search["query"]
        if len(query.strip()) < settings.board.search_min_chars:
            query = ""
        visible = session.state.filter_cards(query, label_names)
        with ui.row().classes("w-full items-start no-wrap gap-4"):
            for board_list in session.state.lists:
                with ui.column().classes(
                    "bg-grey-2 rounded q-pa-sm min-w-64 min-h-32 gap-2"
                ) as column:
                    ui.label(board_list.title).classes("text-subtitle1 font-bold")
                    for card in visible:
                        if card.list_id == board_list.id:
                            render_card(card)
                column.props(f'data-testid="list-{board_list.id}"')
                make_drop_column(column, board_list.id, on_drop, drag_state)

    def on_search(e: object) -> None:
        search["query"] = getattr(e, "value", None) or ""
        render_columns.refresh()

    with page_layout(title):
        with ui.row().classes("items-end gap-2 w-full"):
            ui.input("Search", on_change=on_search).props("clearable dense")

        with ui.expansion("Add card", icon="add").classes("w-full"):
            with ui.row().classes("items-end gap-2"):
                title_input = ui.input("Title").props('data-testid="new-card-title"')
                list_select = ui.select(
                    {lst.id: lst.title for lst in session.state.lists},
                    label="List",
                    value=session.state.lists[0].id,
                )
                due_input = ui.input("Due date").props("type=date")
                label_select = ui.select(
                    label_names, label="Labels", multiple=True, value=[]
                ).classes("min-w-40")

                async def on_add() -> None:
                    card = await session.mutator.add_card(
                        list_select.value,
                        title_input.value or "",
                        due_date=due_input.value or None,
                        labels=label_select.value or [],
                    )
                    if card is not None:
                        title_input.value = ""

                ui.button("Add", on_click=on_add)

        render_columns()

    session.state.add_listener(render_columns.refresh)
    client.on_disconnect(
        lambda: session.state.remove_listener(render_columns.refresh)
    )
