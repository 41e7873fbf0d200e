"""Index page: list boards and create new ones."""

import logging

from nicegui import ui
from sqlalchemy.exc import SQLAlchemyError

from taskboard.db import create_board, is_db_configured, list_boards
from taskboard.pages.layout import page_layout
from taskboard.pages.registry import page_route

logger = logging.getLogger(__name__)


@page_route("/", title="Boards", icon="dashboard", order=10)
async def index_page() -> None:
    """Board picker."""
    with page_layout("Boards"):
        if not is_db_configured():
            ui.label("Database not configured").classes("text-h5 text-red-500")
            ui.label("Set DATABASE__URL in your environment.").classes(
                "text-body1 text-grey-7"
            )
            return

        try:
            boards = await list_boards()
        except SQLAlchemyError:
            logger.exception("Failed to list boards")
            ui.label("Could not load boards").classes("text-red-500")
            return

        with ui.column().classes("gap-2") as board_list:
            if not boards:
                ui.label("No boards yet").classes("text-grey-7")
            for board in boards:
                ui.link(board.title, f"/board/{board.id}").classes("text-lg")

        with ui.row().classes("items-end gap-2 mt-4"):
            title_input = ui.input("New board").props('data-testid="new-board-title"')

            async def on_create() -> None:
                title = (title_input.value or "").strip()
                if not title:
                    ui.notify("Board title is required", type="warning")
                    return
                try:
                    board = await create_board(title)
                except SQLAlchemyError as exc:
                    logger.exception("Failed to create board %r", title)
                    ui.notify(f"Failed to create board: {exc}", type="negative")
                    return
                ui.navigate.to(f"/board/{board.id}")

            ui.button("Create", on_click=on_create)

        board_list.props('data-testid="board-list"')
