"""Command-line helpers for Taskboard development.

Usage:
    uv run seed-data
"""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from taskboard.db.models import Board

console = Console()

DEMO_BOARD_TITLE = "Demo Board"

_DEMO_LABELS: tuple[tuple[str, str], ...] = (
    ("Bug", "red"),
    ("Feature", "green"),
    ("Docs", "blue"),
)

# (list_id, title, label names)
_DEMO_CARDS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("todo", "Sketch onboarding flow", ("Feature",)),
    ("todo", "Fix flicker when dropping onto own column", ("Bug",)),
    ("todo", "Write board setup guide", ("Docs",)),
    ("inprogress", "Card search by label", ("Feature",)),
    ("inprogress", "Rotate logs daily", ()),
    ("done", "Create demo board", ()),
)


async def _seed_demo_board() -> Board:
    """Return the demo board, creating and populating it if missing."""
    from taskboard.db.cards import (  # noqa: PLC0415
        create_board,
        create_label,
        insert_card,
        list_boards,
    )

    for board in await list_boards():
        if board.title == DEMO_BOARD_TITLE:
            console.print(f"[yellow]Board exists:[/] {board.title}")
            return board

    board = await create_board(DEMO_BOARD_TITLE)
    console.print(f"[green]Created board:[/] {board.title}")

    label_ids: dict[str, str] = {}
    for name, color in _DEMO_LABELS:
        label = await create_label(board.id, name, color)
        label_ids[name] = str(label.id)

    table = Table(title="Seeded cards")
    table.add_column("List")
    table.add_column("Pos", justify="right")
    table.add_column("Title")

    next_position: dict[str, int] = {}
    for list_id, title, labels in _DEMO_CARDS:
        position = next_position.get(list_id, 0)
        next_position[list_id] = position + 1
        await insert_card(
            board.id,
            {
                "list_id": list_id,
                "title": title,
                "position": position,
                "labels": [label_ids[name] for name in labels],
            },
        )
        table.add_row(list_id, str(position), title)

    console.print(table)
    return board


def seed_data() -> None:
    """Seed the database with a demo board for development.

    Idempotent: an existing demo board is reused, not duplicated.
    """
    from taskboard.config import get_settings  # noqa: PLC0415

    settings = get_settings()
    if not settings.database.url:
        console.print("[red]Error:[/] DATABASE__URL not set")
        sys.exit(1)

    async def _seed() -> None:
        from taskboard.db.engine import close_db, init_db  # noqa: PLC0415

        await init_db()
        try:
            board = await _seed_demo_board()
        finally:
            await close_db()

        console.print()
        console.print(
            Panel(
                f"[bold]Board:[/] {settings.app.base_url}/board/{board.id}",
                title="Seed Data Ready",
            )
        )

    asyncio.run(_seed())
