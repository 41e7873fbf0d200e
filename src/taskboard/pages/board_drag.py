"""Drag-and-drop wiring for board cards.

HTML5 drag events on NiceGUI elements. A drag ends on either a list column
or another card; the handler reports the id under the pointer and lets the
board session decide what that means. The board re-renders from local
state, so nothing here moves elements itself.

Design decisions:
- Per-client drag state via DragState, so two browsers never share a drag
- Drops on a card stop propagation; otherwise the column would also fire
- dragover.prevent throttled to prevent 60/sec event flood
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from nicegui import ui

logger = logging.getLogger(__name__)

type DropHandler = Callable[[str, str], Awaitable[object]]


class DragState:
    """Per-client record of the card being dragged."""

    __slots__ = ("_dragged_id", "_source_list")

    def __init__(self) -> None:
        self._dragged_id: str | None = None
        self._source_list: str | None = None

    def set_dragged(self, card_id: str, source_list: str | None = None) -> None:
        self._dragged_id = card_id
        self._source_list = source_list

    def get_dragged(self) -> str | None:
        return self._dragged_id

    def get_source_list(self) -> str | None:
        return self._source_list

    def clear(self) -> None:
        """Clear drag state after a drop or cancel."""
        self._dragged_id = None
        self._source_list = None


def make_draggable_card(
    card: ui.card,
    card_id: str,
    list_id: str,
    drag_state: DragState,
) -> ui.card:
    """Add drag attributes and events to a card element.

    Returns:
        The card (for chaining).
    """
    card.props("draggable")
    card.classes("cursor-grab")

    def on_dragstart() -> None:
        drag_state.set_dragged(card_id, source_list=list_id)

    card.on("dragstart", on_dragstart)
    card.on("dragend", drag_state.clear)
    return card


async def _complete_drop(
    drag_state: DragState, over_id: str, on_drop: DropHandler
) -> None:
    card_id = drag_state.get_dragged()
    if card_id is None:
        logger.warning("Drop on %s with no dragged card", over_id)
        return
    logger.debug(
        "Drop: card=%s from=%s over=%s",
        card_id,
        drag_state.get_source_list(),
        over_id,
    )
    drag_state.clear()
    await on_drop(card_id, over_id)


def make_drop_column(
    column: ui.column,
    list_id: str,
    on_drop: DropHandler,
    drag_state: DragState,
) -> ui.column:
    """Make a list column a drop target.

    Args:
        column: The column element holding the list's cards.
        list_id: The list this column shows.
        on_drop: Async callback(card_id, over_id) with over_id = list_id.
        drag_state: Per-client DragState instance.

    Returns:
        The column (for chaining).
    """
    # Throttled: only preventDefault() matters, not the handler.
    column.on("dragover.prevent", lambda: None, throttle=0.05)

    async def on_drop_handler() -> None:
        await _complete_drop(drag_state, list_id, on_drop)

    column.on("drop", on_drop_handler)
    return column


def make_drop_card(
    card: ui.card,
    card_id: str,
    on_drop: DropHandler,
    drag_state: DragState,
) -> ui.card:
    """Make a card a drop target, reporting its own id as over_id."""
    card.on("dragover.prevent", lambda: None, throttle=0.05)

    async def on_drop_handler() -> None:
        await _complete_drop(drag_state, card_id, on_drop)

    card.on("drop.stop", on_drop_handler)
    return card
