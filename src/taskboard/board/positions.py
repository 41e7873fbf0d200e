"""Target list and position for a dragged card.

Pure functions over a read-only view of the board. Nothing here mutates
state; the optimistic mutator applies the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from taskboard.board.state import LocalBoardState


@dataclass(frozen=True)
class DropTarget:
    """Where a drag gesture ended: an empty list area or another card."""

    kind: Literal["list", "card"]
    id: str

    @classmethod
    def list(cls, list_id: str) -> DropTarget:
        return cls(kind="list", id=list_id)

    @classmethod
    def card(cls, card_id: str) -> DropTarget:
        return cls(kind="card", id=card_id)


@dataclass(frozen=True)
class Placement:
    """Allocator result.

    ``after_ties`` tells renumbering to order the moved card after any card
    that shares its position. It is only set for a move further down the
    same list, where the target card should end up in front.
    """

    list_id: str
    position: int
    after_ties: bool = False


def allocate_position(
    state: LocalBoardState,
    card_id: str,
    target: DropTarget | None,
) -> Placement | None:
    """Compute where *card_id* lands when dropped on *target*.

    Args:
        state: Current local board state (read only).
        card_id: The card being dragged.
        target: Drop target, or None when the gesture was cancelled.

    Returns:
        The placement, or None when there is nothing to do (cancelled
        gesture, unknown card, unknown target).
    """
    if target is None:
        return None

    moving = state.get(card_id)
    if moving is None:
        return None

    if target.kind == "list":
        if not state.is_known_list(target.id):
            return None
        if target.id == moving.list_id:
            return Placement(moving.list_id, moving.position)
        # Append to the end of the other list; renumbering keeps it dense.
        return Placement(target.id, len(state.cards_in_list(target.id)))

    if target.id == moving.id:
        return Placement(moving.list_id, moving.position)

    over = state.get(target.id)
    if over is None:
        return None

    position = over.position
    if moving.position > position:
        position += 1
    # Within one list the mover lands behind the target when it was shown
    # above it, including when the two share a position.
    after_ties = over.list_id == moving.list_id and (
        (moving.position, moving.id) < (over.position, over.id)
    )
    return Placement(over.list_id, position, after_ties=after_ties)
