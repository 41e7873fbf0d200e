"""Protocols for the collaborators the board core talks to.

The database backend, the in-process change hub and the NiceGUI page
implement these; unit tests substitute fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from taskboard.board.events import ChangeEvent
    from taskboard.board.models import ActivityRecord, Card


@dataclass(frozen=True)
class CardPlacement:
    """A card's list and position as sent to the store after a move."""

    card_id: str
    list_id: str
    position: int


@dataclass(frozen=True)
class Subscription:
    """Handle returned by ``ChangeStream.subscribe``."""

    board_id: str
    token: str


class SnapshotLoader(Protocol):
    """Loads every card of a board at one point in time."""

    async def load_board_cards(self, board_id: str) -> list[Card] | None:
        """Return the board's cards.

        Raises:
            NotFound: If the board does not exist.
            TransportError: If the store cannot be reached.
        """
        ...


class CardWriter(Protocol):
    """Remote writes for cards."""

    async def write_card(self, card_id: str, changes: dict[str, Any]) -> Card:
        """Apply partial field changes and return the stored card."""
        ...

    async def write_positions(
        self, board_id: str, card_id: str, placements: Sequence[CardPlacement]
    ) -> None:
        """Persist a move of *card_id* and the renumbering around it.

        Runs in one transaction. The moved card gets its list and position.
        Every other placement only updates the position, and only while the
        card is still in that list: cards that another client moved away or
        deleted in the meantime are skipped.

        Raises:
            NotFound: If the moved card no longer exists.
        """
        ...

    async def insert_card(self, board_id: str, fields: dict[str, Any]) -> Card:
        """Create a card and return it with its assigned id."""
        ...

    async def add_checklist_item(self, card_id: str, title: str) -> Card:
        """Append a checklist item and return the card with its checklist."""
        ...

    async def set_checklist_item(
        self, card_id: str, item_id: str, is_completed: bool
    ) -> Card:
        """Mark a checklist item done or not done.

        Raises:
            NotFound: If the item does not exist on the card.
        """
        ...

    async def delete_card(self, card_id: str) -> None:
        """Delete a card.

        Raises:
            NotFound: If the card was already gone.
        """
        ...


class ChangeStream(Protocol):
    """Push notifications for a board's cards."""

    def subscribe(
        self, board_id: str, on_event: Callable[[ChangeEvent], None]
    ) -> Subscription: ...

    def unsubscribe(self, subscription: Subscription) -> None: ...


class ActivityLog(Protocol):
    """Best-effort card history. Failures never undo the mutation."""

    async def record(
        self, card_id: str, action: str, details: dict[str, Any]
    ) -> Sequence[ActivityRecord]:
        """Append an entry and return the card's recent history, newest first."""
        ...


class BoardNotifier(Protocol):
    """User-visible signals (toasts, navigation)."""

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def leave_board(self) -> None: ...
