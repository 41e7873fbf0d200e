"""Error taxonomy for board reconciliation.

Collaborators (loader, writer, change stream) raise these so the core can
decide between reporting, reverting, and leaving the board.
"""

from __future__ import annotations


class BoardError(Exception):
    """Base class for every error the board core knows how to handle."""


class ValidationError(BoardError):
    """Input rejected before any state mutation (empty title, unknown list)."""


class TransportError(BoardError):
    """Network or store failure while reading or writing board data."""


class NotFound(BoardError):
    """The board or a referenced card does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class InvalidChangeEvent(ValidationError):
    """A change-stream payload could not be converted into a ChangeEvent."""
