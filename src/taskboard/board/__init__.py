"""Card-position reconciliation for collaborative boards."""

from taskboard.board.errors import (
    BoardError,
    InvalidChangeEvent,
    NotFound,
    TransportError,
    ValidationError,
)
from taskboard.board.events import (
    CardDeleted,
    CardInserted,
    CardUpdated,
    ChangeEvent,
    parse_change_event,
)
from taskboard.board.merger import RemoteChangeMerger
from taskboard.board.models import DEFAULT_LISTS, BoardList, Card
from taskboard.board.mutator import OptimisticMutator
from taskboard.board.positions import DropTarget, Placement, allocate_position
from taskboard.board.protocol import CardPlacement, Subscription
from taskboard.board.session import BoardSession, SessionStatus
from taskboard.board.state import LocalBoardState, renumber

__all__ = [
    "DEFAULT_LISTS",
    "BoardError",
    "BoardList",
    "BoardSession",
    "Card",
    "CardDeleted",
    "CardInserted",
    "CardPlacement",
    "CardUpdated",
    "ChangeEvent",
    "DropTarget",
    "InvalidChangeEvent",
    "LocalBoardState",
    "NotFound",
    "OptimisticMutator",
    "Placement",
    "RemoteChangeMerger",
    "SessionStatus",
    "Subscription",
    "TransportError",
    "ValidationError",
    "allocate_position",
    "parse_change_event",
    "renumber",
]
