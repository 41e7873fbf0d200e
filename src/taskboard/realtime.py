"""In-process change stream for board cards.

Every connected client of a board subscribes here; the database backend
publishes a ChangeEvent after each committed write. Delivery is
synchronous on the event loop, in subscription order.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING
from uuid import uuid4

from taskboard.board.protocol import Subscription

if TYPE_CHECKING:
    from collections.abc import Callable

    from taskboard.board.events import ChangeEvent

logger = logging.getLogger(__name__)


class ChangeHub:
    """Registry of per-board subscribers.

    Implements the ChangeStream protocol for clients and ``publish`` for
    writers.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, dict[str, Callable[[ChangeEvent], None]]] = {}

    def subscribe(
        self, board_id: str, on_event: Callable[[ChangeEvent], None]
    ) -> Subscription:
        """Register *on_event* for changes to *board_id*'s cards."""
        subscription = Subscription(board_id=board_id, token=uuid4().hex)
        self._subscribers.setdefault(board_id, {})[subscription.token] = on_event
        logger.debug(
            "Subscribed %s to board %s (%d subscribers)",
            subscription.token[:8],
            board_id,
            self.subscriber_count(board_id),
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription. Unknown or repeated handles are ignored."""
        board_subs = self._subscribers.get(subscription.board_id)
        if board_subs is None:
            return
        board_subs.pop(subscription.token, None)
        if not board_subs:
            del self._subscribers[subscription.board_id]

    def subscriber_count(self, board_id: str) -> int:
        return len(self._subscribers.get(board_id, {}))

    def publish(self, board_id: str, event: ChangeEvent) -> None:
        """Deliver *event* to every current subscriber of *board_id*.

        Iterates over a copy so a callback may unsubscribe (or a client may
        disconnect) mid-broadcast. A failing subscriber is logged and does
        not stop delivery to the rest.
        """
        for token, callback in list(self._subscribers.get(board_id, {}).items()):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Subscriber %s of board %s failed on %s",
                    token[:8],
                    board_id,
                    event.kind,
                )


@lru_cache(maxsize=1)
def get_change_hub() -> ChangeHub:
    """Return the process-wide hub. Tests construct their own ChangeHub."""
    return ChangeHub()
