"""Board session lifecycle: load once, subscribe, tear down.

A BoardSession owns the local state, the merger and the mutator for one
mounted board. It is created per page visit and never reloaded; a new
visit builds a new session.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Self

from taskboard.board.errors import NotFound, TransportError, ValidationError
from taskboard.board.merger import RemoteChangeMerger
from taskboard.board.models import DEFAULT_LISTS
from taskboard.board.mutator import OptimisticMutator
from taskboard.board.positions import DropTarget
from taskboard.board.state import LocalBoardState

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from taskboard.board.events import ChangeEvent
    from taskboard.board.models import BoardList
    from taskboard.board.protocol import (
        ActivityLog,
        BoardNotifier,
        CardWriter,
        ChangeStream,
        SnapshotLoader,
        Subscription,
    )

logger = logging.getLogger(__name__)


class SessionStatus(StrEnum):
    """Lifecycle states of a board session."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    TORN_DOWN = "torn_down"


class BoardSession:
    """Controller for one mounted board.

    Usage:
        async with BoardSession(board_id, loader=..., ...) as session:
            await session.handle_drag_end(card_id, over_id)
    """

    def __init__(
        self,
        board_id: str,
        *,
        loader: SnapshotLoader,
        writer: CardWriter,
        stream: ChangeStream,
        activity_log: ActivityLog,
        notifier: BoardNotifier,
        lists: Sequence[BoardList] = DEFAULT_LISTS,
    ) -> None:
        self.board_id = board_id
        self._loader = loader
        self._stream = stream
        self._notifier = notifier
        self.state = LocalBoardState(lists)
        self.merger = RemoteChangeMerger(self.state)
        self.mutator = OptimisticMutator(
            board_id, self.state, self.merger, writer, activity_log, notifier
        )
        self._status = SessionStatus.IDLE
        self._subscription: Subscription | None = None

    @property
    def status(self) -> SessionStatus:
        return self._status

    async def open(self) -> bool:
        """Load the snapshot and start listening for changes.

        Returns:
            True if the session is ready. On failure the user has been told
            and sent away from the board.

        Raises:
            RuntimeError: If the session was already opened.
        """
        if self._status is not SessionStatus.IDLE:
            msg = f"board session {self.board_id} already {self._status}"
            raise RuntimeError(msg)

        self._status = SessionStatus.LOADING
        logger.info("Loading board %s", self.board_id)
        try:
            cards = await self._loader.load_board_cards(self.board_id)
            if cards is None:
                raise NotFound("board", self.board_id)
            if self._status is SessionStatus.TORN_DOWN:
                # close() ran while the snapshot was loading
                logger.info("Board %s closed during load", self.board_id)
                return False
            self.state.load(cards)
        except NotFound:
            return self._fail("Board not found")
        except TransportError as exc:
            return self._fail(f"Failed to load board: {exc}")
        except ValidationError as exc:
            return self._fail(f"Board data is invalid: {exc}")

        try:
            self._subscription = self._stream.subscribe(self.board_id, self._on_event)
        except TransportError as exc:
            return self._fail(f"Failed to connect to board updates: {exc}")

        self._status = SessionStatus.READY
        logger.info("Board %s ready with %d cards", self.board_id, len(self.state))
        return True

    def _fail(self, message: str) -> bool:
        logger.warning("Board %s failed to open: %s", self.board_id, message)
        if self._status is SessionStatus.TORN_DOWN:
            return False
        self._status = SessionStatus.ERROR
        self.merger.detach()
        self._notifier.error(message)
        self._notifier.leave_board()
        return False

    def _on_event(self, event: ChangeEvent) -> None:
        if self._status is not SessionStatus.READY:
            logger.debug(
                "Board %s dropping %s in state %s",
                self.board_id,
                event.kind,
                self._status,
            )
            return
        self.merger.apply(event)

    def resolve_target(self, over_id: str | None) -> DropTarget | None:
        """Turn the id under the pointer into a drop target."""
        if over_id is None:
            return None
        if self.state.is_known_list(over_id):
            return DropTarget.list(over_id)
        return DropTarget.card(over_id)

    async def handle_drag_end(self, card_id: str, over_id: str | None) -> bool:
        """Entry point for a finished drag gesture."""
        if self._status is not SessionStatus.READY:
            logger.debug(
                "Ignoring drag on board %s in state %s", self.board_id, self._status
            )
            return False
        return await self.mutator.apply_move(card_id, self.resolve_target(over_id))

    def close(self) -> None:
        """Unsubscribe from the change stream and stop processing events."""
        if self._status is SessionStatus.TORN_DOWN:
            return
        self._status = SessionStatus.TORN_DOWN
        self.merger.detach()
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            self._stream.unsubscribe(subscription)
        logger.info("Board %s session torn down", self.board_id)

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
