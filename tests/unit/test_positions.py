"""Tests for allocate_position: where a dropped card lands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from taskboard.board import DropTarget, LocalBoardState, Placement, allocate_position
from tests.unit.conftest import make_card

if TYPE_CHECKING:
    from taskboard.board import Card


def _state(*cards: Card) -> LocalBoardState:
    state = LocalBoardState()
    state.load(cards)
    return state


class TestDropOnList:
    def test_other_list_appends_at_end(self) -> None:
        state = _state(make_card("z", "todo", 0), make_card("w", "inprogress", 0))

        placement = allocate_position(state, "z", DropTarget.list("inprogress"))

        assert placement == Placement("inprogress", 1)

    def test_empty_list_gets_position_zero(self) -> None:
        state = _state(make_card("z", "todo", 3))

        placement = allocate_position(state, "z", DropTarget.list("done"))

        assert placement == Placement("done", 0)

    def test_append_uses_card_count_not_max_position(self) -> None:
        """Gapped positions [0, 5] still append at 2."""
        state = _state(
            make_card("z", "todo", 0),
            make_card("w", "done", 0),
            make_card("v", "done", 5),
        )

        placement = allocate_position(state, "z", DropTarget.list("done"))

        assert placement == Placement("done", 2)

    def test_own_list_keeps_position(self) -> None:
        state = _state(make_card("x", "todo", 0), make_card("y", "todo", 1))

        placement = allocate_position(state, "y", DropTarget.list("todo"))

        assert placement == Placement("todo", 1)

    def test_unknown_list_is_noop(self) -> None:
        state = _state(make_card("x", "todo", 0))

        assert allocate_position(state, "x", DropTarget.list("archive")) is None


class TestDropOnCard:
    def test_down_the_same_list_lands_after_target(self) -> None:
        """[X0, Y1], drop X on Y: X takes Y's position and sorts after it."""
        state = _state(make_card("x", "todo", 0), make_card("y", "todo", 1))

        placement = allocate_position(state, "x", DropTarget.card("y"))

        assert placement == Placement("todo", 1, after_ties=True)

    def test_mover_below_target_takes_next_slot(self) -> None:
        state = _state(
            make_card("x", "todo", 0),
            make_card("y", "todo", 1),
            make_card("z", "todo", 2),
        )

        placement = allocate_position(state, "z", DropTarget.card("x"))

        assert placement == Placement("todo", 1)

    def test_onto_card_in_other_list_takes_its_position(self) -> None:
        state = _state(make_card("z", "todo", 0), make_card("w", "inprogress", 0))

        placement = allocate_position(state, "z", DropTarget.card("w"))

        assert placement == Placement("inprogress", 0)

    def test_cross_list_mover_with_higher_position_goes_after(self) -> None:
        state = _state(make_card("z", "todo", 4), make_card("w", "inprogress", 1))

        placement = allocate_position(state, "z", DropTarget.card("w"))

        assert placement == Placement("inprogress", 2)

    def test_dropped_on_itself_keeps_placement(self) -> None:
        state = _state(make_card("x", "todo", 2))

        placement = allocate_position(state, "x", DropTarget.card("x"))

        assert placement == Placement("todo", 2)

    def test_shared_position_follows_display_order(self) -> None:
        """[x0, y0] shows x first: x dropped on y goes behind it."""
        state = _state(make_card("x", "todo", 0), make_card("y", "todo", 0))

        assert allocate_position(state, "x", DropTarget.card("y")) == Placement(
            "todo", 0, after_ties=True
        )
        assert allocate_position(state, "y", DropTarget.card("x")) == Placement(
            "todo", 0
        )

    def test_unknown_target_card_is_noop(self) -> None:
        state = _state(make_card("x", "todo", 0))

        assert allocate_position(state, "x", DropTarget.card("ghost")) is None


class TestNoTarget:
    def test_cancelled_gesture(self) -> None:
        state = _state(make_card("x", "todo", 0))

        assert allocate_position(state, "x", None) is None

    def test_unknown_card(self) -> None:
        state = _state(make_card("x", "todo", 0))

        assert allocate_position(state, "ghost", DropTarget.list("done")) is None

    def test_does_not_mutate_state(self) -> None:
        state = _state(make_card("x", "todo", 0), make_card("y", "todo", 1))
        before = state.snapshot()

        allocate_position(state, "x", DropTarget.card("y"))

        assert state.snapshot() == before
