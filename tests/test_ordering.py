"""Tests for display ordering of subtopics and flashcards."""

from dataclasses import dataclass
from datetime import datetime

import pytest

from backend.study.ordering import (
    UNORDERED,
    DisplayOrder,
    Ordered,
    card_sort_key,
    move,
    reorder,
    subtopic_sort_key,
)


@dataclass
class _Item:
    id: int
    display_order: int | None = None
    name: str = ""
    created_at: datetime | None = None


class TestDisplayOrder:
    def test_from_value(self) -> None:
        assert DisplayOrder.from_value(None) is UNORDERED
        assert DisplayOrder.from_value(0) == Ordered(0)
        assert Ordered(3) != UNORDERED

    def test_ordered_ranks_before_unordered(self) -> None:
        assert Ordered(1000).rank() < UNORDERED.rank()
        assert Ordered(1).rank() < Ordered(2).rank()


class TestSortKeys:
    def test_cards_ordered_then_oldest_first(self) -> None:
        cards = [
            _Item(1, None, created_at=datetime(2024, 3, 1)),
            _Item(2, 1),
            _Item(3, None, created_at=datetime(2024, 1, 1)),
            _Item(4, 0),
            _Item(5, None),
        ]
        assert [c.id for c in sorted(cards, key=card_sort_key)] == [4, 2, 5, 3, 1]

    def test_subtopics_ordered_then_by_name(self) -> None:
        subtopics = [
            _Item(1, None, name="beta"),
            _Item(2, None, name="Alpha"),
            _Item(3, 0, name="zeta"),
        ]
        assert [s.id for s in sorted(subtopics, key=subtopic_sort_key)] == [3, 2, 1]

    def test_ties_break_on_id(self) -> None:
        cards = [_Item(9, 0), _Item(2, 0)]
        assert [c.id for c in sorted(cards, key=card_sort_key)] == [2, 9]


class TestMove:
    def test_move_up_swaps_neighbours(self) -> None:
        items = [_Item(1, 0), _Item(2, 1), _Item(3, 2)]
        assert move(items, 3, -1) == [(3, 1), (2, 2)]

    def test_move_down(self) -> None:
        items = [_Item(1, 0), _Item(2, 1), _Item(3, 2)]
        assert move(items, 1, 1) == [(2, 0), (1, 1)]

    def test_move_past_edge_is_noop(self) -> None:
        items = [_Item(1, 0), _Item(2, 1)]
        assert move(items, 1, -1) == []
        assert move(items, 2, 1) == []

    def test_move_numbers_unordered_items(self) -> None:
        items = [_Item(1), _Item(2), _Item(3)]
        assert move(items, 2, -1) == [(2, 0), (1, 1), (3, 2)]

    def test_move_unknown_item(self) -> None:
        with pytest.raises(ValueError):
            move([_Item(1, 0)], 99, 1)


class TestReorder:
    def test_only_changed_positions_are_returned(self) -> None:
        items = [_Item(1, 0), _Item(2, 1), _Item(3, 2)]
        assert reorder(items, [1, 3, 2]) == [(3, 1), (2, 2)]

    def test_same_order_is_empty(self) -> None:
        items = [_Item(1, 0), _Item(2, 1)]
        assert reorder(items, [1, 2]) == []

    def test_ids_must_match_items(self) -> None:
        items = [_Item(1, 0), _Item(2, 1)]
        with pytest.raises(ValueError):
            reorder(items, [1])
        with pytest.raises(ValueError):
            reorder(items, [1, 2, 3])
        with pytest.raises(ValueError):
            reorder(items, [1, 1])
