"""Display order for subtopics and flashcards.

The ``display_order`` column is nullable: rows created before any manual
reordering have no position. ``DisplayOrder`` makes that explicit as
``Ordered(index)`` or ``Unordered`` and every list is sorted through the
key functions below, so there is exactly one comparison rule.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


class DisplayOrder:
    """Position of an item within its parent list."""

    @staticmethod
    def from_value(value: int | None) -> "DisplayOrder":
        return UNORDERED if value is None else Ordered(value)

    def rank(self) -> tuple[int, int]:
        raise NotImplementedError


@dataclass(frozen=True)
class Ordered(DisplayOrder):
    index: int

    def rank(self) -> tuple[int, int]:
        return (0, self.index)


@dataclass(frozen=True)
class Unordered(DisplayOrder):
    def rank(self) -> tuple[int, int]:
        # Unordered items follow every ordered one
        return (1, 0)


UNORDERED = Unordered()


class _Orderable(Protocol):
    id: int
    display_order: int | None


def card_sort_key(card: Any) -> tuple:
    """Ordered cards first by index, then unordered cards oldest first."""
    created_at = getattr(card, "created_at", None) or datetime.min
    return (DisplayOrder.from_value(card.display_order).rank(), created_at, card.id)


def subtopic_sort_key(subtopic: Any) -> tuple:
    """Ordered subtopics first by index, then unordered ones by name."""
    return (
        DisplayOrder.from_value(subtopic.display_order).rank(),
        subtopic.name.casefold(),
        subtopic.id,
    )


def _assignments(items: Sequence[_Orderable], new_ids: Sequence[int]) -> list[tuple[int, int]]:
    current = {item.id: DisplayOrder.from_value(item.display_order) for item in items}
    return [
        (item_id, index)
        for index, item_id in enumerate(new_ids)
        if current[item_id] != Ordered(index)
    ]


def reorder(items: Sequence[_Orderable], ordered_ids: Iterable[int]) -> list[tuple[int, int]]:
    """Return ``(id, new_index)`` pairs that put ``items`` in ``ordered_ids`` order.

    ``ordered_ids`` must name every item exactly once. Items already at
    their target index are left out of the result.
    """
    ordered_ids = list(ordered_ids)
    if sorted(ordered_ids) != sorted(item.id for item in items):
        raise ValueError("ordered ids must contain every item exactly once")
    return _assignments(items, ordered_ids)


def move(items: Sequence[_Orderable], item_id: int, offset: int) -> list[tuple[int, int]]:
    """Return the assignments that move one item ``offset`` places.

    ``items`` must already be sorted in display order. Moving past either
    end is a no-op.
    """
    ids = [item.id for item in items]
    if item_id not in ids:
        raise ValueError(f"item {item_id} is not in the list")
    index = ids.index(item_id)
    target = index + offset
    if target < 0 or target >= len(ids):
        return []
    ids.insert(target, ids.pop(index))
    return _assignments(items, ids)
