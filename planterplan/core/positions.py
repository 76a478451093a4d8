"""
PositionAllocator — sparse sort keys for sibling tasks.

Siblings are spaced POSITION_STEP apart. Inserting between two siblings takes
the floor midpoint of their keys; when the gap is used up the allocator
returns NEEDS_RENORMALIZATION instead of a key, and the caller must persist
``renormalize(siblings)`` before retrying.

No I/O happens here: reading the current siblings and writing the result back
is the caller's job.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Iterable, List, Optional, Union

from planterplan.records import PositionUpdate, Task

POSITION_STEP = 10000
MIN_GAP = 2  # a gap of this size or less leaves no usable midpoint


class PositionSignal(Enum):
    NEEDS_RENORMALIZATION = "needs_renormalization"


NEEDS_RENORMALIZATION = PositionSignal.NEEDS_RENORMALIZATION

Position = Union[int, float]


def calculate_position(
    prev_position: Optional[Position] = None,
    next_position: Optional[Position] = None,
    *,
    step: int = POSITION_STEP,
    min_gap: int = MIN_GAP,
) -> Union[int, PositionSignal]:
    """
    Key for an item inserted between two siblings.

    Args:
        prev_position: Key of the sibling before the slot; None at the head (0).
        next_position: Key of the sibling after the slot; None at the tail
            (prev + 2 * step, so appending lands at prev + step).

    Returns:
        The floor midpoint, or NEEDS_RENORMALIZATION when the gap is
        ``min_gap`` or smaller. Callers must validate prev <= next.
    """
    previous = 0 if prev_position is None else prev_position
    following = previous + 2 * step if next_position is None else next_position

    if following - previous <= min_gap:
        return NEEDS_RENORMALIZATION
    return math.floor((previous + following) / 2)


def sort_siblings(siblings: Iterable[Task]) -> List[Task]:
    return sorted(siblings, key=lambda t: t.sort_key)


def siblings_of(
    tasks: Iterable[Task],
    parent_task_id: Optional[str],
    origin: Optional[str] = None,
    exclude_id: Optional[str] = None,
) -> List[Task]:
    """Tasks sharing ``parent_task_id`` (and origin, when given), sorted by position."""
    return sort_siblings(
        t for t in tasks
        if t.parent_task_id == parent_task_id
        and (origin is None or t.origin == origin)
        and t.id != exclude_id
    )


def append_position(siblings: Iterable[Task], *, step: int = POSITION_STEP) -> Position:
    """End-of-list key for a new sibling: last key + step, or step for an empty group."""
    ordered = sort_siblings(siblings)
    last = ordered[-1].sort_key if ordered else 0
    return last + step


def needs_renormalization(siblings: Iterable[Task], *, min_gap: int = MIN_GAP) -> bool:
    """True when any two adjacent siblings are too close for another insert between them."""
    keys = [t.sort_key for t in sort_siblings(siblings)]
    return any(b - a <= min_gap for a, b in zip(keys, keys[1:]))


def renormalize(siblings: Iterable[Task], *, step: int = POSITION_STEP) -> List[Task]:
    """
    Re-space a whole sibling group to step, 2*step, 3*step, ...

    Order is preserved (stable on ties), the input is not mutated, and a
    second pass returns the same keys as the first.
    """
    return [
        task.model_copy(update={"position": (index + 1) * step})
        for index, task in enumerate(sort_siblings(siblings))
    ]


def renormalization_updates(
    siblings: Iterable[Task],
    *,
    step: int = POSITION_STEP,
) -> List[PositionUpdate]:
    """The ``{id, position}`` rows to persist in one atomic bulk write."""
    return [PositionUpdate(id=t.id, position=t.position) for t in renormalize(siblings, step=step)]
