"""
Drag-and-drop target resolution — where a dragged task lands and with what key.

Two kinds of drop:
  - onto a task: the dragged task joins that task's sibling group, after it
    when dragging down within the same list, before it otherwise;
  - onto a container (a parent's child area): appended to the end.

The result carries NEEDS_RENORMALIZATION as its position when the target gap
is exhausted; invalid drops are reported through ``reason``, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Union

from planterplan.core.graph import TaskGraph
from planterplan.core.positions import (
    MIN_GAP,
    NEEDS_RENORMALIZATION,
    POSITION_STEP,
    Position,
    PositionSignal,
    calculate_position,
    siblings_of,
)
from planterplan.records import Task


@dataclass(frozen=True)
class DropContainer:
    """Child area of ``parent_task_id`` (None for the top level) within one origin."""

    parent_task_id: Optional[str]
    origin: str


@dataclass(frozen=True)
class DropTarget:
    is_valid: bool
    parent_task_id: Optional[str] = None
    position: Union[Position, PositionSignal, None] = None
    reason: Optional[str] = None  # unknown_task | unknown_target | cycle | origin_mismatch | root_mismatch

    @property
    def needs_renormalization(self) -> bool:
        return self.position is NEEDS_RENORMALIZATION


def _invalid(reason: str) -> DropTarget:
    return DropTarget(is_valid=False, reason=reason)


def calculate_drop_target(
    tasks: Iterable[Task],
    active_id: str,
    over_id: Optional[str] = None,
    *,
    container: Optional[DropContainer] = None,
    step: int = POSITION_STEP,
    min_gap: int = MIN_GAP,
) -> DropTarget:
    """
    Resolve the new parent and position for ``active_id``.

    Args:
        tasks: Snapshot of the tasks involved (at least the active task's tree).
        active_id: The dragged task.
        over_id: The task it was dropped on. Ignored when ``container`` is given.
        container: Drop zone for appending to a parent's children.
    """
    graph = TaskGraph(tasks)
    active = graph.get(active_id)
    if active is None:
        return _invalid("unknown_task")

    if container is not None:
        new_parent_id = container.parent_task_id
        target_origin = container.origin
        if new_parent_id is not None and new_parent_id not in graph:
            return _invalid("unknown_target")
    else:
        over = graph.get(over_id)
        if over is None:
            return _invalid("unknown_target")
        if over.id == active.id:
            return DropTarget(is_valid=True, parent_task_id=active.parent_task_id, position=active.position)
        new_parent_id = over.parent_task_id
        target_origin = over.origin

    if graph.would_create_cycle(active.id, new_parent_id):
        return _invalid("cycle")
    if target_origin != active.origin:
        return _invalid("origin_mismatch")

    # root_id never changes, so a task stays inside its own tree
    if new_parent_id is None:
        if not active.is_root:
            return _invalid("root_mismatch")
    else:
        new_parent = graph.get(new_parent_id)
        parent_root = new_parent.root_id if new_parent is not None else None
        if parent_root is None and container is None:
            parent_root = over.root_id
        if parent_root is not None and parent_root != active.root_id:
            return _invalid("root_mismatch")

    siblings = siblings_of(graph, new_parent_id, origin=active.origin)
    ids = [t.id for t in siblings]

    if container is not None:
        others = [t for t in siblings if t.id != active.id]
        prev_task = others[-1] if others else None
        next_task = None
    else:
        over_index = ids.index(over.id)
        active_index = ids.index(active.id) if active.id in ids else -1
        if active_index != -1 and active_index < over_index:
            # dragging down within the same list
            prev_task = siblings[over_index]
            next_task = siblings[over_index + 1] if over_index + 1 < len(siblings) else None
        else:
            prev_task = siblings[over_index - 1] if over_index > 0 else None
            next_task = siblings[over_index]

    prev_pos = prev_task.sort_key if prev_task is not None else 0
    next_pos = next_task.sort_key if next_task is not None else None

    return DropTarget(
        is_valid=True,
        parent_task_id=new_parent_id,
        position=calculate_position(prev_pos, next_pos, step=step, min_gap=min_gap),
    )
