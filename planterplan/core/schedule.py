"""
ScheduleCascade — propagate a start-date shift to a task's scheduled descendants.

When a task's start date moves by N calendar days, every descendant that has
its own start date moves by the same N days. Unscheduled descendants are left
alone, due dates are only shifted on request, and invalid or unchanged dates
produce no updates at all.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Iterable, List, Optional

from planterplan.core.dates import days_between
from planterplan.core.graph import TaskGraph
from planterplan.records import DateRange, DateUpdate, Task


def get_descendants(tasks: Iterable[Task], root_id: str) -> List[Task]:
    """All transitive descendants of ``root_id``, breadth-first, root excluded."""
    return TaskGraph(tasks).descendants(root_id)


def _shift_delta(old_start_date: Any, new_start_date: Any) -> Optional[int]:
    diff_days = days_between(new_start_date, old_start_date)
    if not diff_days:
        return None
    return diff_days


def calculate_date_deltas(
    tasks: Iterable[Task],
    root_id: str,
    old_start_date: Any,
    new_start_date: Any,
) -> List[DateUpdate]:
    """
    ``{id, start_date}`` updates for the descendants of ``root_id``.

    Empty when either date is missing or unparseable, or when the shift is
    zero days, so re-saving an unchanged date never touches the subtree.
    """
    diff_days = _shift_delta(old_start_date, new_start_date)
    if diff_days is None:
        return []

    return [
        DateUpdate(id=task.id, start_date=task.start_date + timedelta(days=diff_days))
        for task in get_descendants(tasks, root_id)
        if task.start_date is not None
    ]


def calculate_due_date_deltas(
    tasks: Iterable[Task],
    root_id: str,
    old_start_date: Any,
    new_start_date: Any,
) -> List[DateUpdate]:
    """Same shift as calculate_date_deltas, applied to descendants' due dates."""
    diff_days = _shift_delta(old_start_date, new_start_date)
    if diff_days is None:
        return []

    return [
        DateUpdate(id=task.id, due_date=task.due_date + timedelta(days=diff_days))
        for task in get_descendants(tasks, root_id)
        if task.due_date is not None
    ]


def merge_date_updates(*groups: Iterable[DateUpdate]) -> List[DateUpdate]:
    """Combine update lists into one record per task id, first-seen order."""
    merged: dict = {}
    for group in groups:
        for update in group:
            current = merged.get(update.id)
            if current is None:
                merged[update.id] = update
                continue
            merged[update.id] = current.model_copy(update={
                "start_date": update.start_date or current.start_date,
                "due_date": update.due_date or current.due_date,
            })
    return list(merged.values())


def calculate_min_max_dates(children: Iterable[Task]) -> DateRange:
    """Envelope of a set of children: earliest start date, latest due date."""
    children = list(children)
    starts = [c.start_date for c in children if c.start_date is not None]
    dues = [c.due_date for c in children if c.due_date is not None]
    return DateRange(
        start_date=min(starts) if starts else None,
        due_date=max(dues) if dues else None,
    )


def calculate_schedule_from_offset(
    tasks: Iterable[Task],
    parent_id: Optional[str],
    days_offset: Optional[int],
) -> Optional[DateRange]:
    """
    Resolve a ``days_from_start`` offset into concrete dates.

    The base is the project root's start date (found by walking up from
    ``parent_id``), falling back to the parent's own start date. Start and
    due date are both set to base + offset. None when nothing resolves.
    """
    if parent_id is None or days_offset is None:
        return None

    graph = TaskGraph(tasks)
    parent = graph.get(parent_id)
    if parent is None:
        return None

    root = parent
    for ancestor_id in graph.ancestor_ids(parent_id):
        ancestor = graph.get(ancestor_id)
        if ancestor is None:
            break
        root = ancestor

    base: Optional[date] = root.start_date or parent.start_date
    if base is None:
        return None

    scheduled = base + timedelta(days=days_offset)
    return DateRange(start_date=scheduled, due_date=scheduled)
