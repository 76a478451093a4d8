"""
Task service — the read-compute-write layer around the pure task core.

Each operation reads a consistent snapshot from the store, hands it to the
core (tree building, position allocation, schedule cascade) and writes the
computed values back. Renormalization batches and cascade patches are
persisted with a single bulk write so they land all-or-nothing.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from planterplan.core.dates import coerce_date, to_iso_date
from planterplan.core.drop_target import DropContainer, calculate_drop_target
from planterplan.core.positions import append_position, renormalization_updates, renormalize
from planterplan.core.schedule import (
    calculate_date_deltas,
    calculate_due_date_deltas,
    calculate_min_max_dates,
    calculate_schedule_from_offset,
    merge_date_updates,
)
from planterplan.core.tree import SeparatedTasks, build_tree, clone_subtree, separate_by_origin
from planterplan.engine.config import PlanterConfig, get_config
from planterplan.engine.errors import (
    PlanterHierarchyError,
    PlanterNotFoundError,
    PlanterPositionError,
    PlanterValidationError,
)
from planterplan.engine.logging import (
    FileLogger,
    LogEntry,
    init_logging,
    log_positions_renormalized,
    log_schedule_cascaded,
    log_system_event,
    log_task_created,
    log_task_moved,
)
from planterplan.records import DateRange, DateUpdate, Task, TaskNode, TaskOrigin

logger = logging.getLogger("planterplan.services.task_service")

_UNSET: Any = object()


class TaskStore(Protocol):
    """What the service needs from storage. SqlTaskStore implements it."""

    def fetch(self, **filters: Any) -> List[Task]: ...

    def get(self, task_id: str) -> Optional[Task]: ...

    def insert(self, task: Task) -> Task: ...

    def insert_many(self, tasks: Iterable[Task]) -> List[Task]: ...

    def update(self, task_id: str, **fields: Any) -> Task: ...

    def bulk_update(self, rows: Iterable[Mapping[str, Any]]) -> int: ...

    def delete(self, task_id: str) -> bool: ...


class TaskService:
    """
    Task operations with persistence.

    Usage:
        service = TaskService(SqlTaskStore(factory))
        project = service.create_task("Launch", start_date="2024-01-01")
        service.move_task(task_id, over_id=other_id)
        service.reschedule_task(project.id, "2024-01-06")
        service.instantiate_template(template.id, new_parent_id=project.id)
    """

    def __init__(
        self,
        store: TaskStore,
        config: Optional[PlanterConfig] = None,
        file_logger: Optional[FileLogger] = None,
    ):
        self._store = store
        self._config = config or get_config()
        self._file_logger = file_logger if file_logger is not None else init_logging(self._config.logging)

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task:
        task = self._store.get(task_id)
        if task is None:
            raise PlanterNotFoundError(f"Task '{task_id}' not found", task_id=task_id)
        return task

    def get_project_tree(self, root_id: str) -> List[TaskNode]:
        """Nested, position-ordered children of a project root."""
        return build_tree(self._store.fetch(root_id=root_id), root_id)

    def get_forest(self) -> SeparatedTasks:
        """Every task, split into instance and template forests."""
        return separate_by_origin(self._store.fetch())

    def get_schedule_envelope(self, task_id: str) -> DateRange:
        """Earliest child start and latest child due date of a task."""
        return calculate_min_max_dates(self._store.fetch(parent_task_id=task_id))

    # -----------------------------------------------------------------------
    # Create / delete
    # -----------------------------------------------------------------------

    def create_task(
        self,
        title: str,
        *,
        parent_task_id: Optional[str] = None,
        origin: Union[TaskOrigin, str] = TaskOrigin.INSTANCE,
        task_id: Optional[str] = None,
        description: Optional[str] = None,
        start_date: Any = None,
        due_date: Any = None,
        days_from_start: Optional[int] = None,
        creator: Optional[str] = None,
    ) -> Task:
        """
        Create a task at the end of its sibling list.

        Roots get ``root_id = id``; children inherit the parent's ``root_id``.
        Instance dates are derived: a child with ``days_from_start`` and no
        explicit dates is scheduled from the project start, and a start date
        without a due date makes a single-day task. Template dates are stored
        as given.

        Raises:
            PlanterNotFoundError: parent does not exist.
            PlanterHierarchyError: parent has a different origin.
            PlanterValidationError: bad field values or due date before start date.
        """
        try:
            origin_value = TaskOrigin(origin).value
        except ValueError as e:
            raise PlanterValidationError(f"Unknown origin '{origin}'", operation="create") from e

        new_id = task_id or str(uuid.uuid4())
        parent: Optional[Task] = None
        if parent_task_id is not None:
            parent = self.get_task(parent_task_id)
            if parent.origin != origin_value:
                raise PlanterHierarchyError(
                    "Parent belongs to a different origin",
                    task_id=new_id,
                    new_parent_id=parent_task_id,
                    reason="origin_mismatch",
                    operation="create",
                )
        root_id = (parent.root_id or parent.id) if parent is not None else new_id

        if origin_value == TaskOrigin.INSTANCE.value:
            if start_date is None and due_date is None:
                if parent is not None and days_from_start is not None:
                    scheduled = calculate_schedule_from_offset(
                        self._store.fetch(root_id=root_id), parent.id, days_from_start,
                    )
                    if scheduled is not None:
                        start_date, due_date = scheduled.start_date, scheduled.due_date
            elif due_date is None:
                due_date = start_date

        siblings = self._store.fetch(parent_task_id=parent_task_id, origin=origin_value)
        position = append_position(siblings, step=self._config.positions.step)

        try:
            task = Task(
                id=new_id,
                title=title,
                description=description,
                parent_task_id=parent_task_id,
                root_id=root_id,
                position=position,
                origin=origin_value,
                start_date=_require_date(start_date, "start_date"),
                due_date=_require_date(due_date, "due_date"),
                days_from_start=days_from_start,
                creator=creator,
            )
        except ValidationError as e:
            raise PlanterValidationError(
                "Invalid task fields", task_id=new_id, operation="create",
                validation_errors=e.errors(),
            ) from e
        _check_date_order(task.start_date, task.due_date, task_id=new_id)

        created = self._store.insert(task)
        logger.info("Created task %s under %s at position %s", created.id, parent_task_id, position)
        self._audit(log_task_created(
            created.id, root_id, origin_value, position,
            parent_task_id=parent_task_id, creator=creator,
        ))
        return created

    def instantiate_template(
        self,
        template_id: str,
        *,
        new_parent_id: Optional[str] = None,
        new_origin: Union[TaskOrigin, str] = TaskOrigin.INSTANCE,
        title: Optional[str] = None,
        description: Optional[str] = None,
        start_date: Any = None,
        due_date: Any = None,
        days_from_start: Optional[int] = None,
        creator: Optional[str] = None,
    ) -> List[Task]:
        """
        Copy a task and its whole subtree under ``new_parent_id`` in one batch insert.

        The copied root is appended to its new sibling list and takes the
        given title, description and dates; descendants keep their own.
        Root dates follow create_task: for an instance copy, a start without a
        due date makes it single-day, and ``days_from_start`` under a parent
        schedules it from the project start. Template copies keep dates as given.

        Returns:
            The inserted copies, root first.

        Raises:
            PlanterNotFoundError: template or parent does not exist.
            PlanterHierarchyError: parent has a different origin.
            PlanterValidationError: bad origin, title or dates, or due date before start date.
        """
        try:
            origin_value = TaskOrigin(new_origin).value
        except ValueError as e:
            raise PlanterValidationError(
                f"Unknown origin '{new_origin}'", operation="instantiate",
            ) from e

        template = self.get_task(template_id)
        parent: Optional[Task] = None
        if new_parent_id is not None:
            parent = self.get_task(new_parent_id)
            if parent.origin != origin_value:
                raise PlanterHierarchyError(
                    "Parent belongs to a different origin",
                    task_id=template_id,
                    new_parent_id=new_parent_id,
                    reason="origin_mismatch",
                    operation="instantiate",
                )

        start = _require_date(start_date, "start_date")
        due = _require_date(due_date, "due_date")
        if origin_value == TaskOrigin.INSTANCE.value:
            if start is None and due is None:
                if parent is not None and days_from_start is not None:
                    scheduled = calculate_schedule_from_offset(
                        self._store.fetch(root_id=parent.root_id or parent.id),
                        parent.id,
                        days_from_start,
                    )
                    if scheduled is not None:
                        start, due = scheduled.start_date, scheduled.due_date
            elif due is None:
                due = start
        _check_date_order(start, due, task_id=template_id)

        siblings = self._store.fetch(parent_task_id=new_parent_id, origin=origin_value)
        source_tree = self._store.fetch(root_id=template.root_id or template.id)
        try:
            clones = clone_subtree(
                [template, *source_tree],
                template.id,
                new_parent_id,
                origin_value,
                {
                    "title": title,
                    "description": description,
                    "start_date": start,
                    "due_date": due,
                    "days_from_start": days_from_start,
                    "position": append_position(siblings, step=self._config.positions.step),
                },
                parent_root_id=(parent.root_id or parent.id) if parent is not None else None,
                creator=creator,
            )
        except ValidationError as e:
            raise PlanterValidationError(
                "Invalid task fields", task_id=template_id, operation="instantiate",
                validation_errors=e.errors(),
            ) from e

        inserted = self._store.insert_many(clones)
        root = inserted[0]
        logger.info(
            "Instantiated %s as %s under %s (%d task(s))",
            template_id, root.id, new_parent_id, len(inserted),
        )
        self._audit(log_system_event(
            "template_instantiated",
            details={
                "template_id": template_id,
                "new_root_id": root.id,
                "parent_task_id": new_parent_id,
                "origin": origin_value,
                "tasks_count": len(inserted),
                "creator": creator,
            },
        ))
        return inserted

    def delete_task(self, task_id: str) -> bool:
        """Remove one task. Its children stay in the store as orphans."""
        deleted = self._store.delete(task_id)
        if deleted:
            logger.info("Deleted task %s", task_id)
        return deleted

    # -----------------------------------------------------------------------
    # Ordering
    # -----------------------------------------------------------------------

    def renormalize_siblings(self, parent_task_id: Optional[str], origin: str) -> List[Task]:
        """Re-space one sibling group and persist it in a single bulk write."""
        siblings = self._store.fetch(parent_task_id=parent_task_id, origin=origin)
        step = self._config.positions.step
        updates = renormalization_updates(siblings, step=step)
        self._store.bulk_update([u.to_row() for u in updates])

        logger.info("Renormalized %d sibling(s) under %s", len(updates), parent_task_id)
        self._audit(log_positions_renormalized(parent_task_id, str(origin), len(updates), step))
        return renormalize(siblings, step=step)

    def move_task(
        self,
        task_id: str,
        over_id: Optional[str] = None,
        container: Optional[DropContainer] = None,
    ) -> Task:
        """
        Drop a task onto another task or into a container and persist the result.

        When the target gap is exhausted the sibling group is renormalized and
        the drop recomputed, up to ``positions.max_renormalize_attempts`` times.

        Raises:
            PlanterNotFoundError: the task does not exist.
            PlanterHierarchyError: the drop is invalid (cycle, origin or root mismatch).
            PlanterPositionError: no key could be allocated.
        """
        active = self.get_task(task_id)
        if container is None and over_id == task_id:
            return active

        positions = self._config.positions
        attempts = 0

        while True:
            snapshot = self._move_snapshot(active, over_id, container)
            target = calculate_drop_target(
                snapshot, task_id, over_id,
                container=container,
                step=positions.step,
                min_gap=positions.min_gap,
            )
            if not target.is_valid:
                raise PlanterHierarchyError(
                    f"Cannot move task '{task_id}': {target.reason}",
                    task_id=task_id,
                    new_parent_id=container.parent_task_id if container else over_id,
                    reason=target.reason,
                    operation="move",
                )
            if not target.needs_renormalization:
                break
            if attempts >= positions.max_renormalize_attempts:
                raise PlanterPositionError(
                    f"No room to place task '{task_id}' after {attempts} renormalization(s)",
                    task_id=task_id,
                    attempts=attempts,
                    operation="move",
                )
            self.renormalize_siblings(target.parent_task_id, active.origin)
            attempts += 1

        moved = self._store.update(
            task_id, position=target.position, parent_task_id=target.parent_task_id,
        )
        logger.info(
            "Moved task %s to parent %s at position %s", task_id, target.parent_task_id, target.position,
        )
        self._audit(log_task_moved(
            task_id,
            old_parent_id=active.parent_task_id,
            new_parent_id=target.parent_task_id,
            old_position=active.position,
            new_position=target.position,
            renormalized=attempts > 0,
        ))
        return moved

    def _move_snapshot(
        self,
        active: Task,
        over_id: Optional[str],
        container: Optional[DropContainer],
    ) -> List[Task]:
        """The active task's tree, plus the top level and the drop target when they lie outside it."""
        snapshot: Dict[str, Task] = {
            t.id: t for t in self._store.fetch(root_id=active.root_id or active.id)
        }
        snapshot.setdefault(active.id, active)

        top_level = container.parent_task_id is None if container else False
        if over_id is not None and container is None and over_id not in snapshot:
            over = self._store.get(over_id)
            if over is not None:
                snapshot[over.id] = over
                top_level = over.parent_task_id is None
        elif over_id in snapshot and container is None:
            top_level = snapshot[over_id].parent_task_id is None

        if container is not None and container.parent_task_id is not None \
                and container.parent_task_id not in snapshot:
            parent = self._store.get(container.parent_task_id)
            if parent is not None:
                snapshot[parent.id] = parent

        if top_level:
            for root in self._store.fetch(parent_task_id=None, origin=active.origin):
                snapshot.setdefault(root.id, root)
        return list(snapshot.values())

    # -----------------------------------------------------------------------
    # Scheduling
    # -----------------------------------------------------------------------

    def reschedule_task(
        self,
        task_id: str,
        start_date: Any,
        due_date: Any = _UNSET,
    ) -> List[DateUpdate]:
        """
        Change a task's start date and shift its scheduled descendants by the same days.

        The task's own row and every cascade patch are written in one bulk
        update. Descendant due dates follow only with ``schedule.cascade_due_dates``.
        Without ``due_date`` an instance task becomes single-day (due = start);
        a template keeps its due date.

        Returns:
            The descendant patches that were applied.
        """
        task = self.get_task(task_id)
        new_start = _require_date(start_date, "start_date")
        own: Dict[str, Any] = {"id": task.id, "start_date": new_start}
        new_due = task.due_date
        if due_date is not _UNSET:
            new_due = _require_date(due_date, "due_date")
            own["due_date"] = new_due
        elif task.origin == TaskOrigin.INSTANCE.value and new_start is not None:
            new_due = new_start
            own["due_date"] = new_due
        _check_date_order(new_start, new_due, task_id=task.id)

        tasks = self._store.fetch(root_id=task.root_id or task.id)
        deltas = calculate_date_deltas(tasks, task.id, task.start_date, new_start)
        if self._config.schedule.cascade_due_dates:
            deltas = merge_date_updates(
                deltas, calculate_due_date_deltas(tasks, task.id, task.start_date, new_start),
            )

        self._store.bulk_update([own, *(d.to_row() for d in deltas)])

        if deltas:
            logger.info("Cascaded start date of %s to %d descendant(s)", task.id, len(deltas))
        self._audit(log_schedule_cascaded(
            task.id,
            to_iso_date(task.start_date),
            to_iso_date(new_start),
            [d.id for d in deltas],
        ))
        return deltas

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _audit(self, entry: LogEntry) -> None:
        self._file_logger.write(entry)


def _require_date(value: Any, field: str) -> Optional[date]:
    """User-supplied date: None stays None, anything unparseable is rejected."""
    if value is None:
        return None
    parsed = coerce_date(value)
    if parsed is None:
        raise PlanterValidationError(f"Invalid date for '{field}': {value!r}", field=field)
    return parsed


def _check_date_order(start: Optional[date], due: Optional[date], task_id: str) -> None:
    if start is not None and due is not None and due < start:
        raise PlanterValidationError(
            "due_date must not be earlier than start_date",
            task_id=task_id,
            start_date=start,
            due_date=due,
        )
