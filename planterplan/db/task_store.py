"""
SqlTaskStore — the storage collaborator for the task core.

fetch-by-filter, insert-one, batch insert, update-by-id, bulk update (one
transaction, all-or-nothing) and delete-by-id over the ``tasks`` table. Rows
come back as ``planterplan.records.Task`` models.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from planterplan.core.dates import coerce_date
from planterplan.db.models import TaskRow
from planterplan.db.session import session_scope
from planterplan.engine.errors import (
    PlanterNotFoundError,
    PlanterRecordError,
    PlanterValidationError,
)
from planterplan.records import Task

logger = logging.getLogger("planterplan.db.task_store")

_DATE_COLUMNS = ("start_date", "due_date")
_WRITABLE_COLUMNS = frozenset({
    "title", "description", "parent_task_id", "root_id", "position", "origin",
    "start_date", "due_date", "days_from_start", "is_complete", "creator",
})
_FILTER_COLUMNS = _WRITABLE_COLUMNS | {"id"}


class SqlTaskStore:
    """
    Task persistence over a SQLAlchemy session factory.

    Usage:
        store = SqlTaskStore(init_db("sqlite:///planter.db", create_tables=True))
        tasks = store.fetch(root_id="project-1")
    """

    def __init__(self, session_factory: sessionmaker):
        self._factory = session_factory

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def fetch(self, **filters: Any) -> List[Task]:
        """All rows matching every ``column=value`` filter (``None`` matches NULL)."""
        stmt = select(TaskRow)
        for key, value in filters.items():
            if key not in _FILTER_COLUMNS:
                raise PlanterValidationError(f"Unknown filter column '{key}'", operation="fetch")
            if isinstance(value, Enum):
                value = value.value
            column = getattr(TaskRow, key)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        stmt = stmt.order_by(TaskRow.created_at, TaskRow.id)

        try:
            with session_scope(self._factory) as session:
                return [Task.model_validate(row) for row in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise PlanterRecordError(f"Task fetch failed: {e}", operation="fetch") from e

    def get(self, task_id: str) -> Optional[Task]:
        try:
            with session_scope(self._factory) as session:
                row = session.get(TaskRow, task_id)
                return Task.model_validate(row) if row is not None else None
        except SQLAlchemyError as e:
            raise PlanterRecordError(
                f"Task lookup failed: {e}", task_id=task_id, record_id=task_id, operation="get",
            ) from e

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    def insert(self, task: Task) -> Task:
        try:
            with session_scope(self._factory) as session:
                row = TaskRow(**task.to_row())
                session.add(row)
                session.flush()
                return Task.model_validate(row)
        except SQLAlchemyError as e:
            raise PlanterRecordError(
                f"Task insert failed: {e}", task_id=task.id, record_id=task.id, operation="insert",
            ) from e

    def insert_many(self, tasks: Iterable[Task]) -> List[Task]:
        """Insert several tasks in one transaction; a failure leaves none of them."""
        rows = [TaskRow(**task.to_row()) for task in tasks]
        if not rows:
            return []

        try:
            with session_scope(self._factory) as session:
                session.add_all(rows)
                session.flush()
                inserted = [Task.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            raise PlanterRecordError(
                f"Batch insert failed, batch rolled back: {e}", operation="insert_many",
            ) from e

        logger.debug("Inserted %d task(s)", len(inserted))
        return inserted

    def update(self, task_id: str, **fields: Any) -> Task:
        """Update one row by id. Raises PlanterNotFoundError when it does not exist."""
        values = _column_values(fields)
        try:
            with session_scope(self._factory) as session:
                row = self._get_row_or_raise(session, task_id)
                for key, value in values.items():
                    setattr(row, key, value)
                session.flush()
                return Task.model_validate(row)
        except SQLAlchemyError as e:
            raise PlanterRecordError(
                f"Task update failed: {e}", task_id=task_id, record_id=task_id, operation="update",
            ) from e

    def bulk_update(self, rows: Iterable[Mapping[str, Any]]) -> int:
        """
        Apply ``{id, ...fields}`` patches in a single transaction.

        Either every row is written or none is: an unknown id or a storage
        failure rolls the whole batch back.
        """
        patches = []
        for row in rows:
            patch = dict(row)
            task_id = patch.pop("id", None)
            if task_id is None:
                raise PlanterValidationError("Bulk update row without id", operation="bulk_update")
            patches.append((str(task_id), _column_values(patch)))

        if not patches:
            return 0

        try:
            with session_scope(self._factory) as session:
                for task_id, values in patches:
                    record = self._get_row_or_raise(session, task_id)
                    for key, value in values.items():
                        setattr(record, key, value)
        except SQLAlchemyError as e:
            raise PlanterRecordError(
                f"Bulk update failed, batch rolled back: {e}", operation="bulk_update",
            ) from e

        logger.debug("Bulk updated %d task(s)", len(patches))
        return len(patches)

    def delete(self, task_id: str) -> bool:
        """Delete one row. Children are not touched."""
        try:
            with session_scope(self._factory) as session:
                row = session.get(TaskRow, task_id)
                if row is None:
                    return False
                session.delete(row)
                return True
        except SQLAlchemyError as e:
            raise PlanterRecordError(
                f"Task delete failed: {e}", task_id=task_id, record_id=task_id, operation="delete",
            ) from e

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    @staticmethod
    def _get_row_or_raise(session: Session, task_id: str) -> TaskRow:
        row = session.get(TaskRow, task_id)
        if row is None:
            raise PlanterNotFoundError(f"Task '{task_id}' not found", task_id=task_id)
        return row


def _column_values(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate column names and normalize date and enum values for a write."""
    values: Dict[str, Any] = {}
    for key, value in fields.items():
        if key not in _WRITABLE_COLUMNS:
            raise PlanterValidationError(f"Unknown task column '{key}'", field=key)
        if key in _DATE_COLUMNS and value is not None:
            parsed = coerce_date(value)
            if parsed is None:
                raise PlanterValidationError(f"Invalid date for '{key}': {value!r}", field=key)
            value = parsed
        if isinstance(value, Enum):
            value = value.value
        values[key] = value
    return values
