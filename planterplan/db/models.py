"""
PlanterPlan Models — SQLAlchemy table for tasks.

parent_task_id and root_id carry no foreign key: deleting a task leaves its
children in place as orphans, and readers treat them as roots.
"""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Column, Date, Float, Index, Integer, String, Text

from planterplan.db.base import AuditMixin, Base


class TaskRow(Base, AuditMixin):
    __tablename__ = "tasks"

    id = Column(String(64), primary_key=True)
    title = Column(String(500), nullable=False, default="")
    description = Column(Text, nullable=True)
    parent_task_id = Column(String(64), nullable=True, index=True)
    root_id = Column(String(64), nullable=True, index=True)
    position = Column(Float, nullable=True)
    origin = Column(String(20), nullable=False, default="instance")
    start_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    days_from_start = Column(Integer, nullable=True)
    is_complete = Column(Boolean, nullable=False, default=False)
    creator = Column(String(64), nullable=True)

    __table_args__ = (
        CheckConstraint("origin IN ('instance', 'template')", name="ck_tasks_origin"),
        Index("ix_tasks_siblings", "parent_task_id", "origin", "position"),
    )

    def __repr__(self) -> str:
        return f"<TaskRow(id={self.id!r}, parent={self.parent_task_id!r}, position={self.position})>"
