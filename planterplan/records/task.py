"""Task record — the single hierarchical entity (project, phase, milestone or leaf task)."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from planterplan.core.dates import coerce_date, to_iso_date


class TaskOrigin(str, Enum):
    INSTANCE = "instance"
    TEMPLATE = "template"


class Task(BaseModel):
    """
    A task as stored: parent link, denormalized root, sparse sort key, dates.

    ``root_id`` equals ``id`` for a root task and is set once at creation.
    ``children`` is not part of the stored record; see TaskNode.
    """

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str = Field(description="Opaque unique identifier")
    title: str = Field(default="", max_length=500)
    description: Optional[str] = Field(default=None)
    parent_task_id: Optional[str] = Field(default=None, description="Null for a root task")
    root_id: Optional[str] = Field(default=None, description="Top-level ancestor id")
    position: Optional[Union[int, float]] = Field(default=None, description="Sibling sort key")
    origin: TaskOrigin = Field(default=TaskOrigin.INSTANCE, validate_default=True)
    start_date: Optional[date] = Field(default=None)
    due_date: Optional[date] = Field(default=None)
    days_from_start: Optional[int] = Field(default=None, description="Offset from project start")
    is_complete: bool = Field(default=False)
    creator: Optional[str] = Field(default=None)

    @field_validator("id", "parent_task_id", "root_id", "creator", mode="before")
    @classmethod
    def _stringify_ids(cls, v: Any) -> Any:
        return None if v is None else str(v)

    @field_validator("start_date", "due_date", mode="before")
    @classmethod
    def _lenient_dates(cls, v: Any) -> Optional[date]:
        return coerce_date(v)

    @property
    def is_root(self) -> bool:
        return self.parent_task_id is None

    @property
    def sort_key(self) -> Union[int, float]:
        """Position with a missing value treated as 0."""
        return self.position if self.position is not None else 0

    def to_row(self) -> Dict[str, Any]:
        """Column values for an insert."""
        return self.model_dump()


class TaskNode(Task):
    """A Task plus its transient, position-sorted children."""

    children: List["TaskNode"] = Field(default_factory=list)

    @classmethod
    def from_task(cls, task: Task) -> "TaskNode":
        return cls.model_validate(task.model_dump(exclude={"children"}))

    def to_task(self) -> Task:
        return Task.model_validate(self.model_dump(exclude={"children"}))


TaskNode.model_rebuild()


class DateUpdate(BaseModel):
    """Patch record produced by the schedule cascade."""

    id: str
    start_date: Optional[date] = None
    due_date: Optional[date] = None

    def to_row(self) -> Dict[str, Any]:
        """``{id, start_date}`` (plus ``due_date`` when set) with YYYY-MM-DD strings."""
        row: Dict[str, Any] = {"id": self.id}
        if self.start_date is not None:
            row["start_date"] = to_iso_date(self.start_date)
        if self.due_date is not None:
            row["due_date"] = to_iso_date(self.due_date)
        return row


class PositionUpdate(BaseModel):
    """Patch record produced by sibling renormalization."""

    id: str
    position: Union[int, float]

    def to_row(self) -> Dict[str, Any]:
        return {"id": self.id, "position": self.position}


class DateRange(BaseModel):
    start_date: Optional[date] = None
    due_date: Optional[date] = None
