"""PlanterPlan Records. Each record is defined in its own module."""

from .task import DateRange, DateUpdate, PositionUpdate, Task, TaskNode, TaskOrigin

__all__ = ["Task", "TaskNode", "TaskOrigin", "DateUpdate", "PositionUpdate", "DateRange"]
