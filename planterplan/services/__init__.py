"""PlanterPlan Services — read-compute-write operations over the task store."""

from planterplan.services.task_service import TaskService, TaskStore  # noqa: F401

__all__ = ["TaskService", "TaskStore"]
