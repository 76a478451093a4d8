"""PlanterPlan DB — SQLAlchemy models, sessions and the task store."""

from planterplan.db.base import Base, EngineRegistry, engine_registry  # noqa: F401
from planterplan.db.models import TaskRow  # noqa: F401
from planterplan.db.session import init_db, init_db_from_config, session_scope  # noqa: F401
from planterplan.db.task_store import SqlTaskStore  # noqa: F401

__all__ = [
    "Base",
    "EngineRegistry",
    "engine_registry",
    "TaskRow",
    "init_db",
    "init_db_from_config",
    "session_scope",
    "SqlTaskStore",
]
