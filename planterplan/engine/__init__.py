"""PlanterPlan Engine — configuration, error hierarchy, structured logging."""

from planterplan.engine.config import PlanterConfig, get_config, load_config  # noqa: F401
from planterplan.engine.errors import PlanterError  # noqa: F401

__all__ = [
    "PlanterConfig",
    "PlanterError",
    "get_config",
    "load_config",
]
