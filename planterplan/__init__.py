"""
PlanterPlan — hierarchical task planning core.

Pure algorithms over flat task lists (tree building, sibling ordering,
schedule cascade) plus the storage and service layers that persist their
results.

Layout:
    planterplan.records   — Task data model (pydantic)
    planterplan.core      — TreeBuilder, PositionAllocator, ScheduleCascade
    planterplan.db        — SQLAlchemy storage collaborator
    planterplan.services  — read-compute-write task operations
    planterplan.engine    — config, errors, structured logging
"""

__version__ = "0.1.0"
__all__ = ["records", "core", "db", "services", "engine"]
