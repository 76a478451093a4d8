"""
PlanterPlan Error Hierarchy — Structured exceptions for the service and storage layers.

The pure core (tree, positions, schedule) never raises for data-shape problems;
these errors belong to the layers that read, validate and persist tasks.

Hierarchy:
    PlanterError
    ├── PlanterValidationError   — Input validation failed
    ├── PlanterNotFoundError     — Task id not found in the store
    ├── PlanterHierarchyError    — Illegal parent change (cycle, cross-origin, cross-root)
    ├── PlanterPositionError     — Sibling keys could not be allocated
    ├── PlanterRecordError       — Storage operation failed
    └── PlanterConfigError       — Invalid planter.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class PlanterError(Exception):
    """
    Base error for all PlanterPlan failures.
    All context is serializable to JSON for the structured logs.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.task_id: Optional[str] = context.get("task_id")
        self.root_id: Optional[str] = context.get("root_id")
        self.operation: Optional[str] = context.get("operation")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "task_id": self.task_id,
            "root_id": self.root_id,
            "operation": self.operation,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("task_id", "root_id", "operation")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.task_id:
            parts.append(f"task_id={self.task_id}")
        if self.operation:
            parts.append(f"operation={self.operation}")
        return " | ".join(parts)


class PlanterValidationError(PlanterError):
    """
    Input validation failed (pydantic errors, missing required fields).
    Includes field-level error details.
    """

    def __init__(self, message: str, **context: Any):
        self.validation_errors: Optional[List[Any]] = context.get("validation_errors")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d


class PlanterNotFoundError(PlanterError):
    """Task id not found in the store."""
    pass


class PlanterHierarchyError(PlanterError):
    """A parent change would break the tree: cycle, origin mix or root mismatch."""

    def __init__(self, message: str, **context: Any):
        self.new_parent_id: Optional[str] = context.get("new_parent_id")
        self.reason: Optional[str] = context.get("reason")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["new_parent_id"] = self.new_parent_id
        d["reason"] = self.reason
        return d


class PlanterPositionError(PlanterError):
    """No position could be allocated, even after renormalizing the siblings."""

    def __init__(self, message: str, **context: Any):
        self.attempts: Optional[int] = context.get("attempts")
        super().__init__(message, **context)


class PlanterRecordError(PlanterError):
    """Record operation failed (insert, update, bulk update, delete, fetch)."""

    def __init__(self, message: str, **context: Any):
        self.record_id: Optional[str] = context.get("record_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["record_id"] = self.record_id
        return d


class PlanterConfigError(PlanterError):
    """Configuration error — invalid planter.yaml."""
    pass
