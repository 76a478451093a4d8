"""
PlanterPlan Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List

import pytest

from planterplan.records import Task


# ---------------------------------------------------------------------------
# Environment setup — reset module singletons, keep databases per test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_config():
    """Reset the global config singleton and the package log level between tests."""
    import planterplan.engine.config as cfg_mod

    package_logger = logging.getLogger("planterplan")
    level = package_logger.level
    cfg_mod._config = None
    yield
    cfg_mod._config = None
    package_logger.setLevel(level)


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Build a Task with sensible defaults: ``make_task("c1", parent="root", position=10000)``."""

    def _make(task_id: str, parent: Any = None, **fields: Any) -> Task:
        fields.setdefault("title", task_id)
        fields.setdefault("root_id", task_id if parent is None else None)
        return Task(id=task_id, parent_task_id=parent, **fields)

    return _make


@pytest.fixture
def scheduled_project(make_task) -> List[Task]:
    """root → c1 → g1, each with a start date."""
    return [
        make_task("root", start_date="2024-01-01"),
        make_task("c1", parent="root", root_id="root", start_date="2024-01-05"),
        make_task("g1", parent="c1", root_id="root", start_date="2024-01-10"),
    ]


@pytest.fixture
def project_tasks(make_task) -> List[Task]:
    """
    A small two-level project, deliberately out of position order:

        root
        ├── b (20000)
        │   ├── b2 (20000)
        │   └── b1 (10000)
        ├── a (10000)
        └── c (30000)
    """
    return [
        make_task("root", position=10000),
        make_task("b", parent="root", root_id="root", position=20000),
        make_task("b2", parent="b", root_id="root", position=20000),
        make_task("a", parent="root", root_id="root", position=10000),
        make_task("b1", parent="b", root_id="root", position=10000),
        make_task("c", parent="root", root_id="root", position=30000),
    ]


# ---------------------------------------------------------------------------
# Storage and service
# ---------------------------------------------------------------------------

@pytest.fixture
def session_factory(tmp_path):
    """Fresh SQLite database with the tasks table created."""
    from planterplan.db import engine_registry, init_db

    factory = init_db(f"sqlite:///{tmp_path / 'planter.db'}", create_tables=True)
    yield factory
    engine_registry.dispose()


@pytest.fixture
def store(session_factory):
    from planterplan.db import SqlTaskStore

    return SqlTaskStore(session_factory)


@pytest.fixture
def file_logger(tmp_path):
    from planterplan.engine.logging import FileLogger

    return FileLogger(log_dir=str(tmp_path / "logs"))


@pytest.fixture
def planter_config():
    from planterplan.engine.config import PlanterConfig

    return PlanterConfig()


@pytest.fixture
def service(store, planter_config, file_logger):
    from planterplan.services import TaskService

    return TaskService(store, config=planter_config, file_logger=file_logger)
