"""Unit tests for planterplan.engine.logging — FileLogger, log entry builders and setup."""

import json
import logging
from datetime import date, timedelta

import pytest

from planterplan.engine.config import LoggingConfig
from planterplan.engine.logging import (
    LOG_CATEGORIES,
    FileLogger,
    LogEntry,
    init_logging,
    log_positions_renormalized,
    log_schedule_cascaded,
    log_system_event,
    log_task_created,
    log_task_moved,
)


@pytest.fixture
def logger(tmp_path):
    return FileLogger(log_dir=str(tmp_path / "logs"))


def _today_file(tmp_path, category):
    return tmp_path / "logs" / category / f"{date.today().isoformat()}.jsonl"


class TestLogEntry:
    def test_creation(self):
        entry = LogEntry("tasks", {"key": "value"})
        assert entry.category == "tasks"
        assert entry.data == {"key": "value"}

    def test_to_json(self):
        entry = LogEntry("schedule", {"when": date(2024, 1, 1)})
        assert json.loads(entry.to_json()) == {"when": "2024-01-01"}


class TestFileLogger:
    """Test FileLogger file writing."""

    def test_category_dirs_created(self, logger, tmp_path):
        for category in LOG_CATEGORIES:
            assert (tmp_path / "logs" / category).is_dir()

    def test_write_creates_file(self, logger, tmp_path):
        logger.write(LogEntry("tasks", {"task_id": "t1"}))
        content = _today_file(tmp_path, "tasks").read_text().strip()
        assert json.loads(content)["task_id"] == "t1"

    def test_unknown_category_goes_to_system(self, logger, tmp_path):
        logger.write(LogEntry("bogus", {"n": 1}))
        assert _today_file(tmp_path, "system").exists()

    def test_write_batch(self, logger, tmp_path):
        logger.write_batch([LogEntry("positions", {"n": i}) for i in range(5)])
        lines = _today_file(tmp_path, "positions").read_text().strip().split("\n")
        assert len(lines) == 5

    def test_query_with_filters(self, logger):
        logger.write_batch([
            LogEntry("tasks", {"task_id": "a", "event": "task_created"}),
            LogEntry("tasks", {"task_id": "b", "event": "task_created"}),
        ])
        results = logger.query("tasks", filters={"task_id": "b"})
        assert [r["task_id"] for r in results] == ["b"]

    def test_query_limit(self, logger):
        logger.write_batch([LogEntry("tasks", {"n": i}) for i in range(10)])
        assert len(logger.query("tasks", limit=3)) == 3

    def test_query_skips_corrupt_lines(self, logger, tmp_path):
        logger.write(LogEntry("tasks", {"n": 1}))
        with open(_today_file(tmp_path, "tasks"), "a", encoding="utf-8") as f:
            f.write("{not json\n")
        assert logger.query("tasks") == [{"n": 1}]

    def test_query_outside_range(self, logger):
        logger.write(LogEntry("tasks", {"n": 1}))
        yesterday = date.today() - timedelta(days=1)
        assert logger.query("tasks", start_date=yesterday, end_date=yesterday) == []

    def test_query_unknown_category(self, logger):
        assert logger.query("nothing-here") == []


class TestLogBuilders:
    """Test convenience log entry builder functions."""

    def test_log_task_created(self):
        entry = log_task_created("t1", "r1", "instance", 10000, parent_task_id="r1")
        assert entry.category == "tasks"
        assert entry.data["event"] == "task_created"
        assert entry.data["position"] == 10000
        assert "creator" not in entry.data

    def test_log_task_moved(self):
        entry = log_task_moved("t1", "p1", "p2", 10000, 5000, renormalized=True)
        assert entry.category == "positions"
        assert entry.data["new_parent_id"] == "p2"
        assert entry.data["renormalized"] is True

    def test_log_positions_renormalized(self):
        entry = log_positions_renormalized(None, "instance", 3, 10000)
        assert entry.category == "positions"
        assert entry.data["sibling_count"] == 3
        assert "parent_task_id" not in entry.data

    def test_log_schedule_cascaded(self):
        entry = log_schedule_cascaded("root", "2024-01-01", "2024-01-06", ["c1", "g1"])
        assert entry.category == "schedule"
        assert entry.data["updated_count"] == 2

    def test_log_system_event(self):
        entry = log_system_event("startup", details={"db": "sqlite"})
        assert entry.category == "system"
        assert entry.data["level"] == "INFO"
        assert entry.data["details"] == {"db": "sqlite"}


class TestInitLogging:
    def test_applies_level(self, tmp_path):
        init_logging(LoggingConfig(level="debug", directory=str(tmp_path / "audit")))
        assert logging.getLogger("planterplan").level == logging.DEBUG
        assert logging.getLogger("planterplan.services.task_service").getEffectiveLevel() == logging.DEBUG

    def test_opens_configured_directory(self, tmp_path):
        audit_dir = tmp_path / "audit"
        file_logger = init_logging(LoggingConfig(directory=str(audit_dir)))
        assert file_logger.log_dir == audit_dir
        assert all((audit_dir / category).is_dir() for category in LOG_CATEGORIES)

    def test_records_startup_event(self, tmp_path):
        file_logger = init_logging(LoggingConfig(level="WARNING", directory=str(tmp_path / "audit")))
        [entry] = file_logger.query("system")
        assert entry["event"] == "logging_initialized"
        assert entry["details"]["level"] == "WARNING"
