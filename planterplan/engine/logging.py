"""
PlanterPlan Logging — Structured JSON-lines audit log for task mutations.

Implements:
- FileLogger: Per-category log files with daily rotation
- LogEntry builders for each task mutation the service layer performs
- init_logging: level and audit directory from the logging config

Layout: {log_dir}/{category}/{YYYY-MM-DD}.jsonl
"""

from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from itertools import islice
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from planterplan.engine.config import LoggingConfig

logger = logging.getLogger("planterplan.engine.logging")

LOG_CATEGORIES = ("tasks", "positions", "schedule", "system")


class LogEntry:
    """A structured log entry destined for a specific category file."""

    __slots__ = ("category", "data")

    def __init__(self, category: str, data: Dict[str, Any]):
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Appends audit entries to {log_dir}/{category}/{YYYY-MM-DD}.jsonl.

    Unknown categories are written to "system". Appends to one file are
    serialized with a per-path lock.
    """

    def __init__(self, log_dir: str = ".planter/logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[Path, threading.Lock] = defaultdict(threading.Lock)
        for category in LOG_CATEGORIES:
            (self._log_dir / category).mkdir(parents=True, exist_ok=True)

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def write(self, entry: LogEntry) -> None:
        self._append(self._today_path(entry.category), [entry])

    def write_batch(self, entries: List[LogEntry]) -> None:
        """Write several entries, one open per target file."""
        by_path: Dict[Path, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            by_path[self._today_path(entry.category)].append(entry)
        for path, batch in by_path.items():
            self._append(path, batch)

    def _append(self, path: Path, entries: List[LogEntry]) -> None:
        lines = "".join(f"{entry.to_json()}\n" for entry in entries)
        with self._file_locks[path]:
            with open(path, "a", encoding="utf-8") as f:
                f.write(lines)

    def _today_path(self, category: str) -> Path:
        if category not in LOG_CATEGORIES:
            category = "system"
        return self._log_dir / category / f"{date.today().isoformat()}.jsonl"

    def query(
        self,
        category: str,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 500,
    ) -> List[Dict[str, Any]]:
        """
        Read entries back from a category, newest day first.

        Args:
            category: One of LOG_CATEGORIES.
            start_date: Earliest day to include (defaults to 7 days before end_date).
            end_date: Latest day to include (defaults to today).
            filters: Keep only entries whose top-level keys equal all of these values.
            limit: Max number of entries to return.
        """
        end_date = end_date or date.today()
        start_date = start_date or end_date - timedelta(days=7)
        base = self._log_dir / category
        if not base.is_dir():
            return []

        def _matching() -> Iterator[Dict[str, Any]]:
            day = end_date
            while day >= start_date:
                for data in self._iter_jsonl(base / f"{day.isoformat()}.jsonl"):
                    if not filters or all(data.get(k) == v for k, v in filters.items()):
                        yield data
                day -= timedelta(days=1)

        return list(islice(_matching(), limit))

    @staticmethod
    def _iter_jsonl(path: Path) -> Iterator[Dict[str, Any]]:
        """Decoded lines of one day file. Missing files and corrupt lines are skipped."""
        if not path.exists():
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        yield json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug("Skipping corrupt line in %s", path)
        except OSError as exc:
            logger.warning("Could not read log file %s: %s", path, exc)


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(event: str, level: str = "INFO", **extra: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    entry.update({k: v for k, v in extra.items() if v is not None})
    return entry


def log_task_created(
    task_id: str,
    root_id: str,
    origin: str,
    position: float,
    parent_task_id: Optional[str] = None,
    creator: Optional[str] = None,
) -> LogEntry:
    """Build a task creation log entry."""
    data = _base_entry(
        "task_created",
        task_id=task_id,
        root_id=root_id,
        origin=origin,
        position=position,
        parent_task_id=parent_task_id,
        creator=creator,
    )
    return LogEntry("tasks", data)


def log_task_moved(
    task_id: str,
    old_parent_id: Optional[str],
    new_parent_id: Optional[str],
    old_position: Optional[float],
    new_position: float,
    renormalized: bool = False,
) -> LogEntry:
    """Build a drag-and-drop move log entry."""
    data = _base_entry(
        "task_moved",
        task_id=task_id,
        old_parent_id=old_parent_id,
        new_parent_id=new_parent_id,
        old_position=old_position,
        new_position=new_position,
        renormalized=renormalized,
    )
    return LogEntry("positions", data)


def log_positions_renormalized(
    parent_task_id: Optional[str],
    origin: str,
    sibling_count: int,
    step: int,
) -> LogEntry:
    data = _base_entry(
        "positions_renormalized",
        parent_task_id=parent_task_id,
        origin=origin,
        sibling_count=sibling_count,
        step=step,
    )
    return LogEntry("positions", data)


def log_schedule_cascaded(
    task_id: str,
    old_start_date: Optional[str],
    new_start_date: Optional[str],
    updated_ids: List[str],
) -> LogEntry:
    """Build a schedule cascade log entry."""
    data = _base_entry(
        "schedule_cascaded",
        task_id=task_id,
        old_start_date=old_start_date,
        new_start_date=new_start_date,
        updated_count=len(updated_ids),
        updated_ids=updated_ids,
    )
    return LogEntry("schedule", data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Build a system event log entry (logging setup, template instantiation)."""
    return LogEntry("system", _base_entry(event, level=level, details=details))


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

def init_logging(config: LoggingConfig) -> FileLogger:
    """
    Apply the configured level to the ``planterplan`` logger tree and open
    the audit log under ``config.directory``.
    """
    logging.getLogger("planterplan").setLevel(config.level)
    file_logger = FileLogger(log_dir=config.directory)
    file_logger.write(log_system_event(
        "logging_initialized",
        details={"level": config.level, "directory": config.directory},
    ))
    logger.debug("Audit log at %s, level %s", file_logger.log_dir, config.level)
    return file_logger
