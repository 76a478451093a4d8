"""
PlanterPlan Configuration — Load and validate planter.yaml.

Usage:
    from planterplan.engine.config import load_config, get_config
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from planterplan.engine.errors import PlanterConfigError

CONFIG_FILENAME = "planter.yaml"


# ---------------------------------------------------------------------------
# Pydantic models for planter.yaml
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    url: str = "sqlite:///planter.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True


class PositionConfig(BaseModel):
    step: int = 10000
    min_gap: int = 2
    max_renormalize_attempts: int = 1

    @field_validator("step")
    @classmethod
    def validate_step(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"step must be positive, got {v}")
        return v

    @field_validator("min_gap")
    @classmethod
    def validate_min_gap(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"min_gap must be at least 1, got {v}")
        return v


class ScheduleConfig(BaseModel):
    cascade_due_dates: bool = False


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".planter/logs"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{v}'")
        return level


class PlanterConfig(BaseModel):
    """Root model for planter.yaml."""
    name: str = "PlanterPlan"
    environment: str = "dev"

    database: DatabaseConfig = DatabaseConfig()
    positions: PositionConfig = PositionConfig()
    schedule: ScheduleConfig = ScheduleConfig()
    logging: LoggingConfig = LoggingConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[PlanterConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for planter.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILENAME).exists():
            return parent
    return current


def load_config(config_path: Optional[str] = None) -> PlanterConfig:
    """
    Load and validate planter.yaml.

    Args:
        config_path: Explicit path to planter.yaml. If None, auto-discovers.

    Returns:
        Validated PlanterConfig instance. Defaults when no file exists.

    Raises:
        PlanterConfigError: The file is not valid YAML or fails validation.
    """
    global _config

    if config_path is None:
        config_path = str(_find_project_root() / CONFIG_FILENAME)

    path = Path(config_path)
    if not path.exists():
        _config = PlanterConfig()
        return _config

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise PlanterConfigError(f"Invalid YAML in {path}: {e}", path=str(path)) from e

    if not isinstance(raw, dict):
        raise PlanterConfigError(f"{path} must contain a mapping", path=str(path))

    # Flatten the top-level "planter" key if present
    header = raw.get("planter", {}) or {}
    config_data = {
        "name": header.get("name", raw.get("name", "PlanterPlan")),
        "environment": header.get("environment", raw.get("environment", "dev")),
        "database": raw.get("database", {}) or {},
        "positions": raw.get("positions", {}) or {},
        "schedule": raw.get("schedule", {}) or {},
        "logging": raw.get("logging", {}) or {},
    }

    try:
        _config = PlanterConfig(**config_data)
    except ValidationError as e:
        raise PlanterConfigError(
            f"Invalid configuration in {path}",
            path=str(path),
            validation_errors=e.errors(),
        ) from e
    return _config


def get_config() -> PlanterConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_environment() -> str:
    """Get the current environment."""
    return get_config().environment
