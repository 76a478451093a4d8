"""
PlanterPlan Database Base — declarative base, audit columns and named engines.

Provides:
- Base: SQLAlchemy declarative base for the task table
- AuditMixin: created_at / updated_at, used by fetch() for stable ordering
- EngineRegistry: one engine plus session factory per name
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import Column, DateTime, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all PlanterPlan tables."""
    pass


class AuditMixin:
    """Row creation and last-write timestamps (UTC)."""
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


def _engine_options(url: str, pool_options: Dict[str, Any]) -> Dict[str, Any]:
    """SQLite keeps SQLAlchemy's own pool; server databases get the sizing options."""
    if url.startswith("sqlite"):
        return {}
    return pool_options


class EngineRegistry:
    """
    Named SQLAlchemy engines with their session factories.

    Usage:
        registry = EngineRegistry()
        registry.register("planter", "sqlite:///planter.db")
        with registry.get_session("planter") as session:
            ...
    """

    def __init__(self):
        self._entries: Dict[str, Tuple[Engine, sessionmaker]] = {}

    def register(
        self,
        name: str,
        url: str,
        *,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
        pool_pre_ping: bool = True,
    ) -> Engine:
        """Create an engine for ``url``; an engine already registered under ``name`` is disposed."""
        options = _engine_options(url, {
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_recycle": pool_recycle,
            "pool_pre_ping": pool_pre_ping,
        })
        engine = create_engine(url, echo=echo, **options)
        self.dispose(name)
        self._entries[name] = (engine, sessionmaker(bind=engine, expire_on_commit=False))
        return engine

    def _lookup(self, name: str) -> Tuple[Engine, sessionmaker]:
        try:
            return self._entries[name]
        except KeyError:
            raise KeyError(
                f"Engine '{name}' not registered. Available: {self.registered_names}"
            ) from None

    def get(self, name: str) -> Engine:
        return self._lookup(name)[0]

    def get_session_factory(self, name: str) -> sessionmaker:
        return self._lookup(name)[1]

    def get_session(self, name: str) -> Session:
        """A new, unscoped session; the caller closes it."""
        return self.get_session_factory(name)()

    def dispose(self, name: Optional[str] = None) -> None:
        """Close the pool of one engine, or of every engine when ``name`` is None."""
        names = [name] if name else list(self._entries)
        for key in names:
            entry = self._entries.pop(key, None)
            if entry is not None:
                entry[0].dispose()

    @property
    def registered_names(self) -> list:
        return list(self._entries)


# Global engine registry
engine_registry = EngineRegistry()
