"""
PlanterPlan Database Session Management.

Single entry point for DB initialisation plus a commit/rollback context
manager. Uses the global EngineRegistry.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.orm import Session, sessionmaker

from planterplan.db.base import Base, engine_registry
from planterplan.engine.config import DatabaseConfig

logger = logging.getLogger("planterplan.db.session")

DEFAULT_ENGINE = "planter"


def init_db(
    db_url: str,
    name: str = DEFAULT_ENGINE,
    create_tables: bool = False,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    pool_pre_ping: bool = True,
) -> sessionmaker:
    """
    Register the engine and return its session factory.

    Args:
        db_url:        SQLAlchemy URL (sqlite:///planter.db, postgresql://...).
        name:          Registry name for the engine.
        create_tables: Run Base.metadata.create_all() — dev and tests only.
    """
    engine = engine_registry.register(
        name, db_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        pool_pre_ping=pool_pre_ping,
        echo=echo,
    )

    if create_tables:
        Base.metadata.create_all(engine)
        logger.info("Created tables on %s", engine.url.render_as_string(hide_password=True))

    return engine_registry.get_session_factory(name)


def init_db_from_config(config: DatabaseConfig, create_tables: bool = False) -> sessionmaker:
    return init_db(
        config.url,
        create_tables=create_tables,
        echo=config.echo,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_recycle=config.pool_recycle,
        pool_pre_ping=config.pool_pre_ping,
    )


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for DB sessions with auto-commit/rollback.

    Usage:
        with session_scope(factory) as session:
            row = session.get(TaskRow, task_id)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
