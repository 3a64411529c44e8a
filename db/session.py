"""
db/session.py

Engine and session factory for movie imports.

An import holds one session open for as long as the file takes to stream,
so connections are created with libpq TCP keepalives on top of the
application-level ping in ``app.services.keepalive``. The engine is built on
first use.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class EngineSettings:
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800
    tcp_keepalive_idle_seconds: int = 60
    application_name: str = "movie-import"
    echo: bool = False

    @classmethod
    def from_env(cls) -> EngineSettings:
        return cls(
            pool_size=max(1, _env_int("DB_POOL_SIZE", 5)),
            max_overflow=max(0, _env_int("DB_MAX_OVERFLOW", 10)),
            pool_recycle_seconds=_env_int("DB_POOL_RECYCLE", 1800),
            tcp_keepalive_idle_seconds=max(1, _env_int("DB_TCP_KEEPALIVE_IDLE", 60)),
            application_name=os.getenv("DB_APPLICATION_NAME", "movie-import").strip() or "movie-import",
            echo=os.getenv("SQL_ECHO", "").strip().lower() in {"1", "true", "yes", "on"},
        )

    def connect_args(self) -> dict[str, Any]:
        return {
            "application_name": self.application_name,
            "keepalives": 1,
            "keepalives_idle": self.tcp_keepalive_idle_seconds,
        }


def create_db_engine(
    database_url: str | None = None,
    settings: EngineSettings | None = None,
) -> Engine:
    url = database_url or resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    settings = settings or EngineSettings.from_env()
    return create_engine(
        url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_recycle=settings.pool_recycle_seconds,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        connect_args=settings.connect_args(),
    )


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def dispose_engine() -> None:
    """Close pooled connections and forget the shared engine."""
    global _engine, _session_factory
    engine, _engine = _engine, None
    _session_factory = None
    if engine is not None:
        engine.dispose()


def SessionLocal() -> Session:
    """Open a new session on the shared engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory()
