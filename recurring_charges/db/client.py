"""Process-wide SQLAlchemy engine for subscription persistence.

The engine is built lazily from ``DATABASE_URL`` (or an explicit
``database_url``) and reused until :func:`dispose_engine`. Asking for a
different URL while one is bound is an error, so one process never writes
to two databases by accident.

    with session_scope() as session:
        upsert_subscriptions(session, user_id=..., subscriptions=...)
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


@dataclass(frozen=True, slots=True)
class _Binding:
    url: str
    engine: Engine
    sessions: sessionmaker[Session]


_binding: _Binding | None = None


def _bind(database_url: str | None) -> _Binding:
    global _binding
    url = database_url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("no database configured: pass --database-url or set DATABASE_URL")

    if _binding is None:
        engine = create_engine(url, pool_pre_ping=True)
        _binding = _Binding(
            url=url,
            engine=engine,
            sessions=sessionmaker(bind=engine, expire_on_commit=False),
        )
    elif _binding.url != url:
        raise RuntimeError(
            f"database engine already bound to another URL; dispose_engine() before using {url!r}"
        )
    return _binding


def get_engine(*, database_url: str | None = None) -> Engine:
    return _bind(database_url).engine


def get_session(*, database_url: str | None = None) -> Session:
    """New session on the shared engine; the caller owns commit and close."""

    return _bind(database_url).sessions()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Commit on clean exit, roll back on error, always close."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    """Drop the shared engine and its pooled connections."""

    global _binding
    if _binding is not None:
        _binding.engine.dispose()
        _binding = None


__all__ = ["get_engine", "get_session", "session_scope", "dispose_engine"]
