"""Database engine and session factory for the settlement store."""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from parimutuel_core.config.schema import DatabaseConfig

_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None

_PG_PREFIXES = ("postgresql://", "postgres://")


def database_url(url: str) -> str:
    """Pin bare PostgreSQL URLs to the psycopg (v3) driver."""
    for prefix in _PG_PREFIXES:
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def init_engine(url: str, **kwargs) -> Engine:
    """Create the process-wide engine and session factory.

    Sessions keep their objects loaded after commit: every engine operation
    commits its own transaction and then hands the committed rows back.
    """
    global _engine, _SessionLocal
    _engine = create_engine(database_url(url), **kwargs)
    _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False)
    return _engine


def init_engine_from_config(config: DatabaseConfig) -> Engine:
    return init_engine(
        config.url,
        pool_size=config.pool_size,
        pool_pre_ping=config.pool_pre_ping,
        echo=config.echo,
    )


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("no database engine; call init_engine() first")
    return _engine


def get_session() -> Generator[Session, None, None]:
    """Yield a session from the shared factory and close it afterwards."""
    if _SessionLocal is None:
        raise RuntimeError("no database engine; call init_engine() first")
    session = _SessionLocal()
    try:
        yield session
    finally:
        session.close()
