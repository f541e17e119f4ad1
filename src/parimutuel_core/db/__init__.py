"""Database layer — engine, session, ORM base."""

from parimutuel_core.db.base import Base
from parimutuel_core.db.engine import database_url, get_engine, get_session, init_engine, init_engine_from_config

__all__ = ["Base", "database_url", "get_engine", "get_session", "init_engine", "init_engine_from_config"]
