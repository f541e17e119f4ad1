"""Shared test fixtures."""

from decimal import Decimal

import pytest
from sqlalchemy import BigInteger, Integer, JSON, create_engine, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

import parimutuel_core.db.tables  # noqa: F401
from parimutuel_core.db.base import Base
from parimutuel_core.store import LedgerStore, MarketStore


def _create_sqlite_schema(engine):
    """Create all tables on a SQLite engine with foreign keys enforced.

    Patches JSONB→JSON and BigInteger→Integer for SQLite compatibility.
    """

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _rec):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    # SQLite doesn't support schemas, JSONB, or BigInteger autoincrement
    for table in Base.metadata.tables.values():
        table.schema = None
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
            if isinstance(col.type, BigInteger):
                col.type = Integer()

    Base.metadata.create_all(engine)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with all tables created.

    StaticPool keeps one connection so the API's worker thread sees the
    same database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _create_sqlite_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine; each session gets its own connection."""
    engine = create_engine(f"sqlite:///{tmp_path / 'settlement.db'}")
    _create_sqlite_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = Session(db_engine, expire_on_commit=False)
    yield session
    session.close()


# ── Helpers ───────────────────────────────────────────────────


def make_user(session, name="ana", balance="0", document="12345678909"):
    """Create a user and fund it with a completed deposit."""
    ledger = LedgerStore(session)
    user = ledger.create_user(name, email=f"{name}@example.com", document=document)
    if Decimal(balance) > 0:
        ledger.apply_delta(user.id, Decimal(balance), "DEPOSIT", reference=f"seed:{user.id}")
    session.commit()
    return user.id


def make_market(session, outcomes=("YES", "NO"), pools=None, title="Will it rain?"):
    """Create an OPEN market, optionally seeding its pools directly."""
    markets = MarketStore(session)
    market = markets.create_market(title, list(outcomes))
    for outcome, amount in (pools or {}).items():
        markets.commit_pool_update(market, outcome, Decimal(amount))
    session.commit()
    return market.id


@pytest.fixture
def funded_user(db_session):
    return make_user(db_session, "ana", "1000.00")


@pytest.fixture
def scenario_a_market(db_session):
    """YES=3000, NO=1000, total 4000."""
    return make_market(db_session, pools={"YES": "3000", "NO": "1000"})
