"""Transactional unit of work with conflict retry."""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from parimutuel_core.errors import ConcurrencyConflict

log = structlog.get_logger("unit_of_work")

T = TypeVar("T")

# PostgreSQL serialization_failure and deadlock_detected
CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})


def is_conflict(exc: BaseException) -> bool:
    """True if *exc* is a lost-update or serialization signal from the store."""
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        return sqlstate in CONFLICT_SQLSTATES
    return False


def run_in_transaction(
    session: Session,
    work: Callable[[], T],
    *,
    operation: str,
    max_attempts: int = 3,
) -> T:
    """Run ``work`` and commit it as one transaction.

    ``work`` must do all of its reads inside the call so that a retry
    recomputes from fresh state. Conflicts roll back and re-run the whole
    read-compute-write cycle up to ``max_attempts`` times; any other
    exception rolls back and propagates.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            result = work()
            session.commit()
            return result
        except (StaleDataError, DBAPIError) as exc:
            session.rollback()
            if not is_conflict(exc):
                raise
            if attempt >= max_attempts:
                log.error("transaction_conflict_exhausted", operation=operation, attempts=attempt)
                raise ConcurrencyConflict(
                    f"{operation} conflicted {attempt} times; giving up"
                ) from exc
            log.warning("transaction_conflict_retry", operation=operation, attempt=attempt)
        except Exception:
            session.rollback()
            raise
