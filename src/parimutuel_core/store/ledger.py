"""Ledger Store — user balances and the append-only transaction log.

Nothing here commits. Callers run these methods inside
``run_in_transaction`` so that a balance change and its log entry land
together with whatever pool or position write they belong to.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from parimutuel_core.db.tables.ledger import TransactionRow, UserRow
from parimutuel_core.errors import InsufficientFunds, UserNotFound
from parimutuel_core.money import ZERO, to_money

log = structlog.get_logger("ledger_store")

TRANSACTION_TYPES = ("DEPOSIT", "WITHDRAW", "BET_PLACED", "PAYOUT", "CASHOUT")


class LedgerStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    # ── Users ─────────────────────────────────────────────────

    def create_user(
        self,
        name: str,
        email: str | None = None,
        document: str | None = None,
    ) -> UserRow:
        row = UserRow(
            name=name,
            email=email,
            document=document,
            balance=ZERO,
            created_at=datetime.now(timezone.utc),
        )
        self.session.add(row)
        self.session.flush()
        return row

    def get_user(self, user_id: int, for_update: bool = False) -> UserRow:
        stmt = select(UserRow).where(UserRow.id == user_id).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise UserNotFound(user_id)
        return row

    def get_balance(self, user_id: int, for_update: bool = False) -> Decimal:
        return self.get_user(user_id, for_update=for_update).balance

    # ── Balance mutation ──────────────────────────────────────

    def apply_delta(
        self,
        user_id: int,
        delta: Decimal,
        tx_type: str,
        *,
        status: str = "COMPLETED",
        reference: str | None = None,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TransactionRow:
        """Move a user's balance by ``delta`` and log it.

        Raises InsufficientFunds, leaving the row untouched, if the balance
        would go negative.
        """
        if tx_type not in TRANSACTION_TYPES:
            raise ValueError(f"unknown transaction type {tx_type!r}")
        delta = to_money(delta)
        if delta == 0:
            raise ValueError("balance delta must be non-zero")

        user = self.get_user(user_id, for_update=True)
        new_balance = user.balance + delta
        if new_balance < 0:
            raise InsufficientFunds(user_id, user.balance, -delta)
        user.balance = new_balance

        tx = TransactionRow(
            user_id=user_id,
            type=tx_type,
            amount=abs(delta),
            status=status,
            reference=reference,
            description=description,
            created_at=datetime.now(timezone.utc),
            metadata_=metadata,
        )
        self.session.add(tx)
        self.session.flush()
        log.debug(
            "balance_changed",
            user_id=user_id,
            tx_type=tx_type,
            delta=delta,
            balance=new_balance,
        )
        return tx

    def record_pending(
        self,
        user_id: int,
        amount: Decimal,
        tx_type: str,
        *,
        reference: str | None = None,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TransactionRow:
        """Log a transaction that has not touched the balance yet."""
        self.get_user(user_id)
        tx = TransactionRow(
            user_id=user_id,
            type=tx_type,
            amount=to_money(amount),
            status="PENDING",
            reference=reference,
            description=description,
            created_at=datetime.now(timezone.utc),
            metadata_=metadata,
        )
        self.session.add(tx)
        self.session.flush()
        return tx

    def settle_pending_credit(self, tx: TransactionRow) -> None:
        """Credit a PENDING incoming transaction and mark it COMPLETED."""
        if tx.status != "PENDING":
            raise ValueError(f"transaction {tx.id} is {tx.status}, not PENDING")
        user = self.get_user(tx.user_id, for_update=True)
        user.balance = user.balance + tx.amount
        tx.status = "COMPLETED"

    # ── Lookups ───────────────────────────────────────────────

    def find_by_reference(
        self,
        tx_type: str,
        reference: str,
        for_update: bool = False,
    ) -> TransactionRow | None:
        stmt = (
            select(TransactionRow)
            .where(TransactionRow.type == tx_type, TransactionRow.reference == reference)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def history(self, user_id: int, limit: int = 100) -> list[TransactionRow]:
        """Most recent transactions first."""
        return list(
            self.session.execute(
                select(TransactionRow)
                .where(TransactionRow.user_id == user_id)
                .order_by(TransactionRow.created_at.desc(), TransactionRow.id.desc())
                .limit(limit)
            ).scalars()
        )
