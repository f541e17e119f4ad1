"""Deposits — create a PIX charge, credit the balance once it is confirmed."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy.orm import Session

from parimutuel_core.config.schema import PolicyConfig
from parimutuel_core.db.tables.ledger import TransactionRow
from parimutuel_core.engine.retry import run_in_transaction
from parimutuel_core.errors import BelowMinimumDeposit, ChargeNotFound
from parimutuel_core.money import to_money
from parimutuel_core.payments.gateway import Customer, PaymentGateway
from parimutuel_core.store.ledger import LedgerStore

log = structlog.get_logger("deposits")

PAID_STATUSES = frozenset({"PAID", "COMPLETED", "APPROVED", "SUCCEEDED"})
WEBHOOK_ID_KEYS = ("id", "transactionId", "orderId", "uuid")


@dataclass(frozen=True)
class PendingDeposit:
    transaction_id: int
    charge_id: str
    amount: Decimal
    qr_payload: str
    qr_image: str | None = None


@dataclass(frozen=True)
class WebhookEvent:
    charge_id: str | None
    status: str

    @property
    def paid(self) -> bool:
        return self.status in PAID_STATUSES


def parse_webhook(body: dict[str, Any]) -> WebhookEvent:
    """Pull the charge id and normalised status out of a gateway notification."""
    charge_id = next((body[k] for k in WEBHOOK_ID_KEYS if body.get(k)), None)
    return WebhookEvent(
        charge_id=str(charge_id) if charge_id is not None else None,
        status=str(body.get("status") or "").upper(),
    )


class DepositService:
    def __init__(self, gateway: PaymentGateway, policy: PolicyConfig | None = None) -> None:
        self.gateway = gateway
        self.policy = policy or PolicyConfig()

    async def create_deposit(
        self,
        session: Session,
        user_id: int,
        amount: Decimal | float | str,
        description: str | None = None,
    ) -> PendingDeposit:
        """Open a PIX charge and log it as a PENDING deposit; the balance is untouched."""
        amount = to_money(amount)
        if amount < self.policy.minimum_deposit:
            raise BelowMinimumDeposit(amount, self.policy.minimum_deposit)

        ledger = LedgerStore(session)
        user = ledger.get_user(user_id)
        customer = Customer(name=user.name, email=user.email, document=user.document)
        # No transaction may stay open while the gateway call is in flight.
        session.rollback()
        charge = await self.gateway.create_charge(amount, customer)

        tx = run_in_transaction(
            session,
            lambda: ledger.record_pending(
                user_id,
                amount,
                "DEPOSIT",
                reference=charge.charge_id,
                description=description or "PIX deposit",
                metadata={"charge_id": charge.charge_id},
            ),
            operation="create_deposit",
            max_attempts=self.policy.max_conflict_retries,
        )
        log.info("deposit_created", user_id=user_id, charge_id=charge.charge_id, amount=amount)
        return PendingDeposit(
            transaction_id=tx.id,
            charge_id=charge.charge_id,
            amount=amount,
            qr_payload=charge.qr_payload,
            qr_image=charge.qr_image,
        )

    def confirm_deposit(self, session: Session, charge_id: str) -> TransactionRow:
        """Credit a confirmed charge. Confirming the same charge again is a no-op."""

        def work() -> tuple[TransactionRow, bool]:
            ledger = LedgerStore(session)
            tx = ledger.find_by_reference("DEPOSIT", charge_id, for_update=True)
            if tx is None:
                raise ChargeNotFound(charge_id)
            if tx.status == "COMPLETED":
                return tx, False
            ledger.settle_pending_credit(tx)
            return tx, True

        tx, credited = run_in_transaction(
            session,
            work,
            operation="confirm_deposit",
            max_attempts=self.policy.max_conflict_retries,
        )
        if credited:
            log.info("deposit_confirmed", user_id=tx.user_id, charge_id=charge_id, amount=tx.amount)
        else:
            log.info("deposit_already_confirmed", charge_id=charge_id)
        return tx
