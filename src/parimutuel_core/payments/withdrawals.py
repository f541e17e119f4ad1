"""Withdrawals — debit the balance and queue a PIX payout request."""

from __future__ import annotations

from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from parimutuel_core.config.schema import PolicyConfig
from parimutuel_core.db.tables.ledger import TransactionRow
from parimutuel_core.engine.retry import run_in_transaction
from parimutuel_core.errors import BelowMinimumWithdrawal, InvalidPixKey, MissingDocument
from parimutuel_core.money import to_money
from parimutuel_core.store.ledger import LedgerStore

log = structlog.get_logger("withdrawals")

PIX_KEY_TYPES = ("CPF", "CNPJ", "EMAIL", "PHONE", "RANDOM")


class WithdrawalService:
    def __init__(self, policy: PolicyConfig | None = None) -> None:
        self.policy = policy or PolicyConfig()

    def request_withdrawal(
        self,
        session: Session,
        user_id: int,
        amount: Decimal | float | str,
        pix_key: str,
        pix_key_type: str = "CPF",
    ) -> TransactionRow:
        """Debit ``amount`` plus the withdrawal fee and log a PENDING WITHDRAW.

        The logged amount is the full debit; the requested amount and fee are
        kept in the metadata.
        """
        amount = to_money(amount)
        if amount < self.policy.minimum_withdrawal:
            raise BelowMinimumWithdrawal(amount, self.policy.minimum_withdrawal)
        if not pix_key or not pix_key.strip():
            raise InvalidPixKey("a PIX key is required")
        if pix_key_type not in PIX_KEY_TYPES:
            raise InvalidPixKey(f"pix_key_type must be one of {PIX_KEY_TYPES}")
        fee = to_money(self.policy.withdrawal_fee)

        def work() -> TransactionRow:
            ledger = LedgerStore(session)
            user = ledger.get_user(user_id, for_update=True)
            if not user.document or not user.document.strip():
                raise MissingDocument(f"user {user_id} needs a CPF on file to withdraw")
            return ledger.apply_delta(
                user_id,
                -(amount + fee),
                "WITHDRAW",
                status="PENDING",
                description=f"PIX withdrawal (fee {fee})",
                metadata={
                    "requested": str(amount),
                    "fee": str(fee),
                    "pix_key": pix_key.strip(),
                    "pix_key_type": pix_key_type,
                },
            )

        tx = run_in_transaction(
            session,
            work,
            operation="request_withdrawal",
            max_attempts=self.policy.max_conflict_retries,
        )
        log.info("withdrawal_requested", user_id=user_id, amount=amount, fee=fee)
        return tx
