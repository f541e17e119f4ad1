"""Cashout Pricer — early exit priced off the current pool."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from parimutuel_core.config.schema import PolicyConfig
from parimutuel_core.engine.retry import run_in_transaction
from parimutuel_core.errors import CashoutUnavailable, MarketNotOpen, PositionNotActive
from parimutuel_core.money import ONE, ZERO, to_decimal, to_money
from parimutuel_core.store.ledger import LedgerStore
from parimutuel_core.store.markets import MarketStore

log = structlog.get_logger("cashout_pricer")

CASHOUT_FEE = Decimal("0.20")


@dataclass(frozen=True)
class CashoutResult:
    position_id: int
    user_id: int
    amount: Decimal
    balance: Decimal
    transaction_id: int


def current_probability(outcome_pools: Mapping[str, Decimal], side: str) -> Decimal:
    """Share of the pool on ``side``; zero for an empty pool."""
    total = sum((to_decimal(v) for v in outcome_pools.values()), ZERO)
    if total <= 0:
        return ZERO
    return to_decimal(outcome_pools.get(side, ZERO)) / total


def cashout_value(
    potential_payout: Decimal,
    outcome_pools: Mapping[str, Decimal],
    side: str,
    cashout_fee: Decimal = CASHOUT_FEE,
) -> Decimal:
    """``potential_payout × current probability × (1 − fee)``, in cents."""
    prob = current_probability(outcome_pools, side)
    return to_money(to_decimal(potential_payout) * prob * (ONE - to_decimal(cashout_fee)))


class CashoutPricer:
    def __init__(self, policy: PolicyConfig | None = None) -> None:
        self.policy = policy or PolicyConfig()

    def quote_cashout(self, session: Session, position_id: int) -> Decimal:
        """Value a cashout would pay right now, or 0 if none is available."""
        markets = MarketStore(session)
        position = markets.get_position(position_id)
        market = markets.get_market(position.market_id)
        if position.status != "ACTIVE" or market.status != "OPEN":
            return ZERO
        return cashout_value(
            position.potential_payout, market.outcome_pools, position.side, self.policy.cashout_fee,
        )

    def cashout(self, session: Session, position_id: int) -> CashoutResult:
        """Close an ACTIVE position on an OPEN market at the current cashout value."""

        def work() -> CashoutResult:
            markets = MarketStore(session)
            ledger = LedgerStore(session)

            # Lock order: market, then position, then user.
            market_id = markets.get_position(position_id).market_id
            market = markets.get_market(market_id, for_update=True)
            position = markets.get_position(position_id, for_update=True)
            if position.status != "ACTIVE":
                raise PositionNotActive(position_id, position.status)
            if market.status != "OPEN":
                raise MarketNotOpen(market.id, market.status)

            value = cashout_value(
                position.potential_payout, market.outcome_pools, position.side, self.policy.cashout_fee,
            )
            if value <= 0:
                raise CashoutUnavailable(f"position {position_id} has no cashout value")

            tx = ledger.apply_delta(
                position.user_id,
                value,
                "CASHOUT",
                reference=f"position:{position_id}",
                description=f"Cashout: {market.title}",
                metadata={"market_id": market.id, "position_id": position_id},
            )
            position.status = "CASHED_OUT"
            position.payout = value
            position.settled_at = datetime.now(timezone.utc)
            return CashoutResult(
                position_id=position_id,
                user_id=position.user_id,
                amount=value,
                balance=ledger.get_balance(position.user_id),
                transaction_id=tx.id,
            )

        result = run_in_transaction(
            session,
            work,
            operation="cashout",
            max_attempts=self.policy.max_conflict_retries,
        )
        log.info(
            "cashout_completed",
            position_id=position_id,
            user_id=result.user_id,
            amount=result.amount,
        )
        return result
