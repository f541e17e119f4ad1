"""Stake Processor — place a position and move the money in one transaction."""

from __future__ import annotations

from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from parimutuel_core.config.schema import PolicyConfig
from parimutuel_core.db.tables.markets import PositionRow
from parimutuel_core.engine.odds import quote
from parimutuel_core.engine.retry import run_in_transaction
from parimutuel_core.errors import (
    BelowMinimumStake,
    InsufficientFunds,
    InvalidOutcome,
    MarketNotOpen,
    RequestIdReused,
)
from parimutuel_core.money import to_money
from parimutuel_core.store.ledger import LedgerStore
from parimutuel_core.store.markets import MarketStore

log = structlog.get_logger("stake_processor")


class StakeProcessor:
    """Places stakes on open markets."""

    def __init__(self, policy: PolicyConfig | None = None) -> None:
        self.policy = policy or PolicyConfig()

    def place_stake(
        self,
        session: Session,
        user_id: int,
        market_id: int,
        outcome: str,
        amount: Decimal | float | str,
        request_id: str | None = None,
    ) -> PositionRow:
        """Stake ``amount`` on ``outcome`` at the odds of the pool as locked.

        The quote, the debit, the position and the pool increment are all
        computed from and written against the same locked market row, so two
        concurrent stakes on one market serialize and neither prices off a
        stale pool. A repeated ``request_id`` with the same market, outcome and
        amount returns the position already placed under it; any other reuse
        raises RequestIdReused.
        """
        amount = to_money(amount)
        if amount <= 0 or amount < self.policy.minimum_stake:
            raise BelowMinimumStake(amount, self.policy.minimum_stake)

        def work() -> PositionRow:
            markets = MarketStore(session)
            ledger = LedgerStore(session)

            if request_id is not None:
                existing = markets.find_position_by_request(user_id, request_id)
                if existing is not None:
                    if (existing.market_id, existing.side, existing.amount) != (market_id, outcome, amount):
                        raise RequestIdReused(request_id, existing.id)
                    log.info("stake_replayed", position_id=existing.id, request_id=request_id)
                    return existing

            # Lock order: market, then user.
            market = markets.get_market(market_id, for_update=True)
            if market.status != "OPEN":
                raise MarketNotOpen(market_id, market.status)
            if outcome not in market.outcomes:
                raise InvalidOutcome(outcome, market.outcomes)

            balance = ledger.get_balance(user_id, for_update=True)
            if balance < amount:
                raise InsufficientFunds(user_id, balance, amount)

            q = quote(market.outcome_pools, outcome, self.policy.commission_rate)
            position = markets.add_position(
                user_id=user_id,
                market_id=market_id,
                side=outcome,
                amount=amount,
                odds_at_entry=q.odds_multiplier,
                request_id=request_id,
            )
            ledger.apply_delta(
                user_id,
                -amount,
                "BET_PLACED",
                reference=f"position:{position.id}",
                description=f"Stake on {market.title}: {outcome}",
                metadata={
                    "market_id": market_id,
                    "position_id": position.id,
                    "outcome": outcome,
                    "odds_at_entry": str(q.odds_multiplier),
                },
            )
            markets.commit_pool_update(market, outcome, amount)
            return position

        position = run_in_transaction(
            session,
            work,
            operation="place_stake",
            max_attempts=self.policy.max_conflict_retries,
        )
        log.info(
            "stake_placed",
            position_id=position.id,
            user_id=user_id,
            market_id=market_id,
            outcome=outcome,
            amount=amount,
            odds_at_entry=position.odds_at_entry,
            potential_payout=position.potential_payout,
        )
        return position
