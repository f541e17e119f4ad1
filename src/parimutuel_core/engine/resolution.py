"""Resolution Engine — settle a market and pay its winners.

Winners are paid the ``potential_payout`` frozen on their position at stake
time, not a share of the final pool. The batch is one transaction: every
credit, every WON/LOST transition and the RESOLVED flag commit together or
not at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from parimutuel_core.config.schema import PolicyConfig
from parimutuel_core.engine.retry import run_in_transaction
from parimutuel_core.errors import AlreadyResolved, InvalidOutcome
from parimutuel_core.money import ZERO
from parimutuel_core.store.ledger import LedgerStore
from parimutuel_core.store.markets import MarketStore, WinnerCredit

log = structlog.get_logger("resolution_engine")


@dataclass(frozen=True)
class ResolutionSummary:
    market_id: int
    winning_outcome: str
    winners: int
    losers: int
    total_paid: Decimal
    total_pool: Decimal
    credits: list[WinnerCredit] = field(default_factory=list)

    @property
    def platform_residual(self) -> Decimal:
        """Pool left to the platform; negative if frozen odds overpaid the pool."""
        return self.total_pool - self.total_paid


class ResolutionEngine:
    def __init__(self, policy: PolicyConfig | None = None) -> None:
        self.policy = policy or PolicyConfig()

    def resolve_market(self, session: Session, market_id: int, winning_outcome: str) -> ResolutionSummary:
        """Resolve ``market_id`` as ``winning_outcome``.

        A market that is already RESOLVED raises AlreadyResolved whatever the
        outcome asked for. If two resolvers race, the loser's retry re-reads
        the market and gets AlreadyResolved too.
        """

        def work() -> ResolutionSummary:
            markets = MarketStore(session)
            ledger = LedgerStore(session)

            market = markets.get_market(market_id, for_update=True)
            if market.status == "RESOLVED":
                raise AlreadyResolved(market_id, market.resolution_result)
            if winning_outcome not in market.outcomes:
                raise InvalidOutcome(winning_outcome, market.outcomes)

            positions = markets.active_positions(market_id, for_update=True)
            credits = [
                WinnerCredit(position_id=p.id, user_id=p.user_id, amount=p.potential_payout)
                for p in positions
                if p.side == winning_outcome
            ]

            # Lock users in id order.
            for credit in sorted(credits, key=lambda c: (c.user_id, c.position_id)):
                ledger.apply_delta(
                    credit.user_id,
                    credit.amount,
                    "PAYOUT",
                    reference=f"position:{credit.position_id}",
                    description=f"Payout for {market.title}: {winning_outcome}",
                    metadata={"market_id": market_id, "position_id": credit.position_id},
                )

            markets.commit_resolution(market, winning_outcome, credits, positions)
            return ResolutionSummary(
                market_id=market_id,
                winning_outcome=winning_outcome,
                winners=len(credits),
                losers=len(positions) - len(credits),
                total_paid=sum((c.amount for c in credits), ZERO),
                total_pool=market.total_pool,
                credits=credits,
            )

        summary = run_in_transaction(
            session,
            work,
            operation="resolve_market",
            max_attempts=self.policy.max_conflict_retries,
        )
        log.info(
            "market_resolved",
            market_id=market_id,
            winning_outcome=winning_outcome,
            winners=summary.winners,
            losers=summary.losers,
            total_paid=summary.total_paid,
            total_pool=summary.total_pool,
        )
        if summary.platform_residual < 0:
            log.warning(
                "resolution_paid_above_pool",
                market_id=market_id,
                shortfall=-summary.platform_residual,
            )
        return summary
