"""Market Store — markets, outcome pools and positions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from parimutuel_core.db.tables.markets import MarketOutcomeRow, MarketRow, PositionRow
from parimutuel_core.errors import (
    InvalidMarket,
    InvalidOutcome,
    MarketNotFound,
    MarketNotOpen,
    PositionNotFound,
)
from parimutuel_core.money import ZERO, to_money

log = structlog.get_logger("market_store")


@dataclass(frozen=True)
class WinnerCredit:
    """A winning position and the amount credited for it."""

    position_id: int
    user_id: int
    amount: Decimal


def normalise_outcomes(outcomes: list[str]) -> list[str]:
    """Strip labels, drop blanks, and require at least two distinct labels."""
    labels = [o.strip() for o in outcomes if o and o.strip()]
    if len(labels) < 2:
        raise InvalidMarket("a market needs at least two outcomes")
    if len(set(labels)) != len(labels):
        raise InvalidMarket(f"outcome labels must be distinct: {labels}")
    return labels


class MarketStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    # ── Markets ───────────────────────────────────────────────

    def create_market(
        self,
        title: str,
        outcomes: list[str],
        category: str | None = None,
        end_date: datetime | None = None,
    ) -> MarketRow:
        if not title or not title.strip():
            raise InvalidMarket("a market needs a title")
        labels = normalise_outcomes(outcomes)
        market = MarketRow(
            title=title.strip(),
            category=category,
            status="OPEN",
            total_pool=ZERO,
            end_date=end_date,
            created_at=datetime.now(timezone.utc),
            outcome_rows=[
                MarketOutcomeRow(idx=i, label=label, pool=ZERO)
                for i, label in enumerate(labels)
            ],
        )
        self.session.add(market)
        self.session.flush()
        log.info("market_created", market_id=market.id, outcomes=labels)
        return market

    def get_market(self, market_id: int, for_update: bool = False) -> MarketRow:
        stmt = select(MarketRow).where(MarketRow.id == market_id).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        market = self.session.execute(stmt).scalar_one_or_none()
        if market is None:
            raise MarketNotFound(market_id)
        return market

    def list_markets(self, status: str | None = None) -> list[MarketRow]:
        stmt = select(MarketRow).order_by(MarketRow.id)
        if status is not None:
            stmt = stmt.where(MarketRow.status == status)
        return list(self.session.execute(stmt).scalars())

    def commit_pool_update(self, market: MarketRow, outcome: str, delta: Decimal) -> None:
        """Add ``delta`` to one outcome pool and to the total in the same write."""
        row = next((o for o in market.outcome_rows if o.label == outcome), None)
        if row is None:
            raise InvalidOutcome(outcome, market.outcomes)
        delta = to_money(delta)
        row.pool = row.pool + delta
        market.total_pool = market.total_pool + delta

    def commit_resolution(
        self,
        market: MarketRow,
        outcome: str,
        winner_credits: list[WinnerCredit],
        positions: list[PositionRow],
    ) -> None:
        """Mark positions WON/LOST and the market RESOLVED.

        Balance credits for ``winner_credits`` are the caller's job; this only
        records the terminal states.
        """
        if outcome not in market.outcomes:
            raise InvalidOutcome(outcome, market.outcomes)
        now = datetime.now(timezone.utc)
        paid = {c.position_id: c.amount for c in winner_credits}
        for position in positions:
            if position.id in paid:
                position.status = "WON"
                position.payout = paid[position.id]
            else:
                position.status = "LOST"
                position.payout = ZERO
            position.settled_at = now
        market.status = "RESOLVED"
        market.resolution_result = outcome
        market.resolved_at = now

    def close_market(self, market: MarketRow) -> None:
        """Stop accepting stakes and cashouts: OPEN -> CLOSED."""
        if market.status != "OPEN":
            raise MarketNotOpen(market.id, market.status)
        market.status = "CLOSED"

    # ── Positions ─────────────────────────────────────────────

    def add_position(
        self,
        user_id: int,
        market_id: int,
        side: str,
        amount: Decimal,
        odds_at_entry: Decimal,
        request_id: str | None = None,
    ) -> PositionRow:
        position = PositionRow(
            user_id=user_id,
            market_id=market_id,
            side=side,
            amount=amount,
            odds_at_entry=odds_at_entry,
            potential_payout=to_money(amount * odds_at_entry),
            status="ACTIVE",
            request_id=request_id,
            created_at=datetime.now(timezone.utc),
        )
        self.session.add(position)
        self.session.flush()
        return position

    def get_position(self, position_id: int, for_update: bool = False) -> PositionRow:
        stmt = (
            select(PositionRow)
            .where(PositionRow.id == position_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        position = self.session.execute(stmt).scalar_one_or_none()
        if position is None:
            raise PositionNotFound(position_id)
        return position

    def find_position_by_request(self, user_id: int, request_id: str) -> PositionRow | None:
        return self.session.execute(
            select(PositionRow).where(
                PositionRow.user_id == user_id,
                PositionRow.request_id == request_id,
            )
        ).scalar_one_or_none()

    def active_positions(self, market_id: int, for_update: bool = False) -> list[PositionRow]:
        stmt = (
            select(PositionRow)
            .where(PositionRow.market_id == market_id, PositionRow.status == "ACTIVE")
            .order_by(PositionRow.id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return list(self.session.execute(stmt).scalars())

    def positions_for_user(self, user_id: int, status: str | None = None) -> list[PositionRow]:
        stmt = select(PositionRow).where(PositionRow.user_id == user_id).order_by(PositionRow.id.desc())
        if status is not None:
            stmt = stmt.where(PositionRow.status == status)
        return list(self.session.execute(stmt).scalars())
