"""SQLAlchemy ORM models for markets, their outcome pools and positions."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import DateTime

from parimutuel_core.db.base import Base

SCHEMA = "parimutuel"


class MarketRow(Base):
    __tablename__ = "markets"
    __table_args__ = {"schema": SCHEMA}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="OPEN")
    total_pool: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    resolution_result: Mapped[str | None] = mapped_column(Text, nullable=True)
    end_date: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    outcome_rows: Mapped[list[MarketOutcomeRow]] = relationship(
        back_populates="market",
        order_by="MarketOutcomeRow.idx",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def outcomes(self) -> list[str]:
        return [o.label for o in self.outcome_rows]

    @property
    def outcome_pools(self) -> dict[str, Decimal]:
        return {o.label: o.pool for o in self.outcome_rows}


class MarketOutcomeRow(Base):
    """One outcome of a market, in creation order, with its cumulative pool."""

    __tablename__ = "market_outcomes"
    __table_args__ = (
        UniqueConstraint("market_id", "idx"),
        UniqueConstraint("market_id", "label"),
        CheckConstraint("pool >= 0", name="ck_market_outcomes_pool_non_negative"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    market_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(f"{SCHEMA}.markets.id", ondelete="CASCADE"),
        nullable=False,
    )
    idx: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[str] = mapped_column(Text, nullable=False)
    pool: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))

    market: Mapped[MarketRow] = relationship(back_populates="outcome_rows")


class PositionRow(Base):
    __tablename__ = "positions"
    __table_args__ = (
        UniqueConstraint("user_id", "request_id"),
        Index("ix_positions_market_status", "market_id", "status"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(f"{SCHEMA}.users.id"),
        nullable=False,
    )
    market_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(f"{SCHEMA}.markets.id"),
        nullable=False,
    )
    side: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    odds_at_entry: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    potential_payout: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    payout: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="ACTIVE")
    request_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    settled_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
