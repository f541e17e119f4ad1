"""Create parimutuel schema with users, transactions, markets, outcomes and positions.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SCHEMA = "parimutuel"


def upgrade() -> None:
    op.execute(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}")

    # users
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column("document", sa.Text, nullable=True),
        sa.Column("balance", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        schema=SCHEMA,
    )

    # transactions (append-only)
    op.create_table(
        "transactions",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey(f"{SCHEMA}.users.id"), nullable=False),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="COMPLETED"),
        sa.Column("reference", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", JSONB, nullable=True),
        sa.UniqueConstraint("type", "reference"),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_transactions_user_created", "transactions", ["user_id", "created_at"], schema=SCHEMA,
    )

    # markets
    op.create_table(
        "markets",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("category", sa.Text, nullable=True),
        sa.Column("status", sa.Text, nullable=False, server_default="OPEN"),
        sa.Column("total_pool", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("resolution_result", sa.Text, nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        schema=SCHEMA,
    )

    # market_outcomes (ordered, one pool per outcome)
    op.create_table(
        "market_outcomes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "market_id", sa.Integer,
            sa.ForeignKey(f"{SCHEMA}.markets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("idx", sa.Integer, nullable=False),
        sa.Column("label", sa.Text, nullable=False),
        sa.Column("pool", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.UniqueConstraint("market_id", "idx"),
        sa.UniqueConstraint("market_id", "label"),
        sa.CheckConstraint("pool >= 0", name="ck_market_outcomes_pool_non_negative"),
        schema=SCHEMA,
    )

    # positions
    op.create_table(
        "positions",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey(f"{SCHEMA}.users.id"), nullable=False),
        sa.Column("market_id", sa.Integer, sa.ForeignKey(f"{SCHEMA}.markets.id"), nullable=False),
        sa.Column("side", sa.Text, nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("odds_at_entry", sa.Numeric(18, 4), nullable=False),
        sa.Column("potential_payout", sa.Numeric(18, 2), nullable=False),
        sa.Column("payout", sa.Numeric(18, 2), nullable=True),
        sa.Column("status", sa.Text, nullable=False, server_default="ACTIVE"),
        sa.Column("request_id", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.UniqueConstraint("user_id", "request_id"),
        sa.CheckConstraint("amount > 0", name="ck_positions_amount_positive"),
        sa.CheckConstraint("odds_at_entry >= 1", name="ck_positions_odds_at_least_one"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_positions_market_status", "positions", ["market_id", "status"], schema=SCHEMA,
    )


def downgrade() -> None:
    op.drop_index("ix_positions_market_status", table_name="positions", schema=SCHEMA)
    op.drop_table("positions", schema=SCHEMA)
    op.drop_table("market_outcomes", schema=SCHEMA)
    op.drop_table("markets", schema=SCHEMA)
    op.drop_index("ix_transactions_user_created", table_name="transactions", schema=SCHEMA)
    op.drop_table("transactions", schema=SCHEMA)
    op.drop_table("users", schema=SCHEMA)
