"""Import all table modules so Base.metadata knows about them."""

from parimutuel_core.db.tables.ledger import TransactionRow, UserRow
from parimutuel_core.db.tables.markets import MarketOutcomeRow, MarketRow, PositionRow

__all__ = [
    "MarketOutcomeRow",
    "MarketRow",
    "PositionRow",
    "TransactionRow",
    "UserRow",
]
