"""Settlement engine — odds, stakes, resolution and cashout."""

from parimutuel_core.engine.cashout import CashoutPricer, CashoutResult, cashout_value, current_probability
from parimutuel_core.engine.odds import COMMISSION_RATE, Quote, quote, quote_market
from parimutuel_core.engine.resolution import ResolutionEngine, ResolutionSummary
from parimutuel_core.engine.retry import run_in_transaction
from parimutuel_core.engine.stake import StakeProcessor
from parimutuel_core.errors import (
    AlreadyResolved,
    BelowMinimumStake,
    CashoutUnavailable,
    ConcurrencyConflict,
    InsufficientFunds,
    InvalidOutcome,
    MarketNotFound,
    MarketNotOpen,
    PositionNotActive,
    RequestIdReused,
    SettlementError,
)

__all__ = [
    "AlreadyResolved",
    "BelowMinimumStake",
    "COMMISSION_RATE",
    "CashoutPricer",
    "CashoutResult",
    "CashoutUnavailable",
    "ConcurrencyConflict",
    "InsufficientFunds",
    "InvalidOutcome",
    "MarketNotFound",
    "MarketNotOpen",
    "PositionNotActive",
    "Quote",
    "RequestIdReused",
    "ResolutionEngine",
    "ResolutionSummary",
    "SettlementError",
    "StakeProcessor",
    "cashout_value",
    "current_probability",
    "quote",
    "quote_market",
    "run_in_transaction",
]
