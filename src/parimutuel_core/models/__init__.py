"""Pydantic domain models."""

from parimutuel_core.models.ledger import Balance, Transaction
from parimutuel_core.models.market import Market, OutcomeQuote
from parimutuel_core.models.position import Position

__all__ = [
    "Balance",
    "Market",
    "OutcomeQuote",
    "Position",
    "Transaction",
]
