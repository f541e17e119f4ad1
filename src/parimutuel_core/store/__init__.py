"""Ledger and market stores — row access inside a caller-owned transaction."""

from parimutuel_core.store.ledger import LedgerStore
from parimutuel_core.store.markets import MarketStore, WinnerCredit

__all__ = ["LedgerStore", "MarketStore", "WinnerCredit"]
