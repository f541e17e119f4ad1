"""Settlement error taxonomy.

Every error here is raised before the enclosing transaction commits, so a
caller that sees one can rely on balances, pools and positions being exactly
as they were before the call.
"""

from __future__ import annotations

from decimal import Decimal


class SettlementError(Exception):
    """Base class for all expected engine failures."""

    code = "settlement_error"


# ── Validation ────────────────────────────────────────────────


class ValidationError(SettlementError):
    code = "validation_error"


class InvalidMarket(ValidationError):
    code = "invalid_market"


class InvalidOutcome(ValidationError):
    code = "invalid_outcome"

    def __init__(self, outcome: str, outcomes: list[str]) -> None:
        super().__init__(f"outcome {outcome!r} is not one of {outcomes}")
        self.outcome = outcome
        self.outcomes = outcomes


class MarketNotOpen(ValidationError):
    code = "market_not_open"

    def __init__(self, market_id: int, status: str) -> None:
        super().__init__(f"market {market_id} is {status}, not OPEN")
        self.market_id = market_id
        self.status = status


class BelowMinimum(ValidationError):
    code = "below_minimum"
    what = "amount"

    def __init__(self, amount: Decimal, minimum: Decimal) -> None:
        super().__init__(f"{self.what} {amount} is below the minimum of {minimum}")
        self.amount = amount
        self.minimum = minimum


class BelowMinimumStake(BelowMinimum):
    code = "below_minimum_stake"
    what = "stake"


class BelowMinimumDeposit(BelowMinimum):
    code = "below_minimum_deposit"
    what = "deposit"


class BelowMinimumWithdrawal(BelowMinimum):
    code = "below_minimum_withdrawal"
    what = "withdrawal"


class PositionNotActive(ValidationError):
    code = "position_not_active"

    def __init__(self, position_id: int, status: str) -> None:
        super().__init__(f"position {position_id} is {status}, not ACTIVE")
        self.position_id = position_id
        self.status = status


class RequestIdReused(ValidationError):
    code = "request_id_reused"

    def __init__(self, request_id: str, position_id: int) -> None:
        super().__init__(
            f"request_id {request_id!r} already placed position {position_id} with different terms"
        )
        self.request_id = request_id
        self.position_id = position_id


class CashoutUnavailable(ValidationError):
    code = "cashout_unavailable"


class MissingDocument(ValidationError):
    code = "missing_document"


class InvalidPixKey(ValidationError):
    code = "invalid_pix_key"


# ── Not found ─────────────────────────────────────────────────


class NotFound(SettlementError):
    code = "not_found"
    entity = "entity"

    def __init__(self, key: object) -> None:
        super().__init__(f"{self.entity} {key} not found")
        self.key = key


class MarketNotFound(NotFound):
    code = "market_not_found"
    entity = "market"


class PositionNotFound(NotFound):
    code = "position_not_found"
    entity = "position"


class UserNotFound(NotFound):
    code = "user_not_found"
    entity = "user"


class ChargeNotFound(NotFound):
    code = "charge_not_found"
    entity = "charge"


# ── Funds / conflicts / gateway ───────────────────────────────


class InsufficientFunds(SettlementError):
    code = "insufficient_funds"

    def __init__(self, user_id: int, balance: Decimal, required: Decimal) -> None:
        super().__init__(f"user {user_id} has {balance}, needs {required}")
        self.user_id = user_id
        self.balance = balance
        self.required = required


class AlreadyResolved(SettlementError):
    code = "already_resolved"

    def __init__(self, market_id: int, result: str | None) -> None:
        super().__init__(f"market {market_id} was already resolved as {result!r}")
        self.market_id = market_id
        self.result = result


class ConcurrencyConflict(SettlementError):
    code = "concurrency_conflict"


class GatewayError(SettlementError):
    code = "gateway_error"
