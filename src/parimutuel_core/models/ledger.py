"""Ledger read models — balances and transaction log entries."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TransactionType = Literal["DEPOSIT", "WITHDRAW", "BET_PLACED", "PAYOUT", "CASHOUT"]
TransactionStatus = Literal["PENDING", "COMPLETED", "FAILED"]


class Balance(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: int
    balance: Decimal = Field(ge=0)


class Transaction(BaseModel):
    """One immutable entry of a user's transaction log."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    user_id: int
    type: TransactionType
    amount: Decimal = Field(gt=0)
    status: TransactionStatus
    reference: str | None = None
    description: str | None = None
    created_at: datetime
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_")
