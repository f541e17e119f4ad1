"""Position (bet) read model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PositionStatus = Literal["ACTIVE", "WON", "LOST", "CASHED_OUT"]


class Position(BaseModel):
    """A stake on one side of a market."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    user_id: int
    market_id: int
    side: str
    amount: Decimal = Field(gt=0)
    odds_at_entry: Decimal = Field(ge=1)
    potential_payout: Decimal
    payout: Decimal | None = None
    status: PositionStatus = "ACTIVE"
    request_id: str | None = None
    created_at: datetime
    settled_at: datetime | None = None
