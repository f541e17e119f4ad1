"""Market read models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

MarketStatus = Literal["OPEN", "CLOSED", "RESOLVED"]


class OutcomeQuote(BaseModel):
    """Display quote for one outcome."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    outcome: str
    probability: Decimal
    odds_multiplier: Decimal
    pool: Decimal


class Market(BaseModel):
    """A market as committed in the store."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    title: str
    category: str | None = None
    outcomes: list[str] = Field(min_length=2)
    outcome_pools: dict[str, Decimal]
    total_pool: Decimal
    status: MarketStatus = "OPEN"
    resolution_result: str | None = None
    end_date: datetime | None = None
    created_at: datetime | None = None
    resolved_at: datetime | None = None
    quotes: list[OutcomeQuote] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_consistency(self) -> "Market":
        if set(self.outcome_pools) != set(self.outcomes):
            raise ValueError("outcome_pools keys must match outcomes")
        if sum(self.outcome_pools.values(), Decimal("0")) != self.total_pool:
            raise ValueError("total_pool must equal the sum of outcome_pools")
        if self.status == "RESOLVED":
            if self.resolution_result not in self.outcomes:
                raise ValueError("resolved market needs a resolution_result from outcomes")
        elif self.resolution_result is not None:
            raise ValueError("resolution_result is only set on resolved markets")
        return self
