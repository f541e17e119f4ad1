"""Odds Engine — pari-mutuel probability and payout multiplier.

Pure functions over a pool snapshot. The platform takes a commission on
profit only: a bettor receives ``commission_rate`` of the amount above
break-even, so the multiplier never drops below 1.0x.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from parimutuel_core.errors import InvalidOutcome
from parimutuel_core.money import ONE, ZERO, to_decimal, to_odds

COMMISSION_RATE = Decimal("0.65")


@dataclass(frozen=True)
class Quote:
    """Price of one outcome at a pool snapshot."""

    outcome: str
    probability: Decimal
    odds_multiplier: Decimal


def raw_odds(outcome_pool: Decimal, total_pool: Decimal, n_outcomes: int) -> Decimal:
    """Fair pari-mutuel odds; ``n_outcomes`` when there is no information yet."""
    if outcome_pool > 0 and total_pool > 0:
        return total_pool / outcome_pool
    return Decimal(n_outcomes)


def probability(outcome_pool: Decimal, total_pool: Decimal, n_outcomes: int) -> Decimal:
    """Share of the pool on one outcome; uniform over outcomes for an empty pool."""
    if total_pool > 0:
        return outcome_pool / total_pool
    return ONE / Decimal(n_outcomes)


def quote(
    outcome_pools: Mapping[str, Decimal],
    outcome: str,
    commission_rate: Decimal = COMMISSION_RATE,
) -> Quote:
    """Quote ``outcome`` against the given pools."""
    if outcome not in outcome_pools:
        raise InvalidOutcome(outcome, list(outcome_pools))

    pools = {k: to_decimal(v) for k, v in outcome_pools.items()}
    total = sum(pools.values(), ZERO)
    n = len(pools)
    pool = pools[outcome]

    multiplier = ONE + (raw_odds(pool, total, n) - ONE) * to_decimal(commission_rate)
    return Quote(
        outcome=outcome,
        probability=probability(pool, total, n),
        odds_multiplier=max(ONE, to_odds(multiplier)),
    )


def quote_market(
    outcome_pools: Mapping[str, Decimal],
    commission_rate: Decimal = COMMISSION_RATE,
) -> list[Quote]:
    """Quote every outcome, in the mapping's order."""
    return [quote(outcome_pools, o, commission_rate) for o in outcome_pools]
