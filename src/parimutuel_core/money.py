"""Decimal money and odds helpers shared by the stores and the engine."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ODDS_STEP = Decimal("0.0001")
ZERO = Decimal("0.00")
ONE = Decimal("1")


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Coerce to Decimal; floats go through ``str`` to avoid binary artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Quantize to cents, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_odds(value: Decimal) -> Decimal:
    """Quantize a multiplier to four places, half-up."""
    return value.quantize(ODDS_STEP, rounding=ROUND_HALF_UP)
