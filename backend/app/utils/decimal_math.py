from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


MONEY_QUANT = Decimal("0.01")
PCT_QUANT = Decimal("0.000001")
SCORE_QUANT = Decimal("0.1")


def money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def pct(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(PCT_QUANT, rounding=ROUND_HALF_UP)


def score(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(SCORE_QUANT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, *, default: Decimal = Decimal("0")) -> Decimal:
    """Normalise a raw aggregate (None, float, int, Decimal) into a Decimal."""
    if value is None:
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        return Decimal("0")
    return numerator / denominator


def safe_pct(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        return pct(0)
    return pct((numerator / denominator) * Decimal("100"))


def growth_pct(current: Decimal, previous: Decimal) -> Decimal | None:
    if previous == 0:
        return None
    return pct(((current - previous) / previous) * Decimal("100"))
