from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Sequence

from app.services.errors import InsufficientDataError, InvalidRangeError
from app.services.ledger_reader import LedgerReader, ProductionQuery, SalesQuery
from app.utils.decimal_math import money


logger = logging.getLogger("factorybooks.aggregation")


class Granularity(str, enum.Enum):
    day = "day"
    week = "week"
    month = "month"


@dataclass(frozen=True)
class TimeSeriesPoint:
    period: str
    period_start: date
    revenue: Decimal
    quantity: int
    transactions: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "period_start": self.period_start.isoformat(),
            "revenue": self.revenue,
            "quantity": self.quantity,
            "transactions": self.transactions,
        }


@dataclass(frozen=True)
class ProductionSeriesPoint:
    period: str
    period_start: date
    planned: int
    actual: int
    good: int
    rejected: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "period_start": self.period_start.isoformat(),
            "planned": self.planned,
            "actual": self.actual,
            "good": self.good,
            "rejected": self.rejected,
        }


def parse_granularity(value: str | Granularity) -> Granularity:
    if isinstance(value, Granularity):
        return value
    normalized = (value or "").strip().lower()
    aliases = {"daily": "day", "weekly": "week", "monthly": "month"}
    normalized = aliases.get(normalized, normalized)
    try:
        return Granularity(normalized)
    except ValueError as exc:
        valid = ", ".join(item.value for item in Granularity)
        raise InvalidRangeError(f"Unsupported granularity '{value}'. Valid values: {valid}") from exc


def validate_range(start: date | None, end: date | None) -> None:
    if start is not None and end is not None and start > end:
        raise InvalidRangeError(
            f"start date {start.isoformat()} is after end date {end.isoformat()}."
        )


def bucket_start(day: date, granularity: Granularity) -> date:
    if granularity == Granularity.day:
        return day
    if granularity == Granularity.week:
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


def first_full_bucket(day: date, granularity: Granularity) -> date:
    """Earliest bucket start on or after ``day``, so a window opening there has no partial first bucket."""
    start = bucket_start(day, granularity)
    if start == day:
        return day
    return next_period_start(start, granularity)


def period_label(start: date, granularity: Granularity) -> str:
    if granularity == Granularity.day:
        return start.isoformat()
    if granularity == Granularity.week:
        iso_year, iso_week, _ = start.isocalendar()
        return f"{iso_year:04d}-W{iso_week:02d}"
    return f"{start.year:04d}-{start.month:02d}"


def add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    return date(year, month_index % 12 + 1, 1)


def next_period_start(start: date, granularity: Granularity, steps: int = 1) -> date:
    if granularity == Granularity.day:
        return start + timedelta(days=steps)
    if granularity == Granularity.week:
        return start + timedelta(weeks=steps)
    return add_months(start.replace(day=1), steps)


def build_sales_series(
    reader: LedgerReader,
    *,
    start: date | None,
    end: date | None,
    granularity: Granularity = Granularity.month,
) -> list[TimeSeriesPoint]:
    validate_range(start, end)
    buckets: dict[date, dict[str, Any]] = {}
    for row in reader.sales_by_day(SalesQuery(start=start, end=end)):
        key = bucket_start(row.day, granularity)
        bucket = buckets.setdefault(key, {"revenue": money(0), "quantity": 0, "transactions": 0})
        bucket["revenue"] = money(bucket["revenue"] + row.revenue)
        bucket["quantity"] += row.quantity
        bucket["transactions"] += row.transactions

    return [
        TimeSeriesPoint(
            period=period_label(key, granularity),
            period_start=key,
            revenue=values["revenue"],
            quantity=values["quantity"],
            transactions=values["transactions"],
        )
        for key, values in sorted(buckets.items())
    ]


def build_production_series(
    reader: LedgerReader,
    *,
    start: date | None,
    end: date | None,
    granularity: Granularity = Granularity.month,
) -> list[ProductionSeriesPoint]:
    validate_range(start, end)
    buckets: dict[date, list[int]] = {}
    for row in reader.production_by_day(ProductionQuery(start=start, end=end)):
        key = bucket_start(row.day, granularity)
        bucket = buckets.setdefault(key, [0, 0, 0, 0])
        bucket[0] += row.planned
        bucket[1] += row.actual
        bucket[2] += row.good
        bucket[3] += row.rejected

    return [
        ProductionSeriesPoint(
            period=period_label(key, granularity),
            period_start=key,
            planned=values[0],
            actual=values[1],
            good=values[2],
            rejected=values[3],
        )
        for key, values in sorted(buckets.items())
    ]


def require_trend_points(series: Sequence[TimeSeriesPoint], minimum: int = 2) -> None:
    if len(series) < minimum:
        logger.info("Trend needs %s periods, found %s.", minimum, len(series))
        raise InsufficientDataError(
            f"Insufficient data for prediction. Need at least {minimum} periods of sales data, "
            f"found {len(series)}."
        )
