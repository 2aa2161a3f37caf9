from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Sequence

from app.core.config import Settings, get_settings
from app.services.aggregation import (
    Granularity,
    TimeSeriesPoint,
    add_months,
    build_sales_series,
    first_full_bucket,
    next_period_start,
    period_label,
    require_trend_points,
)
from app.services.ledger_reader import LedgerReader, ProductSalesRow, SalesQuery
from app.utils.decimal_math import growth_pct, money


logger = logging.getLogger("factorybooks.forecasting")

FORECAST_METHOD = "linear_regression + monthly_seasonality"

FORECAST_ASSUMPTIONS = [
    "Based on a linear trend fitted to the historical periods shown",
    "Includes a fixed month-of-year seasonality adjustment",
    "Assumes similar market conditions",
    "Does not account for major events or promotions",
    "Product predictions apply a flat growth rate to current top sellers; they are not independent forecasts",
]

RECOMMENDED_ACTIONS = [
    "Increase inventory for predicted high-demand products",
    "Plan marketing for predicted high-sales months",
    "Review and adjust production schedules",
    "Set sales targets based on predictions",
]


@dataclass(frozen=True)
class ForecastPoint:
    period: str
    period_start: date
    trend_revenue: Decimal
    seasonality_factor: Decimal
    predicted_revenue: Decimal
    growth_rate: Decimal | None
    confidence: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "period_start": self.period_start.isoformat(),
            "trend_revenue": self.trend_revenue,
            "seasonality_factor": self.seasonality_factor,
            "predicted_revenue": self.predicted_revenue,
            "growth_rate": self.growth_rate,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ForecastResult:
    slope: Decimal
    intercept: Decimal
    points: list[ForecastPoint]


def linear_regression(series: Sequence[Decimal]) -> tuple[Decimal, Decimal]:
    """Ordinary least squares of ``series`` on the index 0..n-1."""
    n = len(series)
    if n == 0:
        return Decimal("0"), Decimal("0")
    if n == 1:
        return Decimal("0"), Decimal(series[0])
    x_sum = Decimal(sum(range(n)))
    y_sum = Decimal(sum(series))
    xx_sum = Decimal(sum(index * index for index in range(n)))
    xy_sum = Decimal(sum(Decimal(index) * Decimal(series[index]) for index in range(n)))
    denom = Decimal(n) * xx_sum - x_sum * x_sum
    if denom == 0:
        return Decimal("0"), y_sum / Decimal(n)
    slope = (Decimal(n) * xy_sum - x_sum * y_sum) / denom
    intercept = (y_sum - slope * x_sum) / Decimal(n)
    return slope, intercept


def confidence_for_offset(offset: int, settings: Settings | None = None) -> int:
    settings = settings or get_settings()
    return max(
        settings.forecast_confidence_floor,
        settings.forecast_confidence_start - offset * settings.forecast_confidence_step,
    )


def forecast_series(
    series: Sequence[TimeSeriesPoint],
    *,
    horizon: int = 1,
    granularity: Granularity = Granularity.month,
    settings: Settings | None = None,
) -> ForecastResult:
    settings = settings or get_settings()
    require_trend_points(series, settings.forecast_min_points)
    if horizon < 1:
        horizon = 1

    revenues = [point.revenue for point in series]
    slope, intercept = linear_regression(revenues)
    n = len(series)
    last = series[-1]

    points: list[ForecastPoint] = []
    previous_value = last.revenue
    for offset in range(horizon):
        target_start = next_period_start(last.period_start, granularity, offset + 1)
        trend = slope * Decimal(n + offset) + intercept
        if trend < 0:
            trend = Decimal("0")
        factor = settings.seasonality_for_month(target_start.month)
        predicted = money(trend * factor)
        points.append(
            ForecastPoint(
                period=period_label(target_start, granularity),
                period_start=target_start,
                trend_revenue=money(trend),
                seasonality_factor=factor,
                predicted_revenue=predicted,
                growth_rate=growth_pct(predicted, previous_value),
                confidence=confidence_for_offset(offset, settings),
            )
        )
        previous_value = predicted

    return ForecastResult(slope=slope, intercept=intercept, points=points)


def forecast_products(
    rows: Sequence[ProductSalesRow],
    *,
    settings: Settings | None = None,
) -> list[dict[str, Any]]:
    settings = settings or get_settings()
    growth = settings.product_forecast_growth
    growth_label = f"{((growth - Decimal('1')) * Decimal('100')).normalize():f}%"
    ranked = sorted(rows, key=lambda row: row.revenue, reverse=True)[: settings.product_forecast_top_n]
    return [
        {
            "product_id": row.product_id,
            "product_name": row.product_name,
            "product_code": row.product_code,
            "current_revenue": row.revenue,
            "predicted_revenue": money(row.revenue * growth),
            "predicted_growth": growth_label,
            "method": "flat_growth_assumption",
            "recommendation": "Focus on this high-performing product",
        }
        for row in ranked
    ]


def generate_sales_forecast(
    reader: LedgerReader,
    *,
    as_of: date,
    horizon: int = 1,
    granularity: Granularity = Granularity.month,
    history_months: int | None = None,
    settings: Settings | None = None,
) -> dict[str, Any]:
    settings = settings or get_settings()
    months = history_months or settings.forecast_history_months
    start = first_full_bucket(add_months(as_of.replace(day=1), -(months - 1)), granularity)

    history = build_sales_series(reader, start=start, end=as_of, granularity=granularity)
    result = forecast_series(history, horizon=horizon, granularity=granularity, settings=settings)
    product_rows = reader.sales_by_product(
        SalesQuery(start=start, end=as_of),
        limit=settings.product_forecast_top_n,
    )
    logger.info(
        "Forecast for business %s: %s history periods, horizon %s.",
        reader.business_id,
        len(history),
        horizon,
    )

    return {
        "method": FORECAST_METHOD,
        "granularity": granularity.value,
        "history_start": start.isoformat(),
        "history_end": as_of.isoformat(),
        "historical": [point.as_dict() for point in history],
        "predictions": [point.as_dict() for point in result.points],
        "product_predictions": forecast_products(product_rows, settings=settings),
        "model": {
            "slope": money(result.slope),
            "intercept": money(result.intercept),
            "points": len(history),
        },
        "assumptions": list(FORECAST_ASSUMPTIONS),
        "recommended_actions": list(RECOMMENDED_ACTIONS),
    }
