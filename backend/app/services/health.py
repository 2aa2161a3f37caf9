from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.core.config import Settings, get_settings
from app.services.ledger_reader import LedgerReader, ProductionQuery, SalesQuery
from app.utils.decimal_math import score


logger = logging.getLogger("factorybooks.health")

FACTOR_MAX = Decimal("25")

# (upper bound exclusive, status, colour); the last band is open-ended
STATUS_BANDS = (
    (Decimal("50"), "Critical", "red"),
    (Decimal("70"), "Warning", "orange"),
    (Decimal("85"), "Good", "yellow"),
)


@dataclass(frozen=True)
class HealthFactor:
    name: str
    score: Decimal
    max: Decimal
    detail: str

    def as_dict(self) -> dict[str, Any]:
        return {"name": self.name, "score": self.score, "max": self.max, "detail": self.detail}


def _clamp(value: Decimal, low: Decimal = Decimal("0"), high: Decimal = FACTOR_MAX) -> Decimal:
    return max(low, min(high, value))


def stock_factor(total_products: int, low_stock_products: int) -> HealthFactor:
    if total_products <= 0:
        return HealthFactor("Stock Availability", score(FACTOR_MAX), FACTOR_MAX, "No active products to evaluate")
    value = FACTOR_MAX - Decimal(low_stock_products) / Decimal(total_products) * FACTOR_MAX
    return HealthFactor(
        "Stock Availability",
        score(_clamp(value)),
        FACTOR_MAX,
        f"{low_stock_products} of {total_products} active products at or below minimum stock",
    )


def efficiency_factor(avg_efficiency_pct: Decimal, records: int) -> HealthFactor:
    if records <= 0:
        return HealthFactor("Production Efficiency", score(15), FACTOR_MAX, "No planned production recorded")
    value = avg_efficiency_pct / Decimal("100") * FACTOR_MAX
    return HealthFactor(
        "Production Efficiency",
        score(_clamp(value)),
        FACTOR_MAX,
        f"Average efficiency {avg_efficiency_pct:.1f}% over {records} runs",
    )


def sales_factor(revenue: Decimal, settings: Settings) -> HealthFactor:
    threshold = settings.health_sales_revenue_threshold
    value = Decimal("20") if revenue > threshold else Decimal("15")
    return HealthFactor(
        "Sales Performance",
        score(value),
        FACTOR_MAX,
        f"Revenue {revenue:.2f} over the last {settings.health_sales_window_days} days "
        f"(threshold {threshold:.2f})",
    )


def margin_factor(margins: list[Decimal], settings: Settings) -> HealthFactor:
    fixed = settings.health_margin_fixed_score
    if settings.health_margin_mode == "fixed":
        return HealthFactor("Profit Margin", score(fixed), FACTOR_MAX, "Fixed placeholder score")
    if not margins:
        return HealthFactor("Profit Margin", score(fixed), FACTOR_MAX, "No priced products; placeholder score")

    average = sum(margins, Decimal("0")) / Decimal(len(margins))
    target = settings.health_margin_target_pct
    value = average / target * FACTOR_MAX if target > 0 else Decimal("0")
    return HealthFactor(
        "Profit Margin",
        score(_clamp(value)),
        FACTOR_MAX,
        f"Average margin {average:.1f}% against a {target:.0f}% target",
    )


def status_for(total: Decimal) -> tuple[str, str]:
    for upper, label, colour in STATUS_BANDS:
        if total < upper:
            return label, colour
    return "Healthy", "green"


def compute_health_score(
    reader: LedgerReader,
    *,
    as_of: date,
    settings: Settings | None = None,
) -> dict[str, Any]:
    settings = settings or get_settings()
    window_start = as_of - timedelta(days=settings.health_sales_window_days - 1)

    products = reader.active_products()
    low_stock = sum(1 for item in products if item.is_low_stock)
    production = reader.production_totals(ProductionQuery(end=as_of))
    sales = reader.sales_totals(SalesQuery(start=window_start, end=as_of))
    margins = [item.margin_pct for item in products if item.margin_pct is not None]

    factors = [
        stock_factor(len(products), low_stock),
        efficiency_factor(production.avg_efficiency_pct, production.efficiency_records),
        sales_factor(sales.revenue, settings),
        margin_factor(margins, settings),
    ]
    raw = score(sum((factor.score for factor in factors), Decimal("0")))
    raw = max(Decimal("0"), min(Decimal("100"), raw))
    status, colour = status_for(raw)
    logger.info("Business %s health %s (%s).", reader.business_id, raw, status)

    return {
        "overall_score": int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
        "raw_score": raw,
        "health_status": status,
        "status_color": colour,
        "factors": [factor.as_dict() for factor in factors],
        "as_of": as_of.isoformat(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
