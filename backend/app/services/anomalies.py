from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Iterable

from app.core.config import Settings, get_settings
from app.models.enums import PaymentStatus
from app.services.errors import UnknownIdentifierError
from app.services.ledger_reader import LedgerReader, ProductionQuery, SalesQuery
from app.utils.decimal_math import money, pct, safe_ratio, to_decimal


logger = logging.getLogger("factorybooks.anomalies")

SEVERITY_WEIGHT = {"LOW": 1, "MEDIUM": 2, "HIGH": 3}

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}

MONITORING_SUGGESTIONS = [
    "Set up automated alerts for key metrics",
    "Regularly review these anomaly reports",
    "Create action plans for recurring issues",
    "Monitor competitor pricing and market trends",
]

RuleFn = Callable[[LedgerReader, date, Settings], list[dict[str, Any]]]


def format_amount(value: Decimal, currency: str) -> str:
    code = (currency or "").upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    return f"{symbol}{money(value):,.2f}"


def reader_currency(reader: LedgerReader, settings: Settings) -> str:
    return reader.currency or settings.currency_code


def _sales_drop(reader: LedgerReader, as_of: date, settings: Settings) -> list[dict[str, Any]]:
    recent_days = settings.anomaly_recent_days
    history_days = settings.anomaly_history_days - recent_days
    if recent_days <= 0 or history_days <= 0:
        return []

    recent_start = as_of - timedelta(days=recent_days - 1)
    history_end = recent_start - timedelta(days=1)
    history_start = as_of - timedelta(days=settings.anomaly_history_days - 1)

    recent = reader.sales_totals(SalesQuery(start=recent_start, end=as_of))
    history = reader.sales_totals(SalesQuery(start=history_start, end=history_end))
    recent_daily = recent.revenue / Decimal(recent_days)
    history_daily = history.revenue / Decimal(history_days)

    if history_daily <= 0 or recent_daily >= history_daily * settings.sales_drop_ratio:
        return []

    drop_pct = pct((Decimal("1") - safe_ratio(recent_daily, history_daily)) * Decimal("100"))
    return [
        {
            "type": "SALES_DROP",
            "severity": "HIGH",
            "description": f"Sales dropped by {drop_pct:.1f}% in the last week",
            "impact": "Revenue decrease, potential cash flow issues",
            "suggested_action": "Investigate market conditions, check competitor pricing, review marketing efforts",
            "numeric_evidence": {
                "recent_daily_revenue": money(recent_daily),
                "historical_daily_revenue": money(history_daily),
                "drop_pct": drop_pct,
            },
            "rank_magnitude": drop_pct,
        }
    ]


def _high_rejection(reader: LedgerReader, as_of: date, settings: Settings) -> list[dict[str, Any]]:
    start = as_of - timedelta(days=settings.anomaly_history_days - 1)
    totals = reader.production_totals(ProductionQuery(start=start, end=as_of))
    if totals.rejection_records == 0:
        return []

    rate = totals.avg_rejection_pct
    threshold = settings.rejection_rate_threshold_pct
    if rate <= threshold:
        return []

    return [
        {
            "type": "HIGH_REJECTION",
            "severity": "MEDIUM",
            "description": (
                f"Production rejection rate is {rate:.1f}% (above {threshold.normalize():f}% threshold)"
            ),
            "impact": "Increased costs, waste of materials, lower efficiency",
            "suggested_action": "Review quality control processes, check machine maintenance, train operators",
            "numeric_evidence": {
                "avg_rejection_pct": rate,
                "threshold_pct": threshold,
                "records": totals.rejection_records,
            },
            "rank_magnitude": rate - threshold,
        }
    ]


def _low_stock(reader: LedgerReader, as_of: date, settings: Settings) -> list[dict[str, Any]]:
    low_count = reader.count_low_stock_products()
    if low_count <= 0:
        return []

    return [
        {
            "type": "LOW_STOCK",
            "severity": "HIGH" if low_count > settings.low_stock_high_count else "MEDIUM",
            "description": f"{low_count} products are below minimum stock level",
            "impact": "Risk of stockouts, lost sales opportunities",
            "suggested_action": "Place purchase orders immediately, review minimum stock levels",
            "numeric_evidence": {"low_stock_count": low_count},
            "rank_magnitude": Decimal(low_count),
        }
    ]


def _overdue_payments(reader: LedgerReader, as_of: date, settings: Settings) -> list[dict[str, Any]]:
    # "more than N days" means the sale is at least N + 1 days old
    cutoff = as_of - timedelta(days=settings.overdue_after_days + 1)
    totals = reader.sales_totals(SalesQuery(end=cutoff, payment_status=PaymentStatus.pending))
    threshold = settings.overdue_amount_threshold
    if totals.revenue <= threshold:
        return []

    currency = reader_currency(reader, settings)
    return [
        {
            "type": "OVERDUE_PAYMENTS",
            "severity": "HIGH",
            "description": (
                f"{format_amount(totals.revenue, currency)} in payments overdue by more than "
                f"{settings.overdue_after_days} days"
            ),
            "impact": "Cash flow blockage, increased credit risk",
            "suggested_action": (
                "Follow up with customers, implement stricter payment terms, offer early payment discounts"
            ),
            "numeric_evidence": {
                "overdue_amount": totals.revenue,
                "overdue_sales": totals.transactions,
                "threshold": threshold,
                "cutoff_date": cutoff.isoformat(),
            },
            "rank_magnitude": safe_ratio(totals.revenue, threshold),
        }
    ]


def _high_material_costs(reader: LedgerReader, as_of: date, settings: Settings) -> list[dict[str, Any]]:
    products = reader.active_products()
    if not products:
        return []

    average = money(sum((item.raw_material_cost for item in products), Decimal("0")) / Decimal(len(products)))
    threshold = settings.material_cost_threshold
    if average <= threshold:
        return []

    currency = reader_currency(reader, settings)
    return [
        {
            "type": "HIGH_MATERIAL_COSTS",
            "severity": "MEDIUM",
            "description": f"Average material cost is {format_amount(average, currency)} per unit",
            "impact": "Reduced profit margins, pricing pressure",
            "suggested_action": "Negotiate with suppliers, find alternative materials, optimize material usage",
            "numeric_evidence": {
                "avg_raw_material_cost": average,
                "threshold": threshold,
                "products": len(products),
            },
            "rank_magnitude": safe_ratio(average, threshold),
        }
    ]


RULES: dict[str, RuleFn] = {
    "sales_drop": _sales_drop,
    "high_rejection": _high_rejection,
    "low_stock": _low_stock,
    "overdue_payments": _overdue_payments,
    "high_material_costs": _high_material_costs,
}


def parse_rules(values: Iterable[str] | None) -> list[str]:
    """Normalise requested rule identifiers; an empty request selects every rule."""
    requested: list[str] = []
    for value in values or []:
        for part in str(value).split(","):
            rule_id = part.strip().lower()
            if not rule_id:
                continue
            if rule_id not in RULES:
                raise UnknownIdentifierError("anomaly rule", rule_id, RULES.keys())
            if rule_id not in requested:
                requested.append(rule_id)
    return requested or list(RULES.keys())


def _ranked(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    def key(row: dict[str, Any]) -> tuple[int, Decimal]:
        weight = SEVERITY_WEIGHT.get(str(row.get("severity")), 1)
        magnitude = to_decimal(row.get("rank_magnitude"))
        return weight, magnitude

    ordered = sorted(items, key=key, reverse=True)
    for row in ordered:
        row.pop("rank_magnitude", None)
    return ordered


def risk_bucket(points: int) -> str:
    if points >= 10:
        return "CRITICAL"
    if points >= 6:
        return "HIGH"
    if points >= 3:
        return "MEDIUM"
    return "LOW"


def detect_anomalies(
    reader: LedgerReader,
    *,
    as_of: date,
    rules: Iterable[str] | None = None,
    settings: Settings | None = None,
) -> dict[str, Any]:
    settings = settings or get_settings()
    selected = parse_rules(rules)

    rows: list[dict[str, Any]] = []
    for rule_id in selected:
        rows.extend(RULES[rule_id](reader, as_of, settings))
    anomalies = _ranked(rows)

    risk_points = sum(SEVERITY_WEIGHT[row["severity"]] for row in anomalies)
    summary = {
        level.lower(): sum(1 for row in anomalies if row["severity"] == level)
        for level in ("HIGH", "MEDIUM", "LOW")
    }
    if anomalies:
        logger.info(
            "Business %s: %s anomalies detected as of %s (risk points %s).",
            reader.business_id,
            len(anomalies),
            as_of.isoformat(),
            risk_points,
        )

    return {
        "total_anomalies": len(anomalies),
        "anomalies": anomalies,
        "risk_score": risk_bucket(risk_points),
        "risk_points": risk_points,
        "summary": summary,
        "rules_evaluated": selected,
        "monitoring_suggestions": list(MONITORING_SUGGESTIONS),
        "as_of": as_of.isoformat(),
    }
