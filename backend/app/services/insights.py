from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable

from app.core.config import Settings, get_settings
from app.models.enums import InsightType
from app.services.anomalies import detect_anomalies, format_amount, reader_currency
from app.services.errors import UnknownIdentifierError
from app.services.ledger_reader import LedgerReader, ProductionQuery, SalesQuery
from app.utils.decimal_math import money, pct, safe_ratio


logger = logging.getLogger("factorybooks.insights")

INSIGHT_WINDOW_DAYS = 30
HEALTHY_MARGIN_PCT = Decimal("25")
LOW_MARGIN_PCT = Decimal("20")
HIGH_COST_SHARE = Decimal("0.8")
QUALITY_REJECTION_PCT = Decimal("5")
TARGET_EFFICIENCY_PCT = Decimal("90")

CONFIDENCE = {
    InsightType.profit: 85,
    InsightType.sales: 80,
    InsightType.inventory: 90,
    InsightType.production: 75,
    InsightType.cost: 70,
    InsightType.risk: 65,
}

# question keywords that route to each analyser
KEYWORDS = {
    InsightType.profit: ("profit", "loss"),
    InsightType.sales: ("sales", "revenue"),
    InsightType.inventory: ("inventory", "stock"),
    InsightType.production: ("production", "efficiency"),
    InsightType.cost: ("cost", "expensive"),
}

AnalyserFn = Callable[[LedgerReader, date, Settings], dict[str, Any]]


def parse_insight_type(value: str | InsightType) -> InsightType:
    if isinstance(value, InsightType):
        return value
    try:
        return InsightType((value or "").strip().lower())
    except ValueError as exc:
        raise UnknownIdentifierError("insight type", value, [item.value for item in InsightType]) from exc


def _window(as_of: date) -> SalesQuery:
    return SalesQuery(start=as_of - timedelta(days=INSIGHT_WINDOW_DAYS - 1), end=as_of)


def _recommendation(action: str, reason: str, priority: int) -> dict[str, Any]:
    return {"action": action, "reason": reason, "priority": priority}


def analyze_profitability(reader: LedgerReader, as_of: date, settings: Settings) -> dict[str, Any]:
    revenue = reader.sales_totals(_window(as_of)).revenue
    products = reader.active_products()
    currency = reader_currency(reader, settings)

    margins = [item.margin_pct for item in products if item.margin_pct is not None]
    average = pct(safe_ratio(sum(margins, Decimal("0")), Decimal(len(margins))))
    low_margin = [item for item in products if item.margin_pct is not None and item.margin_pct < LOW_MARGIN_PCT]

    insights = [
        f"Average profit margin is {average:.1f}%, which is below the healthy threshold of {HEALTHY_MARGIN_PCT}%"
        if average < HEALTHY_MARGIN_PCT
        else f"Average profit margin is {average:.1f}%, which is healthy",
        f"{len(low_margin)} products have margins below {LOW_MARGIN_PCT}%"
        if low_margin
        else "All products have healthy profit margins",
        f"Last {INSIGHT_WINDOW_DAYS} days revenue: {format_amount(revenue, currency)}"
        if revenue > 0
        else f"No sales recorded in the last {INSIGHT_WINDOW_DAYS} days",
    ]
    recommendations = [
        _recommendation(
            f"Review pricing or reduce costs for {item.product_name}",
            f"Current margin: {item.margin_pct:.1f}%",
            1 if item.margin_pct < Decimal("10") else 2,
        )
        for item in low_margin
    ]
    return {"insights": insights, "recommendations": recommendations}


def analyze_sales(reader: LedgerReader, as_of: date, settings: Settings) -> dict[str, Any]:
    query = _window(as_of)
    recent_days = reader.sales_by_day(query)[-7:]
    top_products = reader.sales_by_product(query, limit=3)
    currency = reader_currency(reader, settings)

    revenues = [row.revenue for row in recent_days]
    average_daily = money(safe_ratio(sum(revenues, Decimal("0")), Decimal(len(revenues))))
    trend = Decimal("0")
    if len(revenues) > 1 and revenues[0] > 0:
        trend = pct((revenues[-1] - revenues[0]) / revenues[0] * Decimal("100"))

    insights = [
        f"Average daily sales: {format_amount(average_daily, currency)}",
        f"Sales trend: UP by {trend:.1f}% over the last week"
        if trend > 0
        else f"Sales trend: DOWN by {abs(trend):.1f}% over the last week",
        f"Top product: {top_products[0].product_name} ({format_amount(top_products[0].revenue, currency)})"
        if top_products
        else "No top products identified",
    ]
    recommendations = [
        _recommendation(
            "Investigate recent sales drop" if trend < 0 else "Capitalize on positive sales trend",
            "Sales decreasing" if trend < 0 else "Sales increasing",
            1 if trend < Decimal("-10") else 2,
        ),
        _recommendation(
            "Focus marketing on top-performing products",
            "80% of revenue often comes from 20% of products",
            2,
        ),
    ]
    return {"insights": insights, "recommendations": recommendations}


def analyze_inventory(reader: LedgerReader, as_of: date, settings: Settings) -> dict[str, Any]:
    products = reader.active_products()
    low_stock = [item for item in products if item.is_low_stock]
    excess = [item for item in products if item.current_stock > item.min_stock_level * 3]
    unsold_ids = reader.products_without_sales(
        [item.product_id for item in products if item.current_stock > 0],
        _window(as_of),
    )
    slow_moving = [item for item in products if item.product_id in unsold_ids]

    insights = [
        f"{len(low_stock)} products are below minimum stock level"
        if low_stock
        else "All products have sufficient stock",
        f"{len(excess)} products have excess inventory (more than 3x minimum)"
        if excess
        else "No excess inventory identified",
        f"{len(slow_moving)} products are slow-moving (no sales in {INSIGHT_WINDOW_DAYS} days)"
        if slow_moving
        else "No slow-moving products identified",
    ]
    recommendations = [
        _recommendation(
            f"Reorder {item.product_name}",
            f"Stock: {item.current_stock}, Minimum: {item.min_stock_level}",
            1,
        )
        for item in low_stock
    ]
    recommendations.extend(
        _recommendation(
            f"Review stock levels for {item.product_name}",
            f"Excess stock: {item.current_stock} units",
            3,
        )
        for item in excess
    )
    recommendations.extend(
        _recommendation(
            f"Create promotion for {item.product_name}",
            f"No sales in last {INSIGHT_WINDOW_DAYS} days",
            2,
        )
        for item in slow_moving
    )
    return {"insights": insights, "recommendations": recommendations}


def analyze_production(reader: LedgerReader, as_of: date, settings: Settings) -> dict[str, Any]:
    window = _window(as_of)
    totals = reader.production_totals(ProductionQuery(start=window.start, end=window.end))
    efficiency = totals.avg_efficiency_pct
    rejection = totals.avg_rejection_pct

    insights = [
        f"Production efficiency: {efficiency:.1f}%" if totals.efficiency_records else "No production data available",
        f"Quality rejection rate: {rejection:.1f}%" if totals.rejection_records else "No rejection data available",
        f"High rejection rate detected (above {QUALITY_REJECTION_PCT}% threshold)"
        if rejection > QUALITY_REJECTION_PCT
        else "Rejection rate within acceptable limits",
    ]
    recommendations = [
        _recommendation(
            "Improve production planning and scheduling"
            if efficiency < TARGET_EFFICIENCY_PCT
            else "Maintain current efficiency",
            "Efficiency below target" if efficiency < TARGET_EFFICIENCY_PCT else "Good efficiency",
            1 if efficiency < Decimal("80") else 3,
        ),
        _recommendation(
            "Review quality control processes"
            if rejection > QUALITY_REJECTION_PCT
            else "Continue current quality practices",
            "High rejection rate" if rejection > QUALITY_REJECTION_PCT else "Acceptable quality",
            1 if rejection > settings.rejection_rate_threshold_pct else 2,
        ),
    ]
    return {"insights": insights, "recommendations": recommendations}


def analyze_costs(reader: LedgerReader, as_of: date, settings: Settings) -> dict[str, Any]:
    products = reader.active_products()
    count = Decimal(len(products))
    avg_material = money(safe_ratio(sum((item.raw_material_cost for item in products), Decimal("0")), count))
    avg_labor = money(safe_ratio(sum((item.labor_cost for item in products), Decimal("0")), count))
    avg_overhead = money(safe_ratio(sum((item.overhead_cost for item in products), Decimal("0")), count))

    high_cost = [item for item in products if item.total_cost > item.selling_price * HIGH_COST_SHARE]
    currency = reader_currency(reader, settings)

    insights = [
        f"Average material cost per product: {format_amount(avg_material, currency)}",
        f"Average labor cost per product: {format_amount(avg_labor, currency)}",
        f"Average overhead per product: {format_amount(avg_overhead, currency)}",
        f"{len(high_cost)} products have costs exceeding 80% of selling price"
        if high_cost
        else "All products have reasonable cost structures",
    ]
    recommendations = []
    for item in high_cost:
        if item.selling_price > 0:
            share = pct(item.total_cost / item.selling_price * Decimal("100"))
            reason = f"Cost is {share:.1f}% of selling price"
            priority = 1 if share > Decimal("90") else 2
        else:
            reason = "Product has no selling price"
            priority = 1
        recommendations.append(_recommendation(f"Reduce costs for {item.product_name}", reason, priority))

    material_heavy = avg_material > avg_labor * 2
    recommendations.append(
        _recommendation(
            "Focus on material cost reduction" if material_heavy else "Review labor efficiency",
            "Material costs are high" if material_heavy else "Labor costs significant",
            2,
        )
    )
    return {"insights": insights, "recommendations": recommendations}


def analyze_risks(reader: LedgerReader, as_of: date, settings: Settings) -> dict[str, Any]:
    report = detect_anomalies(reader, as_of=as_of, settings=settings)
    priority_for = {"HIGH": 1, "MEDIUM": 2, "LOW": 3}

    insights = [f"Overall risk level: {report['risk_score']} ({report['total_anomalies']} anomalies)"]
    insights.extend(row["description"] for row in report["anomalies"])
    recommendations = [
        _recommendation(row["suggested_action"], row["impact"], priority_for[row["severity"]])
        for row in report["anomalies"]
    ]
    recommendations.append(
        _recommendation("Implement regular risk assessments", "Proactive risk management", 2)
    )
    return {"insights": insights, "recommendations": recommendations}


ANALYSERS: dict[InsightType, AnalyserFn] = {
    InsightType.profit: analyze_profitability,
    InsightType.sales: analyze_sales,
    InsightType.inventory: analyze_inventory,
    InsightType.production: analyze_production,
    InsightType.cost: analyze_costs,
    InsightType.risk: analyze_risks,
}


def _by_priority(recommendations: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(recommendations, key=lambda row: row["priority"])


def get_insight(
    reader: LedgerReader,
    insight_type: str | InsightType,
    *,
    as_of: date,
    settings: Settings | None = None,
) -> dict[str, Any]:
    settings = settings or get_settings()
    kind = parse_insight_type(insight_type)
    result = ANALYSERS[kind](reader, as_of, settings)
    return {
        "type": kind.value,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "insights": result["insights"],
        "recommendations": _by_priority(result["recommendations"]),
        "confidence": CONFIDENCE[kind],
    }


def select_analysers(question: str | None, analysis_type: str | None) -> list[InsightType]:
    if analysis_type and analysis_type.strip().lower() != "comprehensive":
        return [parse_insight_type(analysis_type)]
    if not question or not question.strip():
        return list(KEYWORDS.keys())
    text = question.lower()
    return [kind for kind, words in KEYWORDS.items() if any(word in text for word in words)]


def analyze_business(
    reader: LedgerReader,
    *,
    as_of: date,
    question: str | None = None,
    analysis_type: str | None = None,
    settings: Settings | None = None,
) -> dict[str, Any]:
    settings = settings or get_settings()
    selected = select_analysers(question, analysis_type)

    insights: list[str] = []
    recommendations: list[dict[str, Any]] = []
    for kind in selected:
        result = ANALYSERS[kind](reader, as_of, settings)
        insights.extend(result["insights"])
        recommendations.extend(result["recommendations"])

    confidence = 0
    if selected:
        total = sum(CONFIDENCE[kind] for kind in selected)
        confidence = min(100, round(total / len(selected)))
    logger.info("Business %s analysis ran %s analysers.", reader.business_id, len(selected))

    return {
        "question": question or "General business analysis",
        "analysis_type": analysis_type or "comprehensive",
        "analysers": [kind.value for kind in selected],
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "insights": insights,
        "recommendations": _by_priority(recommendations),
        "confidence_score": confidence,
    }
