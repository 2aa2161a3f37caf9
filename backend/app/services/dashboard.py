from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from app.models.production import ProductionRecord
from app.models.sale import Sale
from app.services.aggregation import Granularity, build_sales_series
from app.services.ledger_reader import LedgerReader, ProductionQuery, SalesQuery
from app.utils.decimal_math import money, safe_pct


OVERVIEW_WINDOW_DAYS = 30
TREND_PERIODS = 12
TOP_PRODUCTS = 5
RECENT_ROWS = 5


def _sale_row(sale: Sale) -> dict[str, Any]:
    return {
        "id": sale.id,
        "invoice_number": sale.invoice_number,
        "customer_name": sale.customer_name,
        "product_id": sale.product_id,
        "product_name": sale.product.product_name if sale.product else None,
        "sale_date": sale.sale_date.isoformat(),
        "quantity": sale.quantity,
        "amount": money(sale.total_amount),
        "payment_status": sale.payment_status.value,
    }


def _production_row(record: ProductionRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "product_id": record.product_id,
        "product_name": record.product.product_name if record.product else None,
        "production_date": record.production_date.isoformat(),
        "shift": record.shift.value,
        "planned_quantity": record.planned_quantity,
        "actual_quantity": record.actual_quantity,
        "rejected_quantity": record.rejected_quantity,
    }


def build_overview(reader: LedgerReader, *, as_of: date) -> dict[str, Any]:
    start = as_of - timedelta(days=OVERVIEW_WINDOW_DAYS - 1)
    sales = reader.sales_totals(SalesQuery(start=start, end=as_of))
    production = reader.production_totals(ProductionQuery(start=start, end=as_of))
    return {
        "summary": {
            "total_products": reader.count_active_products(),
            "total_sales": sales.revenue,
            "total_quantity_sold": sales.quantity,
            "total_production": production.actual,
            "low_stock_products": reader.count_low_stock_products(),
            "window_days": OVERVIEW_WINDOW_DAYS,
        },
        "recent_sales": [_sale_row(sale) for sale in reader.recent_sales(RECENT_ROWS)],
        "recent_production": [_production_row(record) for record in reader.recent_production(RECENT_ROWS)],
    }


def build_sales_analytics(
    reader: LedgerReader,
    *,
    as_of: date,
    granularity: Granularity = Granularity.month,
) -> dict[str, Any]:
    series = build_sales_series(reader, start=None, end=as_of, granularity=granularity)
    top_products = reader.sales_by_product(SalesQuery(end=as_of), limit=TOP_PRODUCTS)
    return {
        "granularity": granularity.value,
        "sales_trend": [point.as_dict() for point in series[-TREND_PERIODS:]],
        "top_products": [
            {
                "product_id": row.product_id,
                "product_name": row.product_name,
                "product_code": row.product_code,
                "revenue": row.revenue,
                "quantity": row.quantity,
            }
            for row in top_products
        ],
    }


def build_production_analytics(reader: LedgerReader, *, as_of: date) -> dict[str, Any]:
    query = ProductionQuery(end=as_of)
    totals = reader.production_totals(query)
    return {
        "production_efficiency": {
            "total_planned": totals.planned,
            "total_actual": totals.actual,
            "efficiency_percentage": totals.avg_efficiency_pct,
            "records": totals.efficiency_records,
        },
        "rejection_analysis": {
            "total_produced": totals.actual,
            "total_good": totals.good,
            "total_rejected": totals.rejected,
            "rejection_rate": totals.avg_rejection_pct,
            "overall_rejection_rate": safe_pct(Decimal(totals.rejected), Decimal(totals.actual)),
            "records": totals.rejection_records,
        },
        "shift_wise_production": [
            {
                "shift": row.shift.value,
                "total_production": row.actual,
                "total_rejected": row.rejected,
            }
            for row in reader.production_by_shift(query)
        ],
    }
