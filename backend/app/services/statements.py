"""Financial statements derived from the sales, production and inventory ledgers.

Nothing here is persisted. Each builder reads aggregates through a
:class:`~app.services.ledger_reader.LedgerReader` and returns a plain dict that the
routers serialise directly and that :func:`statement_line_items` flattens for
CSV, Excel and PDF output.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from app.models.enums import InventoryTransactionType, PaymentStatus, ReportType
from app.services.aggregation import Granularity, add_months, build_sales_series, validate_range
from app.services.errors import UnknownIdentifierError
from app.services.ledger_reader import InventoryQuery, LedgerReader, SalesQuery
from app.utils.decimal_math import money, safe_pct, safe_ratio


logger = logging.getLogger("factorybooks.statements")

STATEMENT_TREND_MONTHS = 6
CASH_TREND_DAYS = 7
OPERATING_EXPENSE_TYPES = (InventoryTransactionType.wastage, InventoryTransactionType.adjustment)


def parse_report_type(value: str | ReportType) -> ReportType:
    if isinstance(value, ReportType):
        return value
    try:
        return ReportType((value or "").strip().lower())
    except ValueError as exc:
        raise UnknownIdentifierError("report type", value, [item.value for item in ReportType]) from exc


def month_bounds(day: date) -> tuple[date, date]:
    start = day.replace(day=1)
    return start, add_months(start, 1) - timedelta(days=1)


def resolve_period(start: date | None, end: date | None, today: date) -> tuple[date, date]:
    default_start, default_end = month_bounds(today)
    resolved = (start or default_start, end or default_end)
    validate_range(*resolved)
    return resolved


def build_profit_loss(
    reader: LedgerReader,
    *,
    start: date | None = None,
    end: date | None = None,
    today: date,
    detailed: bool = False,
) -> dict[str, Any]:
    start, end = resolve_period(start, end, today)
    sales_query = SalesQuery(start=start, end=end)

    totals = reader.sales_totals(sales_query)
    net_revenue = money(totals.revenue - totals.tax)

    product_rows = reader.sales_by_product(sales_query)
    cogs_details: list[dict[str, Any]] = []
    product_analysis: list[dict[str, Any]] = []
    total_cogs = money(0)
    for row in product_rows:
        line_cost = money(row.unit_cost * Decimal(row.quantity))
        total_cogs = money(total_cogs + line_cost)
        profit = money(row.revenue - line_cost)
        cogs_details.append(
            {
                "product_id": row.product_id,
                "quantity_sold": row.quantity,
                "unit_cost": row.unit_cost,
                "total_cost": line_cost,
            }
        )
        product_analysis.append(
            {
                "product_id": row.product_id,
                "product_name": row.product_name,
                "product_code": row.product_code,
                "quantity_sold": row.quantity,
                "revenue": row.revenue,
                "cost": line_cost,
                "profit": profit,
                "margin": safe_pct(profit, row.revenue),
                "unit_price": money(safe_ratio(row.revenue, Decimal(row.quantity))),
                "unit_cost": row.unit_cost,
            }
        )

    expense_by_type = reader.inventory_value_by_type(
        InventoryQuery(start=start, end=end, transaction_types=OPERATING_EXPENSE_TYPES)
    )
    operating_expenses = money(sum(expense_by_type.values(), Decimal("0")))

    gross_profit = money(net_revenue - total_cogs)
    net_profit = money(gross_profit - operating_expenses)

    trend_start = add_months(end.replace(day=1), -(STATEMENT_TREND_MONTHS - 1))
    monthly_trend = build_sales_series(reader, start=trend_start, end=end, granularity=Granularity.month)

    worst_margin = min(product_analysis, key=lambda item: item["margin"]) if product_analysis else None
    return {
        "period": {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "days": (end - start).days + 1,
        },
        "income_statement": {
            "revenue": {
                "total_sales": totals.revenue,
                "tax_collected": totals.tax,
                "net_revenue": net_revenue,
            },
            "cost_of_goods_sold": {
                "total_cogs": total_cogs,
                "details": cogs_details if detailed else None,
            },
            "gross_profit": {
                "amount": gross_profit,
                "margin_percentage": safe_pct(gross_profit, totals.revenue),
            },
            "operating_expenses": {
                "total": operating_expenses,
                "breakdown": {
                    "wastage": expense_by_type[InventoryTransactionType.wastage],
                    "adjustments": expense_by_type[InventoryTransactionType.adjustment],
                },
            },
            "net_profit": {
                "amount": net_profit,
                "margin_percentage": safe_pct(net_profit, totals.revenue),
            },
        },
        "product_analysis": product_analysis,
        "monthly_trend": [point.as_dict() for point in monthly_trend],
        "key_metrics": {
            "average_order_value": totals.average_sale_value,
            "number_of_sales": totals.transactions,
            "profit_per_product": money(safe_ratio(net_profit, Decimal(len(product_analysis)))),
            "best_selling_product": product_analysis[0] if product_analysis else None,
            "worst_margin_product": worst_margin,
        },
    }


def build_balance_sheet(reader: LedgerReader, *, as_of: date) -> dict[str, Any]:
    inventory = money(sum((item.stock_value for item in reader.active_products()), Decimal("0")))
    receivables = reader.sales_totals(SalesQuery(end=as_of, payment_status=PaymentStatus.pending)).revenue
    fixed_assets = money(0)
    accounts_payable = money(0)

    current_assets = money(inventory + receivables)
    total_assets = money(current_assets + fixed_assets)
    total_liabilities = accounts_payable
    # equity is the residual, so the sheet balances by construction
    equity = money(total_assets - total_liabilities)

    return {
        "as_of_date": as_of.isoformat(),
        "assets": {
            "current_assets": {
                "inventory": inventory,
                "accounts_receivable": receivables,
                "total_current_assets": current_assets,
            },
            "fixed_assets": fixed_assets,
            "total_assets": total_assets,
        },
        "liabilities": {
            "current_liabilities": {
                "accounts_payable": accounts_payable,
                "total_current_liabilities": accounts_payable,
            },
            "total_liabilities": total_liabilities,
        },
        "equity": {"owners_equity": equity, "total_equity": equity},
        "balance_check": "BALANCED",
        "is_balanced": True,
        "notes": [
            "Equity is derived as total assets minus total liabilities, so the statement always balances.",
            "Fixed assets and accounts payable are not tracked and are reported as 0.",
        ],
    }


def build_cash_flow(
    reader: LedgerReader,
    *,
    start: date | None = None,
    end: date | None = None,
    today: date,
) -> dict[str, Any]:
    start, end = resolve_period(start, end, today)

    cash_in = reader.sales_totals(SalesQuery(start=start, end=end, payment_status=PaymentStatus.paid)).revenue
    cash_out = reader.inventory_value(
        InventoryQuery(start=start, end=end, transaction_types=(InventoryTransactionType.purchase,))
    )
    operating = money(cash_in - cash_out)
    investing = money(0)
    financing = money(0)
    net = money(operating + investing + financing)

    trend_start = end - timedelta(days=CASH_TREND_DAYS - 1)
    daily_trend = [
        {
            "date": row.day.isoformat(),
            "cash_in": row.paid_revenue,
            "transactions": row.transactions,
        }
        for row in reader.sales_by_day(SalesQuery(start=trend_start, end=end))
    ]

    return {
        "period": {"start": start.isoformat(), "end": end.isoformat()},
        "cash_flow_statement": {
            "operating_activities": {
                "cash_received_from_customers": cash_in,
                "cash_paid_for_inventory": cash_out,
                "net_cash_from_operations": operating,
            },
            "investing_activities": {"net_cash_from_investing": investing},
            "financing_activities": {"net_cash_from_financing": financing},
            "net_increase_in_cash": net,
        },
        "daily_trend": daily_trend,
        "cash_position": {
            "operating_cash_flow_ratio": "POSITIVE" if operating > 0 else "NEGATIVE",
            "days_of_cash_cover": "ADEQUATE" if operating > 0 else "INADEQUATE",
        },
    }


def build_inventory_valuation(reader: LedgerReader) -> dict[str, Any]:
    products = sorted(reader.active_products(), key=lambda item: (-item.stock_value, item.product_id))
    items = [
        {
            "product_id": item.product_id,
            "product_code": item.product_code,
            "product_name": item.product_name,
            "category": item.category,
            "current_stock": item.current_stock,
            "unit_cost": item.total_cost,
            "total_value": item.stock_value,
            "margin_pct": item.margin_pct,
        }
        for item in products
    ]
    total_value = money(sum((item.stock_value for item in products), Decimal("0")))
    return {"total_items": len(items), "total_value": total_value, "items": items}


def build_statement(
    reader: LedgerReader,
    report_type: ReportType,
    *,
    start: date | None = None,
    end: date | None = None,
    today: date,
    detailed: bool = False,
) -> dict[str, Any]:
    logger.info("Building %s for business %s.", report_type.value, reader.business_id)
    if report_type == ReportType.profit_loss:
        return build_profit_loss(reader, start=start, end=end, today=today, detailed=detailed)
    if report_type == ReportType.balance_sheet:
        return build_balance_sheet(reader, as_of=end or today)
    if report_type == ReportType.cash_flow:
        return build_cash_flow(reader, start=start, end=end, today=today)
    return build_inventory_valuation(reader)


def statement_line_items(report_type: ReportType, data: dict[str, Any]) -> list[tuple[str, str, Any]]:
    """Flatten a statement into ``(section, line item, value)`` rows."""
    rows: list[tuple[str, str, Any]] = []
    if report_type == ReportType.profit_loss:
        income = data["income_statement"]
        rows.extend(
            [
                ("Revenue", "Total sales", income["revenue"]["total_sales"]),
                ("Revenue", "Tax collected", income["revenue"]["tax_collected"]),
                ("Revenue", "Net revenue", income["revenue"]["net_revenue"]),
                ("Cost of goods sold", "Total COGS", income["cost_of_goods_sold"]["total_cogs"]),
                ("Gross profit", "Amount", income["gross_profit"]["amount"]),
                ("Gross profit", "Margin %", income["gross_profit"]["margin_percentage"]),
                ("Operating expenses", "Wastage", income["operating_expenses"]["breakdown"]["wastage"]),
                ("Operating expenses", "Adjustments", income["operating_expenses"]["breakdown"]["adjustments"]),
                ("Operating expenses", "Total", income["operating_expenses"]["total"]),
                ("Net profit", "Amount", income["net_profit"]["amount"]),
                ("Net profit", "Margin %", income["net_profit"]["margin_percentage"]),
            ]
        )
        for item in data["product_analysis"]:
            rows.append(("Product profit", f"{item['product_code']} {item['product_name']}", item["profit"]))
    elif report_type == ReportType.balance_sheet:
        assets = data["assets"]
        rows.extend(
            [
                ("Assets", "Inventory", assets["current_assets"]["inventory"]),
                ("Assets", "Accounts receivable", assets["current_assets"]["accounts_receivable"]),
                ("Assets", "Fixed assets", assets["fixed_assets"]),
                ("Assets", "Total assets", assets["total_assets"]),
                ("Liabilities", "Accounts payable", data["liabilities"]["current_liabilities"]["accounts_payable"]),
                ("Liabilities", "Total liabilities", data["liabilities"]["total_liabilities"]),
                ("Equity", "Owners equity", data["equity"]["total_equity"]),
            ]
        )
    elif report_type == ReportType.cash_flow:
        statement = data["cash_flow_statement"]
        operating = statement["operating_activities"]
        rows.extend(
            [
                ("Operating", "Cash received from customers", operating["cash_received_from_customers"]),
                ("Operating", "Cash paid for inventory", operating["cash_paid_for_inventory"]),
                ("Operating", "Net cash from operations", operating["net_cash_from_operations"]),
                ("Investing", "Net cash from investing", statement["investing_activities"]["net_cash_from_investing"]),
                ("Financing", "Net cash from financing", statement["financing_activities"]["net_cash_from_financing"]),
                ("Net", "Net increase in cash", statement["net_increase_in_cash"]),
            ]
        )
    else:
        for item in data["items"]:
            rows.append(("Inventory", f"{item['product_code']} {item['product_name']}", item["total_value"]))
        rows.append(("Inventory", "Total value", data["total_value"]))
    return rows
