from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.db.base import Base
from app.models.business import Business
from app.models.enums import InventoryTransactionType, PaymentStatus, ReportType
from app.models.inventory import InventoryTransaction
from app.models.product import Product
from app.models.sale import Sale
from app.services.errors import InvalidRangeError, UnknownIdentifierError
from app.services.ledger_reader import LedgerReader
from app.services.statements import (
    build_balance_sheet,
    build_cash_flow,
    build_inventory_valuation,
    build_profit_loss,
    build_statement,
    parse_report_type,
    resolve_period,
    statement_line_items,
)
from app.utils.decimal_math import money


TODAY = date(2026, 6, 30)


def _session() -> Session:
    engine = create_engine('sqlite+pysqlite:///:memory:', future=True)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)()


def _inventory(db: Session, business: Business, product: Product, kind: InventoryTransactionType, value: str) -> None:
    db.add(
        InventoryTransaction(
            business_id=business.id,
            product_id=product.id,
            transaction_type=kind,
            quantity=1,
            unit_price=money(value),
            total_value=money(value),
            transaction_date=date(2026, 6, 5),
        )
    )


def _june_reader() -> LedgerReader:
    db = _session()
    business = Business(business_name='Statement Works', is_active=True)
    db.add(business)
    db.flush()
    product = Product(
        business_id=business.id,
        product_code='G-1',
        product_name='Gear Blank',
        raw_material_cost=money('40.00'),
        labor_cost=money('15.00'),
        overhead_cost=money('5.00'),
        selling_price=money('100.00'),
        current_stock=10,
        min_stock_level=2,
        is_active=True,
    )
    db.add(product)
    db.flush()
    db.add_all(
        [
            Sale(
                business_id=business.id,
                product_id=product.id,
                sale_date=date(2026, 6, 25),
                quantity=10,
                unit_price=money('100.00'),
                tax_rate=Decimal('18'),
                payment_status=PaymentStatus.paid,
            ),
            Sale(
                business_id=business.id,
                product_id=product.id,
                sale_date=date(2026, 6, 12),
                quantity=5,
                unit_price=money('100.00'),
                tax_rate=Decimal('18'),
                payment_status=PaymentStatus.pending,
            ),
            # previous month, outside the statement period
            Sale(
                business_id=business.id,
                product_id=product.id,
                sale_date=date(2026, 5, 20),
                quantity=3,
                unit_price=money('100.00'),
                payment_status=PaymentStatus.paid,
            ),
        ]
    )
    _inventory(db, business, product, InventoryTransactionType.wastage, '50.00')
    _inventory(db, business, product, InventoryTransactionType.adjustment, '20.00')
    _inventory(db, business, product, InventoryTransactionType.purchase, '300.00')
    db.flush()
    return LedgerReader(db, business.id)


def test_profit_loss_income_statement() -> None:
    reader = _june_reader()

    data = build_profit_loss(reader, start=date(2026, 6, 1), end=date(2026, 6, 30), today=TODAY, detailed=True)
    income = data['income_statement']

    assert data['period'] == {'start': '2026-06-01', 'end': '2026-06-30', 'days': 30}
    assert income['revenue'] == {
        'total_sales': money('1500.00'),
        'tax_collected': money('270.00'),
        'net_revenue': money('1230.00'),
    }
    assert income['cost_of_goods_sold']['total_cogs'] == money('900.00')
    assert income['cost_of_goods_sold']['details'][0]['quantity_sold'] == 15
    assert income['gross_profit'] == {'amount': money('330.00'), 'margin_percentage': Decimal('22.000000')}
    assert income['operating_expenses']['total'] == money('70.00')
    assert income['operating_expenses']['breakdown'] == {
        'wastage': money('50.00'),
        'adjustments': money('20.00'),
    }
    assert income['net_profit'] == {'amount': money('260.00'), 'margin_percentage': Decimal('17.333333')}


def test_profit_loss_key_metrics_and_trend() -> None:
    reader = _june_reader()

    data = build_profit_loss(reader, start=date(2026, 6, 1), end=date(2026, 6, 30), today=TODAY)
    metrics = data['key_metrics']

    assert data['income_statement']['cost_of_goods_sold']['details'] is None
    assert metrics['average_order_value'] == money('750.00')
    assert metrics['number_of_sales'] == 2
    assert metrics['profit_per_product'] == money('260.00')
    assert metrics['best_selling_product']['product_code'] == 'G-1'
    assert metrics['worst_margin_product']['margin'] == Decimal('40.000000')
    assert [point['period'] for point in data['monthly_trend']] == ['2026-05', '2026-06']


def test_profit_loss_without_sales_reports_zero_margins() -> None:
    db = _session()
    business = Business(business_name='Quiet Works', is_active=True)
    db.add(business)
    db.flush()

    data = build_profit_loss(LedgerReader(db, business.id), today=TODAY)

    assert data['income_statement']['gross_profit']['margin_percentage'] == Decimal('0')
    assert data['income_statement']['net_profit']['margin_percentage'] == Decimal('0')
    assert data['key_metrics']['best_selling_product'] is None
    assert data['key_metrics']['profit_per_product'] == money('0')


def test_resolve_period_defaults_to_current_month_and_checks_order() -> None:
    assert resolve_period(None, None, date(2026, 2, 10)) == (date(2026, 2, 1), date(2026, 2, 28))
    assert resolve_period(date(2026, 2, 3), None, date(2026, 2, 10)) == (date(2026, 2, 3), date(2026, 2, 28))

    with pytest.raises(InvalidRangeError):
        resolve_period(date(2026, 3, 1), date(2026, 2, 1), TODAY)


def test_balance_sheet_always_balances() -> None:
    reader = _june_reader()

    data = build_balance_sheet(reader, as_of=TODAY)
    assets = data['assets']

    assert assets['current_assets']['inventory'] == money('600.00')
    assert assets['current_assets']['accounts_receivable'] == money('500.00')
    assert assets['total_assets'] == money('1100.00')
    assert data['equity']['total_equity'] == assets['total_assets'] - data['liabilities']['total_liabilities']
    assert data['balance_check'] == 'BALANCED'
    assert data['is_balanced'] is True


def test_cash_flow_nets_paid_sales_against_purchases() -> None:
    reader = _june_reader()

    data = build_cash_flow(reader, start=date(2026, 6, 1), end=date(2026, 6, 30), today=TODAY)
    operating = data['cash_flow_statement']['operating_activities']

    assert operating['cash_received_from_customers'] == money('1000.00')
    assert operating['cash_paid_for_inventory'] == money('300.00')
    assert operating['net_cash_from_operations'] == money('700.00')
    assert data['cash_flow_statement']['net_increase_in_cash'] == money('700.00')
    assert data['daily_trend'] == [{'date': '2026-06-25', 'cash_in': money('1000.00'), 'transactions': 1}]
    assert data['cash_position']['operating_cash_flow_ratio'] == 'POSITIVE'


def test_inventory_valuation_sorted_by_value() -> None:
    reader = _june_reader()
    reader.db.add(
        Product(
            business_id=reader.business_id,
            product_code='G-2',
            product_name='Gear Housing',
            raw_material_cost=money('200.00'),
            selling_price=money('250.00'),
            current_stock=5,
            is_active=True,
        )
    )
    reader.db.flush()

    data = build_inventory_valuation(reader)

    assert data['total_items'] == 2
    assert [item['product_code'] for item in data['items']] == ['G-2', 'G-1']
    assert data['total_value'] == money('1600.00')


def test_parse_report_type_rejects_unknown_values() -> None:
    assert parse_report_type(' Profit_Loss ') == ReportType.profit_loss

    with pytest.raises(UnknownIdentifierError) as exc_info:
        parse_report_type('trial_balance')
    assert exc_info.value.status_code == 400
    assert 'inventory_valuation' in exc_info.value.detail


def test_statement_line_items_flatten_each_report() -> None:
    reader = _june_reader()

    for report_type in ReportType:
        data = build_statement(
            reader,
            report_type,
            start=date(2026, 6, 1),
            end=date(2026, 6, 30),
            today=TODAY,
        )
        rows = statement_line_items(report_type, data)
        assert rows
        assert all(len(row) == 3 for row in rows)

    pl_rows = statement_line_items(
        ReportType.profit_loss,
        build_statement(reader, ReportType.profit_loss, today=TODAY),
    )
    assert ('Net profit', 'Amount', money('260.00')) in pl_rows
