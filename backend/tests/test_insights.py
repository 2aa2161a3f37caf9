from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings
from app.db.base import Base
from app.models.business import Business
from app.models.enums import InsightType, PaymentStatus
from app.models.product import Product
from app.models.sale import Sale
from app.services.errors import UnknownIdentifierError
from app.services.insights import analyze_business, get_insight, parse_insight_type, select_analysers
from app.services.ledger_reader import LedgerReader
from app.utils.decimal_math import money


AS_OF = date(2026, 6, 30)


def _session() -> Session:
    engine = create_engine('sqlite+pysqlite:///:memory:', future=True)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)()


def _product(reader: LedgerReader, code: str, cost: str, stock: int, minimum: int) -> Product:
    product = Product(
        business_id=reader.business_id,
        product_code=code,
        product_name=f'Part {code}',
        raw_material_cost=money(cost),
        selling_price=money('100.00'),
        current_stock=stock,
        min_stock_level=minimum,
        is_active=True,
    )
    reader.db.add(product)
    reader.db.flush()
    return product


def _reader() -> LedgerReader:
    db = _session()
    business = Business(business_name='Insight Works', is_active=True)
    db.add(business)
    db.flush()
    return LedgerReader(db, business.id)


def test_profit_insight_flags_thin_margins_in_priority_order() -> None:
    reader = _reader()
    _product(reader, 'M-15', '85.00', 20, 10)
    _product(reader, 'M-5', '95.00', 20, 10)

    payload = get_insight(reader, 'profit', as_of=AS_OF, settings=Settings())

    assert payload['type'] == 'profit'
    assert payload['confidence'] == 85
    assert payload['insights'][0] == 'Average profit margin is 10.0%, which is below the healthy threshold of 25%'
    assert payload['insights'][1] == '2 products have margins below 20%'
    assert payload['insights'][2] == 'No sales recorded in the last 30 days'
    assert [row['priority'] for row in payload['recommendations']] == [1, 2]
    assert payload['recommendations'][0]['action'] == 'Review pricing or reduce costs for Part M-5'


def test_inventory_insight_orders_reorders_before_promotions() -> None:
    reader = _reader()
    _product(reader, 'LOW', '10.00', 1, 5)
    _product(reader, 'BULK', '10.00', 100, 10)

    payload = get_insight(reader, InsightType.inventory, as_of=AS_OF, settings=Settings())

    assert payload['confidence'] == 90
    assert [row['action'] for row in payload['recommendations']] == [
        'Reorder Part LOW',
        'Create promotion for Part LOW',
        'Create promotion for Part BULK',
        'Review stock levels for Part BULK',
    ]
    assert [row['priority'] for row in payload['recommendations']] == [1, 2, 2, 3]


def test_sales_insight_reports_top_product() -> None:
    reader = _reader()
    product = _product(reader, 'TOP', '10.00', 50, 5)
    for day, amount in ((24, '1000.00'), (30, '500.00')):
        reader.db.add(
            Sale(
                business_id=reader.business_id,
                product_id=product.id,
                sale_date=date(2026, 6, day),
                quantity=1,
                unit_price=money(amount),
                payment_status=PaymentStatus.paid,
            )
        )
    reader.db.flush()

    payload = get_insight(reader, 'sales', as_of=AS_OF, settings=Settings())

    assert payload['insights'][0] == 'Average daily sales: ₹750.00'
    assert payload['insights'][1] == 'Sales trend: DOWN by 50.0% over the last week'
    assert payload['insights'][2] == 'Top product: Part TOP (₹1,500.00)'
    assert payload['recommendations'][0] == {
        'action': 'Investigate recent sales drop',
        'reason': 'Sales decreasing',
        'priority': 1,
    }


def test_risk_insight_is_backed_by_anomaly_rules() -> None:
    reader = _reader()
    _product(reader, 'R-1', '10.00', 0, 5)

    payload = get_insight(reader, 'risk', as_of=AS_OF, settings=Settings())

    assert payload['confidence'] == 65
    assert payload['insights'][0] == 'Overall risk level: LOW (1 anomalies)'
    assert '1 products are below minimum stock level' in payload['insights']
    assert [row['priority'] for row in payload['recommendations']] == [2, 2]


def test_cost_insight_flags_products_near_their_price() -> None:
    reader = _reader()
    _product(reader, 'C-1', '95.00', 20, 10)

    payload = get_insight(reader, 'cost', as_of=AS_OF, settings=Settings())

    assert payload['insights'][3] == '1 products have costs exceeding 80% of selling price'
    assert payload['recommendations'][0] == {
        'action': 'Reduce costs for Part C-1',
        'reason': 'Cost is 95.0% of selling price',
        'priority': 1,
    }


def test_unknown_insight_type_is_rejected() -> None:
    with pytest.raises(UnknownIdentifierError) as exc_info:
        parse_insight_type('weather')
    assert exc_info.value.status_code == 400

    with pytest.raises(UnknownIdentifierError):
        get_insight(_reader(), 'weather', as_of=AS_OF, settings=Settings())


def test_select_analysers_routes_question_keywords() -> None:
    assert select_analysers('Why is profit falling while stock piles up?', None) == [
        InsightType.profit,
        InsightType.inventory,
    ]
    assert select_analysers(None, None) == [
        InsightType.profit,
        InsightType.sales,
        InsightType.inventory,
        InsightType.production,
        InsightType.cost,
    ]
    assert select_analysers('anything at all', 'risk') == [InsightType.risk]
    assert select_analysers('hello there', 'comprehensive') == []


def test_analyze_business_averages_confidence_of_selected_analysers() -> None:
    reader = _reader()
    _product(reader, 'A-1', '95.00', 20, 10)

    payload = analyze_business(reader, as_of=AS_OF, question='How are revenue and cost trending?', settings=Settings())

    assert payload['analysers'] == ['sales', 'cost']
    assert payload['confidence_score'] == 75
    assert payload['analysis_type'] == 'comprehensive'
    priorities = [row['priority'] for row in payload['recommendations']]
    assert priorities == sorted(priorities)


def test_analyze_business_without_matching_analysers() -> None:
    payload = analyze_business(_reader(), as_of=AS_OF, question='hello there', settings=Settings())

    assert payload['analysers'] == []
    assert payload['insights'] == []
    assert payload['confidence_score'] == 0
