from datetime import date
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings
from app.db.base import Base
from app.models.business import Business
from app.models.enums import PaymentStatus
from app.models.product import Product
from app.models.production import ProductionRecord
from app.models.sale import Sale
from app.services.health import (
    compute_health_score,
    efficiency_factor,
    margin_factor,
    sales_factor,
    status_for,
    stock_factor,
)
from app.services.ledger_reader import LedgerReader
from app.utils.decimal_math import money


AS_OF = date(2026, 6, 30)


def _session() -> Session:
    engine = create_engine('sqlite+pysqlite:///:memory:', future=True)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)()


def _empty_reader() -> LedgerReader:
    db = _session()
    business = Business(business_name='Health Works', is_active=True)
    db.add(business)
    db.flush()
    return LedgerReader(db, business.id)


def test_empty_business_scores_neutral_defaults() -> None:
    payload = compute_health_score(_empty_reader(), as_of=AS_OF, settings=Settings())

    assert [factor['score'] for factor in payload['factors']] == [
        Decimal('25'),
        Decimal('15'),
        Decimal('15'),
        Decimal('20'),
    ]
    assert payload['raw_score'] == Decimal('75.0')
    assert payload['overall_score'] == 75
    assert payload['health_status'] == 'Good'
    assert payload['status_color'] == 'yellow'
    assert payload['as_of'] == '2026-06-30'


def test_status_band_boundaries() -> None:
    assert status_for(Decimal('49.9')) == ('Critical', 'red')
    assert status_for(Decimal('50')) == ('Warning', 'orange')
    assert status_for(Decimal('69.9')) == ('Warning', 'orange')
    assert status_for(Decimal('70')) == ('Good', 'yellow')
    assert status_for(Decimal('85')) == ('Healthy', 'green')
    assert status_for(Decimal('100')) == ('Healthy', 'green')


def test_stock_factor_scales_with_low_stock_share() -> None:
    assert stock_factor(4, 1).score == Decimal('18.8')
    assert stock_factor(4, 4).score == Decimal('0')
    assert stock_factor(0, 0).score == Decimal('25')


def test_efficiency_factor_is_capped() -> None:
    assert efficiency_factor(Decimal('90'), 3).score == Decimal('22.5')
    assert efficiency_factor(Decimal('130'), 3).score == Decimal('25')
    assert efficiency_factor(Decimal('0'), 0).score == Decimal('15')


def test_sales_factor_threshold_is_strict() -> None:
    settings = Settings()

    assert sales_factor(money('10000.00'), settings).score == Decimal('15')
    assert sales_factor(money('10000.01'), settings).score == Decimal('20')


def test_margin_factor_computed_and_fixed_modes() -> None:
    computed = Settings()

    assert margin_factor([Decimal('40')], computed).score == Decimal('25')
    assert margin_factor([Decimal('10'), Decimal('30')], computed).score == Decimal('12.5')
    assert margin_factor([Decimal('-15')], computed).score == Decimal('0')
    assert margin_factor([], computed).score == Decimal('20')
    assert margin_factor([Decimal('40')], Settings(health_margin_mode='fixed')).score == Decimal('20')


def test_health_score_combines_ledger_factors() -> None:
    reader = _empty_reader()
    db = reader.db
    product = Product(
        business_id=reader.business_id,
        product_code='H-1',
        product_name='Hub',
        raw_material_cost=money('40.00'),
        labor_cost=money('15.00'),
        overhead_cost=money('5.00'),
        selling_price=money('100.00'),
        current_stock=10,
        min_stock_level=5,
        is_active=True,
    )
    db.add(product)
    db.flush()
    db.add(
        ProductionRecord(
            business_id=reader.business_id,
            product_id=product.id,
            production_date=date(2026, 1, 10),
            planned_quantity=100,
            actual_quantity=90,
            good_quantity=90,
            rejected_quantity=0,
        )
    )
    db.add_all(
        [
            Sale(
                business_id=reader.business_id,
                product_id=product.id,
                sale_date=date(2026, 6, 20),
                quantity=101,
                unit_price=money('100.00'),
                payment_status=PaymentStatus.paid,
            ),
            # outside the trailing sales window
            Sale(
                business_id=reader.business_id,
                product_id=product.id,
                sale_date=date(2026, 5, 1),
                quantity=500,
                unit_price=money('100.00'),
                payment_status=PaymentStatus.paid,
            ),
        ]
    )
    db.flush()

    payload = compute_health_score(reader, as_of=AS_OF, settings=Settings())
    scores = {factor['name']: factor['score'] for factor in payload['factors']}

    assert scores == {
        'Stock Availability': Decimal('25'),
        'Production Efficiency': Decimal('22.5'),
        'Sales Performance': Decimal('20'),
        'Profit Margin': Decimal('25'),
    }
    assert payload['raw_score'] == Decimal('92.5')
    assert payload['overall_score'] == 93
    assert payload['health_status'] == 'Healthy'
