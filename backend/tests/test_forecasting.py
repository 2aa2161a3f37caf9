from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings
from app.db.base import Base
from app.models.business import Business
from app.models.enums import PaymentStatus
from app.models.product import Product
from app.models.sale import Sale
from app.services.aggregation import Granularity, TimeSeriesPoint
from app.services.errors import InsufficientDataError
from app.services.forecasting import (
    confidence_for_offset,
    forecast_products,
    forecast_series,
    generate_sales_forecast,
    linear_regression,
)
from app.services.ledger_reader import LedgerReader, ProductSalesRow
from app.utils.decimal_math import money


MONTHLY_SALES = ['65000.00', '59000.00', '80000.00', '81000.00', '56000.00', '55000.00']


def _session() -> Session:
    engine = create_engine('sqlite+pysqlite:///:memory:', future=True)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)()


def _monthly_series(values: list[str], year: int = 2026) -> list[TimeSeriesPoint]:
    return [
        TimeSeriesPoint(
            period=f'{year:04d}-{index + 1:02d}',
            period_start=date(year, index + 1, 1),
            revenue=money(value),
            quantity=1,
            transactions=1,
        )
        for index, value in enumerate(values)
    ]


def test_linear_regression_matches_closed_form() -> None:
    slope, intercept = linear_regression([Decimal('2'), Decimal('4'), Decimal('6'), Decimal('8')])
    assert slope == Decimal('2')
    assert intercept == Decimal('2')

    slope, intercept = linear_regression([money(value) for value in MONTHLY_SALES])
    # n=6, Σx=15, Σy=396000, Σx²=55, Σxy=961000
    assert money(slope) == money('-1657.14')
    assert money(intercept) == money('70142.86')


def test_linear_regression_degenerate_inputs() -> None:
    assert linear_regression([]) == (Decimal('0'), Decimal('0'))
    assert linear_regression([Decimal('42')]) == (Decimal('0'), Decimal('42'))


def test_six_month_example_applies_july_seasonality() -> None:
    series = _monthly_series(MONTHLY_SALES)
    settings = Settings()

    result = forecast_series(series, horizon=1, granularity=Granularity.month, settings=settings)
    point = result.points[0]
    expected_trend = result.slope * Decimal('6') + result.intercept

    assert point.period == '2026-07'
    assert point.seasonality_factor == Decimal('1.2')
    assert point.trend_revenue == money(expected_trend) == money('60200.00')
    assert point.predicted_revenue == money(expected_trend * Decimal('1.2')) == money('72240.00')
    assert point.growth_rate == Decimal('31.345455')
    assert point.confidence == 100


def test_confidence_steps_down_and_floors_at_fifty() -> None:
    series = _monthly_series(MONTHLY_SALES)

    result = forecast_series(series, horizon=6, settings=Settings())
    confidences = [point.confidence for point in result.points]

    assert confidences == [100, 85, 70, 55, 50, 50]
    assert all(later <= earlier for earlier, later in zip(confidences, confidences[1:]))
    assert confidence_for_offset(20, Settings()) == 50


def test_forecast_clamps_negative_trend_and_reports_undefined_growth() -> None:
    series = _monthly_series(['3000.00', '1000.00'])

    result = forecast_series(series, horizon=3, settings=Settings())

    assert [point.trend_revenue for point in result.points] == [money('0')] * 3
    assert result.points[0].growth_rate == Decimal('-100.000000')
    # previous prediction is 0, so growth is undefined rather than an error
    assert result.points[1].growth_rate is None


def test_seasonality_follows_target_calendar_month_across_year_end() -> None:
    series = [
        TimeSeriesPoint(period='2026-10', period_start=date(2026, 10, 1), revenue=money('100.00'), quantity=1),
        TimeSeriesPoint(period='2026-11', period_start=date(2026, 11, 1), revenue=money('100.00'), quantity=1),
    ]

    result = forecast_series(series, horizon=3, settings=Settings())

    assert [point.period for point in result.points] == ['2026-12', '2027-01', '2027-02']
    assert [point.predicted_revenue for point in result.points] == [
        money('140.00'),
        money('90.00'),
        money('80.00'),
    ]


def test_forecast_requires_two_points() -> None:
    with pytest.raises(InsufficientDataError):
        forecast_series(_monthly_series(['100.00']), settings=Settings())


def test_product_forecasts_apply_flat_growth_to_top_sellers() -> None:
    rows = [
        ProductSalesRow(
            product_id=index,
            product_code=f'P-{index}',
            product_name=f'Product {index}',
            revenue=money(index * 1000),
            quantity=index,
            unit_cost=money('1.00'),
        )
        for index in range(1, 8)
    ]

    forecasts = forecast_products(rows, settings=Settings())

    assert [item['product_id'] for item in forecasts] == [7, 6, 5, 4, 3]
    assert forecasts[0]['predicted_revenue'] == money('7350.00')
    assert forecasts[0]['predicted_growth'] == '5%'
    assert forecasts[0]['method'] == 'flat_growth_assumption'


def test_generate_sales_forecast_reads_trailing_history_window() -> None:
    db = _session()
    business = Business(business_name='Forecast Works', is_active=True)
    db.add(business)
    db.flush()
    product = Product(
        business_id=business.id,
        product_code='F-1',
        product_name='Forged Flange',
        selling_price=money('1000.00'),
        is_active=True,
    )
    db.add(product)
    db.flush()
    # one sale per month, plus an older sale outside the six-month window
    for month, value in enumerate(MONTHLY_SALES, start=1):
        db.add(
            Sale(
                business_id=business.id,
                product_id=product.id,
                sale_date=date(2026, month, 15),
                quantity=1,
                unit_price=money(value),
                payment_status=PaymentStatus.paid,
            )
        )
    db.add(
        Sale(
            business_id=business.id,
            product_id=product.id,
            sale_date=date(2025, 12, 15),
            quantity=1,
            unit_price=money('999999.00'),
            payment_status=PaymentStatus.paid,
        )
    )
    db.flush()

    payload = generate_sales_forecast(LedgerReader(db, business.id), as_of=date(2026, 6, 30), settings=Settings())

    assert payload['history_start'] == '2026-01-01'
    assert [row['period'] for row in payload['historical']] == [
        '2026-01',
        '2026-02',
        '2026-03',
        '2026-04',
        '2026-05',
        '2026-06',
    ]
    assert payload['model']['points'] == 6
    assert payload['predictions'][0]['period'] == '2026-07'
    assert payload['predictions'][0]['predicted_revenue'] == money('72240.00')
    assert payload['product_predictions'][0]['product_code'] == 'F-1'
    assert payload['assumptions']
    assert payload['recommended_actions']


def test_generate_sales_forecast_without_history_raises() -> None:
    db = _session()
    business = Business(business_name='Empty Works', is_active=True)
    db.add(business)
    db.flush()

    with pytest.raises(InsufficientDataError):
        generate_sales_forecast(LedgerReader(db, business.id), as_of=date(2026, 6, 30), settings=Settings())


def test_weekly_forecast_skips_partial_first_week() -> None:
    db = _session()
    business = Business(business_name='Weekly Works', is_active=True)
    db.add(business)
    db.flush()
    product = Product(business_id=business.id, product_code='W-1', product_name='Washer', is_active=True)
    db.add(product)
    db.flush()
    # flat 100/day; 2026-01-01 is a Thursday, so its week is only partly inside the window
    day = date(2026, 1, 1)
    while day <= date(2026, 6, 28):
        db.add(
            Sale(
                business_id=business.id,
                product_id=product.id,
                sale_date=day,
                quantity=1,
                unit_price=money('100.00'),
                payment_status=PaymentStatus.paid,
            )
        )
        day += timedelta(days=1)
    db.flush()

    payload = generate_sales_forecast(
        LedgerReader(db, business.id),
        as_of=date(2026, 6, 28),
        granularity=Granularity.week,
        settings=Settings(),
    )

    assert payload['history_start'] == '2026-01-05'
    assert payload['historical'][0]['period_start'] == '2026-01-05'
    assert {row['revenue'] for row in payload['historical']} == {money('700.00')}
    assert payload['model']['slope'] == money('0')
    assert payload['predictions'][0]['period_start'] == '2026-06-29'
    assert payload['predictions'][0]['trend_revenue'] == money('700.00')
