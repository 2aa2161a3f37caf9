from datetime import date

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker

from app.db.base import Base
from app.models.business import Business
from app.models.product import Product
from app.models.production import ProductionRecord
from app.models.sale import Sale
from app.models.user import User
from app.services.seed import DEMO_PRODUCTS, seed_demo_data


def _session() -> Session:
    engine = create_engine('sqlite+pysqlite:///:memory:', future=True)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)()


def _count(db: Session, model) -> int:
    return db.scalar(select(func.count(model.id)))


def test_seed_creates_six_months_of_daily_history() -> None:
    db = _session()

    seed_demo_data(db, today=date(2026, 6, 30))

    assert _count(db, Business) == 1
    assert _count(db, User) == 3
    assert _count(db, Product) == len(DEMO_PRODUCTS)
    # 2026-01-01 through 2026-06-30
    assert _count(db, Sale) == 181
    assert _count(db, ProductionRecord) == 181
    assert db.scalar(select(func.min(Sale.sale_date))) == date(2026, 1, 1)


def test_seed_is_idempotent() -> None:
    db = _session()

    seed_demo_data(db, today=date(2026, 6, 30))
    seed_demo_data(db, today=date(2026, 7, 15))

    assert _count(db, Business) == 1
    assert _count(db, User) == 3
    assert _count(db, Sale) == 181
