from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.business import Business
from app.models.enums import InventoryTransactionType, PaymentStatus, ProductionShift, RoleName
from app.models.inventory import InventoryTransaction
from app.models.product import Product
from app.models.production import ProductionRecord
from app.models.sale import Sale
from app.models.user import User
from app.services.aggregation import add_months
from app.utils.decimal_math import money

logger = logging.getLogger("factorybooks.seed")

DEMO_BUSINESS_NAME = "Shakti Precision Components"
HISTORY_MONTHS = 6

# code, name, category, material, labor, overhead, price, stock, min stock
DEMO_PRODUCTS = [
    ("GR-100", "Steel Gear 100mm", "Gears", "420.00", "120.00", "60.00", "950.00", 140, 40),
    ("SH-220", "Drive Shaft 220mm", "Shafts", "780.00", "210.00", "95.00", "1650.00", 35, 30),
    ("BR-045", "Bronze Bushing 45mm", "Bearings", "150.00", "40.00", "25.00", "310.00", 8, 25),
    ("FL-300", "Flange Plate 300mm", "Plates", "1350.00", "260.00", "140.00", "2100.00", 22, 15),
    ("VL-012", "Valve Body 12mm", "Valves", "640.00", "180.00", "90.00", "1180.00", 12, 20),
]

SHIFTS = [ProductionShift.morning, ProductionShift.evening, ProductionShift.night]


def _get_or_create_business(db: Session) -> Business:
    business = db.scalar(select(Business).where(Business.business_name == DEMO_BUSINESS_NAME))
    if business is not None:
        return business

    business = Business(
        business_name=DEMO_BUSINESS_NAME,
        industry="Manufacturing",
        currency=get_settings().currency_code,
        is_active=True,
    )
    db.add(business)
    db.flush()
    return business


def _get_or_create_user(
    db: Session,
    *,
    business_id: int,
    email: str,
    full_name: str,
    role: RoleName,
) -> User:
    user = db.scalar(select(User).where(User.email == email))
    if user is not None:
        return user

    user = User(business_id=business_id, email=email, full_name=full_name, role=role, is_active=True)
    db.add(user)
    db.flush()
    return user


def _get_or_create_products(db: Session, *, business_id: int) -> list[Product]:
    products: list[Product] = []
    for code, name, category, material, labor, overhead, price, stock, minimum in DEMO_PRODUCTS:
        product = db.scalar(
            select(Product).where(Product.business_id == business_id, Product.product_code == code)
        )
        if product is None:
            product = Product(
                business_id=business_id,
                product_code=code,
                product_name=name,
                category=category,
                raw_material_cost=Decimal(material),
                labor_cost=Decimal(labor),
                overhead_cost=Decimal(overhead),
                selling_price=Decimal(price),
                current_stock=stock,
                min_stock_level=minimum,
                is_active=True,
            )
            db.add(product)
            db.flush()
        products.append(product)
    return products


def _seed_day(
    db: Session,
    *,
    business_id: int,
    products: list[Product],
    day: date,
    today: date,
) -> None:
    seed = day.toordinal()
    product = products[seed % len(products)]
    quantity = 4 + seed % 9
    unit_price = money(Decimal(product.selling_price) * (Decimal("0.95") + Decimal(seed % 4) / Decimal("40")))
    age = (today - day).days
    if age > 45 or seed % 3:
        status = PaymentStatus.paid
    else:
        status = PaymentStatus.pending if seed % 2 else PaymentStatus.partial

    db.add(
        Sale(
            business_id=business_id,
            product_id=product.id,
            invoice_number=f"INV-{business_id}-{day:%Y%m%d}",
            customer_name=f"Customer {chr(65 + seed % 6)}",
            sale_date=day,
            quantity=quantity,
            unit_price=unit_price,
            tax_rate=Decimal("18.00"),
            payment_status=status,
        )
    )

    planned = 40 + seed % 25
    actual = planned - seed % 6
    rejected = seed % 4
    db.add(
        ProductionRecord(
            business_id=business_id,
            product_id=product.id,
            production_date=day,
            shift=SHIFTS[seed % len(SHIFTS)],
            planned_quantity=planned,
            actual_quantity=actual,
            good_quantity=actual - rejected,
            rejected_quantity=rejected,
            machine_id=f"M-{1 + seed % 4:02d}",
        )
    )

    if day.day in (1, 15):
        unit_cost = money(Decimal(product.raw_material_cost))
        db.add(
            InventoryTransaction(
                business_id=business_id,
                product_id=product.id,
                transaction_type=InventoryTransactionType.purchase,
                quantity=50,
                unit_price=unit_cost,
                total_value=money(unit_cost * Decimal("50")),
                transaction_date=day,
                reference_id=f"PO-{day:%Y%m%d}",
            )
        )
    if day.day == 20:
        db.add(
            InventoryTransaction(
                business_id=business_id,
                product_id=product.id,
                transaction_type=InventoryTransactionType.wastage,
                quantity=-rejected - 1,
                unit_price=money(Decimal(product.raw_material_cost)),
                total_value=money(Decimal(product.raw_material_cost) * Decimal(rejected + 1)),
                transaction_date=day,
                notes="Scrapped rejects",
            )
        )


def seed_demo_data(db: Session, *, today: date | None = None) -> None:
    today = today or date.today()
    settings = get_settings()
    business = _get_or_create_business(db)

    _get_or_create_user(
        db,
        business_id=business.id,
        email=settings.demo_owner_email,
        full_name="Demo Owner",
        role=RoleName.owner,
    )
    _get_or_create_user(
        db,
        business_id=business.id,
        email="accounts@factorybooks.local",
        full_name="Accounts Desk",
        role=RoleName.accountant,
    )
    _get_or_create_user(
        db,
        business_id=business.id,
        email="floor@factorybooks.local",
        full_name="Floor Manager",
        role=RoleName.manager,
    )
    products = _get_or_create_products(db, business_id=business.id)

    existing_sales = db.scalar(select(func.count(Sale.id)).where(Sale.business_id == business.id)) or 0
    if existing_sales == 0:
        start = add_months(today.replace(day=1), -(HISTORY_MONTHS - 1))
        day = start
        while day <= today:
            _seed_day(db, business_id=business.id, products=products, day=day, today=today)
            day += timedelta(days=1)
        logger.info("Seeded %s days of demo ledger history for %s.", (today - start).days + 1, DEMO_BUSINESS_NAME)

    db.commit()
