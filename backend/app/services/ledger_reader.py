"""Read-only aggregate access to one business's sales, production and inventory ledgers.

Every other engine module reads through :class:`LedgerReader`; none of them build
queries against the ORM models directly. Query parameters are small frozen
dataclasses and results are typed rows with Decimal money values, so callers never
have to guess at field names or coerce database-specific numeric types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy import Select, and_, case, func, literal, select
from sqlalchemy.orm import Session

from app.models.enums import InventoryTransactionType, PaymentStatus, ProductionShift
from app.models.inventory import InventoryTransaction
from app.models.product import Product
from app.models.production import ProductionRecord
from app.models.sale import Sale
from app.utils.decimal_math import money, pct, to_decimal


@dataclass(frozen=True)
class SalesQuery:
    start: date | None = None
    end: date | None = None
    payment_status: PaymentStatus | None = None
    product_id: int | None = None


@dataclass(frozen=True)
class ProductionQuery:
    start: date | None = None
    end: date | None = None
    product_id: int | None = None


@dataclass(frozen=True)
class InventoryQuery:
    start: date | None = None
    end: date | None = None
    transaction_types: tuple[InventoryTransactionType, ...] = ()


@dataclass(frozen=True)
class SalesTotals:
    revenue: Decimal
    tax: Decimal
    quantity: int
    transactions: int

    @property
    def average_sale_value(self) -> Decimal:
        if self.transactions == 0:
            return money(0)
        return money(self.revenue / Decimal(self.transactions))


@dataclass(frozen=True)
class DailySalesRow:
    day: date
    revenue: Decimal
    quantity: int
    transactions: int
    paid_revenue: Decimal


@dataclass(frozen=True)
class ProductSalesRow:
    product_id: int
    product_code: str
    product_name: str
    revenue: Decimal
    quantity: int
    unit_cost: Decimal


@dataclass(frozen=True)
class ProductionTotals:
    planned: int
    actual: int
    good: int
    rejected: int
    avg_efficiency_pct: Decimal
    efficiency_records: int
    avg_rejection_pct: Decimal
    rejection_records: int


@dataclass(frozen=True)
class DailyProductionRow:
    day: date
    planned: int
    actual: int
    good: int
    rejected: int


@dataclass(frozen=True)
class ShiftProductionRow:
    shift: ProductionShift
    actual: int
    rejected: int


@dataclass(frozen=True)
class ProductCostProfile:
    product_id: int
    product_code: str
    product_name: str
    category: str | None
    raw_material_cost: Decimal
    labor_cost: Decimal
    overhead_cost: Decimal
    selling_price: Decimal
    current_stock: int
    min_stock_level: int

    @property
    def total_cost(self) -> Decimal:
        return money(self.raw_material_cost + self.labor_cost + self.overhead_cost)

    @property
    def margin_pct(self) -> Decimal | None:
        if self.selling_price <= 0:
            return None
        return pct((self.selling_price - self.total_cost) / self.selling_price * Decimal("100"))

    @property
    def stock_value(self) -> Decimal:
        return money(Decimal(self.current_stock) * self.total_cost)

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock_level

    @classmethod
    def from_product(cls, product: Product) -> "ProductCostProfile":
        return cls(
            product_id=product.id,
            product_code=product.product_code,
            product_name=product.product_name,
            category=product.category,
            raw_material_cost=money(to_decimal(product.raw_material_cost)),
            labor_cost=money(to_decimal(product.labor_cost)),
            overhead_cost=money(to_decimal(product.overhead_cost)),
            selling_price=money(to_decimal(product.selling_price)),
            current_stock=int(product.current_stock or 0),
            min_stock_level=int(product.min_stock_level or 0),
        )


def _revenue_expr():
    return Sale.quantity * Sale.unit_price


def _tax_expr():
    # 100.0 keeps SQLite from truncating integer division
    return Sale.quantity * Sale.unit_price * Sale.tax_rate / literal(100.0)


class LedgerReader:
    def __init__(self, db: Session, business_id: int, currency: str | None = None) -> None:
        self.db = db
        self.business_id = business_id
        # the tenant's reporting currency; None falls back to the configured default
        self.currency = currency

    # ── sales ──

    def _sales_filters(self, query: SalesQuery) -> list:
        filters = [Sale.business_id == self.business_id]
        if query.start is not None:
            filters.append(Sale.sale_date >= query.start)
        if query.end is not None:
            filters.append(Sale.sale_date <= query.end)
        if query.payment_status is not None:
            filters.append(Sale.payment_status == query.payment_status)
        if query.product_id is not None:
            filters.append(Sale.product_id == query.product_id)
        return filters

    def sales_totals(self, query: SalesQuery) -> SalesTotals:
        row = self.db.execute(
            select(
                func.sum(_revenue_expr()),
                func.sum(_tax_expr()),
                func.sum(Sale.quantity),
                func.count(Sale.id),
            ).where(and_(*self._sales_filters(query)))
        ).one()
        return SalesTotals(
            revenue=money(to_decimal(row[0])),
            tax=money(to_decimal(row[1])),
            quantity=int(row[2] or 0),
            transactions=int(row[3] or 0),
        )

    def sales_by_day(self, query: SalesQuery) -> list[DailySalesRow]:
        paid_revenue = func.sum(
            case((Sale.payment_status == PaymentStatus.paid, _revenue_expr()), else_=literal(0))
        )
        rows = self.db.execute(
            select(
                Sale.sale_date,
                func.sum(_revenue_expr()),
                func.sum(Sale.quantity),
                func.count(Sale.id),
                paid_revenue,
            )
            .where(and_(*self._sales_filters(query)))
            .group_by(Sale.sale_date)
            .order_by(Sale.sale_date.asc())
        ).all()
        return [
            DailySalesRow(
                day=row[0],
                revenue=money(to_decimal(row[1])),
                quantity=int(row[2] or 0),
                transactions=int(row[3] or 0),
                paid_revenue=money(to_decimal(row[4])),
            )
            for row in rows
        ]

    def sales_by_product(self, query: SalesQuery, *, limit: int | None = None) -> list[ProductSalesRow]:
        revenue = func.sum(_revenue_expr())
        stmt: Select = (
            select(
                Product.id,
                Product.product_code,
                Product.product_name,
                revenue,
                func.sum(Sale.quantity),
                Product.raw_material_cost,
                Product.labor_cost,
                Product.overhead_cost,
            )
            .select_from(Sale)
            .join(Product, Product.id == Sale.product_id)
            .where(and_(*self._sales_filters(query)))
            .group_by(
                Product.id,
                Product.product_code,
                Product.product_name,
                Product.raw_material_cost,
                Product.labor_cost,
                Product.overhead_cost,
            )
            .order_by(revenue.desc(), Product.id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [
            ProductSalesRow(
                product_id=row[0],
                product_code=row[1],
                product_name=row[2],
                revenue=money(to_decimal(row[3])),
                quantity=int(row[4] or 0),
                unit_cost=money(to_decimal(row[5]) + to_decimal(row[6]) + to_decimal(row[7])),
            )
            for row in self.db.execute(stmt).all()
        ]

    def recent_sales(self, limit: int = 5) -> list[Sale]:
        return list(
            self.db.scalars(
                select(Sale)
                .where(Sale.business_id == self.business_id)
                .order_by(Sale.sale_date.desc(), Sale.id.desc())
                .limit(limit)
            ).all()
        )

    # ── production ──

    def _production_filters(self, query: ProductionQuery) -> list:
        filters = [ProductionRecord.business_id == self.business_id]
        if query.start is not None:
            filters.append(ProductionRecord.production_date >= query.start)
        if query.end is not None:
            filters.append(ProductionRecord.production_date <= query.end)
        if query.product_id is not None:
            filters.append(ProductionRecord.product_id == query.product_id)
        return filters

    def production_totals(self, query: ProductionQuery) -> ProductionTotals:
        filters = self._production_filters(query)
        sums = self.db.execute(
            select(
                func.sum(ProductionRecord.planned_quantity),
                func.sum(ProductionRecord.actual_quantity),
                func.sum(ProductionRecord.good_quantity),
                func.sum(ProductionRecord.rejected_quantity),
            ).where(and_(*filters))
        ).one()
        efficiency = self.db.execute(
            select(
                func.avg(
                    ProductionRecord.actual_quantity * literal(100.0) / ProductionRecord.planned_quantity
                ),
                func.count(ProductionRecord.id),
            ).where(and_(*filters, ProductionRecord.planned_quantity > 0))
        ).one()
        rejection = self.db.execute(
            select(
                func.avg(
                    ProductionRecord.rejected_quantity * literal(100.0) / ProductionRecord.actual_quantity
                ),
                func.count(ProductionRecord.id),
            ).where(and_(*filters, ProductionRecord.actual_quantity > 0))
        ).one()
        return ProductionTotals(
            planned=int(sums[0] or 0),
            actual=int(sums[1] or 0),
            good=int(sums[2] or 0),
            rejected=int(sums[3] or 0),
            avg_efficiency_pct=pct(to_decimal(efficiency[0])),
            efficiency_records=int(efficiency[1] or 0),
            avg_rejection_pct=pct(to_decimal(rejection[0])),
            rejection_records=int(rejection[1] or 0),
        )

    def production_by_day(self, query: ProductionQuery) -> list[DailyProductionRow]:
        rows = self.db.execute(
            select(
                ProductionRecord.production_date,
                func.sum(ProductionRecord.planned_quantity),
                func.sum(ProductionRecord.actual_quantity),
                func.sum(ProductionRecord.good_quantity),
                func.sum(ProductionRecord.rejected_quantity),
            )
            .where(and_(*self._production_filters(query)))
            .group_by(ProductionRecord.production_date)
            .order_by(ProductionRecord.production_date.asc())
        ).all()
        return [
            DailyProductionRow(
                day=row[0],
                planned=int(row[1] or 0),
                actual=int(row[2] or 0),
                good=int(row[3] or 0),
                rejected=int(row[4] or 0),
            )
            for row in rows
        ]

    def production_by_shift(self, query: ProductionQuery) -> list[ShiftProductionRow]:
        rows = self.db.execute(
            select(
                ProductionRecord.shift,
                func.sum(ProductionRecord.actual_quantity),
                func.sum(ProductionRecord.rejected_quantity),
            )
            .where(and_(*self._production_filters(query)))
            .group_by(ProductionRecord.shift)
            .order_by(ProductionRecord.shift.asc())
        ).all()
        return [
            ShiftProductionRow(shift=row[0], actual=int(row[1] or 0), rejected=int(row[2] or 0))
            for row in rows
        ]

    def recent_production(self, limit: int = 5) -> list[ProductionRecord]:
        return list(
            self.db.scalars(
                select(ProductionRecord)
                .where(ProductionRecord.business_id == self.business_id)
                .order_by(ProductionRecord.production_date.desc(), ProductionRecord.id.desc())
                .limit(limit)
            ).all()
        )

    # ── inventory ──

    def _inventory_filters(self, query: InventoryQuery) -> list:
        filters = [InventoryTransaction.business_id == self.business_id]
        if query.start is not None:
            filters.append(InventoryTransaction.transaction_date >= query.start)
        if query.end is not None:
            filters.append(InventoryTransaction.transaction_date <= query.end)
        if query.transaction_types:
            filters.append(InventoryTransaction.transaction_type.in_(list(query.transaction_types)))
        return filters

    def inventory_value(self, query: InventoryQuery) -> Decimal:
        total = self.db.scalar(
            select(func.sum(InventoryTransaction.total_value)).where(and_(*self._inventory_filters(query)))
        )
        return money(to_decimal(total))

    def inventory_value_by_type(self, query: InventoryQuery) -> dict[InventoryTransactionType, Decimal]:
        rows = self.db.execute(
            select(InventoryTransaction.transaction_type, func.sum(InventoryTransaction.total_value))
            .where(and_(*self._inventory_filters(query)))
            .group_by(InventoryTransaction.transaction_type)
        ).all()
        values = {tx_type: money(0) for tx_type in query.transaction_types}
        for tx_type, total in rows:
            values[tx_type] = money(to_decimal(total))
        return values

    # ── products ──

    def active_products(self) -> list[ProductCostProfile]:
        products = self.db.scalars(
            select(Product)
            .where(Product.business_id == self.business_id, Product.is_active.is_(True))
            .order_by(Product.id.asc())
        ).all()
        return [ProductCostProfile.from_product(product) for product in products]

    def count_active_products(self) -> int:
        return int(
            self.db.scalar(
                select(func.count(Product.id)).where(
                    Product.business_id == self.business_id,
                    Product.is_active.is_(True),
                )
            )
            or 0
        )

    def count_low_stock_products(self) -> int:
        return int(
            self.db.scalar(
                select(func.count(Product.id)).where(
                    Product.business_id == self.business_id,
                    Product.is_active.is_(True),
                    Product.current_stock <= Product.min_stock_level,
                )
            )
            or 0
        )

    def products_without_sales(self, product_ids: Iterable[int], query: SalesQuery) -> set[int]:
        sold = {row.product_id for row in self.sales_by_product(query)}
        return {product_id for product_id in product_ids if product_id not in sold}
