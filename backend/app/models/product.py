from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("business_id", "product_code", name="uq_products_business_code"),
        CheckConstraint("current_stock >= 0", name="ck_products_stock_nonnegative"),
        CheckConstraint("min_stock_level >= 0", name="ck_products_min_stock_nonnegative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    business_id: Mapped[int] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_code: Mapped[str] = mapped_column(String(50), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit: Mapped[str] = mapped_column(String(20), default="PCS", nullable=False)

    raw_material_cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0, nullable=False)
    labor_cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0, nullable=False)
    overhead_cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0, nullable=False)
    selling_price: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0, nullable=False)

    min_stock_level: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    current_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    business: Mapped["Business"] = relationship("Business", back_populates="products")
    sales: Mapped[list["Sale"]] = relationship("Sale", back_populates="product")
    production_records: Mapped[list["ProductionRecord"]] = relationship(
        "ProductionRecord", back_populates="product"
    )
    inventory_transactions: Mapped[list["InventoryTransaction"]] = relationship(
        "InventoryTransaction", back_populates="product"
    )
