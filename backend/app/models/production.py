from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.enums import ProductionShift


class ProductionRecord(Base):
    __tablename__ = "production_records"
    __table_args__ = (
        CheckConstraint(
            "good_quantity + rejected_quantity = actual_quantity",
            name="ck_production_good_plus_rejected_equals_actual",
        ),
        CheckConstraint(
            "planned_quantity >= 0 AND actual_quantity >= 0 AND good_quantity >= 0 AND rejected_quantity >= 0",
            name="ck_production_quantities_nonnegative",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    business_id: Mapped[int] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    production_date: Mapped[date] = mapped_column(
        nullable=False, index=True, server_default=func.current_date()
    )
    shift: Mapped[ProductionShift] = mapped_column(
        Enum(ProductionShift, name="production_shift"),
        default=ProductionShift.general,
        nullable=False,
    )
    planned_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    actual_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    good_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rejected_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    machine_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    business: Mapped["Business"] = relationship("Business", back_populates="production_records")
    product: Mapped["Product"] = relationship("Product", back_populates="production_records")
