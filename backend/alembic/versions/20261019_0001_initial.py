"""Initial schema for the FactoryBooks ledgers.

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    role_name = sa.Enum(
        "owner", "admin", "manager", "accountant", "analyst", "operator", "viewer", name="role_name"
    )
    payment_status = sa.Enum("paid", "pending", "partial", name="payment_status")
    production_shift = sa.Enum("morning", "evening", "night", "general", name="production_shift")
    # enum member names, not values: "customer_return" is stored for the "return" type
    inventory_transaction_type = sa.Enum(
        "purchase",
        "sale",
        "customer_return",
        "adjustment",
        "wastage",
        "production",
        name="inventory_transaction_type",
    )

    for enum_type in (role_name, payment_status, production_shift, inventory_transaction_type):
        enum_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "businesses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_name", sa.String(length=255), nullable=False),
        sa.Column("industry", sa.String(length=100), nullable=False, server_default="Manufacturing"),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="INR"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_businesses_id", "businesses", ["id"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", role_name, nullable=False, server_default="owner"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_business_id", "users", ["business_id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_code", sa.String(length=50), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit", sa.String(length=20), nullable=False, server_default="PCS"),
        sa.Column("raw_material_cost", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("labor_cost", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("overhead_cost", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("selling_price", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("min_stock_level", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("current_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("business_id", "product_code", name="uq_products_business_code"),
        sa.CheckConstraint("current_stock >= 0", name="ck_products_stock_nonnegative"),
        sa.CheckConstraint("min_stock_level >= 0", name="ck_products_min_stock_nonnegative"),
    )
    op.create_index("ix_products_id", "products", ["id"])
    op.create_index("ix_products_business_id", "products", ["business_id"])

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("invoice_number", sa.String(length=100), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("sale_date", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(15, 2), nullable=False),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("payment_status", payment_status, nullable=False, server_default="pending"),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("invoice_number", name="uq_sales_invoice_number"),
        sa.CheckConstraint("quantity >= 1", name="ck_sales_quantity_positive"),
        sa.CheckConstraint("unit_price >= 0", name="ck_sales_unit_price_nonnegative"),
        sa.CheckConstraint("tax_rate >= 0 AND tax_rate <= 100", name="ck_sales_tax_rate_range"),
    )
    op.create_index("ix_sales_id", "sales", ["id"])
    op.create_index("ix_sales_business_id", "sales", ["business_id"])
    op.create_index("ix_sales_product_id", "sales", ["product_id"])
    op.create_index("ix_sales_sale_date", "sales", ["sale_date"])

    op.create_table(
        "production_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("production_date", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column("shift", production_shift, nullable=False, server_default="general"),
        sa.Column("planned_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("actual_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("good_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rejected_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("machine_id", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "good_quantity + rejected_quantity = actual_quantity",
            name="ck_production_good_plus_rejected_equals_actual",
        ),
        sa.CheckConstraint(
            "planned_quantity >= 0 AND actual_quantity >= 0 AND good_quantity >= 0 AND rejected_quantity >= 0",
            name="ck_production_quantities_nonnegative",
        ),
    )
    op.create_index("ix_production_records_id", "production_records", ["id"])
    op.create_index("ix_production_records_business_id", "production_records", ["business_id"])
    op.create_index("ix_production_records_product_id", "production_records", ["product_id"])
    op.create_index("ix_production_records_production_date", "production_records", ["production_date"])

    op.create_table(
        "inventory_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("transaction_type", inventory_transaction_type, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("total_value", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("reference_id", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("transaction_date", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity <> 0", name="ck_inventory_transactions_quantity_nonzero"),
    )
    op.create_index("ix_inventory_transactions_id", "inventory_transactions", ["id"])
    op.create_index("ix_inventory_transactions_business_id", "inventory_transactions", ["business_id"])
    op.create_index("ix_inventory_transactions_product_id", "inventory_transactions", ["product_id"])
    op.create_index("ix_inventory_transactions_transaction_date", "inventory_transactions", ["transaction_date"])


def downgrade() -> None:
    op.drop_table("inventory_transactions")
    op.drop_table("production_records")
    op.drop_table("sales")
    op.drop_table("products")
    op.drop_table("users")
    op.drop_table("businesses")

    bind = op.get_bind()
    for name in ("inventory_transaction_type", "production_shift", "payment_status", "role_name"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
