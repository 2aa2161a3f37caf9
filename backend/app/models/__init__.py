from app.models.business import Business
from app.models.enums import (
    InsightType,
    InventoryTransactionType,
    PaymentStatus,
    ProductionShift,
    ReportType,
    RoleName,
)
from app.models.inventory import InventoryTransaction
from app.models.product import Product
from app.models.production import ProductionRecord
from app.models.sale import Sale
from app.models.user import User

__all__ = [
    "Business",
    "InsightType",
    "InventoryTransactionType",
    "PaymentStatus",
    "ProductionShift",
    "ReportType",
    "RoleName",
    "InventoryTransaction",
    "Product",
    "ProductionRecord",
    "Sale",
    "User",
]
