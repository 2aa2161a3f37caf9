import enum


class RoleName(str, enum.Enum):
    owner = "owner"
    admin = "admin"
    manager = "manager"
    accountant = "accountant"
    analyst = "analyst"
    operator = "operator"
    viewer = "viewer"


class PaymentStatus(str, enum.Enum):
    paid = "paid"
    pending = "pending"
    partial = "partial"


class ProductionShift(str, enum.Enum):
    morning = "morning"
    evening = "evening"
    night = "night"
    general = "general"


class InventoryTransactionType(str, enum.Enum):
    purchase = "purchase"
    sale = "sale"
    customer_return = "return"
    adjustment = "adjustment"
    wastage = "wastage"
    production = "production"


class ReportType(str, enum.Enum):
    profit_loss = "profit_loss"
    balance_sheet = "balance_sheet"
    cash_flow = "cash_flow"
    inventory_valuation = "inventory_valuation"


class InsightType(str, enum.Enum):
    profit = "profit"
    sales = "sales"
    inventory = "inventory"
    production = "production"
    cost = "cost"
    risk = "risk"
