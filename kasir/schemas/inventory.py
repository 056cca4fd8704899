"""
Inventory alert schemas.
Alerts are derived from current stock, there is no stored alert row.
"""
from pydantic import BaseModel
from enum import Enum


class AlertType(str, Enum):
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class AlertPriority(str, Enum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    INACTIVE = "inactive"


class InventoryAlert(BaseModel):
    product_id: int
    product_name: str
    current_stock: int
    threshold: int
    alert_type: AlertType
    priority: AlertPriority
    message: str
