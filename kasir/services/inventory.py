"""
Stock monitoring and the stock side effects of procurement and opname.

Alerts are derived from current stock on every scan; nothing is stored, so a
restocked product stops alerting as soon as its stock rises.
"""
from typing import List
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from kasir.exceptions import NotFound
from kasir.models import Product
from kasir.schemas.inventory import InventoryAlert, AlertType, AlertPriority

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 10
HIGH_PRIORITY_STOCK = 5


def classify_stock(stock: int):
    if stock == 0:
        return AlertType.OUT_OF_STOCK, AlertPriority.CRITICAL
    if stock <= HIGH_PRIORITY_STOCK:
        return AlertType.LOW_STOCK, AlertPriority.HIGH
    return AlertType.LOW_STOCK, AlertPriority.MEDIUM


def scan_inventory_alerts(db: Session, threshold: int = LOW_STOCK_THRESHOLD) -> List[InventoryAlert]:
    """Active products at or below ``threshold``, lowest stock first."""
    stmt = (
        select(Product)
        .where(Product.is_active.is_(True), Product.stock <= threshold)
        .order_by(Product.stock, Product.name)
    )
    alerts = []
    for product in db.execute(stmt).scalars().all():
        alert_type, priority = classify_stock(product.stock)
        alerts.append(InventoryAlert(
            product_id=product.id,
            product_name=product.name,
            current_stock=product.stock,
            threshold=threshold,
            alert_type=alert_type,
            priority=priority,
            message=f"{product.name} tersisa {product.stock} barang",
        ))
    return alerts


def increment_stock(db: Session, product_id: int, quantity: int) -> None:
    """Add received units. Runs inside the caller's transaction."""
    result = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound(f"Produk dengan ID {product_id} tidak ditemukan")
    logger.debug(f"Stock of product {product_id} increased by {quantity}")


def set_stock(db: Session, product_id: int, quantity: int) -> None:
    """Overwrite stock with a counted value. Runs inside the caller's transaction."""
    result = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound(f"Produk dengan ID {product_id} tidak ditemukan")
    logger.debug(f"Stock of product {product_id} set to {quantity}")
