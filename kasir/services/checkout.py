"""
Order checkout.

An order, its items and every stock decrement are written in one transaction.
Each decrement is a conditional UPDATE (stock >= quantity), so two concurrent
checkouts can never sell more than is on the shelf.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Any
import logging

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from kasir.crud.base import pagination
from kasir.exceptions import ValidationFailed, NotFound, InsufficientStock
from kasir.models import Customer, Order, OrderItem, Product, User
from kasir.schemas.orders import CartItem, PaymentMethod

logger = logging.getLogger(__name__)

TAX_RATE = Decimal("0.10")
UNIT = Decimal("1")


def compute_totals(items: List[CartItem], discount: Decimal = Decimal("0")) -> Dict[str, Decimal]:
    """Subtotal, tax (10%, rounded half-up to whole units) and total of a cart."""
    subtotal = sum((Decimal(i.price) * i.quantity for i in items), Decimal("0"))
    tax = (subtotal * TAX_RATE).quantize(UNIT, rounding=ROUND_HALF_UP)
    return {
        "subtotal": subtotal,
        "tax": tax,
        "discount": Decimal(discount),
        "total": subtotal + tax - Decimal(discount),
    }


def _validate(
    db: Session,
    items: List[CartItem],
    cashier_id: int,
    payment_method: str,
    discount: Decimal,
    customer_id: Optional[int] = None,
):
    if not items:
        raise ValidationFailed("Keranjang belanja kosong")
    for item in items:
        if item.quantity < 1:
            raise ValidationFailed("Jumlah barang minimal 1")
        if Decimal(item.price) < 0:
            raise ValidationFailed("Harga barang tidak valid")
    if payment_method not in {m.value for m in PaymentMethod}:
        raise ValidationFailed("Metode pembayaran tidak valid")
    if db.get(User, cashier_id) is None:
        raise NotFound("Kasir tidak ditemukan")
    if customer_id is not None and db.get(Customer, customer_id) is None:
        raise NotFound("Pelanggan tidak ditemukan")

    totals = compute_totals(items)
    if discount < 0 or discount > totals["subtotal"] + totals["tax"]:
        raise ValidationFailed("Diskon tidak valid")


def _next_order_number(db: Session, now: datetime) -> str:
    count = db.execute(select(func.count(Order.id))).scalar_one()
    return f"ORD-{int(now.timestamp() * 1000)}-{count + 1:04d}"


def create_order(
    db: Session,
    items: List[CartItem],
    cashier_id: int,
    payment_method: str = "CASH",
    customer_id: Optional[int] = None,
    discount: Decimal = Decimal("0"),
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    """
    Record a completed sale and take its quantities off the shelf.

    Raises ValidationFailed / NotFound before any write, InsufficientStock
    (after rolling back) when a decrement finds less stock than requested.
    """
    payment_method = getattr(payment_method, "value", payment_method)
    discount = Decimal(discount or 0)
    _validate(db, items, cashier_id, payment_method, discount, customer_id)

    now = now or datetime.now()
    totals = compute_totals(items, discount)

    try:
        for item in items:
            result = db.execute(
                update(Product)
                .where(Product.id == item.product_id, Product.stock >= item.quantity)
                .values(stock=Product.stock - item.quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                product = db.get(Product, item.product_id)
                if product is None:
                    raise NotFound(f"Produk dengan ID {item.product_id} tidak ditemukan")
                db.refresh(product)
                raise InsufficientStock(product.id, product.name, product.stock, item.quantity)

        order = Order(
            order_number=_next_order_number(db, now),
            customer_id=customer_id,
            cashier_id=cashier_id,
            subtotal=totals["subtotal"],
            tax=totals["tax"],
            discount=totals["discount"],
            total=totals["total"],
            payment_method=payment_method,
            payment_status="COMPLETED",
            status="COMPLETED",
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        for item in items:
            price = Decimal(item.price)
            order.items.append(OrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                price=price,
                subtotal=price * item.quantity,
            ))
        db.add(order)
        db.commit()
    except (InsufficientStock, NotFound) as e:
        db.rollback()
        logger.warning(f"Checkout rejected for cashier {cashier_id}: {e.message}")
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Checkout failed for cashier {cashier_id}: {e}")
        raise

    # Decrements bypassed the identity map
    db.expire_all()
    logger.info(f"Order {order.order_number} created: total {order.total}, {len(items)} items")
    return order


def get_order(db: Session, order_id: int) -> Order:
    stmt = (
        select(Order)
        .options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.cashier),
            selectinload(Order.customer),
        )
        .where(Order.id == order_id)
    )
    order = db.execute(stmt).scalar_one_or_none()
    if order is None:
        raise NotFound("Pesanan tidak ditemukan")
    return order


def list_orders(db: Session, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    """Orders newest first, one page at a time."""
    total = db.execute(select(func.count(Order.id))).scalar_one()
    stmt = (
        select(Order)
        .options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.cashier),
            selectinload(Order.customer),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    orders = db.execute(stmt).scalars().all()
    return {
        "orders": [serialize_order(o) for o in orders],
        "pagination": pagination(page, limit, total),
    }


def serialize_order(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer_id": order.customer_id,
        "customer_name": order.customer.name if order.customer else None,
        "cashier_id": order.cashier_id,
        "cashier_name": order.cashier.full_name if order.cashier else None,
        "subtotal": float(order.subtotal),
        "tax": float(order.tax),
        "discount": float(order.discount),
        "total": float(order.total),
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "status": order.status,
        "notes": order.notes,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "product_name": item.product.name if item.product else None,
                "quantity": item.quantity,
                "price": float(item.price),
                "subtotal": float(item.subtotal),
            }
            for item in order.items
        ],
    }
