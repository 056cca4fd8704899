"""
Payment history: orders seen from the payment side.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, or_
from sqlalchemy.orm import Session, selectinload

from kasir.models import Order, OrderItem, User
from kasir.schemas.orders import PAYMENT_STATUS_LABELS


def find_payments(
    db: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    status: Optional[str] = None,
    method: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Order]:
    stmt = (
        select(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.product), selectinload(Order.cashier))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    if start is not None:
        stmt = stmt.where(Order.created_at >= start)
    if end is not None:
        stmt = stmt.where(Order.created_at <= end)
    if status:
        stmt = stmt.where(Order.payment_status == status)
    if method:
        stmt = stmt.where(Order.payment_method == method)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.join(Order.cashier).where(or_(
            Order.order_number.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
        ))
    return list(db.execute(stmt).scalars().all())


def serialize_payment(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "date": order.created_at.strftime("%d/%m/%Y"),
        "time": order.created_at.strftime("%H:%M:%S"),
        "amount": float(order.total),
        "method": order.payment_method,
        "status": order.payment_status,
        "status_text": PAYMENT_STATUS_LABELS.get(order.payment_status, order.payment_status),
        "cashier_name": order.cashier.full_name if order.cashier else None,
        "items": [
            {
                "id": item.id,
                "name": item.product.name if item.product else None,
                "quantity": item.quantity,
                "price": float(item.price),
                "subtotal": float(item.subtotal),
            }
            for item in order.items
        ],
        "notes": order.notes,
    }


def payment_summary(orders: List[Order]) -> Dict[str, Any]:
    total = len(orders)
    counts = {"COMPLETED": 0, "PENDING": 0, "FAILED": 0}
    for order in orders:
        if order.payment_status in counts:
            counts[order.payment_status] += 1
    return {
        "total_amount": float(sum((Decimal(o.total) for o in orders), Decimal("0"))),
        "total_transactions": total,
        "completed_count": counts["COMPLETED"],
        "pending_count": counts["PENDING"],
        "failed_count": counts["FAILED"],
        "completed_percentage": round(counts["COMPLETED"] / total * 100) if total else 0,
    }


CSV_HEADERS = [
    "Nomor Order", "Tanggal", "Waktu", "Kasir", "Metode Pembayaran", "Status",
    "Jumlah Item", "Total Pembayaran", "Catatan",
]


def csv_row(order: Order) -> List[Any]:
    return [
        order.order_number,
        order.created_at.strftime("%d/%m/%Y"),
        order.created_at.strftime("%H:%M:%S"),
        order.cashier.full_name if order.cashier else "",
        order.payment_method,
        order.payment_status,
        len(order.items),
        float(order.total),
        order.notes or "",
    ]
