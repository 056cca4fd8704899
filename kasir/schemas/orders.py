"""
Checkout schemas.
Unit prices are snapshotted into order items; the server recomputes subtotals.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal
from enum import Enum


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    MOBILE_PAYMENT = "MOBILE_PAYMENT"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


PAYMENT_METHOD_LABELS = {
    PaymentMethod.CASH.value: "Tunai",
    PaymentMethod.CARD.value: "Kartu",
    PaymentMethod.MOBILE_PAYMENT.value: "Pembayaran Mobile",
}

PAYMENT_STATUS_LABELS = {
    PaymentStatus.COMPLETED.value: "Berhasil",
    PaymentStatus.PENDING.value: "Menunggu",
    PaymentStatus.FAILED.value: "Gagal",
}


class CartItem(BaseModel):
    product_id: int
    quantity: int
    price: Decimal
    # Accepted for compatibility with the cart payload, recomputed server side
    subtotal: Optional[Decimal] = None
    name: Optional[str] = None


class OrderCreate(BaseModel):
    items: List[CartItem] = Field(default_factory=list)
    cashier_id: int
    payment_method: PaymentMethod = PaymentMethod.CASH
    customer_id: Optional[int] = None
    discount: Decimal = Decimal("0")
    notes: Optional[str] = None
