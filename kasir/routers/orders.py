"""
Checkout endpoints.
"""
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from kasir.database import get_db
from kasir.schemas.orders import OrderCreate
from kasir.services import checkout
from kasir.utils.pdf_reports import pdf_generator

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return checkout.list_orders(db, page=page, limit=limit)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(order: OrderCreate, db: Session = Depends(get_db)):
    """
    Record a sale. Stock is checked and decremented atomically; a short item
    rejects the whole order.
    """
    db_order = checkout.create_order(
        db,
        items=order.items,
        cashier_id=order.cashier_id,
        payment_method=order.payment_method,
        customer_id=order.customer_id,
        discount=order.discount,
        notes=order.notes,
    )
    return checkout.serialize_order(checkout.get_order(db, db_order.id))


@router.get("/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db)):
    return checkout.serialize_order(checkout.get_order(db, order_id))


@router.get("/{order_id}/receipt")
def order_receipt(order_id: int, db: Session = Depends(get_db)):
    order = checkout.serialize_order(checkout.get_order(db, order_id))
    pdf_bytes = pdf_generator.generate_receipt(order)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"inline; filename=struk_{order['order_number']}.pdf"}
    )
