"""
Purchase orders to suppliers.

Receiving a procurement adds every item's quantity to its product's stock,
once, in the same transaction as the status change. A received procurement
is frozen.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from kasir.exceptions import ValidationFailed, NotFound, StateConflict
from kasir.models import Procurement, ProcurementItem, Supplier, User, Product
from kasir.schemas.procurement import ProcurementStatus, ProcurementCreate, ProcurementUpdate, ProcurementItemIn
from kasir.security import audit_log_action
from kasir.services.inventory import increment_stock
from kasir.services.numbering import next_document_number

logger = logging.getLogger(__name__)


def _load_options():
    return (
        selectinload(Procurement.items).selectinload(ProcurementItem.product),
        selectinload(Procurement.supplier),
        selectinload(Procurement.created_by),
    )


def _build_items(db: Session, items: List[ProcurementItemIn]) -> List[ProcurementItem]:
    built = []
    for item in items:
        if db.get(Product, item.product_id) is None:
            raise NotFound(f"Produk dengan ID {item.product_id} tidak ditemukan")
        unit_price = Decimal(item.unit_price)
        built.append(ProcurementItem(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=unit_price,
            total_price=unit_price * item.quantity,
        ))
    return built


def _apply_totals(procurement: Procurement) -> None:
    procurement.total_items = sum(i.quantity for i in procurement.items)
    procurement.total_amount = sum((Decimal(i.total_price) for i in procurement.items), Decimal("0"))


def list_procurements(db: Session, status: Optional[str] = None, search: Optional[str] = None) -> List[Procurement]:
    stmt = select(Procurement).options(*_load_options()).order_by(Procurement.created_at.desc(), Procurement.id.desc())
    if status and status != "all":
        stmt = stmt.where(Procurement.status == status)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.outerjoin(Procurement.supplier).where(or_(
            Procurement.procurement_number.ilike(pattern),
            Procurement.notes.ilike(pattern),
            Supplier.name.ilike(pattern),
        ))
    return list(db.execute(stmt).scalars().all())


def get_procurement(db: Session, procurement_id: int) -> Procurement:
    stmt = select(Procurement).options(*_load_options()).where(Procurement.id == procurement_id)
    procurement = db.execute(stmt).scalar_one_or_none()
    if procurement is None:
        raise NotFound("Pengadaan tidak ditemukan")
    return procurement


def create_procurement(db: Session, data: ProcurementCreate, now: Optional[datetime] = None) -> Procurement:
    if not data.supplier_id:
        raise ValidationFailed("Supplier harus dipilih")
    if not data.items:
        raise ValidationFailed("Item pengadaan harus diisi")
    if not data.created_by_id:
        raise ValidationFailed("ID pengguna harus diisi")
    if db.get(Supplier, data.supplier_id) is None:
        raise NotFound("Supplier tidak ditemukan")
    if db.get(User, data.created_by_id) is None:
        raise NotFound("Pengguna tidak ditemukan")

    now = now or datetime.now()
    try:
        procurement = Procurement(
            procurement_number=next_document_number(db, Procurement.procurement_number, "PO", now),
            supplier_id=data.supplier_id,
            status=ProcurementStatus.DRAFT.value,
            notes=data.notes,
            order_date=now,
            created_by_id=data.created_by_id,
            items=_build_items(db, data.items),
        )
        _apply_totals(procurement)
        db.add(procurement)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating procurement: {e}")
        raise

    logger.info(f"Procurement {procurement.procurement_number} created")
    return get_procurement(db, procurement.id)


def update_procurement(db: Session, procurement_id: int, data: ProcurementUpdate, now: Optional[datetime] = None) -> Procurement:
    """
    Edit a procurement that has not been received yet.

    Items, when given, replace the existing ones. Moving to RECEIVED stamps
    received_date and adds every item's quantity to stock.
    """
    procurement = get_procurement(db, procurement_id)
    if procurement.status == ProcurementStatus.RECEIVED.value:
        logger.warning(f"Rejected update of received procurement {procurement.procurement_number}")
        raise StateConflict("Pengadaan yang sudah diterima tidak dapat diubah")

    new_status = data.status
    if new_status is not None:
        if new_status not in {s.value for s in ProcurementStatus}:
            raise ValidationFailed("Status pengadaan tidak valid")
        if (procurement.status == ProcurementStatus.CANCELLED.value
                and new_status == ProcurementStatus.RECEIVED.value):
            raise StateConflict("Pengadaan yang dibatalkan tidak dapat diterima")

    if data.supplier_id is not None and db.get(Supplier, data.supplier_id) is None:
        raise NotFound("Supplier tidak ditemukan")

    now = now or datetime.now()
    old_status = procurement.status
    try:
        if data.supplier_id is not None:
            procurement.supplier_id = data.supplier_id
        if data.notes is not None:
            procurement.notes = data.notes
        if data.items is not None:
            if not data.items:
                raise ValidationFailed("Item pengadaan harus diisi")
            procurement.items = _build_items(db, data.items)
            _apply_totals(procurement)

        if new_status is not None:
            procurement.status = new_status
            if new_status == ProcurementStatus.RECEIVED.value:
                procurement.received_date = data.received_date or now
                db.flush()
                for item in procurement.items:
                    increment_stock(db, item.product_id, item.quantity)

        db.commit()
    except (ValidationFailed, NotFound):
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating procurement {procurement_id}: {e}")
        raise

    db.expire_all()
    if new_status and new_status != old_status:
        logger.info(f"Procurement {procurement.procurement_number}: {old_status} -> {new_status}")
        audit_log_action(
            db, procurement.created_by_id, f"PROCUREMENT_{new_status}",
            table_name="procurements", record_id=procurement_id,
            old_values={"status": old_status}, new_values={"status": new_status},
        )
    return get_procurement(db, procurement_id)


def delete_procurement(db: Session, procurement_id: int) -> None:
    procurement = get_procurement(db, procurement_id)
    if procurement.status == ProcurementStatus.RECEIVED.value:
        raise StateConflict("Pengadaan yang sudah diterima tidak dapat dihapus")
    try:
        db.delete(procurement)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting procurement {procurement_id}: {e}")
        raise
    logger.info(f"Procurement {procurement.procurement_number} deleted")


def serialize_procurement(procurement: Procurement) -> Dict[str, Any]:
    return {
        "id": procurement.id,
        "procurement_number": procurement.procurement_number,
        "supplier_id": procurement.supplier_id,
        "supplier": {
            "id": procurement.supplier.id,
            "name": procurement.supplier.name,
            "store_name": procurement.supplier.store_name,
        } if procurement.supplier else None,
        "status": procurement.status,
        "total_items": procurement.total_items,
        "total_amount": float(procurement.total_amount),
        "notes": procurement.notes,
        "order_date": procurement.order_date.isoformat() if procurement.order_date else None,
        "received_date": procurement.received_date.isoformat() if procurement.received_date else None,
        "created_by": {
            "id": procurement.created_by.id,
            "name": procurement.created_by.full_name,
        } if procurement.created_by else None,
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "product_name": item.product.name if item.product else None,
                "quantity": item.quantity,
                "unit_price": float(item.unit_price),
                "total_price": float(item.total_price),
            }
            for item in procurement.items
        ],
    }
