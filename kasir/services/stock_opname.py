"""
Stock opname (physical stock count).

An opname snapshots the system stock of a set of products. Counting an item
records its physical stock and the difference; once every item is counted the
opname completes and each counted product's stock is set to the physical
count, in the same transaction. A completed opname is frozen.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from kasir.exceptions import ValidationFailed, NotFound, StateConflict
from kasir.models import StockOpname, StockOpnameItem, Product, User
from kasir.schemas.stock_opname import OpnameStatus, StockOpnameCreate, StockOpnameUpdate
from kasir.security import audit_log_action
from kasir.services.inventory import set_stock
from kasir.services.numbering import next_document_number

logger = logging.getLogger(__name__)


def list_opnames(db: Session, status: Optional[str] = None, search: Optional[str] = None) -> List[StockOpname]:
    stmt = (
        select(StockOpname)
        .options(selectinload(StockOpname.created_by))
        .order_by(StockOpname.created_at.desc(), StockOpname.id.desc())
    )
    if status and status != "all":
        stmt = stmt.where(StockOpname.status == status)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(
            StockOpname.opname_number.ilike(pattern),
            StockOpname.title.ilike(pattern),
            StockOpname.notes.ilike(pattern),
        ))
    return list(db.execute(stmt).scalars().all())


def get_opname(db: Session, opname_id: int) -> StockOpname:
    stmt = (
        select(StockOpname)
        .options(
            selectinload(StockOpname.items).selectinload(StockOpnameItem.product),
            selectinload(StockOpname.created_by),
        )
        .where(StockOpname.id == opname_id)
    )
    opname = db.execute(stmt).scalar_one_or_none()
    if opname is None:
        raise NotFound("Stok opname tidak ditemukan")
    return opname


def create_opname(db: Session, data: StockOpnameCreate, now: Optional[datetime] = None) -> StockOpname:
    """Snapshot the selected (or all active) products' stock."""
    if not data.title or not data.title.strip():
        raise ValidationFailed("Judul stok opname harus diisi")
    if not data.created_by_id:
        raise ValidationFailed("ID pengguna harus diisi")
    if db.get(User, data.created_by_id) is None:
        raise NotFound("Pengguna tidak ditemukan")

    stmt = select(Product).where(Product.is_active.is_(True)).order_by(Product.name)
    if data.product_ids:
        stmt = select(Product).where(Product.id.in_(data.product_ids)).order_by(Product.name)
    products = db.execute(stmt).scalars().all()
    missing = set(data.product_ids) - {p.id for p in products}
    if missing:
        raise NotFound(f"Produk dengan ID {', '.join(str(i) for i in sorted(missing))} tidak ditemukan")
    if not products:
        raise ValidationFailed("Tidak ada produk untuk stok opname")

    now = now or datetime.now()
    try:
        opname = StockOpname(
            opname_number=next_document_number(db, StockOpname.opname_number, "SO", now),
            title=data.title.strip(),
            status=OpnameStatus.DRAFT.value,
            total_items=len(products),
            checked_items=0,
            total_difference=0,
            start_date=now,
            notes=data.notes,
            created_by_id=data.created_by_id,
            items=[
                StockOpnameItem(product_id=p.id, system_stock=p.stock, physical_stock=None, difference=0)
                for p in products
            ],
        )
        db.add(opname)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating stock opname: {e}")
        raise

    logger.info(f"Stock opname {opname.opname_number} created with {len(products)} items")
    return get_opname(db, opname.id)


def update_opname(db: Session, opname_id: int, data: StockOpnameUpdate, now: Optional[datetime] = None) -> StockOpname:
    """
    Record counts and move the opname along.

    checked_items and total_difference are recomputed over all items. A DRAFT
    with a counted item becomes IN_PROGRESS; counting the last item completes
    the opname even when no status was requested.
    """
    opname = get_opname(db, opname_id)
    if opname.status == OpnameStatus.COMPLETED.value:
        logger.warning(f"Rejected update of completed opname {opname.opname_number}")
        raise StateConflict("Stok opname yang sudah selesai tidak dapat diubah")

    if data.status is not None and data.status not in {s.value for s in OpnameStatus}:
        raise ValidationFailed("Status stok opname tidak valid")

    now = now or datetime.now()
    items_by_id = {item.id: item for item in opname.items}
    old_status = opname.status

    try:
        if data.title is not None:
            if not data.title.strip():
                raise ValidationFailed("Judul stok opname harus diisi")
            opname.title = data.title.strip()
        if data.notes is not None:
            opname.notes = data.notes

        for change in data.items or []:
            item = items_by_id.get(change.id)
            if item is None:
                raise NotFound(f"Item stok opname {change.id} tidak ditemukan")
            if change.notes is not None:
                item.notes = change.notes
            if change.physical_stock is not None:
                item.physical_stock = change.physical_stock
                item.difference = change.physical_stock - item.system_stock
                item.checked_at = now

        checked = [item for item in opname.items if item.physical_stock is not None]
        opname.checked_items = len(checked)
        opname.total_difference = sum(item.difference for item in checked)

        status = data.status or opname.status
        if status == OpnameStatus.DRAFT.value and checked:
            status = OpnameStatus.IN_PROGRESS.value
        if (status != OpnameStatus.CANCELLED.value
                and opname.total_items > 0 and opname.checked_items == opname.total_items):
            status = OpnameStatus.COMPLETED.value
        opname.status = status

        if status == OpnameStatus.COMPLETED.value:
            opname.completed_date = now
            db.flush()
            for item in checked:
                set_stock(db, item.product_id, item.physical_stock)

        db.commit()
    except (ValidationFailed, NotFound):
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating stock opname {opname_id}: {e}")
        raise

    db.expire_all()
    if opname.status != old_status:
        logger.info(f"Stock opname {opname.opname_number}: {old_status} -> {opname.status}")
        if opname.status == OpnameStatus.COMPLETED.value:
            audit_log_action(
                db, opname.created_by_id, "STOCK_OPNAME_COMPLETED",
                table_name="stock_opnames", record_id=opname_id,
                old_values={"status": old_status},
                new_values={"status": opname.status, "total_difference": opname.total_difference},
            )
    return get_opname(db, opname_id)


def delete_opname(db: Session, opname_id: int) -> None:
    opname = get_opname(db, opname_id)
    if opname.status == OpnameStatus.COMPLETED.value:
        raise StateConflict("Stok opname yang sudah selesai tidak dapat dihapus")
    try:
        db.delete(opname)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting stock opname {opname_id}: {e}")
        raise
    logger.info(f"Stock opname {opname.opname_number} deleted")


def serialize_opname(opname: StockOpname, with_items: bool = True) -> Dict[str, Any]:
    data = {
        "id": opname.id,
        "opname_number": opname.opname_number,
        "title": opname.title,
        "status": opname.status,
        "total_items": opname.total_items,
        "checked_items": opname.checked_items,
        "total_difference": opname.total_difference,
        "start_date": opname.start_date.isoformat() if opname.start_date else None,
        "completed_date": opname.completed_date.isoformat() if opname.completed_date else None,
        "notes": opname.notes,
        "created_by": {
            "id": opname.created_by.id,
            "name": opname.created_by.full_name,
        } if opname.created_by else None,
    }
    if with_items:
        items = sorted(opname.items, key=lambda i: (i.product.name if i.product else "", i.id))
        data["items"] = [
            {
                "id": item.id,
                "product_id": item.product_id,
                "product_name": item.product.name if item.product else None,
                "system_stock": item.system_stock,
                "physical_stock": item.physical_stock,
                "difference": item.difference,
                "notes": item.notes,
                "checked_at": item.checked_at.isoformat() if item.checked_at else None,
            }
            for item in items
        ]
    return data
