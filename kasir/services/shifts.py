"""
Cashier shifts: one active shift per cashier, sales totalled at close.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from kasir.exceptions import ValidationFailed, NotFound, StateConflict
from kasir.models import Shift, Order, User
from kasir.services.aggregation import day_bounds

logger = logging.getLogger(__name__)


def get_active_shift(db: Session, cashier_id: int) -> Optional[Shift]:
    stmt = (
        select(Shift)
        .options(selectinload(Shift.cashier))
        .where(Shift.cashier_id == cashier_id, Shift.is_active.is_(True))
    )
    return db.execute(stmt).scalars().first()


def _sales_between(db: Session, cashier_id: int, start: datetime, end: datetime) -> Tuple[int, Decimal]:
    """Count and total of the cashier's completed, paid orders in [start, end]."""
    stmt = select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0)).where(
        Order.cashier_id == cashier_id,
        Order.status == "COMPLETED",
        Order.payment_status == "COMPLETED",
        Order.created_at >= start,
        Order.created_at <= end,
    )
    count, total = db.execute(stmt).one()
    return count, Decimal(str(total))


def start_shift(db: Session, cashier_id: int, start_balance: Optional[Decimal], now: Optional[datetime] = None) -> Shift:
    if start_balance is None:
        raise ValidationFailed("Modal awal harus diisi")
    if Decimal(start_balance) < 0:
        raise ValidationFailed("Modal awal tidak valid")
    if db.get(User, cashier_id) is None:
        raise NotFound("Kasir tidak ditemukan")
    if get_active_shift(db, cashier_id) is not None:
        raise StateConflict("Anda sudah memiliki shift aktif")

    try:
        shift = Shift(
            cashier_id=cashier_id,
            start_time=now or datetime.now(),
            start_balance=Decimal(start_balance),
            is_active=True,
        )
        db.add(shift)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error starting shift for cashier {cashier_id}: {e}")
        raise

    logger.info(f"Shift {shift.id} started for cashier {cashier_id}")
    return get_active_shift(db, cashier_id)


def end_shift(
    db: Session,
    cashier_id: int,
    final_balance: Optional[Decimal] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Shift:
    shift = get_active_shift(db, cashier_id)
    if shift is None:
        raise NotFound("Tidak ada shift aktif untuk diakhiri")

    now = now or datetime.now()
    _, total_sales = _sales_between(db, cashier_id, shift.start_time, now)

    try:
        shift.end_time = now
        shift.total_sales = total_sales
        shift.final_balance = Decimal(final_balance) if final_balance is not None else None
        shift.is_active = False
        if notes is not None:
            shift.notes = notes
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error ending shift {shift.id}: {e}")
        raise

    logger.info(f"Shift {shift.id} ended for cashier {cashier_id}: sales {total_sales}")
    return shift


def shift_history(
    db: Session,
    cashier_id: Optional[int] = None,
    on_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Shifts newest first, each with the transactions made during it."""
    stmt = select(Shift).options(selectinload(Shift.cashier)).order_by(Shift.start_time.desc())
    if cashier_id is not None:
        stmt = stmt.where(Shift.cashier_id == cashier_id)
    if on_date is not None:
        start, end = day_bounds(on_date)
        stmt = stmt.where(Shift.start_time >= start, Shift.start_time <= end)

    now = now or datetime.now()
    history = []
    for shift in db.execute(stmt).scalars().all():
        count, total = _sales_between(db, shift.cashier_id, shift.start_time, shift.end_time or now)
        data = serialize_shift(shift)
        data["total_transactions"] = count
        data["total_sales"] = float(total)
        history.append(data)
    return history


def serialize_shift(shift: Shift) -> Dict[str, Any]:
    return {
        "id": shift.id,
        "cashier_id": shift.cashier_id,
        "cashier_name": shift.cashier.full_name if shift.cashier else None,
        "start_time": shift.start_time.isoformat(),
        "end_time": shift.end_time.isoformat() if shift.end_time else None,
        "start_balance": float(shift.start_balance),
        "final_balance": float(shift.final_balance) if shift.final_balance is not None else None,
        "total_sales": float(shift.total_sales),
        "is_active": shift.is_active,
        "notes": shift.notes,
    }
