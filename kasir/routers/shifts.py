"""
Shift operations and history.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from kasir.database import get_db
from kasir.schemas.shifts import ShiftAction
from kasir.services import shifts as service
from kasir.services.reports import parse_report_date

router = APIRouter(tags=["shifts"])


@router.get("/shifts")
def current_shift(cashier_id: int = Query(...), db: Session = Depends(get_db)):
    """Active shift of a cashier, or null."""
    shift = service.get_active_shift(db, cashier_id)
    return service.serialize_shift(shift) if shift else None


@router.post("/shifts")
def shift_operation(data: ShiftAction, db: Session = Depends(get_db)):
    if data.action == "start":
        shift = service.start_shift(db, data.cashier_id, data.start_balance)
        return {"message": "Shift berhasil dimulai", "shift": service.serialize_shift(shift)}
    if data.action == "end":
        shift = service.end_shift(db, data.cashier_id, data.final_balance, data.notes)
        return {"message": "Shift berhasil diakhiri", "shift": service.serialize_shift(shift)}
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Aksi tidak valid")


@router.get("/shift-history")
def shift_history(
    cashier_id: Optional[int] = None,
    date: Optional[str] = None,
    db: Session = Depends(get_db)
):
    on_date = parse_report_date(date) if date else None
    return service.shift_history(db, cashier_id=cashier_id, on_date=on_date)
