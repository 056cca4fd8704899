from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from kasir.database import get_db
from kasir.schemas.stock_opname import StockOpnameCreate, StockOpnameUpdate
from kasir.services import stock_opname as service

router = APIRouter(prefix="/stock-opname", tags=["stock-opname"])


@router.get("")
def list_opnames(status: Optional[str] = None, search: Optional[str] = None, db: Session = Depends(get_db)):
    return [
        service.serialize_opname(o, with_items=False)
        for o in service.list_opnames(db, status=status, search=search)
    ]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_opname(data: StockOpnameCreate, db: Session = Depends(get_db)):
    return service.serialize_opname(service.create_opname(db, data))


@router.get("/{opname_id}")
def get_opname(opname_id: int, db: Session = Depends(get_db)):
    return service.serialize_opname(service.get_opname(db, opname_id))


@router.put("/{opname_id}")
def update_opname(opname_id: int, data: StockOpnameUpdate, db: Session = Depends(get_db)):
    """Record physical counts; counting the last item completes the opname."""
    return service.serialize_opname(service.update_opname(db, opname_id, data))


@router.delete("/{opname_id}")
def delete_opname(opname_id: int, db: Session = Depends(get_db)):
    service.delete_opname(db, opname_id)
    return {"message": "Stok opname berhasil dihapus"}
