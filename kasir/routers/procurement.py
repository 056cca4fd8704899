from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from kasir.database import get_db
from kasir.schemas.procurement import ProcurementCreate, ProcurementUpdate
from kasir.services import procurement as service

router = APIRouter(prefix="/procurement", tags=["procurement"])


@router.get("")
def list_procurements(status: Optional[str] = None, search: Optional[str] = None, db: Session = Depends(get_db)):
    return [service.serialize_procurement(p) for p in service.list_procurements(db, status=status, search=search)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_procurement(data: ProcurementCreate, db: Session = Depends(get_db)):
    return service.serialize_procurement(service.create_procurement(db, data))


@router.get("/{procurement_id}")
def get_procurement(procurement_id: int, db: Session = Depends(get_db)):
    return service.serialize_procurement(service.get_procurement(db, procurement_id))


@router.put("/{procurement_id}")
def update_procurement(procurement_id: int, data: ProcurementUpdate, db: Session = Depends(get_db)):
    """Edit or move a procurement along; RECEIVED adds the quantities to stock."""
    return service.serialize_procurement(service.update_procurement(db, procurement_id, data))


@router.delete("/{procurement_id}")
def delete_procurement(procurement_id: int, db: Session = Depends(get_db)):
    service.delete_procurement(db, procurement_id)
    return {"message": "Pengadaan berhasil dihapus"}
