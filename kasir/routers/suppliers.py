from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from kasir.database import get_db
from kasir.crud.base import pagination
from kasir.crud.catalog import crud_supplier
from kasir.schemas.catalog import SupplierIn, SupplierResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


def _validate_supplier(db: Session, data: SupplierIn, exclude_id: Optional[int] = None) -> dict:
    if not data.name or not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nama supplier harus diisi")
    name = data.name.strip()
    if crud_supplier.exists_other(db, "name", name, exclude_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Supplier dengan nama ini sudah ada")

    values = {
        "name": name,
        "phone": data.phone,
        "address": data.address,
        "store_name": data.store_name,
    }
    if data.is_active is not None:
        values["is_active"] = data.is_active
    return values


@router.get("")
def list_suppliers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    suppliers, total = crud_supplier.get_page(
        db, page=page, limit=limit, search=search, search_fields=("name", "store_name", "phone", "address")
    )
    return {
        "suppliers": [SupplierResponse.model_validate(s) for s in suppliers],
        "pagination": pagination(page, limit, total),
    }


@router.post("", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
def create_supplier(supplier: SupplierIn, db: Session = Depends(get_db)):
    db_supplier = crud_supplier.create(db, obj_in=_validate_supplier(db, supplier))
    logger.info(f"Supplier '{db_supplier.name}' created")
    return db_supplier


@router.get("/{supplier_id}", response_model=SupplierResponse)
def get_supplier(supplier_id: int, db: Session = Depends(get_db)):
    db_supplier = crud_supplier.get(db, supplier_id)
    if not db_supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier tidak ditemukan")
    return db_supplier


@router.put("/{supplier_id}", response_model=SupplierResponse)
def update_supplier(supplier_id: int, supplier: SupplierIn, db: Session = Depends(get_db)):
    db_supplier = crud_supplier.get(db, supplier_id)
    if not db_supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier tidak ditemukan")
    return crud_supplier.update(
        db, db_obj=db_supplier, obj_in=_validate_supplier(db, supplier, exclude_id=supplier_id)
    )


@router.delete("/{supplier_id}")
def delete_supplier(supplier_id: int, db: Session = Depends(get_db)):
    db_supplier = crud_supplier.get(db, supplier_id)
    if not db_supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier tidak ditemukan")
    if crud_supplier.procurement_count(db, supplier_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Supplier tidak dapat dihapus karena masih terkait dengan data lain"
        )
    crud_supplier.remove(db, db_obj=db_supplier)
    logger.info(f"Supplier {supplier_id} deleted")
    return {"message": "Supplier berhasil dihapus"}
