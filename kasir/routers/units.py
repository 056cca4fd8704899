from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import Optional
import logging

from kasir.database import get_db
from kasir.crud.base import pagination
from kasir.crud.catalog import crud_unit
from kasir.models import Product
from kasir.schemas.catalog import UnitIn, UnitResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/units", tags=["units"])


def _validate_unit(db: Session, data: UnitIn, exclude_id: Optional[int] = None) -> dict:
    if not data.name or not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nama unit harus diisi")
    if not data.symbol or not data.symbol.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Simbol unit harus diisi")

    name, symbol = data.name.strip(), data.symbol.strip()
    if crud_unit.exists_other(db, "name", name, exclude_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unit dengan nama ini sudah ada")
    if crud_unit.exists_other(db, "symbol", symbol, exclude_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Simbol unit sudah digunakan")

    values = {"name": name, "symbol": symbol, "description": data.description}
    if data.is_active is not None:
        values["is_active"] = data.is_active
    return values


@router.get("")
def list_units(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    units, total = crud_unit.get_page(
        db, page=page, limit=limit, search=search, search_fields=("name", "symbol", "description")
    )
    return {
        "units": [UnitResponse.model_validate(u) for u in units],
        "pagination": pagination(page, limit, total),
    }


@router.post("", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
def create_unit(unit: UnitIn, db: Session = Depends(get_db)):
    db_unit = crud_unit.create(db, obj_in=_validate_unit(db, unit))
    logger.info(f"Unit '{db_unit.symbol}' created")
    return db_unit


@router.get("/{unit_id}", response_model=UnitResponse)
def get_unit(unit_id: int, db: Session = Depends(get_db)):
    db_unit = crud_unit.get(db, unit_id)
    if not db_unit:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unit tidak ditemukan")
    return db_unit


@router.put("/{unit_id}", response_model=UnitResponse)
def update_unit(unit_id: int, unit: UnitIn, db: Session = Depends(get_db)):
    db_unit = crud_unit.get(db, unit_id)
    if not db_unit:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unit tidak ditemukan")
    return crud_unit.update(db, db_obj=db_unit, obj_in=_validate_unit(db, unit, exclude_id=unit_id))


@router.delete("/{unit_id}")
def delete_unit(unit_id: int, db: Session = Depends(get_db)):
    db_unit = crud_unit.get(db, unit_id)
    if not db_unit:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unit tidak ditemukan")

    in_use = db.execute(select(Product.id).where(Product.unit_id == unit_id).limit(1)).first()
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unit tidak dapat dihapus karena masih terkait dengan produk"
        )
    crud_unit.remove(db, db_obj=db_unit)
    logger.info(f"Unit {unit_id} deleted")
    return {"message": "Unit berhasil dihapus"}
