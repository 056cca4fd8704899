"""
Product catalog endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from decimal import Decimal
import logging

from kasir.database import get_db
from kasir.crud.base import pagination
from kasir.crud.catalog import crud_product, crud_category, crud_unit
from kasir.models import Product
from kasir.schemas.catalog import ProductCreate, ProductUpdate, ProductResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


def _to_response(product: Product) -> ProductResponse:
    response = ProductResponse.model_validate(product)
    response.category_name = product.category.name if product.category else None
    response.unit_symbol = product.unit.symbol if product.unit else None
    return response


def _validate_product(db: Session, data: ProductCreate, exclude_id: Optional[int] = None) -> dict:
    """Field checks shared by create and update; returns the column values."""
    if not data.name or not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nama produk harus diisi")
    if data.price is None or data.price <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Harga produk harus lebih dari 0")
    if data.wholesale_price is not None and data.wholesale_price < 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Harga grosir tidak boleh negatif")
    if not data.category_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Kategori produk harus dipilih")
    if crud_category.get(db, data.category_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Kategori tidak ditemukan")
    if data.unit_id is not None and crud_unit.get(db, data.unit_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unit tidak ditemukan")
    if data.stock is not None and data.stock < 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Stok tidak boleh negatif")

    barcode = data.barcode.strip() if data.barcode else None
    sku = data.sku.strip() if data.sku else None
    if barcode and crud_product.exists_other(db, "barcode", barcode, exclude_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Barcode sudah digunakan")
    if sku and crud_product.exists_other(db, "sku", sku, exclude_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="SKU sudah digunakan")

    values = {
        "name": data.name.strip(),
        "description": data.description,
        "price": Decimal(data.price),
        "wholesale_price": data.wholesale_price,
        "barcode": barcode,
        "sku": sku,
        "image": data.image,
        "category_id": data.category_id,
        "unit_id": data.unit_id,
    }
    if data.stock is not None:
        values["stock"] = data.stock
    if data.min_stock is not None:
        values["min_stock"] = data.min_stock
    return values


@router.get("")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    products, total = crud_product.list_filtered(
        db, page=page, limit=limit, category=category, status=status_filter, search=search
    )
    return {
        "products": [_to_response(p) for p in products],
        "pagination": pagination(page, limit, total),
    }


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(product: ProductCreate, db: Session = Depends(get_db)):
    values = _validate_product(db, product)
    db_product = crud_product.create(db, obj_in=values)
    logger.info(f"Product {db_product.id} '{db_product.name}' created")
    return _to_response(db_product)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = crud_product.get(db, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produk tidak ditemukan")
    return _to_response(product)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(product_id: int, product: ProductUpdate, db: Session = Depends(get_db)):
    db_product = crud_product.get(db, product_id)
    if not db_product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produk tidak ditemukan")

    values = _validate_product(db, product, exclude_id=product_id)
    if product.is_active is not None:
        values["is_active"] = product.is_active
    db_product = crud_product.update(db, db_obj=db_product, obj_in=values)
    logger.info(f"Product {product_id} updated")
    return _to_response(db_product)


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    """
    Delete a product. One still referenced by orders, procurements, opnames or
    statistics is deactivated instead so that history keeps its rows.
    """
    db_product = crud_product.get(db, product_id)
    if not db_product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produk tidak ditemukan")

    if crud_product.is_referenced(db, product_id):
        crud_product.update(db, db_obj=db_product, obj_in={"is_active": False})
        logger.info(f"Product {product_id} deactivated (still referenced)")
        return {"message": "Produk dinonaktifkan karena memiliki riwayat transaksi"}

    crud_product.remove(db, db_obj=db_product)
    logger.info(f"Product {product_id} deleted")
    return {"message": "Produk berhasil dihapus"}
