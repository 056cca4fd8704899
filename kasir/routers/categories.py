from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from kasir.database import get_db
from kasir.crud.catalog import crud_category
from kasir.schemas.catalog import CategoryIn, CategoryResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])


def _clean_name(data: CategoryIn) -> str:
    if not data.name or not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nama kategori harus diisi")
    return data.name.strip()


@router.get("")
def list_categories(db: Session = Depends(get_db)):
    return [
        CategoryResponse(id=c.id, name=c.name, description=c.description, product_count=count)
        for c, count in crud_category.list_with_counts(db)
    ]


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(category: CategoryIn, db: Session = Depends(get_db)):
    name = _clean_name(category)
    if crud_category.exists_other(db, "name", name):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nama kategori sudah digunakan")
    db_category = crud_category.create(db, obj_in={"name": name, "description": category.description})
    logger.info(f"Category '{name}' created")
    return db_category


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(category_id: int, db: Session = Depends(get_db)):
    db_category = crud_category.get(db, category_id)
    if not db_category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Kategori tidak ditemukan")
    response = CategoryResponse.model_validate(db_category)
    response.product_count = crud_category.product_count(db, category_id)
    return response


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(category_id: int, category: CategoryIn, db: Session = Depends(get_db)):
    name = _clean_name(category)
    db_category = crud_category.get(db, category_id)
    if not db_category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Kategori tidak ditemukan")
    if crud_category.exists_other(db, "name", name, exclude_id=category_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nama kategori sudah digunakan")
    return crud_category.update(
        db, db_obj=db_category, obj_in={"name": name, "description": category.description}
    )


@router.delete("/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db)):
    db_category = crud_category.get(db, category_id)
    if not db_category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Kategori tidak ditemukan")

    count = crud_category.product_count(db, category_id)
    if count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Kategori tidak dapat dihapus karena masih memiliki {count} produk"
        )
    crud_category.remove(db, db_obj=db_category)
    logger.info(f"Category {category_id} deleted")
    return {"message": "Kategori berhasil dihapus"}
