"""
Employee management.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional

from kasir.database import get_db
from kasir.crud.users import crud_user
from kasir.schemas.users import UserIn, UserResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(username: Optional[str] = None, db: Session = Depends(get_db)):
    """All users, or the one matching ``username``."""
    if username:
        user = crud_user.get_by(db, username=username)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Karyawan tidak ditemukan")
        return UserResponse.model_validate(user)
    return [UserResponse.model_validate(u) for u in crud_user.list_all(db)]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(user: UserIn, db: Session = Depends(get_db)):
    return crud_user.create_user(db, user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = crud_user.get(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Karyawan tidak ditemukan")
    return user


@router.put("/{user_id}", response_model=UserResponse)
def update_user(user_id: int, user: UserIn, db: Session = Depends(get_db)):
    db_user = crud_user.get(db, user_id)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Karyawan tidak ditemukan")
    return crud_user.update_user(db, db_user, user)


@router.delete("/{user_id}")
def delete_user(user_id: int, permanent: bool = False, db: Session = Depends(get_db)):
    db_user = crud_user.get(db, user_id)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Karyawan tidak ditemukan")
    return {"message": crud_user.delete_user(db, db_user, permanent=permanent)}
