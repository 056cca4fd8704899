"""
Base CRUD operations with SQLAlchemy 2.x patterns.
Errors roll the session back, get logged, and propagate to the caller.
"""
from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging
from typing import TypeVar, Generic, Type, Optional, List, Dict, Any, Tuple

from kasir.models import Base

logger = logging.getLogger(__name__)
ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: int) -> Optional[ModelType]:
        """Get record by ID"""
        return db.get(self.model, id)

    def get_by(self, db: Session, **filters) -> Optional[ModelType]:
        stmt = select(self.model).filter_by(**filters)
        return db.execute(stmt).scalars().first()

    def exists_other(self, db: Session, field: str, value: Any, exclude_id: Optional[int] = None) -> bool:
        """True if another record already uses ``value`` for ``field``"""
        column = getattr(self.model, field)
        stmt = select(self.model.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        return db.execute(stmt).first() is not None

    def get_page(
        self, db: Session, *, page: int = 1, limit: int = 10,
        search: Optional[str] = None, search_fields: Tuple[str, ...] = ("name",),
        order_by=None,
    ) -> Tuple[List[ModelType], int]:
        """Paginated list with an optional case-insensitive search"""
        stmt = select(self.model)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(*[
                func.coalesce(getattr(self.model, f), "").ilike(pattern) for f in search_fields
            ]))
        total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        stmt = stmt.order_by(order_by if order_by is not None else self.model.id.desc())
        stmt = stmt.offset((page - 1) * limit).limit(limit)
        return list(db.execute(stmt).scalars().all()), total

    def create(self, db: Session, *, obj_in: Dict[str, Any]) -> ModelType:
        """Create and commit a record"""
        try:
            obj = self.model(**obj_in)
            db.add(obj)
            db.commit()
            db.refresh(obj)
            return obj
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error creating {self.model.__name__}: {e}")
            raise

    def update(self, db: Session, *, db_obj: ModelType, obj_in: Dict[str, Any]) -> ModelType:
        """Apply the given fields and commit"""
        try:
            for field, value in obj_in.items():
                setattr(db_obj, field, value)
            db.commit()
            db.refresh(db_obj)
            return db_obj
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error updating {self.model.__name__} {db_obj.id}: {e}")
            raise

    def remove(self, db: Session, *, db_obj: ModelType) -> ModelType:
        """Delete a loaded record"""
        try:
            db.delete(db_obj)
            db.commit()
            return db_obj
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error deleting {self.model.__name__} {db_obj.id}: {e}")
            raise


def pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": (total + limit - 1) // limit if limit else 0,
    }
