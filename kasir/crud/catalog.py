"""
Catalog CRUD: products, categories, units, suppliers.
"""
from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session, selectinload
import logging
from typing import List, Optional, Tuple

from kasir.models import (
    Product, Category, Unit, Supplier, OrderItem, Procurement, ProcurementItem, StockOpnameItem,
    ProductStats, DailyStats, WeeklyStats, MonthlyStats,
)
from kasir.crud.base import CRUDBase

logger = logging.getLogger(__name__)


class CRUDProduct(CRUDBase[Product]):
    def __init__(self):
        super().__init__(Product)

    def list_filtered(
        self,
        db: Session,
        *,
        page: int = 1,
        limit: int = 10,
        category: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Product], int]:
        """
        Products filtered by category (id or name), computed status and search text.
        """
        stmt = select(Product).options(selectinload(Product.category), selectinload(Product.unit))

        if category:
            if category.isdigit():
                stmt = stmt.where(Product.category_id == int(category))
            else:
                stmt = stmt.join(Product.category).where(Category.name == category)

        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                Product.name.ilike(pattern),
                func.coalesce(Product.description, "").ilike(pattern),
                func.coalesce(Product.barcode, "").ilike(pattern),
                func.coalesce(Product.sku, "").ilike(pattern),
            ))

        if status == "inactive":
            stmt = stmt.where(Product.is_active.is_(False))
        elif status == "out_of_stock":
            stmt = stmt.where(Product.is_active.is_(True), Product.stock == 0)
        elif status == "low_stock":
            stmt = stmt.where(
                Product.is_active.is_(True), Product.stock > 0, Product.stock <= Product.min_stock
            )
        elif status == "in_stock":
            stmt = stmt.where(Product.is_active.is_(True), Product.stock > Product.min_stock)

        total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        stmt = stmt.order_by(Product.name).offset((page - 1) * limit).limit(limit)
        return list(db.execute(stmt).scalars().all()), total

    def is_referenced(self, db: Session, product_id: int) -> bool:
        """True when orders, procurements, opnames or statistics point at the product."""
        references = [
            OrderItem.product_id, ProcurementItem.product_id, StockOpnameItem.product_id,
            ProductStats.product_id, DailyStats.top_selling_product_id,
            WeeklyStats.top_selling_product_id, MonthlyStats.top_selling_product_id,
        ]
        for column in references:
            if db.execute(select(column).where(column == product_id).limit(1)).first() is not None:
                return True
        return False


class CRUDCategory(CRUDBase[Category]):
    def __init__(self):
        super().__init__(Category)

    def list_with_counts(self, db: Session) -> List[Tuple[Category, int]]:
        stmt = (
            select(Category, func.count(Product.id))
            .outerjoin(Product, Product.category_id == Category.id)
            .group_by(Category.id)
            .order_by(Category.name)
        )
        return [(category, count) for category, count in db.execute(stmt).all()]

    def product_count(self, db: Session, category_id: int) -> int:
        stmt = select(func.count(Product.id)).where(Product.category_id == category_id)
        return db.execute(stmt).scalar_one()


class CRUDSupplier(CRUDBase[Supplier]):
    def __init__(self):
        super().__init__(Supplier)

    def procurement_count(self, db: Session, supplier_id: int) -> int:
        stmt = select(func.count(Procurement.id)).where(Procurement.supplier_id == supplier_id)
        return db.execute(stmt).scalar_one()


crud_product = CRUDProduct()
crud_category = CRUDCategory()
crud_unit = CRUDBase(Unit)
crud_supplier = CRUDSupplier()
