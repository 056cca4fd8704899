from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum


class OpnameStatus(str, Enum):
    DRAFT = "DRAFT"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class StockOpnameCreate(BaseModel):
    title: Optional[str] = None
    notes: Optional[str] = None
    created_by_id: Optional[int] = None
    product_ids: List[int] = Field(default_factory=list)


class StockOpnameItemUpdate(BaseModel):
    id: int
    physical_stock: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class StockOpnameUpdate(BaseModel):
    title: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    items: Optional[List[StockOpnameItemUpdate]] = None
