from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


class ProcurementStatus(str, Enum):
    DRAFT = "DRAFT"
    ORDERED = "ORDERED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class ProcurementItemIn(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)


class ProcurementCreate(BaseModel):
    supplier_id: Optional[int] = None
    items: List[ProcurementItemIn] = Field(default_factory=list)
    notes: Optional[str] = None
    created_by_id: Optional[int] = None


class ProcurementUpdate(BaseModel):
    supplier_id: Optional[int] = None
    items: Optional[List[ProcurementItemIn]] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    received_date: Optional[datetime] = None
