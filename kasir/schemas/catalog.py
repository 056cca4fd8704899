"""
Catalog schemas: products, categories, units, suppliers.
Required-field checks live in the routers so the error text stays specific.
"""
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
from decimal import Decimal


# ------------------------------
# Products
# ------------------------------
class ProductBase(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    wholesale_price: Optional[Decimal] = None
    stock: int = 0
    min_stock: int = 5
    barcode: Optional[str] = None
    sku: Optional[str] = None
    image: Optional[str] = None
    category_id: Optional[int] = None
    unit_id: Optional[int] = None


class ProductCreate(ProductBase):
    pass


class ProductUpdate(ProductBase):
    stock: Optional[int] = None
    min_stock: Optional[int] = None
    is_active: Optional[bool] = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    price: float
    wholesale_price: Optional[float]
    stock: int
    min_stock: int
    barcode: Optional[str]
    sku: Optional[str]
    image: Optional[str]
    is_active: bool
    category_id: int
    category_name: Optional[str] = None
    unit_id: Optional[int]
    unit_symbol: Optional[str] = None
    status: str


# ------------------------------
# Categories
# ------------------------------
class CategoryIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    product_count: int = 0


# ------------------------------
# Units
# ------------------------------
class UnitIn(BaseModel):
    name: Optional[str] = None
    symbol: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class UnitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    symbol: str
    description: Optional[str]
    is_active: bool
    created_at: Optional[datetime]


# ------------------------------
# Suppliers
# ------------------------------
class SupplierIn(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    store_name: Optional[str] = None
    is_active: Optional[bool] = None


class SupplierResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    phone: Optional[str]
    address: Optional[str]
    store_name: Optional[str]
    is_active: bool
    created_at: Optional[datetime]
