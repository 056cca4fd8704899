"""
SQLAlchemy 2.x models.
Money is Numeric/Decimal, stock is a whole number of units.
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, Date, DateTime, ForeignKey, Text, JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, declarative_base, declared_attr
from sqlalchemy.sql import func
from datetime import datetime
from decimal import Decimal

Base = declarative_base()

# Profit estimate when a product has no wholesale price
DEFAULT_MARGIN = Decimal("0.30")

Money = Numeric(14, 2)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(120), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(60), nullable=False)
    last_name = Column(String(60), nullable=False)
    role = Column(String(20), nullable=False, default="CASHIER")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    orders = relationship("Order", back_populates="cashier")
    shifts = relationship("Shift", back_populates="cashier")
    procurements = relationship("Procurement", back_populates="created_by")
    audit_logs = relationship("AuditLog", back_populates="user_rel")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    products = relationship("Product", back_populates="category")


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)
    symbol = Column(String(20), unique=True, nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    products = relationship("Product", back_populates="unit")


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    phone = Column(String(30))
    address = Column(Text)
    store_name = Column(String(100))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    procurements = relationship("Procurement", back_populates="supplier")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(30))
    email = Column(String(120))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    orders = relationship("Order", back_populates="customer")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    description = Column(Text)
    price = Column(Money, nullable=False)
    wholesale_price = Column(Money)
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=5)
    barcode = Column(String(64), unique=True)
    sku = Column(String(64), unique=True)
    image = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")
    unit = relationship("Unit", back_populates="products")
    order_items = relationship("OrderItem", back_populates="product")

    def profit_per_unit(self, price: Decimal) -> Decimal:
        """Estimated profit for one unit sold at ``price``."""
        price = Decimal(price)
        if self.wholesale_price is not None:
            return price - Decimal(self.wholesale_price)
        return price * DEFAULT_MARGIN

    @property
    def status(self) -> str:
        if not self.is_active:
            return "inactive"
        if self.stock == 0:
            return "out_of_stock"
        if self.stock <= self.min_stock:
            return "low_stock"
        return "in_stock"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(40), unique=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"))
    cashier_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    subtotal = Column(Money, nullable=False)
    tax = Column(Money, nullable=False)
    discount = Column(Money, nullable=False, default=Decimal("0"))
    total = Column(Money, nullable=False)
    payment_method = Column(String(20), nullable=False, default="CASH")
    payment_status = Column(String(20), nullable=False, default="COMPLETED")
    status = Column(String(20), nullable=False, default="COMPLETED")
    notes = Column(Text)
    # Local wall-clock time; stats buckets are local days
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    customer = relationship("Customer", back_populates="orders")
    cashier = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Money, nullable=False)
    subtotal = Column(Money, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")


class StatsColumns:
    """Columns shared by the daily/weekly/monthly aggregate tables."""

    total_transactions = Column(Integer, nullable=False, default=0)
    total_sales = Column(Money, nullable=False, default=Decimal("0"))
    total_profit = Column(Money, nullable=False, default=Decimal("0"))
    total_customers = Column(Integer, nullable=False, default=0)
    total_items_sold = Column(Integer, nullable=False, default=0)
    average_order_value = Column(Money, nullable=False, default=Decimal("0"))
    cash_sales = Column(Money, nullable=False, default=Decimal("0"))
    card_sales = Column(Money, nullable=False, default=Decimal("0"))
    mobile_payment_sales = Column(Money, nullable=False, default=Decimal("0"))
    top_selling_product_qty = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    @declared_attr
    def top_selling_product_id(cls):
        return Column(Integer, ForeignKey("products.id"))

    @declared_attr
    def top_selling_product(cls):
        return relationship("Product")


class DailyStats(StatsColumns, Base):
    __tablename__ = "daily_stats"

    id = Column(Integer, primary_key=True)
    date = Column(Date, unique=True, nullable=False)


class WeeklyStats(StatsColumns, Base):
    __tablename__ = "weekly_stats"

    id = Column(Integer, primary_key=True)
    week_start = Column(Date, unique=True, nullable=False)
    week_end = Column(Date, nullable=False)
    best_sales_day = Column(Date)
    best_sales_day_amount = Column(Money, nullable=False, default=Decimal("0"))


class MonthlyStats(StatsColumns, Base):
    __tablename__ = "monthly_stats"
    __table_args__ = (UniqueConstraint("month", "year", name="uq_monthly_stats_month_year"),)

    id = Column(Integer, primary_key=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    best_sales_day = Column(Date)
    best_sales_day_amount = Column(Money, nullable=False, default=Decimal("0"))


class ProductStats(Base):
    __tablename__ = "product_stats"
    __table_args__ = (UniqueConstraint("product_id", "date", name="uq_product_stats_product_date"),)

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    date = Column(Date, nullable=False)
    quantity_sold = Column(Integer, nullable=False, default=0)
    revenue = Column(Money, nullable=False, default=Decimal("0"))
    profit = Column(Money, nullable=False, default=Decimal("0"))
    average_price = Column(Money, nullable=False, default=Decimal("0"))
    stock_at_start = Column(Integer, nullable=False, default=0)
    stock_at_end = Column(Integer, nullable=False, default=0)

    product = relationship("Product")


class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True)
    cashier_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    start_time = Column(DateTime, nullable=False, default=datetime.now)
    end_time = Column(DateTime)
    start_balance = Column(Money, nullable=False, default=Decimal("0"))
    final_balance = Column(Money)
    total_sales = Column(Money, nullable=False, default=Decimal("0"))
    is_active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text)

    cashier = relationship("User", back_populates="shifts")


class Procurement(Base):
    __tablename__ = "procurements"

    id = Column(Integer, primary_key=True)
    procurement_number = Column(String(30), unique=True, nullable=False)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"))
    status = Column(String(20), nullable=False, default="DRAFT")
    total_items = Column(Integer, nullable=False, default=0)
    total_amount = Column(Money, nullable=False, default=Decimal("0"))
    notes = Column(Text)
    order_date = Column(DateTime, nullable=False, default=datetime.now)
    received_date = Column(DateTime)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    supplier = relationship("Supplier", back_populates="procurements")
    created_by = relationship("User", back_populates="procurements")
    items = relationship("ProcurementItem", back_populates="procurement", cascade="all, delete-orphan")


class ProcurementItem(Base):
    __tablename__ = "procurement_items"

    id = Column(Integer, primary_key=True)
    procurement_id = Column(Integer, ForeignKey("procurements.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)

    procurement = relationship("Procurement", back_populates="items")
    product = relationship("Product")


class StockOpname(Base):
    __tablename__ = "stock_opnames"

    id = Column(Integer, primary_key=True)
    opname_number = Column(String(30), unique=True, nullable=False)
    title = Column(String(150), nullable=False)
    status = Column(String(20), nullable=False, default="DRAFT")
    total_items = Column(Integer, nullable=False, default=0)
    checked_items = Column(Integer, nullable=False, default=0)
    total_difference = Column(Integer, nullable=False, default=0)
    start_date = Column(DateTime, nullable=False, default=datetime.now)
    completed_date = Column(DateTime)
    notes = Column(Text)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    created_by = relationship("User")
    items = relationship("StockOpnameItem", back_populates="stock_opname", cascade="all, delete-orphan")


class StockOpnameItem(Base):
    __tablename__ = "stock_opname_items"

    id = Column(Integer, primary_key=True)
    stock_opname_id = Column(Integer, ForeignKey("stock_opnames.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    system_stock = Column(Integer, nullable=False)
    physical_stock = Column(Integer)
    difference = Column(Integer, nullable=False, default=0)
    notes = Column(Text)
    checked_at = Column(DateTime)

    stock_opname = relationship("StockOpname", back_populates="items")
    product = relationship("Product")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"))
    action = Column(String(50), nullable=False)
    table_name = Column(String(50))
    record_id = Column(Integer)
    old_values = Column(JSON)
    new_values = Column(JSON)
    performed_at = Column(DateTime(timezone=True), server_default=func.now())
    notes = Column(Text)

    user_rel = relationship("User", back_populates="audit_logs")
