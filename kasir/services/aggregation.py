"""
Sales aggregation shared by the statistics and report services.

One query loads the completed orders of a range (items and products eagerly),
and summarize_orders() folds them in memory. Stats buckets, report rows and
dashboard comparisons are all built from these two steps.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from kasir.models import Order, OrderItem

ZERO = Decimal("0")
CENT = Decimal("0.01")

PAYMENT_METHODS = ("CASH", "CARD", "MOBILE_PAYMENT")


@dataclass
class ProductTotal:
    product_id: int
    name: str
    category: Optional[str] = None
    quantity: int = 0
    revenue: Decimal = ZERO
    profit: Decimal = ZERO


@dataclass
class SalesAggregate:
    total_transactions: int = 0
    total_sales: Decimal = ZERO
    total_profit: Decimal = ZERO
    total_customers: int = 0
    total_items_sold: int = 0
    average_order_value: Decimal = ZERO
    payment_sales: Dict[str, Decimal] = field(default_factory=dict)
    payment_counts: Dict[str, int] = field(default_factory=dict)
    products: Dict[int, ProductTotal] = field(default_factory=dict)
    daily_sales: Dict[date, Decimal] = field(default_factory=dict)

    @property
    def cash_sales(self) -> Decimal:
        return self.payment_sales.get("CASH", ZERO)

    @property
    def card_sales(self) -> Decimal:
        return self.payment_sales.get("CARD", ZERO)

    @property
    def mobile_payment_sales(self) -> Decimal:
        return self.payment_sales.get("MOBILE_PAYMENT", ZERO)

    @property
    def top_product(self) -> Optional[ProductTotal]:
        """Highest quantity, then highest revenue, then lowest product id."""
        if not self.products:
            return None
        return min(
            self.products.values(),
            key=lambda p: (-p.quantity, -p.revenue, p.product_id),
        )

    @property
    def best_sales_day(self) -> Tuple[Optional[date], Decimal]:
        if not self.daily_sales:
            return None, ZERO
        day = min(self.daily_sales, key=lambda d: (-self.daily_sales[d], d))
        return day, self.daily_sales[day]

    @property
    def profit_margin(self) -> Decimal:
        if not self.total_sales:
            return ZERO
        return (self.total_profit / self.total_sales * 100).quantize(CENT, ROUND_HALF_UP)


def fetch_completed_orders(db: Session, start: datetime, end: datetime) -> List[Order]:
    """COMPLETED orders created within [start, end], with items and products loaded."""
    stmt = (
        select(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.product))
        .where(Order.status == "COMPLETED", Order.created_at >= start, Order.created_at <= end)
        .order_by(Order.created_at)
    )
    return list(db.execute(stmt).scalars().all())


def summarize_orders(orders: Iterable[Order]) -> SalesAggregate:
    agg = SalesAggregate(payment_sales={m: ZERO for m in PAYMENT_METHODS},
                         payment_counts={m: 0 for m in PAYMENT_METHODS})
    customers = set()

    for order in orders:
        total = Decimal(order.total)
        agg.total_transactions += 1
        agg.total_sales += total

        method = order.payment_method
        agg.payment_sales[method] = agg.payment_sales.get(method, ZERO) + total
        agg.payment_counts[method] = agg.payment_counts.get(method, 0) + 1

        if order.customer_id is not None:
            customers.add(order.customer_id)

        day = order.created_at.date()
        agg.daily_sales[day] = agg.daily_sales.get(day, ZERO) + total

        for item in order.items:
            price = Decimal(item.price)
            profit = item.product.profit_per_unit(price) * item.quantity
            agg.total_items_sold += item.quantity
            agg.total_profit += profit

            entry = agg.products.get(item.product_id)
            if entry is None:
                entry = ProductTotal(
                    product_id=item.product_id,
                    name=item.product.name,
                    category=item.product.category.name if item.product.category else None,
                )
                agg.products[item.product_id] = entry
            entry.quantity += item.quantity
            entry.revenue += price * item.quantity
            entry.profit += profit

    agg.total_customers = len(customers)
    if agg.total_transactions:
        agg.average_order_value = (agg.total_sales / agg.total_transactions).quantize(CENT, ROUND_HALF_UP)
    return agg


def aggregate_range(db: Session, start: datetime, end: datetime) -> SalesAggregate:
    return summarize_orders(fetch_completed_orders(db, start, end))


def calculate_change(current, previous) -> float:
    """Percent change from ``previous`` to ``current``."""
    current = float(current or 0)
    previous = float(previous or 0)
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


# ------------------------------
# Bucket boundaries (local time, inclusive)
# ------------------------------
def day_bounds(d: date) -> Tuple[datetime, datetime]:
    return datetime.combine(d, time.min), datetime.combine(d, time.max)


def week_start(d: date) -> date:
    """Sunday on or before ``d``."""
    return d - timedelta(days=(d.weekday() + 1) % 7)


def week_bounds(d: date) -> Tuple[datetime, datetime]:
    start = week_start(d)
    return datetime.combine(start, time.min), datetime.combine(start + timedelta(days=6), time.max)


def month_bounds(month: int, year: int) -> Tuple[datetime, datetime]:
    first = date(year, month, 1)
    if month == 12:
        next_first = date(year + 1, 1, 1)
    else:
        next_first = date(year, month + 1, 1)
    return datetime.combine(first, time.min), datetime.combine(next_first - timedelta(days=1), time.max)


def previous_month(month: int, year: int) -> Tuple[int, int]:
    if month == 1:
        return 12, year - 1
    return month - 1, year
