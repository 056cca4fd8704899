"""
Range reports: daily breakdown, period summary, product and payment-method reports.

Each report loads the range once through the aggregation module and buckets
the orders in memory.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from kasir.exceptions import ValidationFailed
from kasir.models import Order, OrderItem
from kasir.schemas.orders import PAYMENT_METHOD_LABELS
from kasir.services.aggregation import (
    ZERO, fetch_completed_orders, summarize_orders, aggregate_range, calculate_change, day_bounds,
)

logger = logging.getLogger(__name__)

NO_TOP_PRODUCT = "Tidak ada"


def get_daily_sales_report(db: Session, start: datetime, end: datetime) -> List[Dict[str, Any]]:
    """One row per calendar day in the range, most recent first."""
    orders = fetch_completed_orders(db, start, end)
    by_day: Dict[date, list] = {}
    for order in orders:
        by_day.setdefault(order.created_at.date(), []).append(order)

    rows = []
    current = start.date()
    while current <= end.date():
        agg = summarize_orders(by_day.get(current, []))
        top = agg.top_product
        rows.append({
            "date": current.strftime("%d/%m/%Y"),
            "transactions": agg.total_transactions,
            "revenue": float(agg.total_sales),
            "profit": float(agg.total_profit),
            "top_product": top.name if top else NO_TOP_PRODUCT,
            "top_product_quantity": top.quantity if top else 0,
            "average_order_value": float(agg.average_order_value),
            "cash_sales": float(agg.cash_sales),
            "card_sales": float(agg.card_sales),
            "mobile_payment_sales": float(agg.mobile_payment_sales),
        })
        current += timedelta(days=1)

    rows.reverse()
    return rows


def previous_range(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """The equal-length range ending just before ``start``."""
    prev_end = start - timedelta(microseconds=1)
    return prev_end - (end - start), prev_end


def get_sales_summary(db: Session, start: datetime, end: datetime) -> Dict[str, Any]:
    current = aggregate_range(db, start, end)
    previous = aggregate_range(db, *previous_range(start, end))

    return {
        "total_revenue": float(current.total_sales),
        "total_transactions": current.total_transactions,
        "total_profit": float(current.total_profit),
        "total_customers": current.total_customers,
        "average_order_value": float(current.average_order_value),
        "profit_margin": float(current.profit_margin),
        "period_comparison": {
            "revenue_change": calculate_change(current.total_sales, previous.total_sales),
            "transaction_change": calculate_change(current.total_transactions, previous.total_transactions),
            "profit_change": calculate_change(current.total_profit, previous.total_profit),
        },
    }


def get_product_sales_report(db: Session, start: datetime, end: datetime, limit: int = 10) -> List[Dict[str, Any]]:
    agg = aggregate_range(db, start, end)
    products = sorted(agg.products.values(), key=lambda p: (-p.revenue, p.product_id))
    return [
        {
            "id": p.product_id,
            "name": p.name,
            "category": p.category,
            "quantity_sold": p.quantity,
            "revenue": float(p.revenue),
            "profit": float(p.profit),
        }
        for p in products[:limit]
    ]


def get_payment_method_report(db: Session, start: datetime, end: datetime) -> List[Dict[str, Any]]:
    agg = aggregate_range(db, start, end)
    total = agg.total_sales

    rows = []
    for method, count in agg.payment_counts.items():
        if not count:
            continue
        amount = agg.payment_sales[method]
        rows.append({
            "method": PAYMENT_METHOD_LABELS.get(method, method),
            "count": count,
            "amount": float(amount),
            "percentage": float(amount / total * 100) if total else 0.0,
        })
    return rows


def export_daily_report(db: Session, start: datetime, end: datetime) -> Dict[str, Any]:
    return {
        "summary": get_sales_summary(db, start, end),
        "daily_reports": get_daily_sales_report(db, start, end),
        "export_date": datetime.now().isoformat(),
        "period": {"start_date": start.isoformat(), "end_date": end.isoformat()},
    }


def parse_report_date(value: str) -> date:
    """Accept YYYY-MM-DD or DD/MM/YYYY."""
    try:
        if "/" in value:
            day, month, year = (int(part) for part in value.split("/"))
            return date(year, month, day)
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ValidationFailed("Format tanggal tidak valid")


def get_day_transactions(db: Session, target_date: date) -> Dict[str, Any]:
    """Every order of one day, whatever its status, newest first."""
    start, end = day_bounds(target_date)
    stmt = (
        select(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.product), selectinload(Order.cashier))
        .where(Order.created_at >= start, Order.created_at <= end)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    orders = db.execute(stmt).scalars().all()

    transactions = []
    payment_methods: Dict[str, Dict[str, Any]] = {}
    item_stats: Dict[str, Dict[str, Any]] = {}
    total_revenue = ZERO

    for order in orders:
        label = PAYMENT_METHOD_LABELS.get(order.payment_method, order.payment_method)
        items = []
        for item in order.items:
            subtotal = Decimal(item.price) * item.quantity
            items.append({
                "id": item.id,
                "name": item.product.name,
                "quantity": item.quantity,
                "price": float(item.price),
                "subtotal": float(subtotal),
            })
            stats = item_stats.setdefault(item.product.name, {"quantity": 0, "revenue": ZERO})
            stats["quantity"] += item.quantity
            stats["revenue"] += subtotal

        transactions.append({
            "id": order.id,
            "order_number": order.order_number,
            "timestamp": order.created_at.strftime("%H:%M:%S"),
            "total": float(order.total),
            "status": order.status,
            "items": items,
            "payment_method": label,
            "cashier_name": order.cashier.full_name if order.cashier else None,
        })

        method = payment_methods.setdefault(label, {"count": 0, "amount": 0.0})
        method["count"] += 1
        method["amount"] += float(order.total)
        total_revenue += Decimal(order.total)

    top_items = sorted(item_stats.items(), key=lambda kv: (-kv[1]["quantity"], kv[0]))[:5]
    count = len(transactions)

    return {
        "date": target_date.isoformat(),
        "transactions": transactions,
        "summary": {
            "total_transactions": count,
            "total_revenue": float(total_revenue),
            "average_order_value": float(total_revenue / count) if count else 0.0,
            "payment_methods": payment_methods,
            "top_selling_items": [
                {"name": name, "quantity": s["quantity"], "revenue": float(s["revenue"])}
                for name, s in top_items
            ],
        },
    }


def default_range(
    start_date: Optional[str], end_date: Optional[str], now: Optional[datetime] = None
) -> Tuple[datetime, datetime]:
    """Report range from query strings; defaults to the last 7 days."""
    today = (now or datetime.now()).date()
    start = parse_report_date(start_date) if start_date else today - timedelta(days=7)
    end = parse_report_date(end_date) if end_date else today
    if start > end:
        raise ValidationFailed("Tanggal mulai harus sebelum tanggal akhir")
    return day_bounds(start)[0], day_bounds(end)[1]
