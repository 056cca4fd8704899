"""
Daily, weekly and monthly sales statistics.

A bucket whose end is still ahead of ``now`` (today, this week, this month, or
a future bucket) is recomputed and upserted on every read. A closed bucket is
computed once and served from its table afterwards.
"""
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Type
import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from kasir.exceptions import NotFound
from kasir.models import (
    DailyStats, WeeklyStats, MonthlyStats, ProductStats, Product, Order, Category, User,
)
from kasir.services.aggregation import (
    SalesAggregate, ZERO, CENT, aggregate_range, fetch_completed_orders, summarize_orders,
    calculate_change, day_bounds, week_bounds, week_start, month_bounds, previous_month,
)
from kasir.services.inventory import scan_inventory_alerts

logger = logging.getLogger(__name__)

CHANGE_FIELDS = {
    "transactions": "total_transactions",
    "sales": "total_sales",
    "profit": "total_profit",
    "customers": "total_customers",
    "items_sold": "total_items_sold",
}


def _stats_values(agg: SalesAggregate, with_best_day: bool) -> Dict[str, Any]:
    top = agg.top_product
    values = {
        "total_transactions": agg.total_transactions,
        "total_sales": agg.total_sales,
        "total_profit": agg.total_profit.quantize(CENT, ROUND_HALF_UP),
        "total_customers": agg.total_customers,
        "total_items_sold": agg.total_items_sold,
        "average_order_value": agg.average_order_value,
        "cash_sales": agg.cash_sales,
        "card_sales": agg.card_sales,
        "mobile_payment_sales": agg.mobile_payment_sales,
        "top_selling_product_id": top.product_id if top else None,
        "top_selling_product_qty": top.quantity if top else 0,
    }
    if with_best_day:
        best_day, best_amount = agg.best_sales_day
        values["best_sales_day"] = best_day
        values["best_sales_day_amount"] = best_amount
    return values


def _get_bucket(
    db: Session,
    model: Type,
    key: Dict[str, Any],
    start: datetime,
    end: datetime,
    now: datetime,
    extra: Optional[Dict[str, Any]] = None,
):
    """Cached-or-computed stats row for one bucket."""
    stmt = select(model).filter_by(**key)
    row = db.execute(stmt).scalar_one_or_none()
    if row is not None and end < now:
        return row

    values = _stats_values(aggregate_range(db, start, end), with_best_day=model is not DailyStats)
    values.update(extra or {})

    try:
        if row is None:
            row = model(**key, **values)
            db.add(row)
        else:
            for field, value in values.items():
                setattr(row, field, value)
        db.commit()
    except IntegrityError:
        # Another request stored the same bucket first; overwrite it
        db.rollback()
        row = db.execute(stmt).scalar_one()
        for field, value in values.items():
            setattr(row, field, value)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error storing {model.__name__} {key}: {e}")
        raise

    db.refresh(row)
    logger.info(f"{model.__name__} {key} recomputed")
    return row


def get_daily_stats(db: Session, target_date: date, now: Optional[datetime] = None) -> DailyStats:
    now = now or datetime.now()
    start, end = day_bounds(target_date)
    return _get_bucket(db, DailyStats, {"date": target_date}, start, end, now)


def get_weekly_stats(db: Session, target_date: date, now: Optional[datetime] = None) -> WeeklyStats:
    now = now or datetime.now()
    start, end = week_bounds(target_date)
    first = week_start(target_date)
    return _get_bucket(
        db, WeeklyStats, {"week_start": first}, start, end, now,
        extra={"week_end": first + timedelta(days=6)},
    )


def get_monthly_stats(db: Session, month: int, year: int, now: Optional[datetime] = None) -> MonthlyStats:
    now = now or datetime.now()
    start, end = month_bounds(month, year)
    return _get_bucket(db, MonthlyStats, {"month": month, "year": year}, start, end, now)


def serialize_stats(row) -> Dict[str, Any]:
    data = {
        "id": row.id,
        "total_transactions": row.total_transactions,
        "total_sales": float(row.total_sales),
        "total_profit": float(row.total_profit),
        "total_customers": row.total_customers,
        "total_items_sold": row.total_items_sold,
        "average_order_value": float(row.average_order_value),
        "cash_sales": float(row.cash_sales),
        "card_sales": float(row.card_sales),
        "mobile_payment_sales": float(row.mobile_payment_sales),
        "top_selling_product_id": row.top_selling_product_id,
        "top_selling_product": row.top_selling_product.name if row.top_selling_product else None,
        "top_selling_product_qty": row.top_selling_product_qty,
    }
    if isinstance(row, DailyStats):
        data["date"] = row.date.isoformat()
    elif isinstance(row, WeeklyStats):
        data["week_start"] = row.week_start.isoformat()
        data["week_end"] = row.week_end.isoformat()
    else:
        data["month"] = row.month
        data["year"] = row.year
    if not isinstance(row, DailyStats):
        data["best_sales_day"] = row.best_sales_day.isoformat() if row.best_sales_day else None
        data["best_sales_day_amount"] = float(row.best_sales_day_amount)
    return data


def _comparison(current, previous) -> Dict[str, Any]:
    return {
        "current": serialize_stats(current),
        "previous": serialize_stats(previous),
        "changes": {
            name: calculate_change(getattr(current, attr), getattr(previous, attr))
            for name, attr in CHANGE_FIELDS.items()
        },
    }


def get_dashboard_data(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Current daily/weekly/monthly buckets against the preceding ones."""
    now = now or datetime.now()
    today = now.date()
    prev_month, prev_year = previous_month(today.month, today.year)

    return {
        "daily": _comparison(
            get_daily_stats(db, today, now),
            get_daily_stats(db, today - timedelta(days=1), now),
        ),
        "weekly": _comparison(
            get_weekly_stats(db, today, now),
            get_weekly_stats(db, today - timedelta(days=7), now),
        ),
        "monthly": _comparison(
            get_monthly_stats(db, today.month, today.year, now),
            get_monthly_stats(db, prev_month, prev_year, now),
        ),
    }


def _chart_point(label: str, agg: SalesAggregate) -> Dict[str, Any]:
    return {
        "date": label,
        "sales": float(agg.total_sales),
        "profit": float(agg.total_profit),
        "profit_margin": float(agg.profit_margin),
    }


def sales_profit_chart(db: Session, days: int = 30, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """One point per day, the last ``days`` days ending today."""
    today = (now or datetime.now()).date()
    first = today - timedelta(days=days - 1)
    orders = fetch_completed_orders(db, day_bounds(first)[0], day_bounds(today)[1])

    by_day: Dict[date, list] = {}
    for order in orders:
        by_day.setdefault(order.created_at.date(), []).append(order)

    points = []
    for i in range(days):
        d = first + timedelta(days=i)
        points.append(_chart_point(d.strftime("%d/%m"), summarize_orders(by_day.get(d, []))))
    return points


def weekly_sales_profit_chart(db: Session, weeks: int = 8, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Rolling 7-day windows, the newest ending today."""
    today = (now or datetime.now()).date()
    first = today - timedelta(days=weeks * 7 - 1)
    orders = fetch_completed_orders(db, day_bounds(first)[0], day_bounds(today)[1])

    points = []
    for i in range(weeks - 1, -1, -1):
        window_end = today - timedelta(days=i * 7)
        window_start = window_end - timedelta(days=6)
        window = [o for o in orders if window_start <= o.created_at.date() <= window_end]
        label = (
            f"{window_start.day}/{window_start.month} - "
            f"{window_end.day}/{window_end.month}"
        )
        points.append(_chart_point(label, summarize_orders(window)))
    return points


def update_product_stats(db: Session, product_id: int, target_date: date) -> ProductStats:
    """Upsert one product's sales figures for one day."""
    product = db.get(Product, product_id)
    if product is None:
        raise NotFound("Produk tidak ditemukan")

    start, end = day_bounds(target_date)
    agg = aggregate_range(db, start, end)
    totals = agg.products.get(product_id)

    quantity = totals.quantity if totals else 0
    revenue = totals.revenue if totals else ZERO
    profit = totals.profit.quantize(CENT, ROUND_HALF_UP) if totals else ZERO
    average_price = (revenue / quantity).quantize(CENT, ROUND_HALF_UP) if quantity else ZERO

    stmt = select(ProductStats).where(
        ProductStats.product_id == product_id, ProductStats.date == target_date
    )
    row = db.execute(stmt).scalar_one_or_none()
    try:
        if row is None:
            row = ProductStats(
                product_id=product_id,
                date=target_date,
                stock_at_start=product.stock,
            )
            db.add(row)
        row.quantity_sold = quantity
        row.revenue = revenue
        row.profit = profit
        row.average_price = average_price
        row.stock_at_end = product.stock
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating product stats for {product_id}: {e}")
        raise

    logger.info(f"Product stats updated for product {product_id} on {target_date}")
    return row


def refresh_all(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Recompute the current buckets."""
    now = now or datetime.now()
    today = now.date()
    get_daily_stats(db, today, now)
    get_weekly_stats(db, today, now)
    get_monthly_stats(db, today.month, today.year, now)
    return {"refreshed_at": now.isoformat()}


def get_overview(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Counts, recent orders and inventory alerts shown beside the stats."""
    counts = {
        "products": db.execute(
            select(func.count(Product.id)).where(Product.is_active.is_(True))
        ).scalar_one(),
        "categories": db.execute(select(func.count(Category.id))).scalar_one(),
        "orders": db.execute(select(func.count(Order.id))).scalar_one(),
        "users": db.execute(select(func.count(User.id)).where(User.is_active.is_(True))).scalar_one(),
    }

    recent_stmt = (
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.cashier))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(5)
    )
    recent_orders = [
        {
            "id": o.id,
            "order_number": o.order_number,
            "total": float(o.total),
            "item_count": len(o.items),
            "cashier": o.cashier.full_name if o.cashier else None,
            "created_at": o.created_at.isoformat(),
        }
        for o in db.execute(recent_stmt).scalars().all()
    ]

    return {
        "stats": counts,
        "recent_orders": recent_orders,
        "alerts": [a.model_dump(mode="json") for a in scan_inventory_alerts(db)],
    }
