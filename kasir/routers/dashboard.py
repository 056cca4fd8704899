"""
Dashboard statistics.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional

from kasir.database import get_db
from kasir.schemas.dashboard import DashboardAction, StatsPeriod
from kasir.services import stats
from kasir.services.reports import parse_report_date

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("")
def get_dashboard(
    period: StatsPeriod = StatsPeriod.ALL,
    date: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Stats for one period, or (period=all) every period with comparisons,
    charts, counts, recent orders and stock alerts.
    """
    now = datetime.now()
    target = parse_report_date(date) if date else now.date()

    if period == StatsPeriod.DAILY:
        data = {"daily": stats.serialize_stats(stats.get_daily_stats(db, target, now))}
    elif period == StatsPeriod.WEEKLY:
        data = {"weekly": stats.serialize_stats(stats.get_weekly_stats(db, target, now))}
    elif period == StatsPeriod.MONTHLY:
        data = {"monthly": stats.serialize_stats(stats.get_monthly_stats(db, target.month, target.year, now))}
    else:
        data = stats.get_dashboard_data(db, now)
        data["charts"] = {
            "daily": stats.sales_profit_chart(db, 30, now),
            "weekly": stats.weekly_sales_profit_chart(db, 8, now),
        }

    return {
        "success": True,
        "data": data,
        **stats.get_overview(db, now),
        "timestamp": now.isoformat(),
    }


@router.post("")
def update_dashboard(body: DashboardAction, db: Session = Depends(get_db)):
    if body.action == "update_product_stats":
        if not body.product_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ID produk harus diisi")
        target = parse_report_date(body.date) if body.date else datetime.now().date()
        stats.update_product_stats(db, body.product_id, target)
        return {"success": True, "message": "Statistik produk diperbarui"}

    if body.action == "refresh_all":
        result = stats.refresh_all(db)
        return {"success": True, "message": "Statistik diperbarui", **result}

    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Aksi tidak valid")
