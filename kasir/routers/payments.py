"""
Payment history and CSV export.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from datetime import datetime
from io import StringIO
from typing import Optional
import csv

from kasir.database import get_db
from kasir.services import payments
from kasir.services.aggregation import day_bounds
from kasir.services.reports import parse_report_date

router = APIRouter(prefix="/payments", tags=["payments"])


def _selection(db, startDate, endDate, status, method, search):
    start = day_bounds(parse_report_date(startDate))[0] if startDate else None
    end = day_bounds(parse_report_date(endDate))[1] if endDate else None
    return payments.find_payments(db, start=start, end=end, status=status, method=method, search=search)


@router.get("/history")
def payment_history(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    status: Optional[str] = None,
    method: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    orders = _selection(db, startDate, endDate, status, method, search)
    return {
        "success": True,
        "data": {
            "payments": [payments.serialize_payment(o) for o in orders],
            "summary": payments.payment_summary(orders),
        },
    }


@router.get("/export")
def export_payments(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    status: Optional[str] = None,
    method: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    orders = _selection(db, startDate, endDate, status, method, search)

    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(payments.CSV_HEADERS)
    for order in orders:
        writer.writerow(payments.csv_row(order))

    output.seek(0)
    filename = f"payment-history-{datetime.now().strftime('%Y-%m-%d')}.csv"
    return StreamingResponse(
        output,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
