"""
Sales reports over a date range.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional

from kasir.database import get_db
from kasir.schemas.dashboard import ReportExportRequest
from kasir.services import reports
from kasir.utils.pdf_reports import pdf_generator

router = APIRouter(prefix="/reports", tags=["reports"])

REPORT_TYPES = ("daily", "summary", "products", "payments", "export")


def _envelope(data, start: datetime, end: datetime) -> dict:
    return {
        "success": True,
        "data": data,
        "period": {"start_date": start.isoformat(), "end_date": end.isoformat()},
        "timestamp": datetime.now().isoformat(),
    }


@router.get("")
def get_report(
    report_type: str = Query("daily", alias="type"),
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Report of the given ``type``; the range defaults to the last 7 days."""
    if report_type not in REPORT_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Jenis laporan tidak valid")
    start, end = reports.default_range(startDate, endDate)

    if report_type == "daily":
        data = reports.get_daily_sales_report(db, start, end)
    elif report_type == "summary":
        data = reports.get_sales_summary(db, start, end)
    elif report_type == "products":
        data = reports.get_product_sales_report(db, start, end, limit)
    elif report_type == "payments":
        data = reports.get_payment_method_report(db, start, end)
    else:
        data = reports.export_daily_report(db, start, end)
    return _envelope(data, start, end)


@router.post("")
def export_report(body: ReportExportRequest, db: Session = Depends(get_db)):
    if body.action != "export":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Aksi tidak valid")
    start, end = reports.default_range(body.startDate, body.endDate)
    return _envelope(reports.export_daily_report(db, start, end), start, end)


@router.get("/day-transactions")
def day_transactions(date: Optional[str] = None, db: Session = Depends(get_db)):
    if not date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Parameter tanggal harus diisi")
    target = reports.parse_report_date(date)
    return {"success": True, "data": reports.get_day_transactions(db, target)}


@router.get("/pdf")
def report_pdf(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    db: Session = Depends(get_db)
):
    start, end = reports.default_range(startDate, endDate)
    period_label = f"{start.strftime('%d/%m/%Y')} - {end.strftime('%d/%m/%Y')}"
    pdf_bytes = pdf_generator.generate_sales_report(
        summary=reports.get_sales_summary(db, start, end),
        daily_rows=reports.get_daily_sales_report(db, start, end),
        products=reports.get_product_sales_report(db, start, end),
        payments=reports.get_payment_method_report(db, start, end),
        period_label=period_label,
    )
    filename = f"laporan_penjualan_{start.strftime('%Y%m%d')}_{end.strftime('%Y%m%d')}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
