from datetime import date, datetime
from decimal import Decimal

import pytest

from kasir.exceptions import ValidationFailed
from kasir.models import Order
from kasir.schemas.orders import CartItem
from kasir.services import reports
from kasir.services.checkout import create_order


@pytest.fixture
def sales(db, cashier, make_product):
    """Orders on 14 and 15 March 2024."""
    mie = make_product("Mie Instan", price="3500")
    beras = make_product("Beras", price="14000", wholesale_price="12500")

    def sell(product, quantity, when, method="CASH"):
        return create_order(
            db,
            items=[CartItem(product_id=product.id, quantity=quantity, price=Decimal(product.price))],
            cashier_id=cashier.id,
            payment_method=method,
            now=when,
        )

    sell(mie, 2, datetime(2024, 3, 14, 9, 0))
    sell(mie, 4, datetime(2024, 3, 15, 9, 0), method="MOBILE_PAYMENT")
    sell(beras, 1, datetime(2024, 3, 15, 10, 30), method="CARD")
    return {"mie": mie, "beras": beras}


def test_daily_report_newest_first(db, sales):
    start, end = reports.default_range("2024-03-13", "2024-03-15")
    rows = reports.get_daily_sales_report(db, start, end)

    assert [r["date"] for r in rows] == ["15/03/2024", "14/03/2024", "13/03/2024"]
    assert rows[0]["transactions"] == 2
    assert rows[0]["top_product"] == "Mie Instan"
    assert rows[0]["top_product_quantity"] == 4
    assert rows[2]["top_product"] == reports.NO_TOP_PRODUCT
    assert rows[2]["revenue"] == 0.0


def test_summary_compares_with_previous_range(db, sales):
    start, end = reports.default_range("2024-03-15", "2024-03-15")
    summary = reports.get_sales_summary(db, start, end)

    # two orders of 14000 + 1400 tax
    assert summary["total_revenue"] == 30800.0
    assert summary["total_transactions"] == 2
    # previous day: 7000 + 700 tax
    assert summary["period_comparison"]["revenue_change"] == pytest.approx(300.0)
    assert summary["period_comparison"]["transaction_change"] == pytest.approx(100.0)


def test_previous_range_has_equal_length():
    start, end = reports.default_range("2024-03-10", "2024-03-16")
    prev_start, prev_end = reports.previous_range(start, end)
    assert prev_end < start
    assert prev_start.date() == date(2024, 3, 3)
    assert prev_end.date() == date(2024, 3, 9)


def test_product_and_payment_reports(db, sales):
    start, end = reports.default_range("2024-03-14", "2024-03-15")

    products = reports.get_product_sales_report(db, start, end)
    assert [p["name"] for p in products] == ["Mie Instan", "Beras"]
    assert products[0]["quantity_sold"] == 6
    assert products[0]["revenue"] == 21000.0
    assert products[1]["profit"] == 1500.0

    payments = {p["method"]: p for p in reports.get_payment_method_report(db, start, end)}
    assert set(payments) == {"Tunai", "Kartu", "Pembayaran Mobile"}
    assert payments["Kartu"]["count"] == 1
    assert sum(p["percentage"] for p in payments.values()) == pytest.approx(100.0)


def test_day_transactions_include_every_status(db, sales):
    cancelled = db.query(Order).filter(Order.payment_method == "CARD").one()
    cancelled.status = "CANCELLED"
    db.commit()

    data = reports.get_day_transactions(db, date(2024, 3, 15))
    assert data["summary"]["total_transactions"] == 2
    assert {t["status"] for t in data["transactions"]} == {"COMPLETED", "CANCELLED"}
    assert data["transactions"][0]["timestamp"] == "10:30:00"
    assert data["summary"]["top_selling_items"][0] == {"name": "Mie Instan", "quantity": 4, "revenue": 14000.0}
    assert data["summary"]["payment_methods"]["Pembayaran Mobile"]["count"] == 1


@pytest.mark.parametrize("value", ["2024-03-15", "15/3/2024", "15/03/2024"])
def test_parse_report_date_formats(value):
    assert reports.parse_report_date(value) == date(2024, 3, 15)


@pytest.mark.parametrize("value", ["kemarin", "31/02/2024", "2024-13-01"])
def test_parse_report_date_rejects_garbage(value):
    with pytest.raises(ValidationFailed):
        reports.parse_report_date(value)


def test_range_must_be_ordered():
    with pytest.raises(ValidationFailed):
        reports.default_range("2024-03-15", "2024-03-01")


def test_default_range_is_last_seven_days():
    start, end = reports.default_range(None, None, now=datetime(2024, 3, 15, 12, 0))
    assert start == datetime(2024, 3, 8, 0, 0)
    assert end.date() == date(2024, 3, 15)


def test_reports_api(client, sales):
    params = {"startDate": "2024-03-14", "endDate": "2024-03-15"}

    response = client.get("/api/reports", params={**params, "type": "summary"})
    assert response.status_code == 200
    assert response.json()["data"]["total_transactions"] == 3

    response = client.get("/api/reports", params={**params, "type": "bogus"})
    assert response.status_code == 400
    assert response.json() == {"error": "Jenis laporan tidak valid"}

    response = client.post("/api/reports", json={"action": "export", **params})
    assert len(response.json()["data"]["daily_reports"]) == 2

    response = client.get("/api/reports/day-transactions", params={"date": "15/03/2024"})
    assert response.json()["data"]["summary"]["total_transactions"] == 2

    response = client.get("/api/reports/day-transactions")
    assert response.status_code == 400


def test_report_pdf(client, sales):
    response = client.get("/api/reports/pdf", params={"startDate": "2024-03-14", "endDate": "2024-03-15"})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
