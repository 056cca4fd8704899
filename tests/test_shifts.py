from datetime import date, datetime
from decimal import Decimal

import pytest

from kasir.exceptions import NotFound, StateConflict, ValidationFailed
from kasir.schemas.orders import CartItem
from kasir.services import shifts
from kasir.services.checkout import create_order


def test_one_active_shift_per_cashier(db, cashier):
    shift = shifts.start_shift(db, cashier.id, Decimal("200000"), now=datetime(2024, 3, 15, 8, 0))
    assert shift.is_active is True
    assert shift.start_balance == Decimal("200000")

    with pytest.raises(StateConflict):
        shifts.start_shift(db, cashier.id, Decimal("100000"))


def test_start_requires_balance(db, cashier):
    with pytest.raises(ValidationFailed):
        shifts.start_shift(db, cashier.id, None)


def test_end_totals_sales_during_shift(db, cashier, make_product):
    mie = make_product(price="3500", stock=20)
    shifts.start_shift(db, cashier.id, Decimal("100000"), now=datetime(2024, 3, 15, 8, 0))

    def sell(quantity, when):
        create_order(db, items=[CartItem(product_id=mie.id, quantity=quantity, price=Decimal("3500"))],
                     cashier_id=cashier.id, now=when)

    sell(1, datetime(2024, 3, 15, 7, 0))
    sell(2, datetime(2024, 3, 15, 10, 0))
    sell(1, datetime(2024, 3, 15, 13, 0))

    ended = shifts.end_shift(db, cashier.id, Decimal("111550"), notes="aman", now=datetime(2024, 3, 15, 16, 0))
    assert ended.is_active is False
    # 7700 + 3850 inside the shift
    assert ended.total_sales == Decimal("11550")
    assert ended.final_balance == Decimal("111550")
    assert shifts.get_active_shift(db, cashier.id) is None

    with pytest.raises(NotFound):
        shifts.end_shift(db, cashier.id)

    history = shifts.shift_history(db, cashier_id=cashier.id, on_date=date(2024, 3, 15))
    assert len(history) == 1
    assert history[0]["total_transactions"] == 2
    assert history[0]["cashier_name"] == "Budi Santoso"


def test_shift_api(client, cashier):
    assert client.get("/api/shifts", params={"cashier_id": cashier.id}).json() is None

    response = client.post("/api/shifts", json={"action": "start", "cashier_id": cashier.id, "start_balance": 50000})
    assert response.json()["shift"]["start_balance"] == 50000.0
    assert client.get("/api/shifts", params={"cashier_id": cashier.id}).json()["is_active"] is True

    response = client.post("/api/shifts", json={"action": "start", "cashier_id": cashier.id, "start_balance": 50000})
    assert response.status_code == 400
    assert response.json() == {"error": "Anda sudah memiliki shift aktif"}

    response = client.post("/api/shifts", json={"action": "end", "cashier_id": cashier.id, "final_balance": 50000})
    assert response.json()["message"] == "Shift berhasil diakhiri"
    assert len(client.get("/api/shift-history").json()) == 1

    response = client.post("/api/shifts", json={"action": "pause", "cashier_id": cashier.id})
    assert response.status_code == 400
