from datetime import datetime

import pytest

from kasir.exceptions import NotFound, StateConflict, ValidationFailed
from kasir.models import Product, StockOpname
from kasir.schemas.stock_opname import StockOpnameCreate, StockOpnameItemUpdate, StockOpnameUpdate
from kasir.services import stock_opname as service


@pytest.fixture
def opname(db, cashier, make_product):
    make_product("Mie Instan", stock=10)
    make_product("Teh Botol", stock=5)
    make_product("Lama", stock=3, is_active=False)
    return service.create_opname(
        db, StockOpnameCreate(title="Opname Maret", created_by_id=cashier.id), now=datetime(2024, 3, 1, 8, 0)
    )


def items_by_name(opname):
    return {item.product.name: item for item in opname.items}


def test_create_snapshots_active_products(opname):
    assert opname.opname_number == "SO-202403-001"
    assert opname.status == "DRAFT"
    assert opname.total_items == 2
    items = items_by_name(opname)
    assert set(items) == {"Mie Instan", "Teh Botol"}
    assert items["Mie Instan"].system_stock == 10
    assert items["Mie Instan"].physical_stock is None


def test_create_with_selected_products(db, cashier, make_product):
    roti = make_product("Roti", stock=7)
    make_product("Sabun", stock=2)
    opname = service.create_opname(
        db, StockOpnameCreate(title="Roti saja", created_by_id=cashier.id, product_ids=[roti.id])
    )
    assert [i.product_id for i in opname.items] == [roti.id]


def test_create_with_unknown_product_is_refused(db, cashier, make_product):
    roti = make_product("Roti", stock=7)
    with pytest.raises(NotFound) as exc:
        service.create_opname(
            db, StockOpnameCreate(title="Salah", created_by_id=cashier.id, product_ids=[roti.id, 998, 999])
        )
    assert "998, 999" in exc.value.message
    assert db.query(StockOpname).count() == 0


def test_create_validation(db, cashier):
    with pytest.raises(ValidationFailed):
        service.create_opname(db, StockOpnameCreate(title="  ", created_by_id=cashier.id))
    with pytest.raises(ValidationFailed):
        service.create_opname(db, StockOpnameCreate(title="Kosong", created_by_id=cashier.id))


def test_partial_count_moves_to_in_progress(db, opname):
    mie = items_by_name(opname)["Mie Instan"]
    updated = service.update_opname(db, opname.id, StockOpnameUpdate(
        items=[StockOpnameItemUpdate(id=mie.id, physical_stock=8)],
    ))

    assert updated.status == "IN_PROGRESS"
    assert updated.checked_items == 1
    assert updated.total_difference == -2
    # Stock is untouched until the opname completes
    assert db.get(Product, mie.product_id).stock == 10


def test_last_count_completes_and_sets_stock(db, opname):
    items = items_by_name(opname)
    service.update_opname(db, opname.id, StockOpnameUpdate(
        items=[StockOpnameItemUpdate(id=items["Mie Instan"].id, physical_stock=8)],
    ))
    completed = service.update_opname(db, opname.id, StockOpnameUpdate(
        items=[StockOpnameItemUpdate(id=items["Teh Botol"].id, physical_stock=6)],
    ), now=datetime(2024, 3, 2, 17, 0))

    assert completed.status == "COMPLETED"
    assert completed.completed_date == datetime(2024, 3, 2, 17, 0)
    assert completed.total_difference == -1
    assert db.get(Product, items["Mie Instan"].product_id).stock == 8
    assert db.get(Product, items["Teh Botol"].product_id).stock == 6


def test_completed_opname_is_frozen(db, opname):
    counts = [StockOpnameItemUpdate(id=item.id, physical_stock=1) for item in opname.items]
    service.update_opname(db, opname.id, StockOpnameUpdate(items=counts))

    with pytest.raises(StateConflict):
        service.update_opname(db, opname.id, StockOpnameUpdate(notes="ulang"))
    with pytest.raises(StateConflict):
        service.delete_opname(db, opname.id)


def test_cancel_does_not_touch_stock(db, opname):
    counts = [StockOpnameItemUpdate(id=item.id, physical_stock=0) for item in opname.items]
    cancelled = service.update_opname(db, opname.id, StockOpnameUpdate(status="CANCELLED", items=counts))

    assert cancelled.status == "CANCELLED"
    assert db.query(Product).filter(Product.name == "Mie Instan").one().stock == 10


def test_invalid_status(db, opname):
    with pytest.raises(ValidationFailed):
        service.update_opname(db, opname.id, StockOpnameUpdate(status="DONE"))


def test_stock_opname_api(client, cashier, make_product):
    make_product("Mie Instan", stock=10)
    response = client.post("/api/stock-opname", json={"title": "Opname", "created_by_id": cashier.id})
    assert response.status_code == 201
    body = response.json()
    item_id = body["items"][0]["id"]

    response = client.put(f"/api/stock-opname/{body['id']}", json={
        "items": [{"id": item_id, "physical_stock": 4}],
    })
    assert response.json()["status"] == "COMPLETED"
    assert response.json()["items"][0]["difference"] == -6

    listing = client.get("/api/stock-opname", params={"status": "COMPLETED"}).json()
    assert [o["id"] for o in listing] == [body["id"]]
