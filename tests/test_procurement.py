from datetime import datetime
from decimal import Decimal

import pytest

from kasir.exceptions import NotFound, StateConflict, ValidationFailed
from kasir.models import AuditLog, Product
from kasir.schemas.procurement import ProcurementCreate, ProcurementItemIn, ProcurementUpdate
from kasir.services import procurement as service


@pytest.fixture
def draft(db, cashier, supplier, make_product):
    mie = make_product("Mie Instan", stock=10)
    teh = make_product("Teh Botol", stock=0)
    data = ProcurementCreate(
        supplier_id=supplier.id,
        created_by_id=cashier.id,
        items=[
            ProcurementItemIn(product_id=mie.id, quantity=24, unit_price=Decimal("2800")),
            ProcurementItemIn(product_id=teh.id, quantity=12, unit_price=Decimal("3500")),
        ],
    )
    return service.create_procurement(db, data, now=datetime(2024, 1, 10, 9, 0))


def stock_of(db, name):
    return db.query(Product).filter(Product.name == name).one().stock


def test_create_computes_totals_and_number(db, draft, cashier, supplier, make_product):
    assert draft.status == "DRAFT"
    assert draft.procurement_number == "PO-202401-001"
    assert draft.total_items == 36
    assert draft.total_amount == Decimal("109200")

    second = service.create_procurement(db, ProcurementCreate(
        supplier_id=supplier.id,
        created_by_id=cashier.id,
        items=[ProcurementItemIn(product_id=draft.items[0].product_id, quantity=1, unit_price=Decimal("1"))],
    ), now=datetime(2024, 1, 20))
    assert second.procurement_number == "PO-202401-002"


@pytest.mark.parametrize("payload", [
    {"items": [{"product_id": 1, "quantity": 1, "unit_price": 1}], "created_by_id": 1},
    {"supplier_id": 1, "items": [], "created_by_id": 1},
    {"supplier_id": 1, "items": [{"product_id": 1, "quantity": 1, "unit_price": 1}]},
])
def test_create_requires_supplier_items_and_user(db, payload):
    with pytest.raises(ValidationFailed):
        service.create_procurement(db, ProcurementCreate(**payload))


def test_receive_adds_stock_once(db, draft):
    service.update_procurement(db, draft.id, ProcurementUpdate(status="ORDERED"))
    received = service.update_procurement(
        db, draft.id, ProcurementUpdate(status="RECEIVED"), now=datetime(2024, 1, 12, 15, 0)
    )

    assert received.status == "RECEIVED"
    assert received.received_date == datetime(2024, 1, 12, 15, 0)
    assert stock_of(db, "Mie Instan") == 34
    assert stock_of(db, "Teh Botol") == 12

    with pytest.raises(StateConflict):
        service.update_procurement(db, draft.id, ProcurementUpdate(status="RECEIVED"))
    assert stock_of(db, "Mie Instan") == 34

    log = db.query(AuditLog).filter(AuditLog.action == "PROCUREMENT_RECEIVED").one()
    assert log.new_values == {"status": "RECEIVED"}


def test_received_procurement_is_frozen(db, draft):
    service.update_procurement(db, draft.id, ProcurementUpdate(status="RECEIVED"))

    with pytest.raises(StateConflict):
        service.update_procurement(db, draft.id, ProcurementUpdate(notes="ubah"))
    with pytest.raises(StateConflict):
        service.delete_procurement(db, draft.id)


def test_cancelled_procurement_cannot_be_received(db, draft):
    service.update_procurement(db, draft.id, ProcurementUpdate(status="CANCELLED"))
    with pytest.raises(StateConflict):
        service.update_procurement(db, draft.id, ProcurementUpdate(status="RECEIVED"))
    assert stock_of(db, "Mie Instan") == 10


def test_invalid_status(db, draft):
    with pytest.raises(ValidationFailed):
        service.update_procurement(db, draft.id, ProcurementUpdate(status="SHIPPED"))


def test_items_are_replaced(db, draft):
    product_id = draft.items[0].product_id
    updated = service.update_procurement(db, draft.id, ProcurementUpdate(
        items=[ProcurementItemIn(product_id=product_id, quantity=5, unit_price=Decimal("3000"))],
    ))
    assert len(updated.items) == 1
    assert updated.total_items == 5
    assert updated.total_amount == Decimal("15000")


def test_delete_draft(db, draft):
    service.delete_procurement(db, draft.id)
    with pytest.raises(NotFound):
        service.get_procurement(db, draft.id)


def test_list_filters(db, draft):
    assert len(service.list_procurements(db, status="DRAFT")) == 1
    assert service.list_procurements(db, status="RECEIVED") == []
    assert len(service.list_procurements(db, search="Sumber")) == 1


def test_procurement_api(client, cashier, supplier, make_product):
    beras = make_product("Beras", stock=5)
    response = client.post("/api/procurement", json={
        "supplier_id": supplier.id,
        "created_by_id": cashier.id,
        "items": [{"product_id": beras.id, "quantity": 10, "unit_price": 12500}],
    })
    assert response.status_code == 201
    body = response.json()
    assert body["supplier"]["name"] == "PT Sumber Rejeki"
    assert body["total_amount"] == 125000.0

    response = client.put(f"/api/procurement/{body['id']}", json={"status": "RECEIVED"})
    assert response.status_code == 200
    assert client.get(f"/api/products/{beras.id}").json()["stock"] == 15

    response = client.delete(f"/api/procurement/{body['id']}")
    assert response.status_code == 400
    assert response.json() == {"error": "Pengadaan yang sudah diterima tidak dapat dihapus"}

    assert client.get("/api/procurement/999").status_code == 404
