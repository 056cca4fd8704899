from decimal import Decimal

from datetime import date

from kasir.models import ProductStats
from kasir.schemas.orders import CartItem
from kasir.schemas.stock_opname import StockOpnameCreate
from kasir.services.checkout import create_order
from kasir.services.stock_opname import create_opname


def test_create_product(client, category, unit):
    response = client.post("/api/products", json={
        "name": " Kopi Sachet ",
        "price": 1500,
        "wholesale_price": 1100,
        "stock": 40,
        "category_id": category.id,
        "unit_id": unit.id,
        "barcode": "899000111",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Kopi Sachet"
    assert body["category_name"] == "Makanan"
    assert body["unit_symbol"] == "pcs"
    assert body["status"] == "in_stock"


def test_product_validation(client, category, make_product):
    make_product(barcode="123")
    cases = [
        ({"price": 1000, "category_id": category.id}, "Nama produk harus diisi"),
        ({"name": "X", "price": 0, "category_id": category.id}, "Harga produk harus lebih dari 0"),
        ({"name": "X", "price": 1000}, "Kategori produk harus dipilih"),
        ({"name": "X", "price": 1000, "category_id": 999}, "Kategori tidak ditemukan"),
        ({"name": "X", "price": 1000, "category_id": category.id, "barcode": "123"}, "Barcode sudah digunakan"),
    ]
    for payload, message in cases:
        response = client.post("/api/products", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": message}


def test_list_products_by_status_and_search(client, make_product):
    make_product("Roti", stock=0)
    make_product("Teh Botol", stock=3)
    make_product("Beras", stock=50)

    body = client.get("/api/products", params={"status": "low_stock"}).json()
    assert [p["name"] for p in body["products"]] == ["Teh Botol"]

    body = client.get("/api/products", params={"search": "ber"}).json()
    assert [p["name"] for p in body["products"]] == ["Beras"]

    body = client.get("/api/products", params={"category": "Makanan", "limit": 2}).json()
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}


def test_delete_product_with_history_deactivates(client, db, cashier, make_product):
    sold = make_product("Roti", stock=5)
    unsold = make_product("Teh Botol", stock=5)
    create_order(db, items=[CartItem(product_id=sold.id, quantity=1, price=Decimal("3500"))], cashier_id=cashier.id)

    response = client.delete(f"/api/products/{sold.id}")
    assert "dinonaktifkan" in response.json()["message"]
    assert client.get(f"/api/products/{sold.id}").json()["is_active"] is False

    response = client.delete(f"/api/products/{unsold.id}")
    assert response.json() == {"message": "Produk berhasil dihapus"}
    assert client.get(f"/api/products/{unsold.id}").status_code == 404


def test_delete_product_referenced_outside_orders_deactivates(client, db, cashier, make_product):
    counted = make_product("Sabun", stock=5)
    tracked = make_product("Kopi", stock=5)
    create_opname(db, StockOpnameCreate(title="Opname", created_by_id=cashier.id, product_ids=[counted.id]))
    db.add(ProductStats(product_id=tracked.id, date=date(2024, 3, 15)))
    db.commit()

    for product in (counted, tracked):
        response = client.delete(f"/api/products/{product.id}")
        assert response.status_code == 200
        assert "dinonaktifkan" in response.json()["message"]
        assert client.get(f"/api/products/{product.id}").json()["is_active"] is False


def test_categories(client, make_product):
    response = client.post("/api/categories", json={"name": "Minuman"})
    assert response.status_code == 201
    category_id = response.json()["id"]

    response = client.post("/api/categories", json={"name": "Minuman"})
    assert response.json() == {"error": "Nama kategori sudah digunakan"}

    make_product()
    counts = {c["name"]: c["product_count"] for c in client.get("/api/categories").json()}
    assert counts == {"Makanan": 1, "Minuman": 0}

    response = client.delete(f"/api/categories/{category_id}")
    assert response.json() == {"message": "Kategori berhasil dihapus"}


def test_category_with_products_cannot_be_deleted(client, category, make_product):
    make_product()
    response = client.delete(f"/api/categories/{category.id}")
    assert response.status_code == 400
    assert "1 produk" in response.json()["error"]


def test_units(client, unit, make_product):
    response = client.post("/api/units", json={"name": "Lusin", "symbol": "lsn"})
    assert response.status_code == 201

    response = client.post("/api/units", json={"name": "Lusin Besar", "symbol": "lsn"})
    assert response.json() == {"error": "Simbol unit sudah digunakan"}

    body = client.get("/api/units", params={"search": "lus"}).json()
    assert [u["symbol"] for u in body["units"]] == ["lsn"]

    make_product()
    response = client.delete(f"/api/units/{unit.id}")
    assert response.status_code == 400


def test_suppliers(client, supplier):
    response = client.post("/api/suppliers", json={"name": "CV Maju", "phone": "0811"})
    assert response.status_code == 201

    response = client.put(f"/api/suppliers/{supplier.id}", json={"name": "CV Maju"})
    assert response.json() == {"error": "Supplier dengan nama ini sudah ada"}

    response = client.delete(f"/api/suppliers/{supplier.id}")
    assert response.json() == {"message": "Supplier berhasil dihapus"}
    assert client.get(f"/api/suppliers/{supplier.id}").status_code == 404
