"""Checkout arithmetic, stock decrement and rollback."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select, func
from sqlalchemy.orm import sessionmaker

from kasir.exceptions import InsufficientStock, NotFound, ValidationFailed
from kasir.models import Base, Category, Customer, Order, OrderItem, Product, Unit, User
from kasir.schemas.orders import CartItem
from kasir.services.checkout import create_order, compute_totals


def test_totals_apply_ten_percent_tax():
    items = [
        CartItem(product_id=1, quantity=2, price=Decimal("3500")),
        CartItem(product_id=2, quantity=1, price=Decimal("5000")),
    ]
    totals = compute_totals(items, Decimal("200"))
    assert totals["subtotal"] == Decimal("12000")
    assert totals["tax"] == Decimal("1200")
    assert totals["total"] == Decimal("13000")


def test_tax_rounds_half_up_to_whole_units():
    totals = compute_totals([CartItem(product_id=1, quantity=1, price=Decimal("1005"))])
    assert totals["tax"] == Decimal("101")


def test_create_order_decrements_stock(db, cashier, make_product):
    mie = make_product("Mie Instan", price="3500", stock=10)
    teh = make_product("Teh Botol", price="5000", stock=4)

    order = create_order(
        db,
        items=[
            CartItem(product_id=mie.id, quantity=3, price=Decimal("3500")),
            CartItem(product_id=teh.id, quantity=4, price=Decimal("5000")),
        ],
        cashier_id=cashier.id,
        payment_method="CASH",
    )

    assert order.status == "COMPLETED"
    assert order.payment_status == "COMPLETED"
    assert order.subtotal == Decimal("30500")
    assert order.tax == Decimal("3050")
    assert order.total == Decimal("33550")
    assert order.order_number.startswith("ORD-")
    assert order.order_number.endswith("-0001")

    db.refresh(mie)
    db.refresh(teh)
    assert mie.stock == 7
    assert teh.stock == 0


def test_client_subtotal_is_ignored(db, cashier, make_product):
    mie = make_product(price="3500", stock=10)
    order = create_order(
        db,
        items=[CartItem(product_id=mie.id, quantity=2, price=Decimal("3500"), subtotal=Decimal("1"))],
        cashier_id=cashier.id,
    )
    item = db.execute(select(OrderItem).where(OrderItem.order_id == order.id)).scalar_one()
    assert item.subtotal == Decimal("7000")


def test_insufficient_stock_rolls_back_everything(db, cashier, make_product):
    mie = make_product("Mie Instan", stock=10)
    roti = make_product("Roti", price="15000", stock=1)

    with pytest.raises(InsufficientStock) as exc:
        create_order(
            db,
            items=[
                CartItem(product_id=mie.id, quantity=2, price=Decimal("3500")),
                CartItem(product_id=roti.id, quantity=5, price=Decimal("15000")),
            ],
            cashier_id=cashier.id,
        )

    assert exc.value.available == 1
    assert exc.value.requested == 5
    assert "Roti" in exc.value.message
    assert db.execute(select(func.count(Order.id))).scalar_one() == 0
    db.refresh(mie)
    assert mie.stock == 10


def test_cannot_oversell_across_orders(db, cashier, make_product):
    teh = make_product("Teh Botol", stock=3)
    create_order(db, items=[CartItem(product_id=teh.id, quantity=2, price=Decimal("5000"))], cashier_id=cashier.id)

    with pytest.raises(InsufficientStock):
        create_order(db, items=[CartItem(product_id=teh.id, quantity=2, price=Decimal("5000"))], cashier_id=cashier.id)

    db.refresh(teh)
    assert teh.stock == 1


def test_unknown_product_is_not_found(db, cashier):
    with pytest.raises(NotFound):
        create_order(db, items=[CartItem(product_id=999, quantity=1, price=Decimal("1000"))], cashier_id=cashier.id)
    assert db.execute(select(func.count(Order.id))).scalar_one() == 0


@pytest.mark.parametrize("items,discount", [
    ([], Decimal("0")),
    ([CartItem(product_id=1, quantity=0, price=Decimal("1000"))], Decimal("0")),
    ([CartItem(product_id=1, quantity=1, price=Decimal("-1"))], Decimal("0")),
    ([CartItem(product_id=1, quantity=1, price=Decimal("1000"))], Decimal("-5")),
    ([CartItem(product_id=1, quantity=1, price=Decimal("1000"))], Decimal("1101")),
])
def test_invalid_carts_are_rejected(db, cashier, items, discount):
    with pytest.raises(ValidationFailed):
        create_order(db, items=items, cashier_id=cashier.id, discount=discount)


def test_invalid_payment_method(db, cashier, make_product):
    mie = make_product(stock=5)
    with pytest.raises(ValidationFailed):
        create_order(db, items=[CartItem(product_id=mie.id, quantity=1, price=Decimal("3500"))],
                     cashier_id=cashier.id, payment_method="BARTER")


def test_order_uses_given_timestamp(db, cashier, make_product):
    mie = make_product(stock=5)
    when = datetime(2024, 3, 15, 14, 30)
    order = create_order(db, items=[CartItem(product_id=mie.id, quantity=1, price=Decimal("3500"))],
                         cashier_id=cashier.id, now=when)
    assert order.created_at == when


def test_orders_api_create_and_list(client, cashier, make_product):
    mie = make_product(stock=10)
    response = client.post("/api/orders", json={
        "items": [{"product_id": mie.id, "quantity": 2, "price": 3500}],
        "cashier_id": cashier.id,
        "payment_method": "CARD",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["total"] == 7700.0
    assert body["payment_method"] == "CARD"
    assert body["items"][0]["product_name"] == "Mie Instan"

    listing = client.get("/api/orders").json()
    assert listing["pagination"]["total"] == 1
    assert listing["orders"][0]["order_number"] == body["order_number"]


def test_orders_api_insufficient_stock_message(client, cashier, make_product):
    mie = make_product(stock=1)
    response = client.post("/api/orders", json={
        "items": [{"product_id": mie.id, "quantity": 2, "price": 3500}],
        "cashier_id": cashier.id,
    })
    assert response.status_code == 400
    assert "tidak mencukupi" in response.json()["error"]


def test_orders_api_rejects_malformed_body(client):
    response = client.post("/api/orders", json={"items": "nope"})
    assert response.status_code == 400
    assert response.json()["error"].startswith("Data yang dikirim tidak valid")


def test_unknown_customer_is_not_found(db, cashier, make_product):
    mie = make_product(stock=5)
    with pytest.raises(NotFound) as exc:
        create_order(db, items=[CartItem(product_id=mie.id, quantity=1, price=Decimal("3500"))],
                     cashier_id=cashier.id, customer_id=999)
    assert exc.value.message == "Pelanggan tidak ditemukan"
    assert db.execute(select(func.count(Order.id))).scalar_one() == 0
    db.refresh(mie)
    assert mie.stock == 5


def test_orders_api_unknown_customer(client, cashier, make_product):
    mie = make_product(stock=5)
    response = client.post("/api/orders", json={
        "items": [{"product_id": mie.id, "quantity": 1, "price": 3500}],
        "cashier_id": cashier.id,
        "customer_id": 999,
    })
    assert response.status_code == 404
    assert response.json() == {"error": "Pelanggan tidak ditemukan"}


def test_order_keeps_known_customer(db, cashier, make_product):
    mie = make_product(stock=5)
    customer = Customer(name="Siti")
    db.add(customer)
    db.commit()
    order = create_order(db, items=[CartItem(product_id=mie.id, quantity=1, price=Decimal("3500"))],
                         cashier_id=cashier.id, customer_id=customer.id)
    assert order.customer_id == customer.id


@pytest.fixture
def shared_shop(tmp_path):
    """File-backed database that several threads can open at once."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'kasir.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    with Session() as setup:
        category = Category(name="Minuman")
        unit = Unit(name="Botol", symbol="btl")
        user = User(username="kasir2", email="kasir2@example.com", password_hash="x",
                    first_name="Ani", last_name="Wijaya", role="CASHIER")
        setup.add_all([category, unit, user])
        setup.flush()
        product = Product(name="Teh Botol", price=Decimal("5000"), stock=10,
                          category_id=category.id, unit_id=unit.id)
        setup.add(product)
        setup.commit()
        ids = (user.id, product.id)

    yield Session, ids
    engine.dispose()


def run_checkouts(Session, cashier_id, product_id, quantities):
    start = datetime(2024, 3, 15, 9, 0)

    def checkout(n, quantity):
        with Session() as session:
            try:
                create_order(session, items=[CartItem(product_id=product_id, quantity=quantity, price=Decimal("5000"))],
                             cashier_id=cashier_id, now=start + timedelta(seconds=n))
                return "sold"
            except InsufficientStock:
                return "short"

    with ThreadPoolExecutor(max_workers=len(quantities)) as pool:
        return list(pool.map(checkout, range(len(quantities)), quantities))


def stock_and_orders(Session, product_id):
    with Session() as session:
        stock = session.get(Product, product_id).stock
        orders = session.execute(select(func.count(Order.id))).scalar_one()
    return stock, orders


def test_concurrent_checkouts_within_stock(shared_shop):
    Session, (cashier_id, product_id) = shared_shop
    outcomes = run_checkouts(Session, cashier_id, product_id, [1, 2, 3, 1, 2])
    assert outcomes == ["sold"] * 5
    assert stock_and_orders(Session, product_id) == (1, 5)


def test_concurrent_checkouts_never_oversell(shared_shop):
    Session, (cashier_id, product_id) = shared_shop
    outcomes = run_checkouts(Session, cashier_id, product_id, [2] * 8)
    assert outcomes.count("sold") == 5
    assert outcomes.count("short") == 3
    assert stock_and_orders(Session, product_id) == (0, 5)
