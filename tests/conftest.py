"""Shared pytest fixtures: in-memory SQLite database and an API client bound to it."""

import os
from decimal import Decimal

# Cheap hashes for tests; must be set before kasir.config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kasir.database import get_db
from kasir.main import app
from kasir.models import Base, User, Category, Unit, Product, Supplier
from kasir.security import hash_password


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(db):
    """TestClient whose requests share the test session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def cashier(db):
    user = User(
        username="kasir1",
        email="kasir1@example.com",
        password_hash=hash_password("rahasia"),
        first_name="Budi",
        last_name="Santoso",
        role="CASHIER",
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def category(db):
    category = Category(name="Makanan", description="Makanan ringan")
    db.add(category)
    db.commit()
    return category


@pytest.fixture
def unit(db):
    unit = Unit(name="Pieces", symbol="pcs")
    db.add(unit)
    db.commit()
    return unit


@pytest.fixture
def supplier(db):
    supplier = Supplier(name="PT Sumber Rejeki", phone="0812345678", store_name="Gudang Utama")
    db.add(supplier)
    db.commit()
    return supplier


@pytest.fixture
def make_product(db, category, unit):
    """Factory: make_product(name, price, stock, wholesale_price=None, ...)."""

    def _make(name="Mie Instan", price="3500", stock=100, wholesale_price=None, **extra):
        product = Product(
            name=name,
            price=Decimal(price),
            wholesale_price=Decimal(wholesale_price) if wholesale_price is not None else None,
            stock=stock,
            category_id=category.id,
            unit_id=unit.id,
            **extra,
        )
        db.add(product)
        db.commit()
        return product

    return _make
