"""
Initial data: an admin, a cashier, base categories and units, a few products.
Safe to run repeatedly; existing rows are left alone.
"""
from decimal import Decimal
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kasir.database import SessionLocal, init_engine, dispose_engine
from kasir.models import Base, User, Category, Unit, Product
from kasir.security import hash_password

logger = logging.getLogger(__name__)

USERS = [
    {"username": "admin", "email": "admin@kasir.local", "password": "admin123",
     "first_name": "Admin", "last_name": "Toko", "role": "ADMIN"},
    {"username": "kasir1", "email": "kasir1@kasir.local", "password": "kasir123",
     "first_name": "Kasir", "last_name": "Satu", "role": "CASHIER"},
]

CATEGORIES = [
    ("Makanan", "Makanan ringan dan berat"),
    ("Minuman", "Minuman kemasan"),
    ("Kebutuhan Rumah", "Sabun, deterjen dan perlengkapan rumah"),
]

UNITS = [
    ("Pieces", "pcs"),
    ("Botol", "btl"),
    ("Kilogram", "kg"),
    ("Pak", "pak"),
]

PRODUCTS = [
    # name, category, unit symbol, price, wholesale price, stock
    ("Mie Instan Goreng", "Makanan", "pcs", "3500", "2800", 120),
    ("Roti Tawar", "Makanan", "pcs", "15000", "12000", 20),
    ("Air Mineral 600ml", "Minuman", "btl", "4000", "2500", 200),
    ("Teh Botol", "Minuman", "btl", "5000", None, 8),
    ("Beras Premium", "Kebutuhan Rumah", "kg", "14000", "12500", 50),
    ("Sabun Cuci Piring", "Kebutuhan Rumah", "pak", "12000", "9500", 3),
]


def _get_or_create(db: Session, model, lookup: dict, defaults: dict):
    obj = db.execute(select(model).filter_by(**lookup)).scalar_one_or_none()
    if obj is not None:
        return obj, False
    obj = model(**lookup, **defaults)
    db.add(obj)
    db.flush()
    return obj, True


def seed_database(db: Session) -> dict:
    """Insert missing seed rows and commit. Returns the number created per table."""
    created = {"users": 0, "categories": 0, "units": 0, "products": 0}

    try:
        for data in USERS:
            _, new = _get_or_create(db, User, {"username": data["username"]}, {
                "email": data["email"],
                "password_hash": hash_password(data["password"]),
                "first_name": data["first_name"],
                "last_name": data["last_name"],
                "role": data["role"],
                "is_active": True,
            })
            created["users"] += new

        categories = {}
        for name, description in CATEGORIES:
            categories[name], new = _get_or_create(db, Category, {"name": name}, {"description": description})
            created["categories"] += new

        units = {}
        for name, symbol in UNITS:
            units[symbol], new = _get_or_create(db, Unit, {"symbol": symbol}, {"name": name, "is_active": True})
            created["units"] += new

        for name, category, symbol, price, wholesale, stock in PRODUCTS:
            _, new = _get_or_create(db, Product, {"name": name}, {
                "category_id": categories[category].id,
                "unit_id": units[symbol].id,
                "price": Decimal(price),
                "wholesale_price": Decimal(wholesale) if wholesale else None,
                "stock": stock,
                "min_stock": 5,
                "is_active": True,
            })
            created["products"] += new

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Seeding failed")
        raise

    logger.info(f"Seed complete: {created}")
    return created


def main():
    logging.basicConfig(level=logging.INFO)
    engine = init_engine()
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = seed_database(db)
    finally:
        db.close()
        dispose_engine()

    print("Seed data ready:")
    for table, count in created.items():
        print(f"  {table}: {count} created")
    print("\nLogin credentials:")
    print("Admin:  admin / admin123")
    print("Kasir:  kasir1 / kasir123")


if __name__ == "__main__":
    main()
