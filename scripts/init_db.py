"""
Silai POS - Database Initialization
=====================================
Creates all tables if they don't exist, optionally seeding a demo shop.
Safe to run multiple times (CREATE IF NOT EXISTS).

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --drop   # Drop and recreate all tables
    python scripts/init_db.py --seed   # Add staff, a walk-in customer and sample products
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import Base, engine, SessionLocal
from common.security import create_access_token

# Import ALL models so Base.metadata knows about them
from modules.user.models import User  # noqa
from modules.customer.models import Customer  # noqa
from modules.catalog.models import Product, ProductType  # noqa
from modules.inventory.models import StockLevel, StockMovement  # noqa
from modules.bill.models import Bill, BillItem, Payment, BillSequence  # noqa
from modules.auth.roles import Role
from modules.catalog.service import catalog_service


SAMPLE_PRODUCTS = [
    # name, sku, price, unit, type, opening stock, min stock
    ("Cotton Shirt", "SHIRT-COT", 800, "pcs", ProductType.READY_MADE, 40, 5),
    ("Silk Fabric", "FAB-SILK", 350, "m", ProductType.FABRIC, "120.5", 20),
    ("Linen Fabric", "FAB-LIN", 280, "m", ProductType.FABRIC, 80, 15),
    ("Designer Kurta", "KURTA-DSN", 2500, "pcs", ProductType.READY_MADE, 6, 2),
]


def init_db(drop_first=False):
    if drop_first:
        print("Dropping all tables...")
        Base.metadata.drop_all(bind=engine)
        print("Done.")

    print("Creating all tables...")
    Base.metadata.create_all(bind=engine)

    from sqlalchemy import inspect
    inspector = inspect(engine)
    tables = inspector.get_table_names()
    print(f"\nTables in database ({len(tables)}):")
    for t in sorted(tables):
        print(f"  - {t}")
    print("\nDatabase initialized successfully!")


def seed():
    db = SessionLocal()
    try:
        owner = db.query(User).filter(User.username == "owner").first()
        if owner:
            print("Seed data already present, skipping.")
            return

        owner = User(username="owner", first_name="Shop", last_name="Owner", role=Role.OWNER.value)
        cashier = User(username="cashier", first_name="Counter", role=Role.MEMBER.value)
        db.add_all([owner, cashier])
        db.flush()

        db.add(Customer(first_name="Walk-in", last_name="Customer", created_by=owner.id))
        for name, sku, price, unit, ptype, opening, minimum in SAMPLE_PRODUCTS:
            catalog_service.create_product(
                db, owner, name, sku, price, unit=unit, product_type=ptype.value,
                opening_stock=opening, min_stock=minimum,
            )
        db.commit()

        print(f"Seeded 2 users, 1 customer, {len(SAMPLE_PRODUCTS)} products.")
        print(f"\nOwner token:   {create_access_token({'sub': str(owner.id)})}")
        print(f"Cashier token: {create_access_token({'sub': str(cashier.id)})}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db(drop_first="--drop" in sys.argv)
    if "--seed" in sys.argv:
        seed()
