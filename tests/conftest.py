"""
Shared fixtures: a fresh file-backed SQLite database per test, seeded with
staff users, a customer, and a few products with opening stock.

Seeded ids are captured as plain ints so tests that run other sessions
(threads, the HTTP client) never need the fixture session to reopen a
transaction, which on SQLite would hold the write lock.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./silai-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BUSINESS_TIMEZONE", "Asia/Kolkata")

from types import SimpleNamespace

import pytest
from sqlalchemy.orm import sessionmaker

from config.database import Base, make_engine
from modules.auth.roles import Role
from modules.user.models import User
from modules.customer.models import Customer
from modules.catalog.models import Product, ProductType  # noqa: F401
from modules.catalog.service import catalog_service
from modules.inventory.models import StockLevel, StockMovement  # noqa: F401
from modules.inventory.service import stock_ledger
from modules.bill.models import Bill, BillItem, Payment, BillSequence  # noqa: F401


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'silai.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def seed(db):
    owner = User(username="owner", first_name="Ravi", last_name="Kumar", role=Role.OWNER.value)
    admin = User(username="manager", first_name="Meera", role=Role.ADMIN.value)
    member = User(username="cashier", first_name="Arjun", role=Role.MEMBER.value)
    former = User(username="former", role=Role.ADMIN.value, is_active=False)
    db.add_all([owner, admin, member, former])
    db.flush()

    customer = Customer(first_name="Asha", last_name="Menon", phone="9876543210", city="Kochi")
    other = Customer(first_name="Vikram", phone="9123456780")
    db.add_all([customer, other])
    db.flush()

    shirt = catalog_service.create_product(db, owner, "Cotton Shirt", "shirt-01", 800, opening_stock=10)
    fabric = catalog_service.create_product(
        db, owner, "Silk Fabric", "FAB-SILK", "350", unit="m",
        product_type=ProductType.FABRIC.value, opening_stock="25.5", min_stock=5,
    )
    kurta = catalog_service.create_product(db, owner, "Designer Kurta", "KURTA-LTD", 2500, opening_stock=1)
    sold_out = catalog_service.create_product(db, owner, "Linen Blazer", "BLZ-LIN", 4200, opening_stock=0, min_stock=2)

    data = SimpleNamespace(
        owner=owner, admin=admin, member=member, former=former,
        customer=customer, other_customer=other,
        shirt=shirt, fabric=fabric, kurta=kurta, sold_out=sold_out,
        owner_id=owner.id, admin_id=admin.id, member_id=member.id, former_id=former.id,
        customer_id=customer.id, other_customer_id=other.id,
        shirt_id=shirt.id, fabric_id=fabric.id, kurta_id=kurta.id, sold_out_id=sold_out.id,
    )
    db.commit()
    return data


@pytest.fixture
def stock(db):
    """stock(product_id) -> current available quantity as seen by the test session."""
    def _stock(product_id):
        return stock_ledger.get_available(db, product_id)
    return _stock


def item(product_id=None, quantity=1, unit_price=800, **extra):
    line = {"product_id": product_id, "quantity": quantity, "unit_price": unit_price}
    line.update(extra)
    return line


@pytest.fixture
def make_item():
    return item
