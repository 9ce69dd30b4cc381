"""
Several terminals billing at once: one session per worker thread.
The fixture session is closed before workers start so it holds no lock.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from common.exceptions import BillNotEditableError, InsufficientStockError
from common.helpers import as_utc, local_today
from modules.bill.models import Bill, BillStatus, Payment, PaymentStatus
from modules.bill.service import bill_service
from modules.inventory.models import StockMovement
from modules.inventory.service import stock_ledger
from modules.user.models import User


def _run(session_factory, fn, count, workers=8):
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(lambda i: fn(session_factory, i), range(count)))


def test_last_unit_is_sold_once(db, seed, session_factory):
    member_id, customer_id, kurta_id = seed.member_id, seed.customer_id, seed.kurta_id
    db.close()

    def buy(factory, _):
        with factory() as s:
            actor = s.get(User, member_id)
            try:
                bill = bill_service.create_bill(
                    s, actor, customer_id, [{"product_id": kurta_id, "quantity": 1, "unit_price": 2500}],
                )
                s.commit()
                return bill.bill_number
            except InsufficientStockError:
                s.rollback()
                return None

    results = _run(session_factory, buy, 2, workers=2)

    assert sum(1 for r in results if r) == 1
    with session_factory() as s:
        assert stock_ledger.get_available(s, kurta_id) == Decimal("0.000")
        assert s.query(Bill).count() == 1


def test_stock_never_goes_negative_under_contention(db, seed, session_factory):
    member_id, customer_id, shirt_id = seed.member_id, seed.customer_id, seed.shirt_id
    db.close()

    def buy(factory, _):
        with factory() as s:
            actor = s.get(User, member_id)
            try:
                bill_service.create_bill(
                    s, actor, customer_id, [{"product_id": shirt_id, "quantity": 3, "unit_price": 800}],
                )
                s.commit()
                return True
            except InsufficientStockError:
                s.rollback()
                return False

    results = _run(session_factory, buy, 8)

    # 10 shirts, 3 per bill: exactly three bills fit
    assert results.count(True) == 3
    with session_factory() as s:
        assert stock_ledger.get_available(s, shirt_id) == Decimal("1.000")


@pytest.mark.parametrize("count", [40, pytest.param(1000, marks=pytest.mark.slow)])
def test_bill_numbers_are_unique_under_load(db, seed, session_factory, count):
    member_id, customer_id = seed.member_id, seed.customer_id
    db.close()

    def create(factory, i):
        with factory() as s:
            actor = s.get(User, member_id)
            bill = bill_service.create_bill(
                s, actor, customer_id, [{"custom_name": f"Alteration {i}", "quantity": 1, "unit_price": 120}],
            )
            s.commit()
            return bill.bill_number

    numbers = _run(session_factory, create, count)

    prefix = f"CS{local_today():%y%m%d}"
    assert len(set(numbers)) == count
    assert all(n.startswith(prefix) for n in numbers)
    assert sorted(int(n[len(prefix):]) for n in numbers) == list(range(1, count + 1))


def test_concurrent_payments_are_all_counted(db, seed, session_factory):
    bill = bill_service.create_bill(
        db, seed.member, seed.customer_id,
        [{"product_id": seed.shirt_id, "quantity": 1, "unit_price": 800}], tax_amount=144,
    )
    db.commit()
    bill_id, member_id = bill.id, seed.member_id
    db.close()

    def pay(factory, _):
        with factory() as s:
            actor = s.get(User, member_id)
            bill_service.add_payment(s, actor, bill_id, 236, "UPI")
            s.commit()

    _run(session_factory, pay, 4, workers=4)

    with session_factory() as s:
        assert s.query(Payment).filter(Payment.bill_id == bill_id).count() == 4
        assert bill_service.get_bill(s, bill_id).payment_status == PaymentStatus.PAID.value


def test_cancel_racing_payments_keeps_stock_and_status_consistent(db, seed, session_factory):
    bill = bill_service.create_bill(
        db, seed.member, seed.customer_id,
        [{"product_id": seed.shirt_id, "quantity": 2, "unit_price": 800}],
    )
    db.commit()
    bill_id, bill_number = bill.id, bill.bill_number
    member_id, admin_id, shirt_id = seed.member_id, seed.admin_id, seed.shirt_id
    db.close()

    def act(factory, i):
        with factory() as s:
            try:
                if i == 0:
                    bill_service.cancel_bill(s, s.get(User, admin_id), bill_id, "customer left")
                else:
                    bill_service.add_payment(s, s.get(User, member_id), bill_id, 100, "CASH")
                s.commit()
                return "ok"
            except BillNotEditableError:
                s.rollback()
                return "rejected"

    results = _run(session_factory, act, 9, workers=9)

    assert results[0] == "ok"
    with session_factory() as s:
        final = bill_service.get_bill(s, bill_id)
        assert final.status == BillStatus.CANCELLED.value
        assert stock_ledger.get_available(s, shirt_id) == Decimal("10.000")
        assert s.query(StockMovement).filter(
            StockMovement.reference == bill_number, StockMovement.quantity > 0,
        ).count() == 1

        payments = s.query(Payment).filter(Payment.bill_id == bill_id).all()
        assert len(payments) == results.count("ok") - 1
        assert all(as_utc(p.recorded_at) <= as_utc(final.cancelled_at) for p in payments)
