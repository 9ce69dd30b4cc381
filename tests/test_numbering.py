from datetime import date

from modules.bill.models import BillSequence
from modules.bill.numbering import bill_number_service, format_bill_number


def test_format_bill_number():
    assert format_bill_number("CS", date(2024, 12, 1), 3) == "CS241201003"
    # past the configured width the sequence simply grows
    assert format_bill_number("CS", date(2024, 12, 1), 1234) == "CS2412011234"


def test_numbers_are_sequential_within_a_day(db):
    day = date(2024, 12, 1)
    numbers = [bill_number_service.next_bill_number(db, day) for _ in range(3)]
    assert numbers == ["CS241201001", "CS241201002", "CS241201003"]


def test_each_day_has_its_own_counter(db):
    first = bill_number_service.next_bill_number(db, date(2024, 12, 1))
    second = bill_number_service.next_bill_number(db, date(2024, 12, 2))
    assert first == "CS241201001"
    assert second == "CS241202001"


def test_rolled_back_allocation_is_not_consumed(db):
    day = date(2025, 1, 15)
    nested = db.begin_nested()
    bill_number_service.next_bill_number(db, day)
    nested.rollback()

    assert db.get(BillSequence, day) is None
    assert bill_number_service.next_bill_number(db, day) == "CS250115001"


def test_custom_prefix(db):
    assert bill_number_service.next_bill_number(db, date(2024, 12, 1), prefix="TL") == "TL241201001"
