from datetime import datetime, timezone
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest

from common.exceptions import ValidationError
from modules.notification.whatsapp import (
    is_valid_phone_number, normalize_phone_number, build_invoice_message, build_share_link, share_invoice,
)

BILL = {
    "id": 12,
    "bill_number": "CS241201003",
    "final_amount": Decimal("12944.00"),
    "payment_status": "PARTIAL",
    "created_at": datetime(2024, 12, 1, 6, 30, tzinfo=timezone.utc),
}


@pytest.mark.parametrize("phone, valid", [
    ("98765 43210", True),
    ("+91-98765-43210", True),
    ("12345", False),
    ("", False),
    (None, False),
])
def test_is_valid_phone_number(phone, valid):
    assert is_valid_phone_number(phone) is valid


def test_normalize_phone_number():
    assert normalize_phone_number("098765 43210") == "919876543210"
    assert normalize_phone_number("+91 98765 43210") == "919876543210"


def test_invoice_message_mentions_bill():
    message = build_invoice_message(BILL)
    assert "CS241201003" in message
    assert "₹12,944.00" in message
    assert "01 Dec 2024" in message
    assert "Pending" in message


def test_share_link_encodes_message():
    url = build_share_link("9876543210", "Bill #1 & thanks")
    query = parse_qs(urlparse(url).query)
    assert url.startswith("https://web.whatsapp.com/send?")
    assert query["phone"] == ["919876543210"]
    assert query["text"] == ["Bill #1 & thanks"]


def test_share_invoice_rejects_bad_numbers():
    with pytest.raises(ValidationError):
        share_invoice(BILL, "12345")

    link = share_invoice(BILL, "9876543210", "Your bill is ready")
    assert link["method"] == "link"
    assert link["phone"] == "919876543210"
