from datetime import timedelta
from decimal import Decimal
from io import BytesIO

import openpyxl
import pytest

from common.exceptions import AuthorizationError, InvalidDateRangeError
from common.helpers import local_today
from modules.bill.service import bill_service
from modules.report.export import export_daily_sales_xlsx
from modules.report.service import report_service


@pytest.fixture
def sales(db, seed):
    """Three bills today: one paid, one partly paid, one cancelled."""
    paid = bill_service.create_bill(
        db, seed.member, seed.customer_id,
        [{"product_id": seed.shirt_id, "quantity": 2, "unit_price": 800}],
        initial_payments=[{"amount": 1000, "method": "CASH"}, {"amount": 600, "method": "UPI"}],
        payment_method="UPI",
    )
    partial = bill_service.create_bill(
        db, seed.member, seed.customer_id,
        [{"product_id": seed.fabric_id, "quantity": 3, "unit_price": 350},
         {"custom_name": "Kurta stitching", "quantity": 1, "unit_price": 0, "is_tailored": True,
          "tailoring_charge": 550}],
        initial_payments=[{"amount": 400, "method": "CARD"}],
    )
    cancelled = bill_service.create_bill(
        db, seed.member, seed.customer_id,
        [{"product_id": seed.kurta_id, "quantity": 1, "unit_price": 2500}],
        initial_payments=[{"amount": 2500, "method": "CASH"}],
        payment_method="CASH",
    )
    db.commit()
    bill_service.cancel_bill(db, seed.admin, cancelled.id, "returned")
    db.commit()
    return paid, partial, cancelled


def test_bill_stats(db, seed, sales):
    stats = report_service.bill_stats(db, seed.admin, local_today(), local_today())

    assert stats["total_bills"] == 3
    assert stats["cancelled_bills"] == 1
    assert stats["total_amount"] == Decimal("3200.00")
    assert stats["average_bill_value"] == Decimal("1600.00")
    assert stats["payment_status_breakdown"]["PAID"]["count"] == 1
    assert stats["payment_status_breakdown"]["PARTIAL"]["amount"] == Decimal("1600.00")
    assert stats["payment_status_breakdown"]["PENDING"]["count"] == 0
    assert stats["daily_sales"] == [
        {"date": local_today().isoformat(), "amount": Decimal("3200.00"), "count": 2},
    ]


def test_bill_stats_breaks_down_by_announced_method(db, seed, sales):
    stats = report_service.bill_stats(db, seed.admin)

    # the cancelled CASH bill is left out; the partial bill announced no method
    assert stats["payment_method_breakdown"] == {
        "CASH": Decimal("0.00"),
        "CARD": Decimal("0.00"),
        "UPI": Decimal("1600.00"),
        "NETBANKING": Decimal("0.00"),
        "UNSPECIFIED": Decimal("1600.00"),
    }


def test_bill_stats_outside_range_is_empty(db, seed, sales):
    yesterday = local_today() - timedelta(days=1)
    stats = report_service.bill_stats(db, seed.admin, yesterday, yesterday)
    assert stats["total_bills"] == 0
    assert stats["average_bill_value"] == Decimal("0.00")


def test_bill_stats_rejects_reversed_range(db, seed):
    with pytest.raises(InvalidDateRangeError):
        report_service.bill_stats(db, seed.admin, local_today(), local_today() - timedelta(days=1))


def test_reports_require_admin(db, seed):
    with pytest.raises(AuthorizationError):
        report_service.daily_sales_report(db, seed.member)


def test_daily_sales_report(db, seed, sales):
    report = report_service.daily_sales_report(db, seed.admin, local_today())

    assert report["bill_count"] == 2
    assert report["total_sales"] == Decimal("3200.00")
    assert report["average_bill_value"] == Decimal("1600.00")
    # payments on the cancelled bill are left out
    assert report["payment_methods"] == {
        "CASH": Decimal("1000.00"),
        "UPI": Decimal("600.00"),
        "CARD": Decimal("400.00"),
        "NETBANKING": Decimal("0.00"),
    }
    assert [p["product_name"] for p in report["top_products"]] == ["Cotton Shirt", "Silk Fabric"]
    assert report["top_products"][1]["quantity"] == Decimal("3.000")


def test_export_daily_sales_xlsx(db, seed, sales):
    report = report_service.daily_sales_report(db, seed.admin, local_today())
    content = export_daily_sales_xlsx(report)

    wb = openpyxl.load_workbook(BytesIO(content))
    assert wb.sheetnames == ["Summary", "Payments", "Top Products"]
    assert wb["Summary"]["B4"].value == 2
    assert wb["Top Products"]["B2"].value == "Cotton Shirt"
