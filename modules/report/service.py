"""
Report Module - Sales Statistics
==================================
Read-only aggregation over committed bills. Nothing here writes.

Amounts are summed in Python as Decimal: SQLite hands Numeric sums back
as floats, and the figures must match the bills to the paisa.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from config.settings import TOP_PRODUCTS_LIMIT, DAILY_SERIES_LIMIT
from common.exceptions import InvalidDateRangeError
from common.helpers import local_today, local_date_of, local_day_bounds
from common.money import ZERO, to_money, to_quantity, money_sum
from modules.auth.roles import Role, ensure_role
from modules.bill.models import Bill, BillItem, Payment, BillStatus, PaymentStatus, PaymentMethod
from modules.catalog.models import Product

logger = logging.getLogger("silai.report")

# Bills created without an announced payment method
UNSPECIFIED_METHOD = "UNSPECIFIED"


def _average(total: Decimal, count: int) -> Decimal:
    return to_money(total / count) if count else ZERO


class ReportService:

    # ==========================================
    # Bill statistics over a range
    # ==========================================

    def bill_stats(
        self, db: Session, actor,
        date_from: Optional[date] = None, date_to: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Counts and totals for bills created in [date_from, date_to] (local days, inclusive).
        Cancelled bills are counted but excluded from every amount.
        """
        ensure_role(actor, Role.ADMIN)
        if date_from and date_to and date_from > date_to:
            raise InvalidDateRangeError(
                "date_from must not be after date_to",
                date_from=str(date_from), date_to=str(date_to),
            )

        q = db.query(Bill.status, Bill.payment_status, Bill.payment_method, Bill.final_amount, Bill.created_at)
        if date_from:
            q = q.filter(Bill.created_at >= local_day_bounds(date_from)[0])
        if date_to:
            q = q.filter(Bill.created_at < local_day_bounds(date_to)[1])
        rows = q.all()

        total_bills = len(rows)
        cancelled = 0
        amounts = []
        by_payment_status = {s.value: {"count": 0, "amount": ZERO} for s in PaymentStatus}
        by_method = {m.value: ZERO for m in PaymentMethod}
        by_method[UNSPECIFIED_METHOD] = ZERO
        per_day = defaultdict(lambda: {"amount": ZERO, "count": 0})

        for status, payment_status, method, final_amount, created_at in rows:
            if status == BillStatus.CANCELLED.value:
                cancelled += 1
                continue
            amount = to_money(final_amount)
            amounts.append(amount)
            bucket = by_payment_status.setdefault(payment_status, {"count": 0, "amount": ZERO})
            bucket["count"] += 1
            bucket["amount"] += amount
            method = method or UNSPECIFIED_METHOD
            by_method[method] = by_method.get(method, ZERO) + amount
            day = per_day[local_date_of(created_at)]
            day["amount"] += amount
            day["count"] += 1

        total_amount = money_sum(amounts)
        daily_sales = [
            {"date": day.isoformat(), "amount": per_day[day]["amount"], "count": per_day[day]["count"]}
            for day in sorted(per_day, reverse=True)[:DAILY_SERIES_LIMIT]
        ]

        logger.debug(f"bill_stats {date_from}..{date_to}: {total_bills} bills, {cancelled} cancelled")
        return {
            "date_from": date_from.isoformat() if date_from else None,
            "date_to": date_to.isoformat() if date_to else None,
            "total_bills": total_bills,
            "cancelled_bills": cancelled,
            "active_bills": total_bills - cancelled,
            "total_amount": total_amount,
            "average_bill_value": _average(total_amount, len(amounts)),
            "payment_status_breakdown": by_payment_status,
            "payment_method_breakdown": by_method,
            "daily_sales": daily_sales,
        }

    # ==========================================
    # Daily sales report
    # ==========================================

    def daily_sales_report(self, db: Session, actor, day: Optional[date] = None) -> Dict[str, Any]:
        """
        One business day:
        - revenue / count / average over non-cancelled bills created that day
        - money received that day, by payment method (payments dated that day)
        - top catalog products by line revenue
        """
        ensure_role(actor, Role.ADMIN)
        day = day or local_today()
        start, end = local_day_bounds(day)

        bills = (
            db.query(Bill.id, Bill.final_amount)
            .filter(
                Bill.created_at >= start,
                Bill.created_at < end,
                Bill.status != BillStatus.CANCELLED.value,
            )
            .all()
        )
        total_sales = money_sum(amount for _, amount in bills)

        payment_rows = (
            db.query(Payment.method, Payment.amount)
            .join(Bill, Bill.id == Payment.bill_id)
            .filter(
                Payment.recorded_at >= start,
                Payment.recorded_at < end,
                Bill.status != BillStatus.CANCELLED.value,
            )
            .all()
        )
        payment_methods = {m.value: ZERO for m in PaymentMethod}
        for method, amount in payment_rows:
            payment_methods[method] = payment_methods.get(method, ZERO) + to_money(amount)

        item_rows = (
            db.query(BillItem.product_id, Product.name, Product.sku, BillItem.quantity,
                     BillItem.line_total, BillItem.tailoring_charge)
            .join(Bill, Bill.id == BillItem.bill_id)
            .join(Product, Product.id == BillItem.product_id)
            .filter(
                Bill.created_at >= start,
                Bill.created_at < end,
                Bill.status != BillStatus.CANCELLED.value,
            )
            .all()
        )
        products: Dict[int, Dict[str, Any]] = {}
        for product_id, name, sku, quantity, line_total, charge in item_rows:
            entry = products.setdefault(product_id, {
                "product_id": product_id,
                "product_name": name,
                "sku": sku,
                "quantity": to_quantity(0),
                "total_amount": ZERO,
            })
            entry["quantity"] += to_quantity(quantity)
            entry["total_amount"] += to_money(line_total) + to_money(charge or 0)
        top_products = sorted(
            products.values(), key=lambda p: (-p["total_amount"], p["product_id"])
        )[:TOP_PRODUCTS_LIMIT]

        logger.debug(f"daily_sales_report {day}: {len(bills)} bills, total {total_sales}")
        return {
            "date": day.isoformat(),
            "total_sales": total_sales,
            "bill_count": len(bills),
            "average_bill_value": _average(total_sales, len(bills)),
            "payment_methods": payment_methods,
            "total_received": money_sum(payment_methods.values()),
            "top_products": top_products,
        }


report_service = ReportService()
