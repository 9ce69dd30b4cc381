"""
Bill Module - Service Layer
=============================
The billing transaction engine: create / update / cancel / add payment.

Every mutating call:
1. checks the actor's role,
2. validates input before touching any row,
3. runs inside a SAVEPOINT so a failure leaves stock, counters and the
   bill exactly as they were (reservations are undone with it),
4. locks the bill row (SELECT ... FOR UPDATE) so all writes to one bill
   are applied in a single order.

The caller commits (route handler or script); the service only flushes.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Session, joinedload, selectinload

from config.settings import (
    BUSINESS_NAME, BUSINESS_ADDRESS, BUSINESS_PHONE, BUSINESS_GSTIN,
    CURRENCY_SYMBOL, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE,
)
from common.exceptions import (
    AlreadyCancelledError, BillNotEditableError, BillNotFoundError,
    CustomerNotFoundError, InvalidDateRangeError, InvalidItemError,
    InvalidPaymentError, SilaiError,
)
from common.helpers import now_utc, local_day_bounds
from common.money import ZERO, money_sum, to_money, to_quantity, clamp_non_negative
from modules.auth.roles import Role, ensure_role
from modules.bill.calculator import (
    read_field, normalize_items, normalize_payment, compute_totals, stock_demands, derive_payment_status,
)
from modules.bill.models import Bill, BillItem, Payment, BillStatus, PaymentMethod, PaymentStatus
from modules.bill.numbering import bill_number_service
from modules.catalog.models import Product
from modules.customer.service import customer_service
from modules.inventory.service import stock_ledger

logger = logging.getLogger("silai.bill")


class BillService:

    # ==========================================
    # Create
    # ==========================================

    def create_bill(
        self,
        db: Session,
        actor,
        customer_id: int,
        items: Iterable,
        discount_amount=0,
        tax_amount=0,
        initial_payments: Optional[Iterable] = None,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
        delivery_date: Optional[date] = None,
    ) -> Bill:
        """
        Turn a cart into a committed-ready bill:
        1. Validate lines, amounts and initial payments
        2. Reserve stock for catalog lines (all-or-nothing)
        3. Allocate the bill number
        4. Compute subtotal / final amount
        5. Apply initial payments and derive payment status
        6. Write bill, items and payments

        Any failure after step 2 rolls the savepoint back, which also
        returns the reserved stock and the bill-number increment.
        """
        ensure_role(actor, Role.MEMBER)

        lines = normalize_items(items)
        totals = compute_totals(lines, discount_amount, tax_amount)
        payments = self._normalize_payments(initial_payments)
        announced_method = self._announced_method(payment_method)

        if not customer_service.customer_exists(db, customer_id):
            raise CustomerNotFoundError(customer_id)
        self._check_products(db, lines)

        try:
            with db.begin_nested():
                movements = stock_ledger.reserve_many(db, stock_demands(lines), actor_id=actor.id)

                bill_number = bill_number_service.next_bill_number(db)
                for movement in movements:
                    movement.reference = bill_number
                    movement.notes = f"Sale - Bill {bill_number}"

                bill = Bill(
                    bill_number=bill_number,
                    customer_id=customer_id,
                    status=BillStatus.ACTIVE.value,
                    payment_status=PaymentStatus.PENDING.value,
                    payment_method=announced_method,
                    notes=(notes or "").strip() or None,
                    delivery_date=delivery_date,
                    created_by=actor.id,
                    **totals,
                )
                db.add(bill)
                db.flush()

                self._write_items(db, bill, lines)

                for p in payments:
                    db.add(Payment(bill_id=bill.id, recorded_by=actor.id, **p))
                db.flush()

                paid = self._paid_total(db, bill.id)
                bill.payment_status = derive_payment_status(paid, bill.final_amount).value
                db.flush()
        except SilaiError as e:
            logger.warning(f"Bill creation for customer #{customer_id} rolled back: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Bill creation for customer #{customer_id} failed: {e}")
            raise

        db.expire(bill, ["items", "payments"])
        logger.info(
            f"Bill {bill.bill_number} created: customer #{customer_id}, "
            f"final {bill.final_amount}, {len(lines)} item(s), status {bill.payment_status}, "
            f"by user #{actor.id}"
        )
        return bill

    # ==========================================
    # Update (replace the item set)
    # ==========================================

    def update_bill(
        self,
        db: Session,
        actor,
        bill_id: int,
        items: Iterable,
        discount_amount=None,
        tax_amount=None,
        customer_id: Optional[int] = None,
        notes: Optional[str] = None,
        delivery_date: Optional[date] = None,
    ) -> Bill:
        """
        Replace every line of an unpaid, active bill and recompute its totals.
        Stock moves by the net change per product, in the same savepoint;
        if anything fails the bill is left untouched.
        """
        ensure_role(actor, Role.MEMBER)
        lines = normalize_items(items)

        try:
            with db.begin_nested():
                bill = self._lock_bill(db, bill_id)
                if bill.status == BillStatus.CANCELLED.value:
                    raise BillNotEditableError(bill.id, "bill is cancelled", bill.bill_number)
                if self._payment_count(db, bill.id) > 0 or bill.payment_status != PaymentStatus.PENDING.value:
                    raise BillNotEditableError(bill.id, "payments already recorded", bill.bill_number)

                if customer_id is not None and customer_id != bill.customer_id:
                    if not customer_service.customer_exists(db, customer_id):
                        raise CustomerNotFoundError(customer_id)
                    bill.customer_id = customer_id

                totals = compute_totals(
                    lines,
                    bill.discount_amount if discount_amount is None else discount_amount,
                    bill.tax_amount if tax_amount is None else tax_amount,
                )
                self._check_products(db, lines)

                old_items = self._fresh_items(db, bill.id)
                stock_ledger.rebalance(
                    db, stock_demands(old_items), stock_demands(lines),
                    reference=bill.bill_number, actor_id=actor.id, notes=f"Edit - Bill {bill.bill_number}",
                )

                for item in old_items:
                    db.delete(item)
                db.flush()
                db.expire(bill, ["items"])

                self._write_items(db, bill, lines)

                for key, value in totals.items():
                    setattr(bill, key, value)
                if notes is not None:
                    bill.notes = notes.strip() or None
                if delivery_date is not None:
                    bill.delivery_date = delivery_date
                bill.updated_at = now_utc()
                db.flush()
        except SilaiError as e:
            logger.warning(f"Update of bill #{bill_id} rolled back: {e.message}")
            raise

        db.expire(bill, ["items"])
        logger.info(f"Bill {bill.bill_number} updated: final {bill.final_amount}, {len(lines)} item(s), by user #{actor.id}")
        return bill

    # ==========================================
    # Cancel
    # ==========================================

    def cancel_bill(self, db: Session, actor, bill_id: int, reason: str = "") -> Bill:
        """Cancel an active bill and return its reserved stock. Terminal."""
        ensure_role(actor, Role.ADMIN)
        reason = (reason or "").strip() or "Not specified"

        with db.begin_nested():
            bill = self._lock_bill(db, bill_id)
            if bill.status == BillStatus.CANCELLED.value:
                raise AlreadyCancelledError(bill.id, bill.bill_number)

            stock_ledger.release_many(
                db, stock_demands(self._fresh_items(db, bill.id)),
                reference=bill.bill_number, actor_id=actor.id, notes=f"Cancel - Bill {bill.bill_number}",
            )

            bill.status = BillStatus.CANCELLED.value
            bill.cancel_reason = reason
            bill.cancelled_at = now_utc()
            bill.updated_at = bill.cancelled_at
            db.flush()

        paid = self._paid_total(db, bill.id)
        if paid > 0:
            # Refunds are settled at the counter, outside this system
            logger.warning(f"Bill {bill.bill_number} cancelled with {paid} already paid; refund not recorded")
        logger.info(f"Bill {bill.bill_number} cancelled by user #{actor.id}: {reason}")
        return bill

    # ==========================================
    # Payments
    # ==========================================

    def add_payment(
        self, db: Session, actor, bill_id: int, amount, method,
        reference: Optional[str] = None, notes: Optional[str] = None,
    ) -> Payment:
        """
        Append a payment and recompute payment status from the sum of
        every payment on the bill, read under the bill lock.
        Overpayment is recorded as-is.
        """
        ensure_role(actor, Role.MEMBER)
        data = normalize_payment(amount, method)

        with db.begin_nested():
            bill = self._lock_bill(db, bill_id)
            if bill.status == BillStatus.CANCELLED.value:
                raise BillNotEditableError(bill.id, "bill is cancelled", bill.bill_number)

            payment = Payment(
                bill_id=bill.id,
                recorded_by=actor.id,
                reference=(reference or "").strip() or None,
                notes=(notes or "").strip() or None,
                **data,
            )
            db.add(payment)
            db.flush()

            paid = self._paid_total(db, bill.id)
            bill.payment_status = derive_payment_status(paid, bill.final_amount).value
            bill.updated_at = now_utc()
            db.flush()

        db.expire(bill, ["payments"])
        logger.info(
            f"Payment {payment.amount} ({payment.method}) on bill {bill.bill_number}: "
            f"paid {paid} of {bill.final_amount} -> {bill.payment_status}"
        )
        return payment

    # ==========================================
    # Queries
    # ==========================================

    def get_bill(self, db: Session, bill_id: int) -> Bill:
        bill = db.query(Bill).filter(Bill.id == bill_id).first()
        if not bill:
            raise BillNotFoundError(bill_id)
        return bill

    def get_bill_by_number(self, db: Session, bill_number: str) -> Bill:
        bill = db.query(Bill).filter(Bill.bill_number == bill_number).first()
        if not bill:
            raise BillNotFoundError(bill_number)
        return bill

    def get_bill_payments(self, db: Session, bill_id: int) -> List[Payment]:
        """Payments of a bill, newest first."""
        self.get_bill(db, bill_id)
        return (
            db.query(Payment)
            .filter(Payment.bill_id == bill_id)
            .order_by(desc(Payment.recorded_at), desc(Payment.id))
            .all()
        )

    def list_bills(
        self,
        db: Session,
        customer_id: Optional[int] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[Bill], int]:
        """Filtered, paginated bill list (newest first) plus the total match count."""
        q = db.query(Bill)
        if customer_id:
            q = q.filter(Bill.customer_id == customer_id)
        if status:
            q = q.filter(Bill.status == status)
        if payment_status:
            q = q.filter(Bill.payment_status == payment_status)
        if date_from and date_to and date_from > date_to:
            raise InvalidDateRangeError("date_from must not be after date_to",
                                        date_from=str(date_from), date_to=str(date_to))
        if date_from:
            q = q.filter(Bill.created_at >= local_day_bounds(date_from)[0])
        if date_to:
            q = q.filter(Bill.created_at < local_day_bounds(date_to)[1])

        total = q.count()
        page = max(1, page or 1)
        limit = min(max(1, limit or DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
        bills = (
            q.options(joinedload(Bill.customer), selectinload(Bill.items))
            .order_by(desc(Bill.created_at), desc(Bill.id))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return bills, total

    def get_bill_with_details(self, db: Session, bill_id: int) -> Dict[str, Any]:
        """Read-only, fully populated snapshot of a bill for document renderers."""
        bill = (
            db.query(Bill)
            .options(
                joinedload(Bill.customer),
                joinedload(Bill.creator),
                selectinload(Bill.items).joinedload(BillItem.product),
                selectinload(Bill.payments),
            )
            .filter(Bill.id == bill_id)
            .first()
        )
        if not bill:
            raise BillNotFoundError(bill_id)
        return self.build_snapshot(bill)

    def build_snapshot(self, bill: Bill) -> Dict[str, Any]:
        paid = money_sum(p.amount for p in bill.payments)
        final = to_money(bill.final_amount)
        return {
            "id": bill.id,
            "bill_number": bill.bill_number,
            "status": bill.status,
            "payment_status": bill.payment_status,
            "payment_method": bill.payment_method,
            "created_at": bill.created_at,
            "updated_at": bill.updated_at,
            "delivery_date": bill.delivery_date,
            "notes": bill.notes,
            "cancel_reason": bill.cancel_reason,
            "cancelled_at": bill.cancelled_at,
            "customer": bill.customer.to_snapshot() if bill.customer else None,
            "created_by": {"id": bill.creator.id, "name": bill.creator.full_name} if bill.creator else None,
            "items": [
                {
                    "id": item.id,
                    "name": item.display_name,
                    "product": (
                        {"id": item.product.id, "name": item.product.name, "sku": item.product.sku}
                        if item.product else None
                    ),
                    "custom_name": item.custom_name,
                    "description": item.description,
                    "quantity": to_quantity(item.quantity),
                    "unit": item.unit,
                    "unit_price": to_money(item.unit_price),
                    "line_total": to_money(item.line_total),
                    "is_tailored": item.is_tailored,
                    "tailoring_charge": to_money(item.tailoring_charge or 0),
                    "measurements": item.measurements,
                    "notes": item.notes,
                }
                for item in bill.items
            ],
            "payments": [
                {
                    "id": p.id,
                    "amount": to_money(p.amount),
                    "method": p.method,
                    "reference": p.reference,
                    "recorded_at": p.recorded_at,
                }
                for p in bill.payments
            ],
            "subtotal": to_money(bill.subtotal),
            "discount_amount": to_money(bill.discount_amount),
            "tax_amount": to_money(bill.tax_amount),
            "final_amount": final,
            "paid_amount": paid,
            "balance_due": clamp_non_negative(final - paid),
            "business": {
                "name": BUSINESS_NAME,
                "address": BUSINESS_ADDRESS,
                "phone": BUSINESS_PHONE,
                "gstin": BUSINESS_GSTIN,
                "currency_symbol": CURRENCY_SYMBOL,
            },
        }

    # ==========================================
    # Private Helpers
    # ==========================================

    def _lock_bill(self, db: Session, bill_id: int) -> Bill:
        bill = (
            db.query(Bill)
            .filter(Bill.id == bill_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not bill:
            raise BillNotFoundError(bill_id)
        return bill

    def _fresh_items(self, db: Session, bill_id: int) -> List[BillItem]:
        return (
            db.query(BillItem)
            .filter(BillItem.bill_id == bill_id)
            .populate_existing()
            .order_by(BillItem.position, BillItem.id)
            .all()
        )

    def _write_items(self, db: Session, bill: Bill, lines: List[Dict[str, Any]]):
        for position, line in enumerate(lines):
            db.add(BillItem(bill_id=bill.id, position=position, **line))
        db.flush()

    def _paid_total(self, db: Session, bill_id: int):
        rows = db.query(Payment.amount).filter(Payment.bill_id == bill_id).all()
        return money_sum(amount for (amount,) in rows) if rows else ZERO

    def _payment_count(self, db: Session, bill_id: int) -> int:
        return db.query(Payment.id).filter(Payment.bill_id == bill_id).count()

    def _check_products(self, db: Session, lines: List[Dict[str, Any]]):
        ids = {line["product_id"] for line in lines if line["product_id"] is not None}
        if not ids:
            return
        known = {pid for (pid,) in db.query(Product.id).filter(Product.id.in_(ids)).all()}
        for index, line in enumerate(lines):
            if line["product_id"] is not None and line["product_id"] not in known:
                raise InvalidItemError("product_id", f"unknown product {line['product_id']}", index)

    def _normalize_payments(self, payments: Optional[Iterable]) -> List[Dict[str, Any]]:
        result = []
        for p in payments or []:
            data = normalize_payment(read_field(p, "amount"), read_field(p, "method"))
            data["reference"] = (read_field(p, "reference") or "").strip() or None
            data["notes"] = (read_field(p, "notes") or "").strip() or None
            result.append(data)
        return result

    def _announced_method(self, method) -> Optional[str]:
        if method is None or method == "":
            return None
        value = method.value if isinstance(method, PaymentMethod) else str(method).strip().upper()
        try:
            return PaymentMethod(value).value
        except ValueError:
            raise InvalidPaymentError("payment_method", f"unknown method {method}")


# Singleton
bill_service = BillService()
