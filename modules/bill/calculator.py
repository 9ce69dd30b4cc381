"""
Bill Module - Calculator
=========================
Pure validation and arithmetic for bill lines, totals and payment status.
No database access: everything here works on plain dicts and Decimals.

    subtotal     = sum(unit_price x quantity + tailoring_charge)
    final_amount = max(0, subtotal - discount_amount + tax_amount)
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from common.exceptions import InvalidItemError, InvalidPaymentError
from common.money import (
    MAX_MONEY, MAX_QUANTITY, ZERO, to_money, to_quantity, line_amount, money_sum, clamp_non_negative,
)
from modules.bill.models import PaymentMethod, PaymentStatus


def read_field(item, name, default=None):
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _money(value, field: str, index: Optional[int] = None) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError:
        raise InvalidItemError(field, "must be a number", index)
    if abs(amount) > MAX_MONEY:
        raise InvalidItemError(field, f"cannot exceed {MAX_MONEY}", index)
    return amount


# ==========================================
# Line items
# ==========================================

def normalize_item(item, index: int) -> Dict[str, Any]:
    """Validate one cart line and return it with Decimal amounts and its line total."""
    product_id = read_field(item, "product_id")
    if product_id is not None:
        try:
            product_id = int(product_id)
        except (TypeError, ValueError):
            raise InvalidItemError("product_id", "must be an integer id", index)
        if product_id <= 0:
            raise InvalidItemError("product_id", "must be a positive id", index)

    raw_qty = read_field(item, "quantity")
    if raw_qty is None:
        raise InvalidItemError("quantity", "is required", index)
    try:
        quantity = to_quantity(raw_qty)
    except ValueError:
        raise InvalidItemError("quantity", "must be a number", index)
    if quantity <= 0:
        raise InvalidItemError("quantity", "must be greater than 0", index)
    if quantity > MAX_QUANTITY:
        raise InvalidItemError("quantity", f"cannot exceed {MAX_QUANTITY}", index)

    raw_price = read_field(item, "unit_price")
    if raw_price is None:
        raise InvalidItemError("unit_price", "is required", index)
    unit_price = _money(raw_price, "unit_price", index)
    if unit_price < 0:
        raise InvalidItemError("unit_price", "cannot be negative", index)

    is_tailored = bool(read_field(item, "is_tailored", False))
    raw_charge = read_field(item, "tailoring_charge")
    tailoring_charge = _money(raw_charge, "tailoring_charge", index) if raw_charge is not None else ZERO
    if tailoring_charge < 0:
        raise InvalidItemError("tailoring_charge", "cannot be negative", index)
    if tailoring_charge > 0 and not is_tailored:
        raise InvalidItemError("tailoring_charge", "is only allowed on tailored items", index)

    line_total = line_amount(unit_price, quantity)
    if line_total > MAX_MONEY:
        raise InvalidItemError("quantity", f"line total cannot exceed {MAX_MONEY}", index)

    return {
        "product_id": product_id,
        "custom_name": (read_field(item, "custom_name") or "").strip() or None,
        "description": (read_field(item, "description") or "").strip() or None,
        "quantity": quantity,
        "unit": (read_field(item, "unit") or "pcs").strip() or "pcs",
        "unit_price": unit_price,
        "line_total": line_total,
        "is_tailored": is_tailored,
        "tailoring_charge": tailoring_charge,
        "measurements": read_field(item, "measurements"),
        "notes": (read_field(item, "notes") or "").strip() or None,
    }


def normalize_items(items: Optional[Iterable]) -> List[Dict[str, Any]]:
    items = list(items or [])
    if not items:
        raise InvalidItemError("items", "at least one item is required")
    return [normalize_item(item, i) for i, item in enumerate(items)]


def stock_demands(lines: Iterable[Mapping]) -> Dict[int, Decimal]:
    """Total quantity per catalog product (custom lines need no stock)."""
    demands: Dict[int, Decimal] = {}
    for line in lines:
        product_id = read_field(line, "product_id")
        if product_id is None:
            continue
        demands[product_id] = demands.get(product_id, Decimal("0")) + to_quantity(read_field(line, "quantity"))
    return demands


# ==========================================
# Totals
# ==========================================

def compute_totals(lines: Iterable[Mapping], discount_amount=0, tax_amount=0) -> Dict[str, Decimal]:
    discount = _money(discount_amount if discount_amount is not None else 0, "discount_amount")
    tax = _money(tax_amount if tax_amount is not None else 0, "tax_amount")
    if discount < 0:
        raise InvalidItemError("discount_amount", "cannot be negative")
    if tax < 0:
        raise InvalidItemError("tax_amount", "cannot be negative")

    subtotal = money_sum(
        to_money(read_field(line, "line_total")) + to_money(read_field(line, "tailoring_charge") or 0)
        for line in lines
    )
    if subtotal + tax > MAX_MONEY:
        raise InvalidItemError("items", f"bill total cannot exceed {MAX_MONEY}")
    return {
        "subtotal": subtotal,
        "discount_amount": discount,
        "tax_amount": tax,
        "final_amount": clamp_non_negative(subtotal - discount + tax),
    }


# ==========================================
# Payments
# ==========================================

def normalize_payment(amount, method) -> Dict[str, Any]:
    try:
        value = to_money(amount)
    except ValueError:
        raise InvalidPaymentError("amount", "must be a number")
    if value <= 0:
        raise InvalidPaymentError("amount", "must be greater than 0")
    if value > MAX_MONEY:
        raise InvalidPaymentError("amount", f"cannot exceed {MAX_MONEY}")

    method_value = method.value if isinstance(method, PaymentMethod) else str(method or "").strip().upper()
    try:
        method_value = PaymentMethod(method_value).value
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise InvalidPaymentError("method", f"must be one of {allowed}")
    return {"amount": value, "method": method_value}


def derive_payment_status(paid_total, final_amount) -> PaymentStatus:
    """PENDING with nothing paid, PAID once the final amount is covered, PARTIAL in between."""
    paid = to_money(paid_total or 0)
    if paid <= 0:
        return PaymentStatus.PENDING
    if paid >= to_money(final_amount or 0):
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL
