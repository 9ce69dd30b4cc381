"""
Notification Module - WhatsApp Invoice Links
==============================================
Builds a pre-filled web WhatsApp link for sharing an invoice.
Nothing is sent from the server: the cashier's browser opens the link.
"""

import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import quote

from config.settings import (
    API_URL, BUSINESS_NAME, CURRENCY_SYMBOL, DEFAULT_COUNTRY_CODE, WHATSAPP_WEB_URL,
)
from common.exceptions import ValidationError
from common.helpers import local_date_of
from common.money import format_money

logger = logging.getLogger("silai.messaging")

_NON_DIGITS = re.compile(r"\D")


def is_valid_phone_number(phone: Optional[str]) -> bool:
    """10 digits (local) or 12 digits (with country code), ignoring punctuation."""
    digits = _NON_DIGITS.sub("", phone or "")
    return len(digits) in (10, 12)


def normalize_phone_number(phone: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """'+91 98765-43210' -> '919876543210'; '098765 43210' -> '919876543210'."""
    digits = _NON_DIGITS.sub("", phone or "").lstrip("0")
    if len(digits) == 10:
        digits = f"{country_code}{digits}"
    return digits


def build_invoice_message(bill: Dict[str, Any]) -> str:
    """Default share text for a bill snapshot (see bill_service.get_bill_with_details)."""
    created = bill.get("created_at")
    day = local_date_of(created).strftime("%d %b %Y") if created else ""
    paid = bill.get("payment_status") == "PAID"
    invoice_link = f"{API_URL}/api/bills/{bill['id']}"
    return (
        f"🏪 *{BUSINESS_NAME}*\n"
        f"\n"
        f"Hello! Your invoice is ready 📋\n"
        f"\n"
        f"📄 *Invoice Number:* {bill['bill_number']}\n"
        f"💰 *Total Amount:* {format_money(bill['final_amount'], CURRENCY_SYMBOL)}\n"
        f"📅 *Date:* {day}\n"
        f"{'✅ *Status:* Paid' if paid else '⏳ *Status:* Pending'}\n"
        f"\n"
        f"📥 *Invoice:*\n"
        f"{invoice_link}\n"
        f"\n"
        f"Thank you for your business! 🙏"
    )


def build_share_link(phone: str, message: str) -> str:
    return f"{WHATSAPP_WEB_URL}?phone={normalize_phone_number(phone)}&text={quote(message, safe='')}"


def share_invoice(bill: Dict[str, Any], phone: str, message: Optional[str] = None) -> Dict[str, str]:
    """Validate the destination and return the link the client should open."""
    if not is_valid_phone_number(phone):
        raise ValidationError("Phone number must have 10 or 12 digits", field="phone_number")

    number = normalize_phone_number(phone)
    url = build_share_link(number, message or build_invoice_message(bill))
    logger.info(f"WhatsApp link generated for bill {bill['bill_number']} to {number}")
    return {"method": "link", "phone": number, "url": url}
