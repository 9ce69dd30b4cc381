"""
Bill Module - API Routes
=========================
JSON API for POS terminals. Auth: `Authorization: Bearer <token>`.

Endpoints:
  GET  /api/bills                        - List bills (filters + pagination)
  POST /api/bills                        - Create a bill from a cart
  GET  /api/bills/by-number/{number}     - Snapshot looked up by bill number
  GET  /api/bills/{bill_id}              - Full bill snapshot
  PUT  /api/bills/{bill_id}              - Replace items of an unpaid bill
  POST /api/bills/{bill_id}/cancel       - Cancel (admin)
  GET  /api/bills/{bill_id}/payments     - Payments, newest first
  POST /api/bills/{bill_id}/payments     - Record a payment
  POST /api/bills/{bill_id}/share        - WhatsApp share link
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from modules.auth.deps import get_current_user
from modules.bill.service import bill_service
from modules.notification.whatsapp import share_invoice
from modules.user.models import User


router = APIRouter(prefix="/api/bills", tags=["bills"])


# ==========================================
# Schemas
# ==========================================

class BillItemIn(BaseModel):
    product_id: Optional[int] = None
    custom_name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    quantity: Decimal
    unit: str = Field("pcs", max_length=16)
    unit_price: Decimal
    is_tailored: bool = False
    tailoring_charge: Decimal = Decimal("0")
    measurements: Optional[Dict[str, Any]] = None
    notes: Optional[str] = Field(None, max_length=500)


class PaymentIn(BaseModel):
    amount: Decimal
    method: str
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)


class BillCreate(BaseModel):
    customer_id: int = Field(..., gt=0)
    items: List[BillItemIn]
    discount_amount: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    payments: List[PaymentIn] = []
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    delivery_date: Optional[date] = None


class BillUpdate(BaseModel):
    items: List[BillItemIn]
    discount_amount: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    customer_id: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = None
    delivery_date: Optional[date] = None


class CancelRequest(BaseModel):
    reason: str = Field("", max_length=500)


class ShareRequest(BaseModel):
    phone_number: str = Field(..., max_length=20)
    message: Optional[str] = Field(None, max_length=2000)


def _bill_row(bill) -> dict:
    return {
        "id": bill.id,
        "bill_number": bill.bill_number,
        "customer_id": bill.customer_id,
        "customer_name": bill.customer.full_name if bill.customer else None,
        "status": bill.status,
        "payment_status": bill.payment_status,
        "final_amount": bill.final_amount,
        "item_count": len(bill.items),
        "created_at": bill.created_at,
    }


def _payment_row(p) -> dict:
    return {
        "id": p.id,
        "bill_id": p.bill_id,
        "amount": p.amount,
        "method": p.method,
        "reference": p.reference,
        "notes": p.notes,
        "recorded_at": p.recorded_at,
    }


# ==========================================
# GET /api/bills
# ==========================================

@router.get("")
async def list_bills(
    customer_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bills, total = bill_service.list_bills(
        db,
        customer_id=customer_id,
        status=status.upper() if status else None,
        payment_status=payment_status.upper() if payment_status else None,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return {
        "success": True,
        "bills": [_bill_row(b) for b in bills],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


# ==========================================
# POST /api/bills
# ==========================================

@router.post("", status_code=201)
async def create_bill(
    body: BillCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bill = bill_service.create_bill(
        db,
        user,
        customer_id=body.customer_id,
        items=[item.model_dump() for item in body.items],
        discount_amount=body.discount_amount,
        tax_amount=body.tax_amount,
        initial_payments=[p.model_dump() for p in body.payments],
        payment_method=body.payment_method,
        notes=body.notes,
        delivery_date=body.delivery_date,
    )
    db.commit()
    return {"success": True, "bill": bill_service.get_bill_with_details(db, bill.id)}


# ==========================================
# GET /api/bills/by-number/{bill_number}
# ==========================================

@router.get("/by-number/{bill_number}")
async def get_bill_by_number(
    bill_number: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bill = bill_service.get_bill_by_number(db, bill_number.strip().upper())
    return {"success": True, "bill": bill_service.get_bill_with_details(db, bill.id)}


# ==========================================
# GET /api/bills/{bill_id}
# ==========================================

@router.get("/{bill_id}")
async def get_bill(
    bill_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "bill": bill_service.get_bill_with_details(db, bill_id)}


# ==========================================
# PUT /api/bills/{bill_id}
# ==========================================

@router.put("/{bill_id}")
async def update_bill(
    bill_id: int,
    body: BillUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bill_service.update_bill(
        db,
        user,
        bill_id,
        items=[item.model_dump() for item in body.items],
        discount_amount=body.discount_amount,
        tax_amount=body.tax_amount,
        customer_id=body.customer_id,
        notes=body.notes,
        delivery_date=body.delivery_date,
    )
    db.commit()
    return {"success": True, "bill": bill_service.get_bill_with_details(db, bill_id)}


# ==========================================
# POST /api/bills/{bill_id}/cancel
# ==========================================

@router.post("/{bill_id}/cancel")
async def cancel_bill(
    bill_id: int,
    body: CancelRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bill = bill_service.cancel_bill(db, user, bill_id, body.reason)
    db.commit()
    return {
        "success": True,
        "bill_id": bill.id,
        "bill_number": bill.bill_number,
        "status": bill.status,
        "cancel_reason": bill.cancel_reason,
    }


# ==========================================
# Payments
# ==========================================

@router.get("/{bill_id}/payments")
async def bill_payments(
    bill_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    payments = bill_service.get_bill_payments(db, bill_id)
    return {"success": True, "payments": [_payment_row(p) for p in payments]}


@router.post("/{bill_id}/payments", status_code=201)
async def add_payment(
    bill_id: int,
    body: PaymentIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    payment = bill_service.add_payment(
        db, user, bill_id, body.amount, body.method,
        reference=body.reference, notes=body.notes,
    )
    db.commit()
    bill = bill_service.get_bill(db, bill_id)
    return {
        "success": True,
        "payment": _payment_row(payment),
        "payment_status": bill.payment_status,
    }


# ==========================================
# POST /api/bills/{bill_id}/share
# ==========================================

@router.post("/{bill_id}/share")
async def share_bill(
    bill_id: int,
    body: ShareRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Returns a WhatsApp web link; the terminal opens it."""
    snapshot = bill_service.get_bill_with_details(db, bill_id)
    link = share_invoice(snapshot, body.phone_number, body.message)
    return {"success": True, **link}
