"""
Inventory Module - API Routes
==============================
  GET  /api/inventory/{product_id}           - Stock level + recent movements
  POST /api/inventory/{product_id}/restock   - Goods received (admin)
  POST /api/inventory/{product_id}/adjust    - Set counted stock (admin)
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import get_current_user
from modules.inventory.service import stock_ledger
from modules.user.models import User


router = APIRouter(prefix="/api/inventory", tags=["inventory"])


class RestockRequest(BaseModel):
    quantity: Decimal
    reference: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = Field(None, max_length=500)


class AdjustRequest(BaseModel):
    counted: Decimal
    notes: str = Field("", max_length=500)


@router.get("/{product_id}")
async def product_stock(
    product_id: int,
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "stock": stock_ledger.get_product_stock(db, product_id, limit)}


@router.post("/{product_id}/restock")
async def restock(
    product_id: int,
    body: RestockRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stock_ledger.restock(db, user, product_id, body.quantity, body.reference, body.notes)
    db.commit()
    return {"success": True, "available": stock_ledger.get_available(db, product_id)}


@router.post("/{product_id}/adjust")
async def adjust(
    product_id: int,
    body: AdjustRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    movement = stock_ledger.adjust(db, user, product_id, body.counted, body.notes)
    db.commit()
    return {
        "success": True,
        "available": stock_ledger.get_available(db, product_id),
        "delta": movement.quantity if movement else Decimal("0"),
    }
