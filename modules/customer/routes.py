"""
Customer Module - API Routes
=============================
  GET  /api/customers                 - Search customers
  POST /api/customers                 - Register a customer
  GET  /api/customers/{customer_id}   - Customer details
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import get_current_user
from modules.customer.service import customer_service
from modules.user.models import User


router = APIRouter(prefix="/api/customers", tags=["customers"])


class CustomerCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=200)
    address: str = Field("", max_length=500)
    city: str = Field("", max_length=100)
    state: str = Field("", max_length=100)
    pincode: str = Field("", max_length=10)


@router.get("")
async def search_customers(
    q: str = Query(""),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    customers = customer_service.search(db, q, limit)
    return {"success": True, "customers": [c.to_snapshot() for c in customers]}


@router.post("", status_code=201)
async def create_customer(
    body: CustomerCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    customer = customer_service.create_customer(db, user, **body.model_dump())
    db.commit()
    return {"success": True, "customer": customer.to_snapshot()}


@router.get("/{customer_id}")
async def get_customer(
    customer_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "customer": customer_service.get_customer(db, customer_id).to_snapshot()}
