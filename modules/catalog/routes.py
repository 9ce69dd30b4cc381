"""
Catalog Module - API Routes
============================
  GET  /api/products                    - Active products with stock
  POST /api/products                    - Create product (admin)
  GET  /api/products/low-stock          - Products at or below minimum stock
  GET  /api/products/{product_id}       - Product details
  GET  /api/products/{product_id}/price - Unit price for the cart builder
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import get_current_user
from modules.catalog.models import ProductType
from modules.catalog.service import catalog_service
from modules.user.models import User


router = APIRouter(prefix="/api/products", tags=["products"])


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    sku: str = Field(..., min_length=1, max_length=64)
    selling_price: Decimal
    unit: str = Field("pcs", max_length=16)
    product_type: ProductType = ProductType.READY_MADE
    cost_price: Optional[Decimal] = None
    is_tailoring: bool = False
    tailoring_price: Optional[Decimal] = None
    min_stock: Decimal = Decimal("0")
    opening_stock: Decimal = Decimal("0")
    description: str = ""


def _product_row(p) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "sku": p.sku,
        "type": p.type,
        "unit": p.unit,
        "selling_price": p.selling_price,
        "is_tailoring": p.is_tailoring,
        "tailoring_price": p.tailoring_price,
        "min_stock": p.min_stock,
        "available": p.available_quantity,
        "is_active": p.is_active,
    }


@router.get("")
async def list_products(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "products": [_product_row(p) for p in catalog_service.list_products(db)]}


@router.post("", status_code=201)
async def create_product(
    body: ProductCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    data = body.model_dump()
    data["product_type"] = body.product_type.value
    product = catalog_service.create_product(db, user, **data)
    db.commit()
    return {"success": True, "product": _product_row(catalog_service.get_product(db, product.id))}


@router.get("/low-stock")
async def low_stock(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "products": catalog_service.low_stock_products(db)}


@router.get("/{product_id}")
async def get_product(
    product_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "product": _product_row(catalog_service.get_product(db, product_id))}


@router.get("/{product_id}/price")
async def product_price(
    product_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    unit_price, unit = catalog_service.resolve_price(db, product_id)
    return {"success": True, "product_id": product_id, "unit_price": unit_price, "unit": unit}
