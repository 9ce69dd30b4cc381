"""
Catalog Module - Service
=========================
Product management and the price lookup used while a cart is built.
The billing engine trusts the unit price it receives; it never calls back here.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from common.exceptions import DuplicateError, ProductNotFoundError, ValidationError
from common.money import MAX_MONEY, MAX_QUANTITY, to_money, to_quantity
from modules.auth.roles import Role, ensure_role
from modules.catalog.models import Product, ProductType
from modules.inventory.models import StockLevel, StockMovement, MovementType

logger = logging.getLogger("silai.catalog")


class CatalogService:

    def create_product(
        self, db: Session, actor, name: str, sku: str, selling_price,
        unit: str = "pcs", product_type: str = ProductType.READY_MADE,
        cost_price=None, is_tailoring: bool = False, tailoring_price=None,
        min_stock=0, opening_stock=0, description: str = "",
    ) -> Product:
        """Create a product with its stock counter (opening stock recorded as an IN movement)."""
        ensure_role(actor, Role.ADMIN)

        name = (name or "").strip()
        sku = (sku or "").strip().upper()
        if not name:
            raise ValidationError("Product name is required", field="name")
        if not sku:
            raise ValidationError("SKU is required", field="sku")
        if self.find_by_sku(db, sku):
            raise DuplicateError(f"Product with SKU {sku} already exists", sku=sku)

        try:
            price = to_money(selling_price)
            opening = to_quantity(opening_stock or 0)
            minimum = to_quantity(min_stock or 0)
            cost = to_money(cost_price) if cost_price is not None else None
            tailoring = to_money(tailoring_price) if tailoring_price is not None else None
        except ValueError as e:
            raise ValidationError(str(e))
        if max(price, cost or 0, tailoring or 0) > MAX_MONEY:
            raise ValidationError(f"Prices cannot exceed {MAX_MONEY}", field="selling_price")
        if max(opening, minimum) > MAX_QUANTITY:
            raise ValidationError(f"Stock figures cannot exceed {MAX_QUANTITY}", field="opening_stock")
        if price < 0:
            raise ValidationError("Selling price cannot be negative", field="selling_price")
        if opening < 0:
            raise ValidationError("Opening stock cannot be negative", field="opening_stock")

        product = Product(
            name=name,
            sku=sku,
            description=description or None,
            type=product_type,
            unit=unit or "pcs",
            selling_price=price,
            cost_price=cost,
            is_tailoring=bool(is_tailoring),
            tailoring_price=tailoring,
            min_stock=minimum,
        )
        db.add(product)
        db.flush()

        db.add(StockLevel(product_id=product.id, available=opening))
        if opening > 0:
            db.add(StockMovement(
                product_id=product.id,
                movement_type=MovementType.IN.value,
                quantity=opening,
                notes="opening stock",
                created_by=actor.id,
            ))
        db.flush()

        logger.info(f"Product {sku} created (#{product.id}) with opening stock {opening}")
        return product

    def get_product(self, db: Session, product_id: int) -> Product:
        product = (
            db.query(Product)
            .options(joinedload(Product.stock))
            .filter(Product.id == product_id)
            .first()
        )
        if not product:
            raise ProductNotFoundError(product_id)
        return product

    def find_by_sku(self, db: Session, sku: str) -> Optional[Product]:
        return db.query(Product).filter(Product.sku == (sku or "").strip().upper()).first()

    def resolve_price(self, db: Session, product_id: int) -> Tuple[Decimal, str]:
        """productId -> (unit_price, unit) for the cart builder."""
        product = self.get_product(db, product_id)
        if not product.is_active:
            raise ValidationError(f"Product {product.sku} is not for sale", field="product_id")
        return to_money(product.selling_price), product.unit

    def list_products(self, db: Session, active_only: bool = True) -> List[Product]:
        q = db.query(Product).options(joinedload(Product.stock))
        if active_only:
            q = q.filter(Product.is_active == True)
        return q.order_by(Product.name).all()

    def low_stock_products(self, db: Session) -> List[dict]:
        """Active products at or below their minimum stock."""
        rows = (
            db.query(Product, StockLevel.available)
            .outerjoin(StockLevel, StockLevel.product_id == Product.id)
            .filter(Product.is_active == True, Product.min_stock > 0)
            .order_by(Product.name)
            .all()
        )
        result = []
        for product, available in rows:
            current = to_quantity(available or 0)
            if current <= to_quantity(product.min_stock):
                result.append({
                    "product_id": product.id,
                    "name": product.name,
                    "sku": product.sku,
                    "current_stock": current,
                    "min_stock": to_quantity(product.min_stock),
                })
        return result


catalog_service = CatalogService()
