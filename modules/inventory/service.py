"""
Inventory Module - Stock Ledger
================================
Per-product available-quantity counters with atomic reserve/release.

Usage:
    stock_ledger.reserve(db, product_id=3, quantity=Decimal("2.5"), reference="CS241201003")
    stock_ledger.reserve_many(db, {3: Decimal("2.5"), 7: Decimal("1")})   # all-or-nothing
    stock_ledger.release(db, product_id=3, quantity=Decimal("2.5"), reference="CS241201003")

A reservation is one conditional UPDATE (`available >= qty`): the database
serializes competing writers on the row, so two terminals can never both
take the last unit. Callers own the surrounding transaction.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from common.exceptions import InsufficientStockError, ProductNotFoundError, ValidationError
from common.money import MAX_QUANTITY, to_quantity
from modules.auth.roles import Role, ensure_role
from modules.catalog.models import Product
from modules.inventory.models import StockLevel, StockMovement, MovementType

logger = logging.getLogger("silai.inventory")


class StockLedger:
    """Stateless service; call methods with a db session."""

    # ------------------------------------------
    # Reads
    # ------------------------------------------

    def get_available(self, db: Session, product_id: int) -> Decimal:
        level = db.query(StockLevel).filter(StockLevel.product_id == product_id).first()
        if level is None:
            if db.query(Product.id).filter(Product.id == product_id).first() is None:
                raise ProductNotFoundError(product_id)
            return to_quantity(0)
        return to_quantity(level.available)

    def get_product_stock(self, db: Session, product_id: int, limit: int = 50) -> Dict:
        """Current level plus the most recent movements."""
        available = self.get_available(db, product_id)
        movements = (
            db.query(StockMovement)
            .filter(StockMovement.product_id == product_id)
            .order_by(StockMovement.id.desc())
            .limit(limit)
            .all()
        )
        return {
            "product_id": product_id,
            "available": available,
            "movements": [
                {
                    "id": m.id,
                    "type": m.movement_type,
                    "quantity": to_quantity(m.quantity),
                    "reference": m.reference,
                    "notes": m.notes,
                    "created_at": m.created_at,
                }
                for m in movements
            ],
        }

    # ------------------------------------------
    # Core counter writes
    # ------------------------------------------

    def reserve(
        self, db: Session, product_id: int, quantity,
        reference: Optional[str] = None, actor_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        """Take `quantity` off the shelf iff that much is available. No side effect on failure."""
        qty = self._positive(quantity)
        result = db.execute(
            update(StockLevel)
            .where(StockLevel.product_id == product_id, StockLevel.available >= qty)
            .values(available=StockLevel.available - qty)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            product = db.query(Product).filter(Product.id == product_id).first()
            if product is None:
                raise ProductNotFoundError(product_id)
            available = self.get_available(db, product_id)
            raise InsufficientStockError(product_id, qty, available, product.name)

        return self._record(db, product_id, MovementType.OUT, -qty, reference, actor_id, notes)

    def release(
        self, db: Session, product_id: int, quantity,
        reference: Optional[str] = None, actor_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        """Put `quantity` back on the shelf. Callers make sure each reservation is released once."""
        qty = self._positive(quantity)
        self._increment(db, product_id, qty)
        return self._record(db, product_id, MovementType.IN, qty, reference, actor_id, notes)

    def reserve_many(
        self, db: Session, demands: Dict[int, Decimal],
        reference: Optional[str] = None, actor_id: Optional[int] = None,
    ) -> List[StockMovement]:
        """
        Reserve every (product_id -> quantity) pair or none of them.
        Rows are taken in product_id order so concurrent bills lock in the same order.
        """
        taken: List[StockMovement] = []
        try:
            for product_id in sorted(demands):
                taken.append(self.reserve(db, product_id, demands[product_id], reference, actor_id))
        except Exception:
            for movement in reversed(taken):
                self.release(
                    db, movement.product_id, -movement.quantity,
                    reference=reference, actor_id=actor_id, notes="rollback of partial reservation",
                )
            raise
        return taken

    def release_many(
        self, db: Session, demands: Dict[int, Decimal],
        reference: Optional[str] = None, actor_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> List[StockMovement]:
        return [
            self.release(db, product_id, demands[product_id], reference, actor_id, notes)
            for product_id in sorted(demands)
        ]

    def rebalance(
        self, db: Session, held: Dict[int, Decimal], wanted: Dict[int, Decimal],
        reference: Optional[str] = None, actor_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> List[StockMovement]:
        """
        Move a reservation from `held` to `wanted` quantities, touching only
        products whose net quantity changes. One pass in product_id order,
        the same lock order reserve_many uses.
        """
        applied: List[StockMovement] = []
        try:
            for product_id in sorted(set(held) | set(wanted)):
                delta = to_quantity(wanted.get(product_id, 0)) - to_quantity(held.get(product_id, 0))
                if delta > 0:
                    applied.append(self.reserve(db, product_id, delta, reference, actor_id, notes))
                elif delta < 0:
                    applied.append(self.release(db, product_id, -delta, reference, actor_id, notes))
        except Exception:
            for movement in reversed(applied):
                if movement.quantity < 0:
                    self.release(db, movement.product_id, -movement.quantity, reference, actor_id,
                                 notes="rollback of partial rebalance")
                else:
                    self._increment(db, movement.product_id, -movement.quantity)
                    self._record(db, movement.product_id, MovementType.OUT, -movement.quantity,
                                 reference, actor_id, "rollback of partial rebalance")
            raise
        return applied

    # ------------------------------------------
    # Admin operations
    # ------------------------------------------

    def restock(self, db: Session, actor, product_id: int, quantity,
                reference: Optional[str] = None, notes: Optional[str] = None) -> StockMovement:
        """Goods received: increase available stock."""
        ensure_role(actor, Role.ADMIN)
        qty = self._positive(quantity)
        self._ensure_level(db, product_id)
        self._increment(db, product_id, qty)
        movement = self._record(db, product_id, MovementType.IN, qty, reference, actor.id, notes or "restock")
        logger.info(f"Restocked product #{product_id} +{qty} by user #{actor.id}")
        return movement

    def adjust(self, db: Session, actor, product_id: int, counted, notes: str = "") -> Optional[StockMovement]:
        """Set available stock to a physically counted figure."""
        ensure_role(actor, Role.ADMIN)
        try:
            counted_qty = to_quantity(counted)
        except ValueError as e:
            raise ValidationError(str(e), field="counted")
        if counted_qty < 0:
            raise ValidationError("Counted stock cannot be negative", field="counted")
        if counted_qty > MAX_QUANTITY:
            raise ValidationError(f"Counted stock cannot exceed {MAX_QUANTITY}", field="counted")

        level = self._ensure_level(db, product_id, lock=True)
        delta = counted_qty - to_quantity(level.available)
        if delta == 0:
            return None
        level.available = counted_qty
        movement = self._record(db, product_id, MovementType.ADJUST, delta, None, actor.id, notes or "stock count")
        logger.info(f"Adjusted product #{product_id} stock by {delta} (now {counted_qty}) by user #{actor.id}")
        return movement

    # ------------------------------------------
    # Private helpers
    # ------------------------------------------

    def _positive(self, quantity) -> Decimal:
        try:
            qty = to_quantity(quantity)
        except ValueError as e:
            raise ValidationError(str(e), field="quantity")
        if qty <= 0:
            raise ValidationError("Quantity must be positive", field="quantity")
        if qty > MAX_QUANTITY:
            raise ValidationError(f"Quantity cannot exceed {MAX_QUANTITY}", field="quantity")
        return qty

    def _increment(self, db: Session, product_id: int, qty: Decimal):
        result = db.execute(
            update(StockLevel)
            .where(StockLevel.product_id == product_id)
            .values(available=StockLevel.available + qty)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise ProductNotFoundError(product_id)

    def _ensure_level(self, db: Session, product_id: int, lock: bool = False) -> StockLevel:
        q = db.query(StockLevel).filter(StockLevel.product_id == product_id)
        if lock:
            q = q.with_for_update()
        level = q.first()
        if level is None:
            if db.query(Product.id).filter(Product.id == product_id).first() is None:
                raise ProductNotFoundError(product_id)
            level = StockLevel(product_id=product_id, available=0)
            db.add(level)
            db.flush()
        return level

    def _record(self, db: Session, product_id: int, movement_type: MovementType, quantity: Decimal,
                reference: Optional[str], actor_id: Optional[int], notes: Optional[str]) -> StockMovement:
        movement = StockMovement(
            product_id=product_id,
            movement_type=movement_type.value,
            quantity=quantity,
            reference=reference,
            notes=notes,
            created_by=actor_id,
        )
        db.add(movement)
        db.flush()
        return movement


# Singleton
stock_ledger = StockLedger()
