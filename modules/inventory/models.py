"""
Inventory Module - Models
==========================
StockLevel: per-product available-quantity counter (the stock ledger).
StockMovement: append-only audit trail of every change to a counter.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Numeric, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from common.helpers import now_utc


class MovementType(str, enum.Enum):
    IN = "IN"          # restock / stock released by a cancelled or edited bill
    OUT = "OUT"        # reserved by a bill
    ADJUST = "ADJUST"  # manual correction after a stock count


# ==========================================
# Stock Level
# ==========================================

class StockLevel(Base):
    __tablename__ = "stock_levels"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    available = Column(Numeric(12, 3), default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=True)

    product = relationship("Product", back_populates="stock")

    __table_args__ = (
        CheckConstraint("available >= 0", name="ck_stock_levels_available_nonneg"),
    )

    def __repr__(self):
        return f"<StockLevel product={self.product_id} available={self.available}>"


# ==========================================
# Stock Movement
# ==========================================

class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    movement_type = Column(String, nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)      # signed: negative leaves the shelf
    reference = Column(String(64), nullable=True, index=True)  # bill number, PO number...
    notes = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)

    product = relationship("Product")

    def __repr__(self):
        return f"<StockMovement {self.movement_type} {self.quantity} product={self.product_id}>"
