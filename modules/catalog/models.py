"""
Catalog Module - Models
========================
Product: a sellable catalog entry (ready-made garment, fabric by the metre,
or a tailoring service). Available quantity lives in the inventory module's
stock ledger, not here.
"""

import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, Text, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from common.helpers import now_utc


class ProductType(str, enum.Enum):
    READY_MADE = "ReadyMade"
    FABRIC = "Fabric"
    CUSTOM = "Custom"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    sku = Column(String(64), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, default=ProductType.READY_MADE, nullable=False)
    unit = Column(String(16), default="pcs", nullable=False)

    selling_price = Column(Numeric(12, 2), nullable=False)
    cost_price = Column(Numeric(12, 2), nullable=True)

    is_tailoring = Column(Boolean, default=False, server_default="false", nullable=False)
    tailoring_price = Column(Numeric(12, 2), nullable=True)

    min_stock = Column(Numeric(12, 3), default=0, nullable=False)
    is_active = Column(Boolean, default=True, server_default="true", nullable=False)

    created_at = Column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)

    stock = relationship("StockLevel", uselist=False, back_populates="product")

    __table_args__ = (
        CheckConstraint("selling_price >= 0", name="ck_products_price_nonneg"),
    )

    @property
    def available_quantity(self):
        return self.stock.available if self.stock else 0

    def __repr__(self):
        return f"<Product {self.sku} {self.name}>"
