"""
Customer Module - Models
=========================
Customer: a walk-in or regular shop customer that bills are raised against.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from config.database import Base
from common.helpers import now_utc


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=True)
    phone = Column(String(20), unique=True, index=True, nullable=True)
    email = Column(String, unique=True, index=True, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    pincode = Column(String(10), nullable=True)
    is_active = Column(Boolean, default=True, server_default="true", nullable=False)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)

    @property
    def full_name(self) -> str:
        parts = [self.first_name or "", self.last_name or ""]
        return " ".join(p for p in parts if p).strip() or "Walk-in Customer"

    def to_snapshot(self) -> dict:
        """Customer block printed on invoices."""
        return {
            "id": self.id,
            "name": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
        }

    def __repr__(self):
        return f"<Customer #{self.id} {self.full_name}>"
