"""
Bill Module - Models
=====================
Bill: one customer transaction with a full amount snapshot.
BillItem: one priced line, owned by exactly one bill.
Payment: append-only settlement event against a bill.
BillSequence: per-day counter row backing bill numbers.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, Text, Date,
    ForeignKey, DateTime, JSON, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from common.helpers import now_utc


class BillStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    UPI = "UPI"
    CARD = "CARD"
    NETBANKING = "NETBANKING"


class Bill(Base):
    __tablename__ = "bills"

    id = Column(Integer, primary_key=True, index=True)
    bill_number = Column(String(32), unique=True, nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True)

    status = Column(String, default=BillStatus.ACTIVE.value, nullable=False, index=True)
    payment_status = Column(String, default=PaymentStatus.PENDING.value, nullable=False, index=True)
    payment_method = Column(String, nullable=True)   # method announced at the counter, informational

    # Amount snapshot (always recomputed together)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    final_amount = Column(Numeric(12, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    delivery_date = Column(Date, nullable=True)       # tailoring pickup date

    # Cancellation
    cancel_reason = Column(String, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=True)

    # Relationships
    customer = relationship("Customer")
    creator = relationship("User", foreign_keys=[created_by])
    items = relationship("BillItem", back_populates="bill", cascade="all, delete-orphan",
                         order_by="BillItem.position")
    payments = relationship("Payment", back_populates="bill", order_by="Payment.id")

    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="ck_bills_subtotal_nonneg"),
        CheckConstraint("discount_amount >= 0", name="ck_bills_discount_nonneg"),
        CheckConstraint("tax_amount >= 0", name="ck_bills_tax_nonneg"),
        CheckConstraint("final_amount >= 0", name="ck_bills_final_nonneg"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == BillStatus.CANCELLED.value

    def __repr__(self):
        return f"<Bill {self.bill_number} ({self.status}/{self.payment_status})>"


class BillItem(Base):
    __tablename__ = "bill_items"

    id = Column(Integer, primary_key=True)
    bill_id = Column(Integer, ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)  # insertion order within the bill
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=True, index=True)

    custom_name = Column(String, nullable=True)
    description = Column(String, nullable=True)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit = Column(String(16), nullable=False, default="pcs")
    unit_price = Column(Numeric(12, 2), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)    # unit_price x quantity, kept for audit

    is_tailored = Column(Boolean, default=False, nullable=False)
    tailoring_charge = Column(Numeric(12, 2), default=0, nullable=False)
    measurements = Column(JSON, nullable=True)             # opaque, passed through verbatim
    notes = Column(String, nullable=True)

    bill = relationship("Bill", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_bill_items_qty_pos"),
        CheckConstraint("unit_price >= 0", name="ck_bill_items_price_nonneg"),
        CheckConstraint("tailoring_charge >= 0", name="ck_bill_items_tailoring_nonneg"),
    )

    @property
    def display_name(self) -> str:
        if self.product is not None:
            return self.product.name
        return self.custom_name or self.description or "Custom Item"

    def __repr__(self):
        return f"<BillItem bill={self.bill_id} qty={self.quantity} total={self.line_total}>"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    bill_id = Column(Integer, ForeignKey("bills.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(String, nullable=False)
    reference = Column(String, nullable=True)   # UPI txn id, card slip no.
    notes = Column(String, nullable=True)
    recorded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    recorded_at = Column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False, index=True)

    bill = relationship("Bill", back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_pos"),
    )

    def __repr__(self):
        return f"<Payment bill={self.bill_id} {self.method} {self.amount}>"


class BillSequence(Base):
    __tablename__ = "bill_sequences"

    day = Column(Date, primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
