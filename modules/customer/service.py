"""
Customer Module - Service
==========================
Customer directory consumed by the billing engine.
"""

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from common.exceptions import CustomerNotFoundError, DuplicateError, ValidationError
from modules.auth.roles import Role, ensure_role
from modules.customer.models import Customer

logger = logging.getLogger("silai.customer")


class CustomerService:

    def customer_exists(self, db: Session, customer_id: int) -> bool:
        return (
            db.query(Customer.id)
            .filter(Customer.id == customer_id, Customer.is_active == True)
            .first()
        ) is not None

    def get_customer(self, db: Session, customer_id: int) -> Customer:
        customer = db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise CustomerNotFoundError(customer_id)
        return customer

    def create_customer(
        self, db: Session, actor, first_name: str,
        last_name: str = "", phone: Optional[str] = None, email: Optional[str] = None,
        address: str = "", city: str = "", state: str = "", pincode: str = "",
    ) -> Customer:
        """Register a customer. Phone and email must be unique when given."""
        ensure_role(actor, Role.MEMBER)

        first_name = (first_name or "").strip()
        if not first_name:
            raise ValidationError("First name is required", field="first_name")

        phone = (phone or "").strip() or None
        email = (email or "").strip().lower() or None

        if phone or email:
            clauses = []
            if phone:
                clauses.append(Customer.phone == phone)
            if email:
                clauses.append(Customer.email == email)
            if db.query(Customer.id).filter(or_(*clauses)).first():
                raise DuplicateError("Customer with this email or phone already exists",
                                     phone=phone, email=email)

        customer = Customer(
            first_name=first_name,
            last_name=(last_name or "").strip() or None,
            phone=phone,
            email=email,
            address=address or None,
            city=city or None,
            state=state or None,
            pincode=pincode or None,
            created_by=actor.id,
        )
        db.add(customer)
        db.flush()
        logger.info(f"Customer #{customer.id} created by user #{actor.id}")
        return customer

    def search(self, db: Session, term: str = "", limit: int = 20) -> List[Customer]:
        q = db.query(Customer).filter(Customer.is_active == True)
        term = (term or "").strip()
        if term:
            like = f"%{term}%"
            q = q.filter(or_(
                Customer.first_name.ilike(like),
                Customer.last_name.ilike(like),
                Customer.phone.ilike(like),
                Customer.email.ilike(like),
            ))
        return q.order_by(Customer.first_name, Customer.id).limit(limit).all()


customer_service = CustomerService()
