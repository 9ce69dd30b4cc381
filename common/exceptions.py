"""
Silai POS - Custom Exceptions
==============================
Business-level exceptions that can be caught and converted to HTTP responses.
Every error carries a readable message plus a structured ``detail`` dict
(which product, which bill, which field) for precise client messages.
"""

from typing import Any, Dict, Optional

from fastapi import status


class SilaiError(Exception):
    """Base exception for all business logic errors."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"

    def __init__(self, message: str = "Something went wrong.", **detail: Any):
        self.message = message
        self.detail: Dict[str, Any] = detail
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.code, "detail": self.detail}


# ==========================================
# Validation
# ==========================================

class ValidationError(SilaiError):
    """Caller-supplied data violates an invariant. Never retried."""
    code = "validation_error"


class InvalidItemError(ValidationError):
    code = "invalid_item"

    def __init__(self, field: str, reason: str, index: Optional[int] = None):
        where = f"item #{index + 1} " if index is not None else ""
        super().__init__(f"Invalid {where}{field}: {reason}", field=field, reason=reason, index=index)


class InvalidPaymentError(ValidationError):
    code = "invalid_payment"

    def __init__(self, field: str, reason: str):
        super().__init__(f"Invalid payment {field}: {reason}", field=field, reason=reason)


class InvalidDateRangeError(ValidationError):
    code = "invalid_date_range"


class DuplicateError(ValidationError):
    """Raised for unique constraint violations at the business level."""
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate"


# ==========================================
# Conflict
# ==========================================

class ConflictError(SilaiError):
    """A legitimate concurrent state prevented the operation."""
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class InsufficientStockError(ConflictError):
    code = "insufficient_stock"

    def __init__(self, product_id: int, requested, available, product_name: str = ""):
        label = product_name or f"product #{product_id}"
        super().__init__(
            f"Not enough stock for {label}: requested {requested}, only {available} left",
            product_id=product_id,
            product_name=product_name,
            requested=str(requested),
            available=str(available),
        )


class AlreadyCancelledError(ConflictError):
    code = "already_cancelled"

    def __init__(self, bill_id: int, bill_number: str = ""):
        super().__init__(
            f"Bill {bill_number or bill_id} is already cancelled",
            bill_id=bill_id,
            bill_number=bill_number,
        )


class BillNotEditableError(ConflictError):
    code = "bill_not_editable"

    def __init__(self, bill_id: int, reason: str, bill_number: str = ""):
        super().__init__(
            f"Bill {bill_number or bill_id} cannot be modified: {reason}",
            bill_id=bill_id,
            bill_number=bill_number,
            reason=reason,
        )


# ==========================================
# Not found
# ==========================================

class NotFoundError(SilaiError):
    """Raised when a requested resource doesn't exist."""
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class BillNotFoundError(NotFoundError):
    code = "bill_not_found"

    def __init__(self, bill_id):
        super().__init__(f"Bill {bill_id} not found", bill_id=bill_id)


class CustomerNotFoundError(NotFoundError):
    code = "customer_not_found"

    def __init__(self, customer_id):
        super().__init__(f"Customer {customer_id} not found", customer_id=customer_id)


class ProductNotFoundError(NotFoundError):
    code = "product_not_found"

    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found", product_id=product_id)


# ==========================================
# Auth
# ==========================================

class AuthorizationError(SilaiError):
    """Raised when the acting user lacks the required role."""
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"

    def __init__(self, required_role: str, actual_role: Optional[str] = None):
        super().__init__(
            f"This action requires the '{required_role}' role",
            required_role=required_role,
            actual_role=actual_role,
        )
