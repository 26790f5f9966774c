"""
Custom exception classes for the application.

Every error carries a stable code so API callers can branch on it.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "LABEL_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with the current state of a resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# PRICING ERRORS
# ===================

class InvalidQuantityError(ValidationError):
    """Quantity below zero."""

    def __init__(self, quantity: Any, selector: Optional[str] = None):
        super().__init__(
            code="INVALID_QUANTITY",
            message="Quantity must be zero or greater",
            details={"provided": quantity, "selector": selector}
        )


class UnknownPricingStructureError(ValidationError):
    """Pricing structure tag is not recognized."""

    def __init__(self, pricing_type: Any):
        super().__init__(
            code="UNKNOWN_PRICING_STRUCTURE",
            message=f"Unknown pricing structure: {pricing_type}",
            details={"provided": pricing_type, "valid": ["simple", "multi_type", "variants"]}
        )


class UnknownPriceSelectorError(ValidationError):
    """Sub-type or variant label not present in the pricing structure."""

    def __init__(self, selector: Optional[str], available: list[str]):
        super().__init__(
            code="UNKNOWN_PRICE_SELECTOR",
            message=f"No price defined for '{selector}'",
            details={"provided": selector, "available": available}
        )


class InvalidDiscountRangeError(ValidationError):
    """Discount value outside its allowed range."""

    def __init__(self, discount_type: str, value: Any):
        allowed = "[0, 100]" if discount_type == "percentage" else ">= 0"
        super().__init__(
            code="INVALID_DISCOUNT_RANGE",
            message=f"{discount_type} discount must be {allowed}",
            details={"type": discount_type, "provided": str(value), "allowed": allowed}
        )


# ===================
# STATE MACHINE ERRORS
# ===================

class InvalidTransitionError(ConflictError):
    """Stage or status transition not allowed from the current position."""

    def __init__(self, current: str, requested: str, reason: str):
        super().__init__(
            code="INVALID_TRANSITION",
            message=f"Cannot {requested} from {current}",
            details={
                "current": current,
                "requested": requested,
                "reason": reason
            }
        )


class TerminalStateError(ConflictError):
    """Transition attempted on a shipped or cancelled order."""

    def __init__(self, order_id: Optional[str], status: str):
        super().__init__(
            code="TERMINAL_STATE",
            message=f"Order is {status} and cannot change status",
            details={"order_id": order_id, "status": status}
        )


class OrderLockedError(ConflictError):
    """Edit attempted on an order that already left the waiting status."""

    def __init__(self, order_id: Optional[str], status: str, fields: Optional[list[str]] = None):
        super().__init__(
            code="ORDER_LOCKED",
            message="Order can only be edited while waiting",
            details={"order_id": order_id, "status": status, "fields": fields or []}
        )


class LabelNotReadyError(ValidationError):
    """Order item references a label that is not ready for production."""

    def __init__(self, label_ids: list[str]):
        super().__init__(
            code="LABEL_NOT_READY",
            message="All labels must be ready for production",
            details={"label_ids": label_ids}
        )


# ===================
# NOT FOUND ERRORS
# ===================

class LabelNotFoundError(NotFoundError):
    """Label not found."""

    def __init__(self, label_id: str):
        super().__init__(
            resource="Label",
            identifier=label_id,
            code="LABEL_NOT_FOUND"
        )


class ClientOrderNotFoundError(NotFoundError):
    """Client order not found."""

    def __init__(self, order_id: str):
        super().__init__(
            resource="Client order",
            identifier=order_id,
            code="CLIENT_ORDER_NOT_FOUND"
        )


class ClientNotFoundError(NotFoundError):
    """Private label client not found."""

    def __init__(self, client_id: str):
        super().__init__(
            resource="Client",
            identifier=client_id,
            code="CLIENT_NOT_FOUND"
        )


# ===================
# INTEGRATION ERRORS
# ===================

class MailerError(ExternalServiceError):
    """Transactional email API error."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="mailer",
            message=message,
            details=details
        )
