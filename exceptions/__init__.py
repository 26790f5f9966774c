"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Pricing
    InvalidQuantityError,
    UnknownPricingStructureError,
    UnknownPriceSelectorError,
    InvalidDiscountRangeError,

    # State machines
    InvalidTransitionError,
    TerminalStateError,
    OrderLockedError,
    LabelNotReadyError,

    # Not found
    LabelNotFoundError,
    ClientOrderNotFoundError,
    ClientNotFoundError,

    # Integrations
    MailerError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Pricing
    "InvalidQuantityError",
    "UnknownPricingStructureError",
    "UnknownPriceSelectorError",
    "InvalidDiscountRangeError",

    # State machines
    "InvalidTransitionError",
    "TerminalStateError",
    "OrderLockedError",
    "LabelNotReadyError",

    # Not found
    "LabelNotFoundError",
    "ClientOrderNotFoundError",
    "ClientNotFoundError",

    # Integrations
    "MailerError",
]
