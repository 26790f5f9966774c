"""
Order lifecycle notification schemas.
"""

from pydantic import Field
from typing import Any, Optional
from enum import Enum

from models.base import BaseSchema


class NotificationKind(str, Enum):
    """Lifecycle emails sent at most once per order."""
    SEVEN_DAY_REMINDER = "seven_day_reminder"
    READY_TO_SHIP = "ready_to_ship"
    SHIPPED = "shipped"


class NotificationFlags(BaseSchema):
    """Which lifecycle emails were already decided for an order."""

    seven_day_reminder: bool = False
    ready_to_ship: bool = False
    shipped: bool = False


class NotificationRequest(BaseSchema):
    """A request for the mailer. Produced by the engine, dispatched by the caller."""

    kind: NotificationKind
    order_id: Optional[str] = None
    client_id: str
    payload: dict[str, Any] = Field(default_factory=dict)
