"""
Client order schemas for the production and shipping pipeline.
"""

from pydantic import Field, field_validator
from typing import Optional
from enum import Enum
from datetime import date, datetime
from decimal import Decimal

from models.base import BaseSchema, Actor, ListResponse
from models.pricing import Discount
from models.notification import NotificationFlags, NotificationRequest


class OrderStatus(str, Enum):
    """Client order status values."""
    WAITING = "waiting"
    STAGE_1 = "stage_1"
    STAGE_2 = "stage_2"
    STAGE_3 = "stage_3"
    STAGE_4 = "stage_4"
    READY_TO_SHIP = "ready_to_ship"
    SHIPPED = "shipped"
    CANCELLED = "cancelled"


# Forward flow (cancelled sits outside it)
ORDER_FLOW: list[OrderStatus] = [
    OrderStatus.WAITING,
    OrderStatus.STAGE_1,
    OrderStatus.STAGE_2,
    OrderStatus.STAGE_3,
    OrderStatus.STAGE_4,
    OrderStatus.READY_TO_SHIP,
    OrderStatus.SHIPPED,
]

TERMINAL_STATUSES = {OrderStatus.SHIPPED, OrderStatus.CANCELLED}

PRODUCTION_STATUSES = {
    OrderStatus.STAGE_1,
    OrderStatus.STAGE_2,
    OrderStatus.STAGE_3,
    OrderStatus.STAGE_4,
}


# ===================
# ORDER ITEM SCHEMAS
# ===================

class OrderItem(BaseSchema):
    """A label-backed line item with its price snapshot."""

    label_id: str = Field(..., description="Referenced label UUID")
    flavor_name: str = Field(..., description="Flavor name at order time")
    product_type: str = Field(..., description="Product type at order time")
    quantity: int = Field(..., description="Units ordered")
    unit_price: Decimal = Field(..., ge=0, description="Resolved unit price")
    line_total: Decimal = Field(default=Decimal("0"), description="quantity x unit_price")


class OrderItemCreate(BaseSchema):
    """Line item as submitted by a caller. Price comes from the label."""

    label_id: str = Field(..., description="Label UUID")
    quantity: int = Field(..., ge=0, description="Units ordered")


class StatusHistoryEntry(BaseSchema):
    """One entry of an order's status audit trail."""

    status: OrderStatus
    changed_by: Actor
    changed_at: datetime
    notes: Optional[str] = None


# ===================
# CLIENT ORDER
# ===================

class ClientOrder(BaseSchema):
    """
    Private-label order snapshot.

    production_start_date is derived from delivery_date; subtotal,
    discount_amount and total are snapshots written by the pricing engine.
    """

    id: Optional[str] = Field(None, description="Order UUID (None for unsaved drafts)")
    order_number: Optional[str] = Field(None, description="Human-readable number")
    client_id: str = Field(..., description="Client UUID")
    status: OrderStatus = Field(default=OrderStatus.WAITING)
    items: list[OrderItem] = Field(default_factory=list)
    subtotal: Decimal = Field(default=Decimal("0"))
    discount: Discount = Field(default_factory=Discount)
    discount_amount: Decimal = Field(default=Decimal("0"))
    total: Decimal = Field(default=Decimal("0"))
    delivery_date: date = Field(..., description="Promised delivery date")
    production_start_date: Optional[date] = Field(None, description="Derived production start")
    ship_asap: bool = Field(default=False)
    is_recurring: bool = Field(default=False)
    parent_order: Optional[str] = Field(None, description="Template order for recurring drafts")
    generation_date: Optional[date] = Field(
        None,
        description="Recurring period this draft was generated for"
    )
    notification_flags: NotificationFlags = Field(default_factory=NotificationFlags)
    actual_ship_date: Optional[datetime] = None
    tracking_number: Optional[str] = Field(None, max_length=100)
    note: Optional[str] = Field(None, max_length=1000)
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)
    created_by: Optional[Actor] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ===================
# REQUEST SCHEMAS
# ===================

class ClientOrderCreate(BaseSchema):
    """
    Create a new client order.

    Required: client_id, delivery_date, items, actor
    """

    client_id: str
    delivery_date: date
    items: list[OrderItemCreate] = Field(..., min_length=1)
    discount: Discount = Field(default_factory=Discount)
    note: Optional[str] = Field(None, max_length=1000)
    ship_asap: bool = False
    actor: Actor

    @field_validator("note")
    @classmethod
    def blank_note_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class OrderEdit(BaseSchema):
    """
    Edit a waiting order.

    All fields optional - only provided fields are changed.
    """

    items: Optional[list[OrderItem]] = None
    discount: Optional[Discount] = None
    delivery_date: Optional[date] = None
    note: Optional[str] = Field(None, max_length=1000)
    ship_asap: Optional[bool] = None


class ClientOrderUpdate(BaseSchema):
    """Edit request from the API. Items reference labels by id."""

    items: Optional[list[OrderItemCreate]] = Field(None, min_length=1)
    discount: Optional[Discount] = None
    delivery_date: Optional[date] = None
    note: Optional[str] = Field(None, max_length=1000)
    ship_asap: Optional[bool] = None


class StatusAdvance(BaseSchema):
    """Move an order one status forward."""

    actor: Actor
    tracking_number: Optional[str] = Field(None, max_length=100)


class OrderCancel(BaseSchema):
    """Cancel an order."""

    actor: Actor
    reason: Optional[str] = Field(None, max_length=1000)


class ShipAsapUpdate(BaseSchema):
    """Toggle the ship ASAP flag."""

    ship_asap: bool


# ===================
# RESULT SCHEMAS
# ===================

class TransitionResult(BaseSchema):
    """Updated order plus the notifications the caller should dispatch."""

    order: ClientOrder
    notification_requests: list[NotificationRequest] = Field(default_factory=list)


class ClientOrderListResponse(ListResponse):
    """List of client orders with pagination."""

    data: list[ClientOrder]


class OrderQuoteRequest(BaseSchema):
    """Totals for a prospective order."""

    items: list[OrderItem] = Field(..., min_length=1)
    discount: Discount = Field(default_factory=Discount)
