"""
Client order API routes.

Status moves one step at a time (POST /{id}/advance); edits are only
accepted while the order is waiting.
"""

from fastapi import APIRouter, Query
from typing import Optional
import structlog

from models.base import Actor
from models.client_order import (
    ClientOrder,
    ClientOrderCreate,
    ClientOrderUpdate,
    ClientOrderListResponse,
    OrderCancel,
    OrderStatus,
    ShipAsapUpdate,
    StatusAdvance,
)
from models.notification import NotificationKind
from services.client_order_service import get_client_order_service
from routes.errors import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/client-orders", tags=["Client Orders"])


@router.get("", response_model=ClientOrderListResponse)
async def list_client_orders(
    client_id: Optional[str] = Query(None, description="Filter by client"),
    status: Optional[OrderStatus] = Query(None, description="Filter by status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page")
):
    """List client orders, earliest delivery first."""
    try:
        service = get_client_order_service()
        orders, total = service.get_all(
            client_id=client_id,
            status=status,
            page=page,
            page_size=page_size
        )
        return ClientOrderListResponse(
            data=orders,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=ClientOrderListResponse.total_pages_for(total, page_size)
        )

    except Exception as e:
        return handle_error(e)


@router.get("/{order_id}", response_model=ClientOrder)
async def get_client_order(order_id: str):
    """
    Get a single client order.

    Raises:
        404: Order not found
    """
    try:
        return get_client_order_service().get_by_id(order_id)
    except Exception as e:
        return handle_error(e)


@router.post("", response_model=ClientOrder, status_code=201)
async def create_client_order(data: ClientOrderCreate):
    """
    Create a waiting order.

    Raises:
        404: Label not found
        422: Label not ready, bad quantity or discount
    """
    try:
        return get_client_order_service().create(data)
    except Exception as e:
        return handle_error(e)


@router.patch("/{order_id}", response_model=ClientOrder)
async def update_client_order(order_id: str, data: ClientOrderUpdate):
    """
    Edit items, discount, delivery date or note.

    Raises:
        404: Order not found
        409: Order is no longer waiting
    """
    try:
        return get_client_order_service().update(order_id, data)
    except Exception as e:
        return handle_error(e)


@router.post("/{order_id}/advance", response_model=ClientOrder)
async def advance_client_order(order_id: str, data: StatusAdvance):
    """
    Move an order one status forward.

    waiting → stage_1 is the push to production.

    Raises:
        404: Order not found
        409: Order shipped or cancelled
        422: Labels not ready (entering ready_to_ship)
    """
    try:
        return get_client_order_service().advance(order_id, data)
    except Exception as e:
        return handle_error(e)


@router.post("/{order_id}/cancel", response_model=ClientOrder)
async def cancel_client_order(order_id: str, data: OrderCancel):
    """
    Cancel an order. Orders are never deleted.

    Raises:
        404: Order not found
        409: Order already shipped
    """
    try:
        return get_client_order_service().cancel(order_id, data)
    except Exception as e:
        return handle_error(e)


@router.patch("/{order_id}/ship-asap", response_model=ClientOrder)
async def set_ship_asap(order_id: str, data: ShipAsapUpdate):
    """Toggle ship ASAP."""
    try:
        return get_client_order_service().set_ship_asap(order_id, data.ship_asap)
    except Exception as e:
        return handle_error(e)


@router.post("/{order_id}/notifications/{kind}/reset", response_model=ClientOrder)
async def reset_order_notification(order_id: str, kind: NotificationKind, actor: Actor):
    """Admin override: allow a lifecycle email to be sent again."""
    try:
        return get_client_order_service().reset_notification(order_id, kind, actor)
    except Exception as e:
        return handle_error(e)
