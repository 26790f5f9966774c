"""
Private label client API routes.
"""

from fastapi import APIRouter, Query
from typing import Optional
import structlog

from models.client import (
    ClientListResponse,
    ClientStatus,
    PrivateLabelClient,
    ScheduleUpdate,
)
from services.client_service import get_client_service
from routes.errors import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/clients", tags=["Clients"])


@router.get("", response_model=ClientListResponse)
async def list_clients(
    status: Optional[ClientStatus] = Query(None, description="Filter by status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page")
):
    """List private label clients."""
    try:
        clients, total = get_client_service().get_all(
            status=status,
            page=page,
            page_size=page_size
        )
        return ClientListResponse(
            data=clients,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=ClientListResponse.total_pages_for(total, page_size)
        )

    except Exception as e:
        return handle_error(e)


@router.get("/{client_id}", response_model=PrivateLabelClient)
async def get_client(client_id: str):
    """
    Get a single client.

    Raises:
        404: Client not found
    """
    try:
        return get_client_service().get_by_id(client_id)
    except Exception as e:
        return handle_error(e)


@router.patch("/{client_id}/schedule", response_model=PrivateLabelClient)
async def update_client_schedule(client_id: str, data: ScheduleUpdate):
    """
    Enable, disable or change the recurring order schedule.

    Raises:
        404: Client not found
        422: Enabled without an interval
    """
    try:
        return get_client_service().update_schedule(client_id, data)
    except Exception as e:
        return handle_error(e)
