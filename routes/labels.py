"""
Label API routes: listing, creation and the stage pipeline.
"""

from fastapi import APIRouter, Query
from typing import Optional
import structlog

from models.label import (
    Label,
    LabelCreate,
    LabelStage,
    LabelStageAction,
    LabelStageUpdate,
    BulkStageUpdate,
    LabelListResponse,
)
from models.base import Actor
from services.label_service import get_label_service
from routes.errors import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/labels", tags=["Labels"])


@router.get("", response_model=LabelListResponse)
async def list_labels(
    client_id: Optional[str] = Query(None, description="Filter by client"),
    stage: Optional[LabelStage] = Query(None, description="Filter by stage"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page")
):
    """List labels with optional filters."""
    try:
        service = get_label_service()
        labels, total = service.get_all(
            client_id=client_id,
            stage=stage,
            page=page,
            page_size=page_size
        )
        return LabelListResponse(
            data=labels,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=LabelListResponse.total_pages_for(total, page_size)
        )

    except Exception as e:
        return handle_error(e)


@router.get("/{label_id}", response_model=Label)
async def get_label(label_id: str):
    """
    Get a single label with its stage history.

    Raises:
        404: Label not found
    """
    try:
        return get_label_service().get_by_id(label_id)
    except Exception as e:
        return handle_error(e)


@router.post("", response_model=Label, status_code=201)
async def create_label(data: LabelCreate):
    """Create a label at design_in_progress."""
    try:
        return get_label_service().create(data)
    except Exception as e:
        return handle_error(e)


@router.post("/{label_id}/advance", response_model=Label)
async def advance_label(label_id: str, data: LabelStageAction):
    """
    Move a label one stage forward.

    Raises:
        404: Label not found
        409: Label already ready for production
    """
    try:
        return get_label_service().advance(label_id, data.actor, data.notes)
    except Exception as e:
        return handle_error(e)


@router.post("/{label_id}/revert", response_model=Label)
async def revert_label(label_id: str, data: LabelStageAction):
    """
    Move a label one stage back.

    Raises:
        404: Label not found
        409: Label already at the first stage
    """
    try:
        return get_label_service().revert(label_id, data.actor, data.notes)
    except Exception as e:
        return handle_error(e)


@router.patch("/bulk/stage", response_model=list[Label])
async def bulk_set_label_stage(data: BulkStageUpdate):
    """Move every label of a client to one stage."""
    try:
        return get_label_service().bulk_set_stage(
            data.client_id, data.stage, data.actor, data.notes
        )
    except Exception as e:
        return handle_error(e)


@router.patch("/{label_id}/stage", response_model=Label)
async def set_label_stage(label_id: str, data: LabelStageUpdate):
    """Administrative jump to any stage (recorded as non-sequential)."""
    try:
        return get_label_service().set_stage(label_id, data.stage, data.actor, data.notes)
    except Exception as e:
        return handle_error(e)


@router.post("/{label_id}/store-approval", response_model=Label)
async def approve_label_by_store(label_id: str, actor: Actor):
    """
    Store approval of a label awaiting approval.

    Approving an already approved label returns it unchanged.

    Raises:
        409: Label not yet sent for approval
    """
    try:
        return get_label_service().approve_by_store(label_id, actor)
    except Exception as e:
        return handle_error(e)
