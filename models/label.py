"""
Label schemas for the 7-stage design approval pipeline.
"""

from pydantic import Field
from typing import Optional
from enum import Enum
from datetime import datetime
from decimal import Decimal

from models.base import BaseSchema, Actor, ListResponse


class LabelStage(str, Enum):
    """Label approval stages, in pipeline order."""
    DESIGN_IN_PROGRESS = "design_in_progress"
    AWAITING_STORE_APPROVAL = "awaiting_store_approval"
    STORE_APPROVED = "store_approved"
    SUBMITTED_TO_OLCC = "submitted_to_olcc"
    OLCC_APPROVED = "olcc_approved"
    PRINT_ORDER_SUBMITTED = "print_order_submitted"
    READY_FOR_PRODUCTION = "ready_for_production"


# Pipeline order (index = position)
LABEL_STAGES: list[LabelStage] = list(LabelStage)

STAGE_DISPLAY_NAMES = {
    LabelStage.DESIGN_IN_PROGRESS: "Design in Progress",
    LabelStage.AWAITING_STORE_APPROVAL: "Awaiting Store Approval",
    LabelStage.STORE_APPROVED: "Store Approved",
    LabelStage.SUBMITTED_TO_OLCC: "Submitted to OLCC",
    LabelStage.OLCC_APPROVED: "OLCC Approved",
    LabelStage.PRINT_ORDER_SUBMITTED: "Print Order Submitted",
    LabelStage.READY_FOR_PRODUCTION: "Ready for Production",
}


class StageHistoryEntry(BaseSchema):
    """One entry of a label's audit trail."""

    stage: LabelStage = Field(..., description="Stage entered")
    changed_by: Actor = Field(..., description="Who made the change")
    changed_at: datetime = Field(..., description="When the change happened")
    notes: Optional[str] = Field(None, max_length=1000, description="Optional notes")
    non_sequential: bool = Field(
        default=False,
        description="True for administrative jumps"
    )


class Label(BaseSchema):
    """A flavor/product-type artwork design."""

    id: Optional[str] = Field(None, description="Label UUID")
    client_id: str = Field(..., description="Owning client UUID")
    flavor_name: str = Field(..., min_length=1, max_length=100, description="Flavor name")
    product_type: str = Field(..., min_length=1, max_length=100, description="Product type")
    current_stage: LabelStage = Field(
        default=LabelStage.DESIGN_IN_PROGRESS,
        description="Current pipeline stage"
    )
    stage_history: list[StageHistoryEntry] = Field(
        default_factory=list,
        description="Append-only stage audit trail"
    )
    label_images: list[str] = Field(
        default_factory=list,
        description="Image URLs (opaque)"
    )
    unit_price: Optional[Decimal] = Field(
        None,
        ge=0,
        description="Per-unit price used when ordering this label"
    )
    created_at: Optional[datetime] = Field(None, description="Created timestamp")
    updated_at: Optional[datetime] = Field(None, description="Updated timestamp")


# ===================
# REQUEST SCHEMAS
# ===================

class LabelCreate(BaseSchema):
    """Create a new label. Starts at design_in_progress."""

    client_id: str = Field(..., description="Owning client UUID")
    flavor_name: str = Field(..., min_length=1, max_length=100)
    product_type: str = Field(..., min_length=1, max_length=100)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    label_images: list[str] = Field(default_factory=list)
    actor: Actor = Field(..., description="Who created the label")


class LabelStageAction(BaseSchema):
    """Advance or revert a label by one stage."""

    actor: Actor
    notes: Optional[str] = Field(None, max_length=1000)


class LabelStageUpdate(LabelStageAction):
    """Administrative jump to a stage."""

    stage: LabelStage


class BulkStageUpdate(LabelStageUpdate):
    """Move every label of a client to a stage."""

    client_id: str


class LabelListResponse(ListResponse):
    """List of labels with pagination."""

    data: list[Label]
