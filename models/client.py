"""
Private label client schemas and recurring order schedules.
"""

from pydantic import Field, model_validator
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema, ListResponse
from models.client_order import ClientOrder


class RecurringInterval(str, Enum):
    """How often recurring orders are generated."""
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"


INTERVAL_MONTHS = {
    RecurringInterval.MONTHLY: 1,
    RecurringInterval.BIMONTHLY: 2,
    RecurringInterval.QUARTERLY: 3,
}


class ClientStatus(str, Enum):
    """Client lifecycle."""
    ONBOARDING = "onboarding"
    ACTIVE = "active"


class RecurringSchedule(BaseSchema):
    """Client-level recurring order configuration."""

    enabled: bool = False
    interval: Optional[RecurringInterval] = None
    last_generated_at: Optional[datetime] = Field(
        None,
        description="Period date of the last generated draft"
    )
    started_at: Optional[datetime] = Field(
        None,
        description="Cadence anchor before the first generation"
    )

    @model_validator(mode="after")
    def interval_required_when_enabled(self) -> "RecurringSchedule":
        if self.enabled and self.interval is None:
            raise ValueError("interval is required when the schedule is enabled")
        return self


class PrivateLabelClient(BaseSchema):
    """A store buying private-label products."""

    id: str = Field(..., description="Client UUID")
    store_name: str = Field(..., description="Store display name")
    status: ClientStatus = Field(default=ClientStatus.ONBOARDING)
    contact_email: Optional[str] = Field(None, description="Where order emails go")
    assigned_rep_id: Optional[str] = None
    recurring_schedule: RecurringSchedule = Field(default_factory=RecurringSchedule)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ===================
# REQUEST / RESULT SCHEMAS
# ===================

class ScheduleUpdate(BaseSchema):
    """Enable, disable or change a recurring schedule."""

    enabled: bool
    interval: Optional[RecurringInterval] = None

    @model_validator(mode="after")
    def interval_required_when_enabled(self) -> "ScheduleUpdate":
        if self.enabled and self.interval is None:
            raise ValueError("interval is required when the schedule is enabled")
        return self


class TickResult(BaseSchema):
    """Outcome of one recurring scheduler tick."""

    new_order_draft: Optional[ClientOrder] = None
    updated_schedule: RecurringSchedule
    skipped_reason: Optional[str] = None


class ClientListResponse(ListResponse):
    """List of clients with pagination."""

    data: list[PrivateLabelClient]
