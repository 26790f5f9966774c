"""
Base schemas shared by all models.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class Actor(BaseSchema):
    """Who performed a change. Recorded on every history entry."""

    id: str = Field(..., description="User UUID")
    name: str = Field(..., description="Display name")
    email: Optional[str] = Field(None, description="Email address")
    user_type: Optional[str] = Field(
        None,
        pattern="^(admin|rep|store|system)$",
        description="admin, rep, store, or system"
    )


# Used by scheduled jobs
SYSTEM_ACTOR = Actor(id="system", name="System", user_type="system")


class ListResponse(BaseSchema):
    """Standard paginated response wrapper."""
    total: int
    page: int
    page_size: int
    total_pages: int

    @staticmethod
    def total_pages_for(total: int, page_size: int) -> int:
        return (total + page_size - 1) // page_size  # Ceiling division
