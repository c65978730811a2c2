from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

YEAR_NAME_PATTERN = r"^\d{4}-\d{4}$"


class AcademicYearCreate(BaseModel):
    """Create academic year. year_name must be unique."""

    year_name: str = Field(..., min_length=9, max_length=20, description="e.g. 2024-2025")
    is_active: bool = Field(
        False,
        description="Mark as the active year. Other years are deactivated when this is true.",
    )


class AcademicYearUpdate(BaseModel):
    year_name: Optional[str] = Field(None, min_length=9, max_length=20)
    is_active: Optional[bool] = None


class AcademicYearResponse(BaseModel):
    id: UUID
    year_name: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
