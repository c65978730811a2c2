from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class NamedItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class NamedItemResponse(BaseModel):
    """Shape shared by student types, class groups and departments."""

    id: UUID
    name: str
    created_at: datetime

    class Config:
        from_attributes = True
