from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import FeeStructureType


class FeeStructureCreate(BaseModel):
    fee_name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., ge=0)
    fee_type: FeeStructureType = FeeStructureType.CUSTOM
    class_group_id: Optional[UUID] = None
    student_type_id: Optional[UUID] = None


class FeeStructureUpdate(BaseModel):
    fee_name: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, ge=0)
    fee_type: Optional[FeeStructureType] = None
    class_group_id: Optional[UUID] = None
    student_type_id: Optional[UUID] = None


class FeeStructureResponse(BaseModel):
    id: UUID
    fee_name: str
    amount: Decimal
    fee_type: str
    class_group_id: Optional[UUID] = None
    class_group_name: Optional[str] = None
    student_type_id: Optional[UUID] = None
    student_type_name: Optional[str] = None
    created_at: datetime
