"""Student enrollment schemas, including the embedded fee_details snapshot."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class FeeItem(BaseModel):
    """One named charge for one studying year inside a student's fee snapshot."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., ge=0)
    concession: Decimal = Field(Decimal("0"), ge=0)

    @property
    def payable(self) -> Decimal:
        return self.amount - self.concession


FeeDetails = Dict[str, List[FeeItem]]


class StudentCreate(BaseModel):
    roll_number: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    class_name: str = Field(..., min_length=1, max_length=100)
    section: str = Field(..., min_length=1, max_length=50)
    studying_year: str = Field(..., min_length=1, max_length=50, description="e.g. 1st Year")
    student_type_id: Optional[UUID] = None
    academic_year_id: Optional[UUID] = None
    caste: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    fee_details: FeeDetails = Field(default_factory=dict)


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    class_name: Optional[str] = Field(None, min_length=1, max_length=100)
    section: Optional[str] = Field(None, min_length=1, max_length=50)
    studying_year: Optional[str] = Field(None, min_length=1, max_length=50)
    student_type_id: Optional[UUID] = None
    academic_year_id: Optional[UUID] = None
    caste: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    fee_details: Optional[FeeDetails] = None
    expected_version: Optional[int] = Field(
        None, description="Reject the update if the record changed since this version was read"
    )


class StudentResponse(BaseModel):
    id: UUID
    roll_number: str
    name: str
    class_name: str
    section: str
    studying_year: str
    student_type_id: Optional[UUID] = None
    student_type_name: Optional[str] = None
    academic_year_id: Optional[UUID] = None
    academic_year_name: Optional[str] = None
    academic_year_is_active: bool = False
    caste: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    fee_details: FeeDetails
    version: int
    created_at: datetime


class StudentPaginatedResponse(BaseModel):
    items: List[StudentResponse]
    total: int
    limit: int
    offset: int
