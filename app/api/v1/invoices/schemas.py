from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.schemas import SkippedRow


class InvoiceGenerateRequest(BaseModel):
    fee_structure_id: UUID
    due_date: date
    class_name: str = Field(..., min_length=1, alias="class")
    section: str = Field(..., min_length=1)
    student_type: Union[UUID, str] = Field("all", description='Student type id, or "all"')
    penalty_amount_per_day: Decimal = Field(Decimal("0"))
    academic_year_id: Optional[UUID] = None

    class Config:
        populate_by_name = True


class InvoiceBatchCreated(BaseModel):
    batch_id: UUID
    batch_description: str
    count: int


class BulkInvoiceBatch(InvoiceBatchCreated):
    row: int


class BulkInvoiceResult(BaseModel):
    total_rows: int
    created: int
    batches: List[BulkInvoiceBatch]
    skipped: List[SkippedRow]


class InvoiceItemResponse(BaseModel):
    id: UUID
    description: str
    amount: Decimal

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    roll_number: Optional[str] = None
    due_date: date
    status: str
    total_amount: Decimal
    paid_amount: Decimal
    penalty_amount_per_day: Decimal
    batch_id: UUID
    batch_description: Optional[str] = None
    created_at: datetime
    items: List[InvoiceItemResponse] = []


class InvoiceBatchSummary(BaseModel):
    batch_id: UUID
    batch_description: Optional[str] = None
    due_date: date
    invoice_count: int
    paid_count: int
    total_amount: Decimal
    created_at: datetime


class InvoiceBatchDetail(InvoiceBatchSummary):
    invoices: List[InvoiceResponse]
