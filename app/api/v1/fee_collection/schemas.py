from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.v1.invoices.schemas import InvoiceResponse
from app.api.v1.students.schemas import FeeDetails, StudentResponse
from app.core.schemas import SkippedRow


class PaymentCreate(BaseModel):
    """Amount, method and UTR are checked by the service so every caller gets the same rules."""

    student_id: UUID
    fee_type: str = Field(..., description='Label, e.g. "1st Year - Tuition Fee"')
    amount: Decimal
    payment_method: str = Field(..., description="cash | upi")
    notes: Optional[str] = None
    utr_number: Optional[str] = None
    fee_year: Optional[str] = None
    fee_item_id: Optional[str] = None


class InvoicePaymentCreate(BaseModel):
    invoice_id: UUID
    payment_year: str = Field(..., description="Studying year the payment is booked under")
    amount: Decimal
    payment_method: str
    notes: Optional[str] = None
    utr_number: Optional[str] = None


class PaymentResponse(BaseModel):
    id: UUID
    student_id: UUID
    amount: Decimal
    fee_type: str
    payment_method: str
    notes: Optional[str] = None
    utr_number: Optional[str] = None
    cashier_id: Optional[UUID] = None
    fee_year: Optional[str] = None
    fee_item_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ConcessionUpdate(BaseModel):
    year: str = Field(..., min_length=1)
    fee_item_id: str = Field(..., min_length=1)
    concession: Decimal
    expected_version: Optional[int] = None


class YearlyConcessionUpdate(BaseModel):
    year: str = Field(..., min_length=1)
    amount: Decimal


class LedgerLine(BaseModel):
    fee_item_id: str
    name: str
    amount: Decimal
    concession: Decimal
    payable: Decimal
    paid: Decimal
    pending: Decimal


class YearlySummary(BaseModel):
    year: str
    enrollment_id: Optional[UUID] = None
    has_fee_structure: bool
    lines: List[LedgerLine]
    total_due: Decimal
    total_concession: Decimal
    total_paid: Decimal
    balance: Decimal


class OverallSummary(BaseModel):
    total_due: Decimal = Decimal("0")
    total_concession: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    outstanding_invoice_total: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class AggregateReport(BaseModel):
    merged_fee_details: FeeDetails = {}
    years: List[str] = []
    fee_types: List[str] = []
    yearly: List[YearlySummary] = []
    fee_type_balances: Dict[str, Decimal] = {}
    overall: OverallSummary = OverallSummary()


class StudentLedgerResponse(BaseModel):
    roll_number: str
    records: List[StudentResponse]
    payments: List[PaymentResponse]
    invoices: List[InvoiceResponse]
    report: AggregateReport


class BulkPaymentResult(BaseModel):
    total_rows: int
    created: int
    total_amount: Decimal
    skipped: List[SkippedRow]
