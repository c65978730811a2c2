from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.uploads import read_upload_rows
from app.db.session import get_db

from .schemas import (
    BulkPaymentResult,
    InvoicePaymentCreate,
    PaymentCreate,
    PaymentResponse,
    StudentLedgerResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/fee-collection", tags=["fee-collection"])


@router.get(
    "/search",
    response_model=StudentLedgerResponse,
    dependencies=[Depends(get_current_user)],
)
async def search_student(
    roll_number: str = Query(..., min_length=1),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> StudentLedgerResponse:
    """Enrollment records, payments, unpaid invoices and balances for one roll number."""
    try:
        return await service.search_student(db, roll_number, academic_year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/student-fees",
    response_model=StudentLedgerResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_student_fees(
    roll_number: str = Query(..., min_length=1),
    academic_year: Optional[str] = Query(None, description="Year name, e.g. 2024-2025"),
    db: AsyncSession = Depends(get_db),
) -> StudentLedgerResponse:
    try:
        return await service.get_student_ledger_by_year_name(db, roll_number, academic_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> PaymentResponse:
    try:
        return await service.record_payment(db, payload, current_user=current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/invoice-payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_invoice_payment(
    payload: InvoicePaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> PaymentResponse:
    try:
        return await service.record_invoice_payment(
            db,
            payload.invoice_id,
            payload.payment_year,
            payload.amount,
            payload.payment_method,
            notes=payload.notes,
            utr_number=payload.utr_number,
            current_user=current_user,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/payments/bulk-upload",
    response_model=BulkPaymentResult,
)
async def bulk_upload_payments(
    file: UploadFile = File(
        ...,
        description="CSV or Excel with columns: roll_number, academic_year, amount, fee_type, "
        "payment_method, payment_date, notes, utr_number",
    ),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> BulkPaymentResult:
    try:
        rows = await read_upload_rows(file)
        return await service.bulk_upload_payments(db, rows, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/payments",
    response_model=List[PaymentResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_payments(
    student_id: Optional[UUID] = Query(None),
    roll_number: Optional[str] = Query(None),
    payment_method: Optional[str] = Query(None),
    cashier_id: Optional[UUID] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> List[PaymentResponse]:
    return await service.list_payments(
        db,
        student_id=student_id,
        roll_number=roll_number,
        payment_method=payment_method,
        cashier_id=cashier_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
