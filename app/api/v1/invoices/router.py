from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_admin
from app.core.exceptions import ServiceError
from app.core.uploads import read_upload_rows
from app.db.session import get_db

from .schemas import (
    BulkInvoiceResult,
    InvoiceBatchCreated,
    InvoiceBatchDetail,
    InvoiceBatchSummary,
    InvoiceGenerateRequest,
    InvoiceResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/invoices", tags=["invoices"])


@router.post(
    "/generate",
    response_model=InvoiceBatchCreated,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def generate_invoices(
    payload: InvoiceGenerateRequest,
    db: AsyncSession = Depends(get_db),
) -> InvoiceBatchCreated:
    try:
        return await service.generate_invoices(
            db,
            payload.fee_structure_id,
            payload.due_date,
            payload.class_name,
            payload.section,
            student_type=payload.student_type,
            penalty_amount_per_day=payload.penalty_amount_per_day,
            academic_year_id=payload.academic_year_id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/bulk-upload",
    response_model=BulkInvoiceResult,
    dependencies=[Depends(require_admin)],
)
async def bulk_generate_invoices(
    file: UploadFile = File(
        ...,
        description="CSV or Excel with columns: fee_name, due_date, class, section, "
        "student_type (name or all), penalty_amount_per_day",
    ),
    db: AsyncSession = Depends(get_db),
) -> BulkInvoiceResult:
    """One batch per valid row; invalid rows are reported in `skipped`."""
    try:
        rows = await read_upload_rows(file)
        return await service.generate_invoices_from_rows(db, rows)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/batches",
    response_model=List[InvoiceBatchSummary],
    dependencies=[Depends(get_current_user)],
)
async def list_batches(
    db: AsyncSession = Depends(get_db),
) -> List[InvoiceBatchSummary]:
    return await service.list_batches(db)


@router.get(
    "/batches/{batch_id}",
    response_model=InvoiceBatchDetail,
    dependencies=[Depends(get_current_user)],
)
async def get_batch(
    batch_id: UUID,
    search: Optional[str] = Query(None, description="Student name or roll number"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceBatchDetail:
    try:
        return await service.get_batch(db, batch_id, search)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_invoice(
    invoice_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> InvoiceResponse:
    invoice = await service.get_invoice(db, invoice_id)
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found.")
    return invoice
