"""
Invoice batch generation.

A batch is every invoice created by one generation run: same fee, same due date, same
batch_id. The fee structure is copied by value, so later catalog edits never touch
issued invoices.
"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.v1.fee_structures.service import find_by_name, get_fee_structure_model
from app.core.enums import InvoiceStatus
from app.core.exceptions import NoMatchError, NotFoundError, ValidationError
from app.core.models import FeeStructure, Invoice, InvoiceItem, Student, StudentType
from app.core.schemas import SkippedRow
from app.core.uploads import UploadRow
from app.db.session import commit_or_raise

from .schemas import (
    BulkInvoiceBatch,
    BulkInvoiceResult,
    InvoiceBatchCreated,
    InvoiceBatchDetail,
    InvoiceBatchSummary,
    InvoiceItemResponse,
    InvoiceResponse,
)

logger = logging.getLogger(__name__)

ALL_TYPES = "all"


def invoice_to_response(inv: Invoice) -> InvoiceResponse:
    student = inv.student
    return InvoiceResponse(
        id=inv.id,
        student_id=inv.student_id,
        student_name=student.name if student else None,
        roll_number=student.roll_number if student else None,
        due_date=inv.due_date,
        status=inv.status,
        total_amount=inv.total_amount,
        paid_amount=inv.paid_amount,
        penalty_amount_per_day=inv.penalty_amount_per_day,
        batch_id=inv.batch_id,
        batch_description=inv.batch_description,
        created_at=inv.created_at,
        items=[InvoiceItemResponse.model_validate(i) for i in inv.items],
    )


def batch_description(fee_name: str, class_name: str, section: str, type_name: Optional[str]) -> str:
    return f"{fee_name} for Class {class_name}-{section} ({type_name or 'All Types'})"


def _check_penalty(value) -> Decimal:
    try:
        penalty = Decimal(str(value if value not in (None, "") else 0))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError("Penalty amount per day must be a number") from e
    if not penalty.is_finite() or penalty < 0:
        raise ValidationError("Penalty amount per day cannot be negative")
    return penalty


async def _resolve_student_type(
    db: AsyncSession,
    student_type: Union[UUID, str, None],
) -> Tuple[Optional[UUID], Optional[str]]:
    """("all" | id) -> (type id or None, type name or None)."""
    if student_type is None or (isinstance(student_type, str) and student_type.strip().lower() in ("", ALL_TYPES)):
        return None, None
    try:
        type_id = student_type if isinstance(student_type, UUID) else UUID(str(student_type))
    except ValueError as e:
        raise ValidationError(f"Invalid student type: {student_type}") from e
    st = await db.get(StudentType, type_id)
    if not st:
        raise NotFoundError("Student type not found.")
    return st.id, st.name


async def _add_batch(
    db: AsyncSession,
    fee: FeeStructure,
    due_date: date,
    class_name: str,
    section: str,
    student_type_id: Optional[UUID],
    type_name: Optional[str],
    penalty: Decimal,
    academic_year_id: Optional[UUID] = None,
) -> InvoiceBatchCreated:
    """Stage one invoice plus one item per matching student. The caller commits."""
    stmt = select(Student.id).where(Student.class_name == class_name, Student.section == section)
    if student_type_id is not None:
        stmt = stmt.where(Student.student_type_id == student_type_id)
    if academic_year_id is not None:
        stmt = stmt.where(Student.academic_year_id == academic_year_id)
    student_ids = (await db.execute(stmt.order_by(Student.roll_number))).scalars().all()
    if not student_ids:
        raise NoMatchError("No students found matching the selected criteria.")

    batch_id = uuid.uuid4()
    description = batch_description(fee.fee_name, class_name, section, type_name)
    for student_id in student_ids:
        db.add(Invoice(
            student_id=student_id,
            due_date=due_date,
            status=InvoiceStatus.UNPAID.value,
            total_amount=fee.amount,
            paid_amount=Decimal("0"),
            penalty_amount_per_day=penalty,
            batch_id=batch_id,
            batch_description=description,
            items=[InvoiceItem(description=fee.fee_name, amount=fee.amount)],
        ))
    return InvoiceBatchCreated(batch_id=batch_id, batch_description=description, count=len(student_ids))


async def generate_invoices(
    db: AsyncSession,
    fee_structure_id: UUID,
    due_date: date,
    class_name: str,
    section: str,
    student_type: Union[UUID, str, None] = ALL_TYPES,
    penalty_amount_per_day=0,
    academic_year_id: Optional[UUID] = None,
) -> InvoiceBatchCreated:
    """Create one unpaid invoice per matching student, all sharing a fresh batch_id."""
    penalty = _check_penalty(penalty_amount_per_day)
    class_name, section = (class_name or "").strip(), (section or "").strip()
    if not class_name or not section:
        raise ValidationError("Class and section are required")
    fee = await get_fee_structure_model(db, fee_structure_id)
    student_type_id, type_name = await _resolve_student_type(db, student_type)

    created = await _add_batch(
        db, fee, due_date, class_name, section, student_type_id, type_name, penalty, academic_year_id
    )
    await commit_or_raise(db)
    logger.info("Invoice batch %s generated: %s invoices (%s)", created.batch_id, created.count, created.batch_description)
    return created


def _parse_due_date(value: str) -> date:
    for fmt in ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValidationError(f"Invalid due date: {value}")


async def generate_invoices_from_rows(db: AsyncSession, rows: List[UploadRow]) -> BulkInvoiceResult:
    """
    Bulk generation. Columns: fee_name, due_date, class, section, student_type
    (name or "all"), penalty_amount_per_day. Every row is its own batch and its own commit;
    rows that fail are skipped with the reason.
    """
    type_ids = {st.name.lower(): (st.id, st.name) for st in (await db.execute(select(StudentType))).scalars().all()}

    batches: List[BulkInvoiceBatch] = []
    skipped: List[SkippedRow] = []
    for row_num, row in rows:
        try:
            fee_name = row.get("fee_name", "")
            if not fee_name:
                raise ValidationError("Missing fee_name")
            fee = await find_by_name(db, fee_name)
            if not fee:
                raise NotFoundError(f"Unknown fee name: {fee_name}")
            if not row.get("due_date"):
                raise ValidationError("Missing due_date")
            due_date = _parse_due_date(row["due_date"])
            class_name, section = row.get("class", ""), row.get("section", "")
            if not class_name or not section:
                raise ValidationError("Missing class or section")
            type_value = row.get("student_type", "")
            if type_value and type_value.lower() != ALL_TYPES:
                if type_value.lower() not in type_ids:
                    raise NotFoundError(f"Unknown student type: {type_value}")
                student_type_id, type_name = type_ids[type_value.lower()]
            else:
                student_type_id, type_name = None, None
            penalty = _check_penalty(row.get("penalty_amount_per_day"))
            created = await _add_batch(db, fee, due_date, class_name, section, student_type_id, type_name, penalty)
        except (ValidationError, NotFoundError, NoMatchError) as e:
            skipped.append(SkippedRow(row=row_num, reason=e.message))
            continue
        await commit_or_raise(db)
        batches.append(BulkInvoiceBatch(row=row_num, **created.model_dump()))

    for s in skipped:
        logger.warning("Invoice upload skipped row %s: %s", s.row, s.reason)
    total = sum(b.count for b in batches)
    logger.info("Invoice upload: %s invoices in %s batches, %s rows skipped", total, len(batches), len(skipped))
    return BulkInvoiceResult(total_rows=len(rows), created=total, batches=batches, skipped=skipped)


async def list_batches(db: AsyncSession) -> List[InvoiceBatchSummary]:
    paid = func.sum(case((Invoice.status == InvoiceStatus.PAID.value, 1), else_=0))
    stmt = (
        select(
            Invoice.batch_id,
            func.max(Invoice.batch_description),
            func.min(Invoice.due_date),
            func.count(Invoice.id),
            paid,
            func.sum(Invoice.total_amount),
            func.min(Invoice.created_at),
        )
        .group_by(Invoice.batch_id)
        .order_by(func.min(Invoice.created_at).desc())
    )
    result = await db.execute(stmt)
    return [
        InvoiceBatchSummary(
            batch_id=batch_id,
            batch_description=description,
            due_date=due_date,
            invoice_count=count,
            paid_count=paid_count or 0,
            total_amount=Decimal(str(total or 0)),
            created_at=created_at,
        )
        for batch_id, description, due_date, count, paid_count, total, created_at in result.all()
    ]


async def get_batch(db: AsyncSession, batch_id: UUID, search: Optional[str] = None) -> InvoiceBatchDetail:
    result = await db.execute(
        select(Invoice)
        .options(selectinload(Invoice.items), selectinload(Invoice.student))
        .where(Invoice.batch_id == batch_id)
        .order_by(Invoice.created_at)
    )
    invoices = result.scalars().all()
    if not invoices:
        raise NotFoundError("Invoice batch not found.")
    rows = [invoice_to_response(inv) for inv in invoices]
    first = rows[0]
    summary = dict(
        batch_id=batch_id,
        batch_description=first.batch_description,
        due_date=first.due_date,
        invoice_count=len(rows),
        paid_count=sum(1 for r in rows if r.status == InvoiceStatus.PAID.value),
        total_amount=sum((r.total_amount for r in rows), Decimal("0")),
        created_at=min(r.created_at for r in rows),
    )
    if search and search.strip():
        needle = search.strip().lower()
        rows = [
            r for r in rows
            if needle in (r.student_name or "").lower() or needle in (r.roll_number or "").lower()
        ]
    return InvoiceBatchDetail(invoices=rows, **summary)


async def get_invoice(db: AsyncSession, invoice_id: UUID) -> Optional[InvoiceResponse]:
    result = await db.execute(
        select(Invoice)
        .options(selectinload(Invoice.items), selectinload(Invoice.student))
        .where(Invoice.id == invoice_id)
    )
    inv = result.scalar_one_or_none()
    return invoice_to_response(inv) if inv else None
