"""Fee collection: student search, payment recording and concession edits."""

import copy
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.v1.academic_years.service import get_academic_year_by_name
from app.api.v1.activity_logs import service as activity_service
from app.api.v1.invoices.service import invoice_to_response
from app.api.v1.students.schemas import FeeDetails, StudentResponse
from app.api.v1.students.service import dump_fee_details, load_fee_details, reload_student, student_to_response
from app.auth.schemas import CurrentUser
from app.core.enums import InvoiceStatus, PaymentMethod
from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.core.models import AcademicYear, Invoice, Payment, Student
from app.core.schemas import SkippedRow
from app.core.uploads import UploadRow
from app.db.session import commit_or_raise

from .ledger import aggregate, format_fee_type
from .schemas import BulkPaymentResult, PaymentCreate, PaymentResponse, StudentLedgerResponse

logger = logging.getLogger(__name__)

PAYMENT_METHODS = {m.value for m in PaymentMethod}

# payments.amount and invoices.paid_amount are Numeric(12, 2)
MAX_PAYMENT_AMOUNT = Decimal("9999999999.99")
CENT = Decimal("0.01")


def _validate_payment(amount, payment_method: str, utr_number: Optional[str]) -> Tuple[Decimal, str, Optional[str]]:
    """Shared payment rules. Returns (amount, method, utr) normalized; UTR kept only for UPI."""
    try:
        amount = Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError("Amount must be a number") from e
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    if amount > MAX_PAYMENT_AMOUNT:
        raise ValidationError(f"Amount cannot exceed {MAX_PAYMENT_AMOUNT}")
    if amount != amount.quantize(CENT):
        raise ValidationError("Amount cannot have more than 2 decimal places")
    method = (payment_method or "").strip().lower()
    if method not in PAYMENT_METHODS:
        raise ValidationError("Payment method must be cash or upi")
    utr = (utr_number or "").strip() or None
    if method == PaymentMethod.UPI.value:
        if not utr:
            raise ValidationError("UTR number is required for UPI payments")
        return amount, method, utr
    return amount, method, None


def _resolve_fee_item(fee_details: FeeDetails, fee_type: str) -> Tuple[Optional[str], Optional[str]]:
    """Link a "<year> - <item>" label to the matching fee_details item, if there is one."""
    for year, items in fee_details.items():
        for item in items:
            if format_fee_type(year, item.name) == fee_type:
                return year, item.id
    return None, None


async def _records_for_roll_number(
    db: AsyncSession,
    roll_number: str,
    academic_year_id: Optional[UUID] = None,
) -> List[Student]:
    stmt = select(Student).where(Student.roll_number == roll_number.strip())
    if academic_year_id is not None:
        stmt = stmt.where(Student.academic_year_id == academic_year_id)
    stmt = stmt.order_by(Student.created_at.asc())
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def _build_ledger(db: AsyncSession, roll_number: str, students: List[Student]) -> StudentLedgerResponse:
    ids = [s.id for s in students]
    payments = (
        await db.execute(
            select(Payment).where(Payment.student_id.in_(ids)).order_by(Payment.created_at.desc())
        )
    ).scalars().all()
    invoices = (
        await db.execute(
            select(Invoice)
            .options(selectinload(Invoice.items), selectinload(Invoice.student))
            .where(Invoice.student_id.in_(ids), Invoice.status == InvoiceStatus.UNPAID.value)
            .order_by(Invoice.due_date.asc())
        )
    ).scalars().all()

    records = [student_to_response(s) for s in students]
    payment_rows = [PaymentResponse.model_validate(p) for p in payments]
    invoice_rows = [invoice_to_response(inv) for inv in invoices]
    return StudentLedgerResponse(
        roll_number=roll_number.strip(),
        records=records,
        payments=payment_rows,
        invoices=invoice_rows,
        report=aggregate(records, payment_rows, invoice_rows),
    )


async def search_student(
    db: AsyncSession,
    roll_number: str,
    academic_year_id: Optional[UUID] = None,
) -> StudentLedgerResponse:
    """All enrollment records for a roll number with their payments, unpaid invoices and balances."""
    if not roll_number or not roll_number.strip():
        raise ValidationError("Roll number is required")
    students = await _records_for_roll_number(db, roll_number, academic_year_id)
    if not students:
        raise NotFoundError("Student not found.")
    return await _build_ledger(db, roll_number, students)


async def get_student_ledger_by_year_name(
    db: AsyncSession,
    roll_number: str,
    year_name: Optional[str] = None,
) -> StudentLedgerResponse:
    """Student fee lookup. The ledger spans every year; year_name only checks enrollment."""
    students = await _records_for_roll_number(db, roll_number)
    if not students:
        raise NotFoundError("Student not found.")
    if year_name:
        year = await get_academic_year_by_name(db, year_name.strip())
        if year is None or not any(s.academic_year_id == year.id for s in students):
            raise NotFoundError(f"Student was not enrolled in academic year {year_name}")
    return await _build_ledger(db, roll_number, students)


async def record_payment(
    db: AsyncSession,
    payload: PaymentCreate,
    current_user: Optional[CurrentUser] = None,
) -> PaymentResponse:
    amount, method, utr = _validate_payment(payload.amount, payload.payment_method, payload.utr_number)
    fee_type = (payload.fee_type or "").strip()
    if not fee_type:
        raise ValidationError("Fee type is required")

    student = await db.get(Student, payload.student_id)
    if not student:
        raise NotFoundError("Student not found.")

    fee_year, fee_item_id = payload.fee_year, payload.fee_item_id
    if not (fee_year and fee_item_id):
        fee_year, fee_item_id = _resolve_fee_item(load_fee_details(student.fee_details), fee_type)

    cashier_id = current_user.cashier_id if current_user else None
    payment = Payment(
        student_id=student.id,
        amount=amount,
        fee_type=fee_type,
        payment_method=method,
        notes=(payload.notes or "").strip() or None,
        utr_number=utr,
        cashier_id=cashier_id,
        fee_year=fee_year,
        fee_item_id=fee_item_id,
    )
    db.add(payment)
    await commit_or_raise(db)
    await db.refresh(payment)
    response = PaymentResponse.model_validate(payment)
    logger.info("Payment %s recorded: %s %s for %s (%s)", payment.id, amount, method, student.roll_number, fee_type)

    await activity_service.log_activity(
        db,
        cashier_id,
        activity_service.FEE_COLLECTION,
        student_id=student.id,
        details={"amount": str(amount), "fee_type": fee_type, "payment_method": method},
    )
    return response


async def record_invoice_payment(
    db: AsyncSession,
    invoice_id: UUID,
    payment_year: str,
    amount,
    payment_method: str,
    notes: Optional[str] = None,
    utr_number: Optional[str] = None,
    current_user: Optional[CurrentUser] = None,
) -> PaymentResponse:
    """Pay (part of) an invoice. The payment row and the invoice update commit together."""
    amount, method, utr = _validate_payment(amount, payment_method, utr_number)
    payment_year = (payment_year or "").strip()
    if not payment_year:
        raise ValidationError("Payment year is required")

    invoice = await db.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError("Invoice not found.")
    if invoice.status == InvoiceStatus.PAID.value:
        raise ValidationError("Invoice is already paid")
    if Decimal(invoice.paid_amount or 0) + amount > MAX_PAYMENT_AMOUNT:
        raise ValidationError(f"Invoice paid amount cannot exceed {MAX_PAYMENT_AMOUNT}")

    cashier_id = current_user.cashier_id if current_user else None
    fee_type = format_fee_type(payment_year, f"Invoice: {invoice.batch_description or ''}".rstrip())
    payment = Payment(
        student_id=invoice.student_id,
        amount=amount,
        fee_type=fee_type,
        payment_method=method,
        notes=(notes or "").strip() or None,
        utr_number=utr,
        cashier_id=cashier_id,
        fee_year=payment_year,
    )
    db.add(payment)
    invoice.paid_amount = Decimal(invoice.paid_amount or 0) + amount
    invoice.status = (
        InvoiceStatus.PAID.value
        if invoice.paid_amount >= Decimal(invoice.total_amount)
        else InvoiceStatus.UNPAID.value
    )
    await commit_or_raise(db)
    await db.refresh(payment)
    response = PaymentResponse.model_validate(payment)
    logger.info(
        "Invoice %s paid %s (%s/%s, %s)",
        invoice.id, amount, invoice.paid_amount, invoice.total_amount, invoice.status,
    )

    await activity_service.log_activity(
        db,
        cashier_id,
        activity_service.INVOICE_PAYMENT,
        student_id=invoice.student_id,
        details={"invoice_id": str(invoice.id), "amount": str(amount), "payment_method": method},
    )
    return response


def _parse_payment_date(value: str) -> Optional[datetime]:
    if not value:
        return None
    for fmt in ("%Y-%m-%d", "%Y-%m-%d %H:%M:%S", "%d-%m-%Y", "%d/%m/%Y"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValidationError(f"Invalid payment date: {value}")


async def bulk_upload_payments(
    db: AsyncSession,
    rows: List[UploadRow],
    current_user: CurrentUser,
) -> BulkPaymentResult:
    """
    Insert payments from an uploaded sheet. Columns: roll_number, academic_year, amount,
    fee_type, payment_method, payment_date (optional), notes, utr_number.
    Rows that fail validation are skipped; valid rows are committed together.
    """
    if current_user.cashier_id is None:
        raise PermissionDeniedError("Only cashiers can upload payments")

    years = (await db.execute(select(AcademicYear))).scalars().all()
    year_ids = {ay.year_name: ay.id for ay in years}

    skipped: List[SkippedRow] = []
    created = 0
    total = Decimal("0")
    for row_num, row in rows:
        roll_number = row.get("roll_number", "")
        year_name = row.get("academic_year", "")
        if not roll_number or not year_name:
            skipped.append(SkippedRow(row=row_num, reason="Missing roll_number or academic_year"))
            continue
        academic_year_id = year_ids.get(year_name)
        if academic_year_id is None:
            skipped.append(SkippedRow(row=row_num, reason=f"Unknown academic year: {year_name}"))
            continue
        students = await _records_for_roll_number(db, roll_number, academic_year_id)
        if not students:
            skipped.append(SkippedRow(row=row_num, reason=f"Student {roll_number} not found in {year_name}"))
            continue
        student = students[-1]
        fee_type = row.get("fee_type", "")
        try:
            amount, method, utr = _validate_payment(row.get("amount", ""), row.get("payment_method", ""), row.get("utr_number"))
            if not fee_type:
                raise ValidationError("Fee type is required")
            paid_at = _parse_payment_date(row.get("payment_date", ""))
        except ValidationError as e:
            skipped.append(SkippedRow(row=row_num, reason=e.message))
            continue

        fee_year, fee_item_id = _resolve_fee_item(load_fee_details(student.fee_details), fee_type)
        payment = Payment(
            student_id=student.id,
            amount=amount,
            fee_type=fee_type,
            payment_method=method,
            notes=row.get("notes") or None,
            utr_number=utr,
            cashier_id=current_user.cashier_id,
            fee_year=fee_year,
            fee_item_id=fee_item_id,
        )
        if paid_at is not None:
            payment.created_at = paid_at
        db.add(payment)
        created += 1
        total += amount

    if created:
        await commit_or_raise(db)
    for s in skipped:
        logger.warning("Payment upload skipped row %s: %s", s.row, s.reason)
    logger.info("Payment upload: %s created (%s), %s skipped", created, total, len(skipped))

    if created:
        await activity_service.log_activity(
            db,
            current_user.cashier_id,
            activity_service.BULK_PAYMENT_UPLOAD,
            details={"created": created, "skipped": len(skipped), "total_amount": str(total)},
        )
    return BulkPaymentResult(total_rows=len(rows), created=created, total_amount=total, skipped=skipped)


async def list_payments(
    db: AsyncSession,
    student_id: Optional[UUID] = None,
    roll_number: Optional[str] = None,
    payment_method: Optional[str] = None,
    cashier_id: Optional[UUID] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[PaymentResponse]:
    stmt = select(Payment)
    if student_id is not None:
        stmt = stmt.where(Payment.student_id == student_id)
    if roll_number:
        stmt = stmt.join(Student, Payment.student_id == Student.id).where(Student.roll_number == roll_number.strip())
    if payment_method:
        stmt = stmt.where(Payment.payment_method == payment_method.strip().lower())
    if cashier_id is not None:
        stmt = stmt.where(Payment.cashier_id == cashier_id)
    if date_from is not None:
        stmt = stmt.where(Payment.created_at >= date_from)
    if date_to is not None:
        stmt = stmt.where(Payment.created_at <= date_to)
    stmt = stmt.order_by(Payment.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return [PaymentResponse.model_validate(p) for p in result.scalars().all()]


async def _load_for_concession(
    db: AsyncSession,
    student_id: UUID,
    expected_version: Optional[int],
) -> Tuple[Student, FeeDetails]:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found.")
    if expected_version is not None and expected_version != student.version:
        raise ConflictError("Student record was modified by another user; reload and try again")
    return student, load_fee_details(copy.deepcopy(student.fee_details))


def _check_concession(value) -> Decimal:
    try:
        value = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError("Concession must be a number") from e
    if not value.is_finite() or value < 0:
        raise ValidationError("Concession cannot be negative")
    return value


async def set_concession(
    db: AsyncSession,
    student_id: UUID,
    year: str,
    fee_item_id: str,
    concession,
    expected_version: Optional[int] = None,
    current_user: Optional[CurrentUser] = None,
) -> StudentResponse:
    """
    Replace the concession of one fee item, leaving its siblings untouched.
    The whole fee_details document is rewritten; the version column guards the write.
    """
    concession = _check_concession(concession)
    student, details = await _load_for_concession(db, student_id, expected_version)

    target = next((item for item in details.get(year, []) if item.id == fee_item_id), None)
    if target is None:
        raise NotFoundError("Fee item not found for the selected year.")
    previous = target.concession
    target.concession = concession

    student.fee_details = dump_fee_details(details)
    await commit_or_raise(db)
    student = await reload_student(db, student.id)
    response = student_to_response(student)
    logger.info(
        "Concession on %s %s/%s changed %s -> %s",
        student.roll_number, year, target.name, previous, concession,
    )

    await activity_service.log_activity(
        db,
        current_user.cashier_id if current_user else None,
        activity_service.CONCESSION_EDITED,
        student_id=student.id,
        details={"year": year, "fee_item": target.name, "from": str(previous), "to": str(concession)},
    )
    return response


async def set_yearly_concession(
    db: AsyncSession,
    student_id: UUID,
    year: str,
    amount,
    current_user: Optional[CurrentUser] = None,
) -> StudentResponse:
    """The first item of the year carries the whole concession; the rest are reset to zero."""
    amount = _check_concession(amount)
    student, details = await _load_for_concession(db, student_id, None)

    items = details.get(year) or []
    if not items:
        raise NotFoundError("No fee items found for the selected year.")
    for index, item in enumerate(items):
        item.concession = amount if index == 0 else Decimal("0")

    student.fee_details = dump_fee_details(details)
    await commit_or_raise(db)
    student = await reload_student(db, student.id)
    response = student_to_response(student)
    logger.info("Yearly concession on %s %s set to %s", student.roll_number, year, amount)

    await activity_service.log_activity(
        db,
        current_user.cashier_id if current_user else None,
        activity_service.CONCESSION_EDITED,
        student_id=student.id,
        details={"year": year, "yearly_concession": str(amount)},
    )
    return response
