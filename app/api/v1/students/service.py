"""Student enrollment records: CRUD, fee snapshot (de)serialization and bulk upload."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import AcademicYear, Payment, Student, StudentType
from app.core.schemas import BulkResult, SkippedRow
from app.core.uploads import UploadRow
from app.db.session import commit_or_raise

from .schemas import FeeDetails, FeeItem, StudentCreate, StudentPaginatedResponse, StudentResponse, StudentUpdate

logger = logging.getLogger(__name__)

# Column groups of the bulk upload sheet: one per studying year
BULK_FEE_YEARS = (
    ("1st Year", "first_year"),
    ("2nd Year", "second_year"),
    ("3rd Year", "third_year"),
)
BULK_REQUIRED_FIELDS = ("roll_number", "name", "class", "section", "studying_year")


def _to_decimal(val) -> Decimal:
    if val is None or val == "":
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def load_fee_details(raw: Optional[dict]) -> FeeDetails:
    """Parse the stored JSON snapshot. Items missing a concession default to zero."""
    details: FeeDetails = {}
    for year, items in (raw or {}).items():
        if not isinstance(items, list):
            continue
        details[year] = [
            FeeItem(
                id=str(item.get("id") or ""),
                name=item.get("name") or "",
                amount=_to_decimal(item.get("amount")),
                concession=_to_decimal(item.get("concession")),
            )
            for item in items
        ]
    return details


def dump_fee_details(details: FeeDetails) -> dict:
    """Serialize for the JSON column. Amounts are stored as decimal strings."""
    return {
        year: [
            {
                "id": item.id,
                "name": item.name,
                "amount": str(item.amount),
                "concession": str(item.concession),
            }
            for item in items
        ]
        for year, items in details.items()
    }


def student_to_response(student: Student) -> StudentResponse:
    ay = student.academic_year
    st = student.student_type
    return StudentResponse(
        id=student.id,
        roll_number=student.roll_number,
        name=student.name,
        class_name=student.class_name,
        section=student.section,
        studying_year=student.studying_year,
        student_type_id=student.student_type_id,
        student_type_name=st.name if st else None,
        academic_year_id=student.academic_year_id,
        academic_year_name=ay.year_name if ay else None,
        academic_year_is_active=bool(ay and ay.is_active),
        caste=student.caste,
        email=student.email,
        phone=student.phone,
        fee_details=load_fee_details(student.fee_details),
        version=student.version,
        created_at=student.created_at,
    )


async def _check_references(
    db: AsyncSession,
    academic_year_id: Optional[UUID],
    student_type_id: Optional[UUID],
) -> None:
    if academic_year_id is not None and not await db.get(AcademicYear, academic_year_id):
        raise ValidationError("Invalid academic year")
    if student_type_id is not None and not await db.get(StudentType, student_type_id):
        raise ValidationError("Invalid student type")


async def reload_student(db: AsyncSession, student_id: UUID) -> Student:
    """Re-read a row after commit so the joined type and year relationships are populated."""
    return await db.get(Student, student_id, populate_existing=True)


async def get_student_model(db: AsyncSession, student_id: UUID) -> Student:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found.")
    return student


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    """Create one enrollment record. Re-enrolling a roll number in a new year adds another row."""
    await _check_references(db, payload.academic_year_id, payload.student_type_id)
    student = Student(
        roll_number=payload.roll_number.strip(),
        name=payload.name.strip(),
        class_name=payload.class_name.strip(),
        section=payload.section.strip(),
        studying_year=payload.studying_year.strip(),
        student_type_id=payload.student_type_id,
        academic_year_id=payload.academic_year_id,
        caste=(payload.caste or "").strip() or None,
        email=(payload.email or "").strip() or None,
        phone=(payload.phone or "").strip() or None,
        fee_details=dump_fee_details(payload.fee_details),
    )
    db.add(student)
    await commit_or_raise(db)
    student = await reload_student(db, student.id)
    logger.info("Created enrollment %s for roll number %s", student.id, student.roll_number)
    return student_to_response(student)


async def list_students(
    db: AsyncSession,
    roll_number: Optional[str] = None,
    academic_year_id: Optional[UUID] = None,
    class_name: Optional[str] = None,
    section: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> StudentPaginatedResponse:
    stmt = select(Student)
    if roll_number:
        stmt = stmt.where(Student.roll_number == roll_number.strip())
    if academic_year_id is not None:
        stmt = stmt.where(Student.academic_year_id == academic_year_id)
    if class_name:
        stmt = stmt.where(Student.class_name == class_name.strip())
    if section:
        stmt = stmt.where(Student.section == section.strip())
    if search:
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(func.lower(Student.name).like(pattern), func.lower(Student.roll_number).like(pattern))
        )
    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar() or 0
    stmt = stmt.order_by(Student.roll_number, Student.created_at).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return StudentPaginatedResponse(
        items=[student_to_response(s) for s in result.scalars().unique().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


async def get_student(db: AsyncSession, student_id: UUID) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    return student_to_response(student) if student else None


async def update_student(
    db: AsyncSession,
    student_id: UUID,
    payload: StudentUpdate,
) -> StudentResponse:
    student = await get_student_model(db, student_id)
    if payload.expected_version is not None and payload.expected_version != student.version:
        raise ConflictError("Student record was modified by another user; reload and try again")
    data = payload.model_dump(exclude_unset=True, exclude={"expected_version", "fee_details"})
    await _check_references(db, data.get("academic_year_id"), data.get("student_type_id"))
    for field, value in data.items():
        if isinstance(value, str):
            value = value.strip() or None
            if value is None and field in ("name", "class_name", "section", "studying_year"):
                raise ValidationError(f"{field} cannot be empty")
        setattr(student, field, value)
    if payload.fee_details is not None:
        student.fee_details = dump_fee_details(payload.fee_details)
    await commit_or_raise(db)
    student = await reload_student(db, student.id)
    return student_to_response(student)


async def delete_student(db: AsyncSession, student_id: UUID) -> None:
    """Delete an enrollment record. Records with payments are kept, the ledger is immutable."""
    student = await get_student_model(db, student_id)
    has_payments = (
        await db.execute(select(func.count(Payment.id)).where(Payment.student_id == student_id))
    ).scalar()
    if has_payments:
        raise ConflictError("Cannot delete a student record that has payments")
    await db.delete(student)
    await commit_or_raise(db)


def _bulk_fee_details(row: Dict[str, str]) -> Tuple[Optional[FeeDetails], Optional[str]]:
    details: FeeDetails = {}
    for year_label, prefix in BULK_FEE_YEARS:
        try:
            tuition = _to_decimal(row.get(f"{prefix}_tuition_fee"))
            jvd = _to_decimal(row.get(f"{prefix}_jvd_fee"))
            concession = _to_decimal(row.get(f"{prefix}_concession"))
        except InvalidOperation:
            return None, f"Invalid fee amount for {year_label}"
        if not all(v.is_finite() for v in (tuition, jvd, concession)):
            return None, f"Invalid fee amount for {year_label}"
        if tuition < 0 or jvd < 0 or concession < 0:
            return None, f"Fee amounts for {year_label} cannot be negative"
        if tuition > 0 or jvd > 0 or concession > 0:
            details[year_label] = [
                FeeItem(name="Tuition Fee", amount=tuition, concession=concession),
                FeeItem(name="JVD Fee", amount=jvd, concession=Decimal("0")),
            ]
    return details, None


async def bulk_upload_students(db: AsyncSession, rows: List[UploadRow]) -> BulkResult:
    """Create enrollment records from upload rows. Invalid rows are skipped with a reason."""
    years = (await db.execute(select(AcademicYear))).scalars().all()
    types = (await db.execute(select(StudentType))).scalars().all()
    academic_year_map = {ay.year_name: ay.id for ay in years}
    student_type_map = {st.name: st.id for st in types}

    skipped: List[SkippedRow] = []
    created = 0
    for row_num, row in rows:
        if any(not row.get(f) for f in BULK_REQUIRED_FIELDS):
            skipped.append(SkippedRow(
                row=row_num,
                reason="Missing required fields (roll_number, name, class, section, studying_year).",
            ))
            continue
        academic_year_id = academic_year_map.get(row.get("academic_year", ""))
        if not academic_year_id:
            skipped.append(SkippedRow(row=row_num, reason=f"Invalid or missing academic year: {row.get('academic_year', '')}"))
            continue
        student_type_id = student_type_map.get(row.get("student_type", ""))
        if not student_type_id:
            skipped.append(SkippedRow(row=row_num, reason=f"Invalid or missing student type: {row.get('student_type', '')}"))
            continue
        fee_details, error = _bulk_fee_details(row)
        if error:
            skipped.append(SkippedRow(row=row_num, reason=error))
            continue
        db.add(Student(
            roll_number=row["roll_number"],
            name=row["name"],
            class_name=row["class"],
            section=row["section"],
            studying_year=row["studying_year"],
            student_type_id=student_type_id,
            academic_year_id=academic_year_id,
            caste=row.get("caste") or None,
            email=row.get("email") or None,
            phone=row.get("phone") or None,
            fee_details=dump_fee_details(fee_details),
        ))
        created += 1

    if created:
        await commit_or_raise(db)
    for s in skipped:
        logger.warning("Student upload skipped row %s: %s", s.row, s.reason)
    logger.info("Student upload: %s created, %s skipped", created, len(skipped))
    return BulkResult(total_rows=len(rows), created=created, skipped=skipped)
