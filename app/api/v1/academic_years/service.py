import logging
import re
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import AcademicYear
from app.db.session import commit_or_raise

from .schemas import YEAR_NAME_PATTERN, AcademicYearCreate, AcademicYearResponse, AcademicYearUpdate

logger = logging.getLogger(__name__)


def _to_response(ay: AcademicYear) -> AcademicYearResponse:
    return AcademicYearResponse(
        id=ay.id,
        year_name=ay.year_name,
        is_active=ay.is_active,
        created_at=ay.created_at,
    )


def _validate_year_name(year_name: str) -> str:
    name = year_name.strip()
    if not re.match(YEAR_NAME_PATTERN, name):
        raise ValidationError("Academic year must be in the format YYYY-YYYY")
    start, end = (int(part) for part in name.split("-"))
    if end != start + 1:
        raise ValidationError("Academic year must span consecutive years, e.g. 2024-2025")
    return name


async def _deactivate_others(db: AsyncSession, keep_id: Optional[UUID] = None) -> None:
    stmt = update(AcademicYear).values(is_active=False)
    if keep_id is not None:
        stmt = stmt.where(AcademicYear.id != keep_id)
    await db.execute(stmt)


async def _get_or_404(db: AsyncSession, academic_year_id: UUID) -> AcademicYear:
    ay = await db.get(AcademicYear, academic_year_id)
    if not ay:
        raise NotFoundError("Academic year not found")
    return ay


async def create_academic_year(
    db: AsyncSession,
    payload: AcademicYearCreate,
) -> AcademicYearResponse:
    """Create academic year. If is_active=true, deactivate all other years in the same transaction."""
    name = _validate_year_name(payload.year_name)
    existing = await db.execute(select(AcademicYear).where(AcademicYear.year_name == name))
    if existing.scalar_one_or_none():
        raise ConflictError(f"Academic year '{name}' already exists")
    if payload.is_active:
        await _deactivate_others(db)
    ay = AcademicYear(year_name=name, is_active=payload.is_active)
    db.add(ay)
    try:
        await commit_or_raise(db)
    except IntegrityError:
        raise ConflictError(f"Academic year '{name}' already exists")
    await db.refresh(ay)
    logger.info("Created academic year %s (active=%s)", name, ay.is_active)
    return _to_response(ay)


async def list_academic_years(db: AsyncSession) -> List[AcademicYearResponse]:
    """List academic years, newest year_name first."""
    result = await db.execute(select(AcademicYear).order_by(AcademicYear.year_name.desc()))
    return [_to_response(ay) for ay in result.scalars().all()]


async def list_active_academic_years(db: AsyncSession) -> List[AcademicYearResponse]:
    """Rows flagged active. Callers must cope with zero or several; nothing enforces exactly one."""
    result = await db.execute(
        select(AcademicYear)
        .where(AcademicYear.is_active.is_(True))
        .order_by(AcademicYear.year_name.desc())
    )
    return [_to_response(ay) for ay in result.scalars().all()]


async def get_academic_year(
    db: AsyncSession,
    academic_year_id: UUID,
) -> Optional[AcademicYearResponse]:
    ay = await db.get(AcademicYear, academic_year_id)
    return _to_response(ay) if ay else None


async def get_academic_year_by_name(db: AsyncSession, year_name: str) -> Optional[AcademicYear]:
    result = await db.execute(select(AcademicYear).where(AcademicYear.year_name == year_name.strip()))
    return result.scalar_one_or_none()


async def update_academic_year(
    db: AsyncSession,
    academic_year_id: UUID,
    payload: AcademicYearUpdate,
) -> AcademicYearResponse:
    ay = await _get_or_404(db, academic_year_id)
    if payload.year_name is not None:
        name = _validate_year_name(payload.year_name)
        other = await db.execute(
            select(AcademicYear).where(
                AcademicYear.year_name == name,
                AcademicYear.id != academic_year_id,
            )
        )
        if other.scalar_one_or_none():
            raise ConflictError(f"Academic year '{name}' already exists")
        ay.year_name = name
    if payload.is_active is not None:
        if payload.is_active:
            await _deactivate_others(db, keep_id=academic_year_id)
        ay.is_active = payload.is_active
    try:
        await commit_or_raise(db)
    except IntegrityError:
        raise ConflictError("Academic year name conflict")
    await db.refresh(ay)
    return _to_response(ay)


async def delete_academic_year(db: AsyncSession, academic_year_id: UUID) -> None:
    """Delete a year. The active year cannot be deleted; activate another year first."""
    ay = await _get_or_404(db, academic_year_id)
    if ay.is_active:
        raise ConflictError(
            "Cannot delete the active academic year. Please set another year as active first."
        )
    await db.delete(ay)
    await commit_or_raise(db)
    logger.info("Deleted academic year %s", ay.year_name)
