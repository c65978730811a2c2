from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_admin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import AcademicYearCreate, AcademicYearResponse, AcademicYearUpdate
from . import service

router = APIRouter(prefix="/api/v1/academic-years", tags=["academic-years"])


@router.post(
    "",
    response_model=AcademicYearResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_academic_year(
    payload: AcademicYearCreate,
    db: AsyncSession = Depends(get_db),
) -> AcademicYearResponse:
    try:
        return await service.create_academic_year(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[AcademicYearResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_academic_years(
    db: AsyncSession = Depends(get_db),
) -> List[AcademicYearResponse]:
    """List academic years, newest first. Used by search and upload forms."""
    return await service.list_academic_years(db)


@router.get(
    "/active",
    response_model=List[AcademicYearResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_active_academic_years(
    db: AsyncSession = Depends(get_db),
) -> List[AcademicYearResponse]:
    """Years flagged active. Normally one, but the list may be empty or hold several."""
    return await service.list_active_academic_years(db)


@router.get(
    "/{academic_year_id}",
    response_model=AcademicYearResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_academic_year(
    academic_year_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> AcademicYearResponse:
    ay = await service.get_academic_year(db, academic_year_id)
    if not ay:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Academic year not found")
    return ay


@router.put(
    "/{academic_year_id}",
    response_model=AcademicYearResponse,
    dependencies=[Depends(require_admin)],
)
async def update_academic_year(
    academic_year_id: UUID,
    payload: AcademicYearUpdate,
    db: AsyncSession = Depends(get_db),
) -> AcademicYearResponse:
    try:
        return await service.update_academic_year(db, academic_year_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{academic_year_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_academic_year(
    academic_year_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_academic_year(db, academic_year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
