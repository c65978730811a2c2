from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_admin, require_cashier_permission
from app.auth.schemas import CurrentUser
from app.core.enums import CashierPermission
from app.core.exceptions import ServiceError
from app.core.schemas import BulkResult
from app.core.uploads import read_upload_rows
from app.db.session import get_db

from app.api.v1.fee_collection import service as fee_service
from app.api.v1.fee_collection.schemas import ConcessionUpdate, YearlyConcessionUpdate

from .schemas import StudentCreate, StudentPaginatedResponse, StudentResponse, StudentUpdate
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        return await service.create_student(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/bulk-upload",
    response_model=BulkResult,
    dependencies=[Depends(require_admin)],
)
async def bulk_upload_students(
    file: UploadFile = File(
        ...,
        description="CSV or Excel with columns: roll_number, name, class, section, email, phone, "
        "student_type, academic_year, studying_year, caste, first_year_tuition_fee, "
        "first_year_jvd_fee, first_year_concession (and second_/third_ variants)",
    ),
    db: AsyncSession = Depends(get_db),
) -> BulkResult:
    """Valid rows are created; invalid rows are reported in `skipped` with the reason."""
    try:
        rows = await read_upload_rows(file)
        return await service.bulk_upload_students(db, rows)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=StudentPaginatedResponse,
    dependencies=[Depends(get_current_user)],
)
async def list_students(
    roll_number: Optional[str] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    class_name: Optional[str] = Query(None, alias="class"),
    section: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Case-insensitive match on name or roll number"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> StudentPaginatedResponse:
    return await service.list_students(
        db,
        roll_number=roll_number,
        academic_year_id=academic_year_id,
        class_name=class_name,
        section=section,
        search=search,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    student = await service.get_student(db, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found.")
    return student


@router.put(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(require_admin)],
)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        return await service.update_student(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_student(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{student_id}/concession")
async def update_concession(
    student_id: UUID,
    payload: ConcessionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_cashier_permission(CashierPermission.DISCOUNT)),
) -> dict:
    """Set the concession of one fee item. Requires the discount permission."""
    try:
        await fee_service.set_concession(
            db,
            student_id,
            payload.year,
            payload.fee_item_id,
            payload.concession,
            expected_version=payload.expected_version,
            current_user=current_user,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"message": "Concession updated successfully"}


@router.patch(
    "/{student_id}/yearly-concession",
    response_model=StudentResponse,
)
async def update_yearly_concession(
    student_id: UUID,
    payload: YearlyConcessionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_cashier_permission(CashierPermission.DISCOUNT)),
) -> StudentResponse:
    """Put the whole yearly concession on the first fee item of the year; other items get zero."""
    try:
        return await fee_service.set_yearly_concession(
            db, student_id, payload.year, payload.amount, current_user=current_user
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
