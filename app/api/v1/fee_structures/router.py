from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_admin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import FeeStructureCreate, FeeStructureResponse, FeeStructureUpdate
from . import service

router = APIRouter(prefix="/api/v1/fee-structures", tags=["fee-structures"])


@router.post(
    "",
    response_model=FeeStructureResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_fee_structure(
    payload: FeeStructureCreate,
    db: AsyncSession = Depends(get_db),
) -> FeeStructureResponse:
    try:
        return await service.create_fee_structure(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[FeeStructureResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_fee_structures(
    db: AsyncSession = Depends(get_db),
) -> List[FeeStructureResponse]:
    return await service.list_fee_structures(db)


@router.get(
    "/{fee_structure_id}",
    response_model=FeeStructureResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_fee_structure(
    fee_structure_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> FeeStructureResponse:
    fs = await service.get_fee_structure(db, fee_structure_id)
    if not fs:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee structure not found.")
    return fs


@router.put(
    "/{fee_structure_id}",
    response_model=FeeStructureResponse,
    dependencies=[Depends(require_admin)],
)
async def update_fee_structure(
    fee_structure_id: UUID,
    payload: FeeStructureUpdate,
    db: AsyncSession = Depends(get_db),
) -> FeeStructureResponse:
    try:
        return await service.update_fee_structure(db, fee_structure_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{fee_structure_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_fee_structure(
    fee_structure_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_fee_structure(db, fee_structure_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
