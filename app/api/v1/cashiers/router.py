from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_admin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import CashierCreate, CashierResponse, CashierUpdate
from . import service

router = APIRouter(
    prefix="/api/v1/cashiers",
    tags=["cashiers"],
    dependencies=[Depends(require_admin)],
)


@router.post("", response_model=CashierResponse, status_code=status.HTTP_201_CREATED)
async def provision_cashier(
    payload: CashierCreate,
    db: AsyncSession = Depends(get_db),
) -> CashierResponse:
    """Create a cashier login and profile. The cashier must change the password on first login."""
    try:
        return await service.provision_cashier(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[CashierResponse])
async def list_cashiers(db: AsyncSession = Depends(get_db)) -> List[CashierResponse]:
    return await service.list_cashiers(db)


@router.get("/{cashier_id}", response_model=CashierResponse)
async def get_cashier(cashier_id: UUID, db: AsyncSession = Depends(get_db)) -> CashierResponse:
    cashier = await service.get_cashier(db, cashier_id)
    if not cashier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cashier not found.")
    return cashier


@router.put("/{cashier_id}", response_model=CashierResponse)
async def update_cashier(
    cashier_id: UUID,
    payload: CashierUpdate,
    db: AsyncSession = Depends(get_db),
) -> CashierResponse:
    try:
        return await service.update_cashier(db, cashier_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{cashier_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cashier(cashier_id: UUID, db: AsyncSession = Depends(get_db)) -> None:
    try:
        await service.delete_cashier(db, cashier_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
