from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_cashier_permission
from app.auth.schemas import CurrentUser
from app.core.enums import CashierPermission
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import ExpenseCreate, ExpenseResponse
from . import service

router = APIRouter(prefix="/api/v1/expenses", tags=["expenses"])

require_expenses = require_cashier_permission(CashierPermission.EXPENSES)


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    payload: ExpenseCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_expenses),
) -> ExpenseResponse:
    try:
        return await service.create_expense(db, payload, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[ExpenseResponse],
    dependencies=[Depends(require_expenses)],
)
async def list_expenses(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    department_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[ExpenseResponse]:
    return await service.list_expenses(db, date_from=date_from, date_to=date_to, department_id=department_id)
