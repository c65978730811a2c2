import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.auth.schemas import CurrentUser
from app.core.exceptions import ValidationError
from app.core.models import Department, Expense
from app.db.session import commit_or_raise

from .schemas import ExpenseCreate, ExpenseResponse

logger = logging.getLogger(__name__)


def _to_response(expense: Expense, department_name: Optional[str] = None) -> ExpenseResponse:
    return ExpenseResponse(
        id=expense.id,
        description=expense.description,
        amount=expense.amount,
        expense_date=expense.expense_date,
        department_id=expense.department_id,
        department_name=department_name,
        cashier_id=expense.cashier_id,
        created_at=expense.created_at,
    )


async def create_expense(
    db: AsyncSession,
    payload: ExpenseCreate,
    current_user: CurrentUser,
) -> ExpenseResponse:
    """Record an expense. Entries made by a cashier are attributed to their profile."""
    department = None
    if payload.department_id is not None:
        department = await db.get(Department, payload.department_id)
        if not department:
            raise ValidationError("Invalid department")
    expense = Expense(
        description=payload.description.strip(),
        amount=payload.amount,
        expense_date=payload.expense_date,
        department_id=payload.department_id,
        cashier_id=current_user.cashier_id,
    )
    db.add(expense)
    await commit_or_raise(db)
    await db.refresh(expense)
    logger.info("Expense %s recorded: %s (%s)", expense.id, expense.amount, expense.description)
    return _to_response(expense, department.name if department else None)


async def list_expenses(
    db: AsyncSession,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    department_id: Optional[UUID] = None,
) -> List[ExpenseResponse]:
    stmt = select(Expense).options(selectinload(Expense.department))
    if date_from is not None:
        stmt = stmt.where(Expense.expense_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(Expense.expense_date <= date_to)
    if department_id is not None:
        stmt = stmt.where(Expense.department_id == department_id)
    stmt = stmt.order_by(Expense.expense_date.desc(), Expense.created_at.desc())
    result = await db.execute(stmt)
    return [
        _to_response(e, e.department.name if e.department else None)
        for e in result.scalars().all()
    ]
