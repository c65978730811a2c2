from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0)
    expense_date: date
    department_id: Optional[UUID] = None


class ExpenseResponse(BaseModel):
    id: UUID
    description: str
    amount: Decimal
    expense_date: date
    department_id: Optional[UUID] = None
    department_name: Optional[str] = None
    cashier_id: Optional[UUID] = None
    created_at: datetime
