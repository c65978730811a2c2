from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class CashierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = None
    has_discount_permission: bool = False
    has_expenses_permission: bool = False
    password: Optional[str] = Field(None, description="Initial password; the cashier must change it on first login")


class CashierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = None
    has_discount_permission: Optional[bool] = None
    has_expenses_permission: Optional[bool] = None


class CashierResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    email: str
    phone: Optional[str] = None
    has_discount_permission: bool
    has_expenses_permission: bool
    password_change_required: bool
    created_at: datetime

    class Config:
        from_attributes = True
