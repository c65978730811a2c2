from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserInfo(BaseModel):
    id: UUID
    email: EmailStr
    role: str
    cashier_id: Optional[UUID] = None
    has_discount_permission: bool = False
    has_expenses_permission: bool = False
    password_change_required: bool = False


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserInfo


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)
    confirm_password: str = Field(..., min_length=8)

    @model_validator(mode="after")
    def passwords_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class CurrentUser(BaseModel):
    """Authenticated caller, as resolved from the access token and the cashier profile."""

    id: UUID
    email: str
    role: str
    cashier_id: Optional[UUID] = None
    has_discount_permission: bool = False
    has_expenses_permission: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
