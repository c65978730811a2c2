import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.auth.models import User
from app.auth.schemas import ChangePasswordRequest, CurrentUser, LoginRequest, LoginResponse, UserInfo
from app.auth.security import create_access_token, hash_password, verify_password
from app.core.exceptions import NotFoundError, ServiceError, ValidationError
from app.db.session import commit_or_raise

logger = logging.getLogger(__name__)


def _user_info(user: User) -> UserInfo:
    cashier = user.cashier_profile
    return UserInfo(
        id=user.id,
        email=user.email,
        role=user.role,
        cashier_id=cashier.id if cashier else None,
        has_discount_permission=bool(cashier and cashier.has_discount_permission),
        has_expenses_permission=bool(cashier and cashier.has_expenses_permission),
        password_change_required=bool(cashier and cashier.password_change_required),
    )


async def get_user_with_profile(db: AsyncSession, user_id) -> Optional[User]:
    result = await db.execute(
        select(User).options(selectinload(User.cashier_profile)).where(User.id == user_id)
    )
    return result.scalar_one_or_none()


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    # Email match is case-insensitive
    result = await db.execute(
        select(User)
        .options(selectinload(User.cashier_profile))
        .where(func.lower(User.email) == func.lower(payload.email))
    )
    user: Optional[User] = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)
    if user.status != "ACTIVE":
        raise ServiceError("User is inactive", status.HTTP_403_FORBIDDEN)

    issued_at = datetime.now(timezone.utc)
    access_token = create_access_token(
        subject={
            "sub": str(user.id),
            "role": user.role,
            "iat": int(issued_at.timestamp()),
        }
    )
    logger.info("User %s logged in as %s", user.id, user.role)
    return LoginResponse(access_token=access_token, user=_user_info(user))


async def change_password(
    db: AsyncSession,
    current_user: CurrentUser,
    payload: ChangePasswordRequest,
) -> None:
    """Change the caller's password and clear the cashier's forced-change flag."""
    user = await get_user_with_profile(db, current_user.id)
    if not user:
        raise NotFoundError("User not found")
    if not verify_password(payload.current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = hash_password(payload.new_password)
    if user.cashier_profile:
        user.cashier_profile.password_change_required = False
    await commit_or_raise(db)
