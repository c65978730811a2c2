from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CurrentUser
from app.auth.services import get_user_with_profile
from app.core.config import settings
from app.db.session import get_db


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the authenticated user and their cashier permissions from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise credentials_exception

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise credentials_exception
    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise credentials_exception

    user = await get_user_with_profile(db, user_id)
    if not user or user.status != "ACTIVE":
        raise credentials_exception

    # Permissions are read from the profile on every request, never from the token
    cashier = user.cashier_profile
    return CurrentUser(
        id=user.id,
        email=user.email,
        role=user.role,
        cashier_id=cashier.id if cashier else None,
        has_discount_permission=bool(cashier and cashier.has_discount_permission),
        has_expenses_permission=bool(cashier and cashier.has_expenses_permission),
    )
