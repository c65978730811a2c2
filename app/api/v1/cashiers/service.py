import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.security import hash_password
from app.core.enums import UserRole
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import Cashier
from app.db.session import commit_or_raise

from .schemas import CashierCreate, CashierResponse, CashierUpdate

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "A user with this email already exists."
MIN_PASSWORD_LENGTH = 8


async def _email_taken(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(User.id).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none() is not None


async def provision_cashier(db: AsyncSession, payload: CashierCreate) -> CashierResponse:
    """
    Create the login identity and the cashier profile in one transaction. If the profile
    insert fails, the identity is rolled back with it.
    """
    password = (payload.password or "").strip()
    if not password:
        raise ValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    email = str(payload.email).strip().lower()
    if await _email_taken(db, email):
        raise ConflictError(DUPLICATE_EMAIL)

    try:
        user = User(
            email=email,
            password_hash=hash_password(password),
            role=UserRole.CASHIER.value,
            status="ACTIVE",
        )
        db.add(user)
        await db.flush()

        cashier = Cashier(
            user_id=user.id,
            name=payload.name.strip(),
            email=email,
            phone=(payload.phone or "").strip() or None,
            has_discount_permission=payload.has_discount_permission,
            has_expenses_permission=payload.has_expenses_permission,
            password_change_required=True,
        )
        db.add(cashier)
        await commit_or_raise(db)
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_EMAIL)
    await db.refresh(cashier)
    logger.info("Cashier %s provisioned (%s)", cashier.id, email)
    return CashierResponse.model_validate(cashier)


async def list_cashiers(db: AsyncSession) -> List[CashierResponse]:
    result = await db.execute(select(Cashier).order_by(Cashier.name))
    return [CashierResponse.model_validate(c) for c in result.scalars().all()]


async def get_cashier(db: AsyncSession, cashier_id: UUID) -> Optional[CashierResponse]:
    cashier = await db.get(Cashier, cashier_id)
    return CashierResponse.model_validate(cashier) if cashier else None


async def update_cashier(db: AsyncSession, cashier_id: UUID, payload: CashierUpdate) -> CashierResponse:
    cashier = await db.get(Cashier, cashier_id)
    if not cashier:
        raise NotFoundError("Cashier not found.")
    data = payload.model_dump(exclude_unset=True)
    for field, value in data.items():
        if value is None and field in ("name", "has_discount_permission", "has_expenses_permission"):
            continue
        setattr(cashier, field, value.strip() if isinstance(value, str) else value)
    await commit_or_raise(db)
    await db.refresh(cashier)
    logger.info("Cashier %s updated: %s", cashier.id, sorted(data))
    return CashierResponse.model_validate(cashier)


async def delete_cashier(db: AsyncSession, cashier_id: UUID) -> None:
    """Remove the profile and its login identity."""
    cashier = await db.get(Cashier, cashier_id)
    if not cashier:
        raise NotFoundError("Cashier not found.")
    user = await db.get(User, cashier.user_id)
    await db.delete(cashier)
    if user:
        await db.delete(user)
    await commit_or_raise(db)
    logger.info("Cashier %s deleted", cashier_id)
