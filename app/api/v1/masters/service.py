"""Lookup tables: student types, class groups, departments."""

from typing import List, Type

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, ValidationError
from app.core.models import ClassGroup, Department, StudentType
from app.db.session import commit_or_raise

from .schemas import NamedItemCreate, NamedItemResponse

MASTER_MODELS = {
    "student-types": StudentType,
    "class-groups": ClassGroup,
    "departments": Department,
}


def _to_response(row) -> NamedItemResponse:
    return NamedItemResponse(id=row.id, name=row.name, created_at=row.created_at)


async def list_items(db: AsyncSession, model: Type) -> List[NamedItemResponse]:
    result = await db.execute(select(model).order_by(model.name))
    return [_to_response(r) for r in result.scalars().all()]


async def find_by_name(db: AsyncSession, model: Type, name: str):
    result = await db.execute(select(model).where(func.lower(model.name) == name.strip().lower()))
    return result.scalars().first()


async def create_item(db: AsyncSession, model: Type, payload: NamedItemCreate) -> NamedItemResponse:
    name = payload.name.strip()
    if not name:
        raise ValidationError("Name is required")
    existing = await find_by_name(db, model, name)
    if existing:
        if model is StudentType:
            # The student form's combobox creates-or-selects, so an existing type is returned as is
            return _to_response(existing)
        raise ConflictError(f"'{name}' already exists")
    row = model(name=name)
    db.add(row)
    try:
        await commit_or_raise(db)
    except IntegrityError:
        raise ConflictError(f"'{name}' already exists")
    await db.refresh(row)
    return _to_response(row)
