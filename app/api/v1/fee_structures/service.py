from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError, ValidationError
from app.core.models import ClassGroup, FeeStructure, StudentType
from app.db.session import commit_or_raise

from .schemas import FeeStructureCreate, FeeStructureResponse, FeeStructureUpdate


def _to_response(fs: FeeStructure) -> FeeStructureResponse:
    return FeeStructureResponse(
        id=fs.id,
        fee_name=fs.fee_name,
        amount=fs.amount,
        fee_type=fs.fee_type,
        class_group_id=fs.class_group_id,
        class_group_name=fs.class_group.name if fs.class_group else None,
        student_type_id=fs.student_type_id,
        student_type_name=fs.student_type.name if fs.student_type else None,
        created_at=fs.created_at,
    )


def _select():
    return select(FeeStructure).options(
        selectinload(FeeStructure.class_group),
        selectinload(FeeStructure.student_type),
    )


async def _load(db: AsyncSession, fee_structure_id: UUID) -> Optional[FeeStructure]:
    result = await db.execute(
        _select().where(FeeStructure.id == fee_structure_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _check_references(db: AsyncSession, class_group_id: Optional[UUID], student_type_id: Optional[UUID]) -> None:
    if class_group_id is not None and not await db.get(ClassGroup, class_group_id):
        raise ValidationError("Invalid class group")
    if student_type_id is not None and not await db.get(StudentType, student_type_id):
        raise ValidationError("Invalid student type")


async def create_fee_structure(db: AsyncSession, payload: FeeStructureCreate) -> FeeStructureResponse:
    await _check_references(db, payload.class_group_id, payload.student_type_id)
    fs = FeeStructure(
        fee_name=payload.fee_name.strip(),
        amount=payload.amount,
        fee_type=payload.fee_type.value,
        class_group_id=payload.class_group_id,
        student_type_id=payload.student_type_id,
    )
    db.add(fs)
    await commit_or_raise(db)
    return _to_response(await _load(db, fs.id))


async def list_fee_structures(db: AsyncSession) -> List[FeeStructureResponse]:
    result = await db.execute(_select().order_by(FeeStructure.fee_name))
    return [_to_response(fs) for fs in result.scalars().all()]


async def get_fee_structure_model(db: AsyncSession, fee_structure_id: UUID) -> FeeStructure:
    fs = await db.get(FeeStructure, fee_structure_id)
    if not fs:
        raise NotFoundError("Fee structure not found.")
    return fs


async def find_by_name(db: AsyncSession, fee_name: str) -> Optional[FeeStructure]:
    result = await db.execute(
        select(FeeStructure).where(FeeStructure.fee_name == fee_name.strip()).order_by(FeeStructure.created_at.desc())
    )
    return result.scalars().first()


async def get_fee_structure(db: AsyncSession, fee_structure_id: UUID) -> Optional[FeeStructureResponse]:
    fs = await _load(db, fee_structure_id)
    return _to_response(fs) if fs else None


async def update_fee_structure(
    db: AsyncSession,
    fee_structure_id: UUID,
    payload: FeeStructureUpdate,
) -> FeeStructureResponse:
    fs = await get_fee_structure_model(db, fee_structure_id)
    data = payload.model_dump(exclude_unset=True)
    await _check_references(db, data.get("class_group_id"), data.get("student_type_id"))
    if "fee_name" in data and data["fee_name"] is not None:
        data["fee_name"] = data["fee_name"].strip()
    if data.get("fee_type") is not None:
        data["fee_type"] = data["fee_type"].value
    for field, value in data.items():
        setattr(fs, field, value)
    await commit_or_raise(db)
    return _to_response(await _load(db, fs.id))


async def delete_fee_structure(db: AsyncSession, fee_structure_id: UUID) -> None:
    """Invoices copy fee name and amount, so deleting a structure leaves issued invoices intact."""
    fs = await get_fee_structure_model(db, fee_structure_id)
    await db.delete(fs)
    await commit_or_raise(db)
