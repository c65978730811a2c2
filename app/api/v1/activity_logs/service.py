import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.models import ActivityLog

from .schemas import ActivityLogResponse

logger = logging.getLogger(__name__)

FEE_COLLECTION = "Fee Collection"
INVOICE_PAYMENT = "Invoice Payment"
CONCESSION_EDITED = "Concession Edited"
BULK_PAYMENT_UPLOAD = "Bulk Payment Upload"


async def log_activity(
    db: AsyncSession,
    cashier_id: Optional[UUID],
    action: str,
    student_id: Optional[UUID] = None,
    details: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Append one activity row in its own commit. Best-effort: the action it describes has
    already been committed, so a failure here is logged and reported as False, never raised.
    Admin actions (no cashier profile) are not logged.
    """
    if cashier_id is None:
        return False
    try:
        db.add(ActivityLog(cashier_id=cashier_id, student_id=student_id, action=action, details=details or {}))
        await db.commit()
        return True
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("Activity log write failed for %s (%s): %s", action, cashier_id, e)
        return False


def _to_response(log: ActivityLog) -> ActivityLogResponse:
    return ActivityLogResponse(
        id=log.id,
        cashier_id=log.cashier_id,
        cashier_name=log.cashier.name if log.cashier else None,
        student_id=log.student_id,
        student_name=log.student.name if log.student else None,
        action=log.action,
        details=log.details,
        created_at=log.created_at,
    )


async def list_activity_logs(
    db: AsyncSession,
    cashier_id: Optional[UUID] = None,
    student_id: Optional[UUID] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[ActivityLogResponse]:
    stmt = select(ActivityLog).options(
        selectinload(ActivityLog.cashier),
        selectinload(ActivityLog.student),
    )
    if cashier_id is not None:
        stmt = stmt.where(ActivityLog.cashier_id == cashier_id)
    if student_id is not None:
        stmt = stmt.where(ActivityLog.student_id == student_id)
    stmt = stmt.order_by(ActivityLog.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return [_to_response(log) for log in result.scalars().all()]
