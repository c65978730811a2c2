from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_admin
from app.db.session import get_db

from .schemas import ActivityLogResponse
from . import service

router = APIRouter(prefix="/api/v1/activity-logs", tags=["activity-logs"])


@router.get(
    "",
    response_model=List[ActivityLogResponse],
    dependencies=[Depends(require_admin)],
)
async def list_activity_logs(
    cashier_id: Optional[UUID] = Query(None),
    student_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> List[ActivityLogResponse]:
    """Cashier activity, newest first."""
    return await service.list_activity_logs(
        db, cashier_id=cashier_id, student_id=student_id, limit=limit, offset=offset
    )
