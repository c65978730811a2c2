from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_admin
from app.db.session import get_db

from .schemas import DashboardStats, MonthlyReport
from . import service

router = APIRouter(
    prefix="/api/v1/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(require_admin)],
)


@router.get("/stats", response_model=DashboardStats)
async def get_stats(db: AsyncSession = Depends(get_db)) -> DashboardStats:
    return await service.get_stats(db)


@router.get("/monthly", response_model=MonthlyReport)
async def get_monthly_report(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
) -> MonthlyReport:
    """Monthly income vs expenses for one calendar year (defaults to the current year)."""
    return await service.get_monthly_report(db, year or date.today().year)
