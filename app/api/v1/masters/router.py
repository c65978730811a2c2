"""Master data endpoints, one list/create pair per lookup table."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_admin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import NamedItemCreate, NamedItemResponse
from . import service

router = APIRouter(prefix="/api/v1/masters", tags=["masters"])


def _register(path: str) -> None:
    model = service.MASTER_MODELS[path]

    @router.get(
        f"/{path}",
        response_model=List[NamedItemResponse],
        dependencies=[Depends(get_current_user)],
        name=f"list_{path.replace('-', '_')}",
    )
    async def list_items(db: AsyncSession = Depends(get_db)) -> List[NamedItemResponse]:
        return await service.list_items(db, model)

    @router.post(
        f"/{path}",
        response_model=NamedItemResponse,
        status_code=status.HTTP_201_CREATED,
        dependencies=[Depends(require_admin)],
        name=f"create_{path.replace('-', '_')}",
    )
    async def create_item(
        payload: NamedItemCreate,
        db: AsyncSession = Depends(get_db),
    ) -> NamedItemResponse:
        try:
            return await service.create_item(db, model, payload)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)


for _path in service.MASTER_MODELS:
    _register(_path)
