"""
Create all tables on a fresh database.

    python -m app.db.init_db
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

import app.auth.models  # noqa: F401  (registers users on Base.metadata)
import app.core.models  # noqa: F401
from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import Base, engine

logger = logging.getLogger(__name__)


async def create_all(bind: AsyncEngine = engine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Created %s tables", len(Base.metadata.tables))


if __name__ == "__main__":
    configure_logging(settings.log_level)
    asyncio.run(create_all())
