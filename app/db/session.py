import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.exceptions import ConflictError, DependencyError

logger = logging.getLogger(__name__)

# pool_pre_ping: check connection is alive before use (avoids "connection is closed" errors
# when DB or network closed idle connections).
# pool_recycle: discard connections after this many seconds to avoid stale connections.
engine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
    pool_pre_ping=True,
    pool_recycle=300,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def commit_or_raise(db: AsyncSession) -> None:
    """Commit the session, rolling back on failure.

    IntegrityError is re-raised untouched so callers can map it to a conflict; a version
    mismatch becomes ConflictError and any other storage failure DependencyError.
    """
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    except StaleDataError as e:
        await db.rollback()
        raise ConflictError("Record was modified by another user; reload and try again") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Database commit failed: %s", e)
        raise DependencyError(str(e)) from e
