import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import datetime, timedelta
from typing import AsyncGenerator, Dict, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.auth.models import User
from app.auth.security import create_access_token, hash_password
from app.core.models import AcademicYear, Cashier, Student, StudentType
from app.db.session import Base, get_db


TEST_DATABASE_URL = "sqlite+aiosqlite://"
BASE_TIME = datetime(2024, 6, 1, 9, 0, 0)


@pytest.fixture()
async def engine():
    """Fresh in-memory database per test; StaticPool keeps every session on one connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data and calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app; each request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(subject={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
async def admin_user(db_session: AsyncSession) -> User:
    user = User(email="admin@example.com", password_hash=hash_password("AdminPass123"), role="admin")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture()
def admin_headers(admin_user: User) -> Dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture()
def make_cashier(db_session: AsyncSession):
    async def _make(
        email: str = "cashier@example.com",
        discount: bool = False,
        expenses: bool = False,
    ) -> Cashier:
        user = User(email=email, password_hash=hash_password("CashierPass123"), role="cashier")
        db_session.add(user)
        await db_session.flush()
        cashier = Cashier(
            user_id=user.id,
            name="Counter One",
            email=email,
            has_discount_permission=discount,
            has_expenses_permission=expenses,
        )
        db_session.add(cashier)
        await db_session.commit()
        return cashier

    return _make


@pytest.fixture()
async def cashier(make_cashier) -> Cashier:
    return await make_cashier()


@pytest.fixture()
async def cashier_headers(db_session: AsyncSession, cashier: Cashier) -> Dict[str, str]:
    user = await db_session.get(User, cashier.user_id)
    return auth_headers(user)


@pytest.fixture()
async def academic_year(db_session: AsyncSession) -> AcademicYear:
    ay = AcademicYear(year_name="2024-2025", is_active=True)
    db_session.add(ay)
    await db_session.commit()
    return ay


@pytest.fixture()
async def student_type(db_session: AsyncSession) -> StudentType:
    st = StudentType(name="Day Scholar")
    db_session.add(st)
    await db_session.commit()
    return st


@pytest.fixture()
def make_student(db_session: AsyncSession):
    """Insert an enrollment record. `minutes` offsets created_at so ordering is explicit."""

    async def _make(
        roll_number: str = "R001",
        studying_year: str = "1st Year",
        fee_details: Optional[dict] = None,
        minutes: int = 0,
        name: str = "Asha Rao",
        class_name: str = "BSc",
        section: str = "A",
        academic_year_id=None,
        student_type_id=None,
    ) -> Student:
        student = Student(
            roll_number=roll_number,
            name=name,
            class_name=class_name,
            section=section,
            studying_year=studying_year,
            academic_year_id=academic_year_id,
            student_type_id=student_type_id,
            fee_details=fee_details if fee_details is not None else {},
            created_at=BASE_TIME + timedelta(minutes=minutes),
        )
        db_session.add(student)
        await db_session.commit()
        return student

    return _make


@pytest.fixture()
def headers_for(db_session: AsyncSession):
    """Bearer headers for a cashier profile's login."""

    async def _headers(cashier: Cashier) -> Dict[str, str]:
        return auth_headers(await db_session.get(User, cashier.user_id))

    return _headers
