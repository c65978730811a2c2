from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.models import Cashier


NEW_CASHIER = {
    "name": "Counter Two",
    "email": "counter2@example.com",
    "phone": "9876543210",
    "has_discount_permission": True,
    "has_expenses_permission": False,
    "password": "Welcome123",
}


async def test_provision_creates_identity_and_profile(
    client: AsyncClient, admin_headers, db_session: AsyncSession
) -> None:
    response = await client.post("/api/v1/cashiers", json=NEW_CASHIER, headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["password_change_required"] is True
    assert data["has_discount_permission"] is True

    user = (await db_session.execute(select(User).where(User.email == "counter2@example.com"))).scalar_one()
    assert user.role == "cashier"
    assert data["user_id"] == str(user.id)

    login = await client.post(
        "/api/v1/auth/login", json={"email": "counter2@example.com", "password": "Welcome123"}
    )
    assert login.status_code == 200
    assert login.json()["user"]["password_change_required"] is True


async def test_duplicate_email_conflicts(client: AsyncClient, admin_headers, admin_user, db_session: AsyncSession) -> None:
    response = await client.post(
        "/api/v1/cashiers", json={**NEW_CASHIER, "email": "admin@example.com"}, headers=admin_headers
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "A user with this email already exists."
    assert (await db_session.execute(select(func.count(Cashier.id)))).scalar() == 0


async def test_missing_password_is_rejected(client: AsyncClient, admin_headers, db_session: AsyncSession) -> None:
    body = {k: v for k, v in NEW_CASHIER.items() if k != "password"}
    response = await client.post("/api/v1/cashiers", json=body, headers=admin_headers)
    assert response.status_code == 422
    assert (await db_session.execute(select(func.count(User.id)))).scalar() == 1


async def test_only_admins_manage_cashiers(client: AsyncClient, cashier_headers) -> None:
    response = await client.get("/api/v1/cashiers", headers=cashier_headers)
    assert response.status_code == 403


async def test_update_permissions_and_delete(
    client: AsyncClient, admin_headers, cashier, db_session: AsyncSession
) -> None:
    response = await client.put(
        f"/api/v1/cashiers/{cashier.id}",
        json={"has_expenses_permission": True},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["has_expenses_permission"] is True
    assert response.json()["has_discount_permission"] is False

    listed = (await client.get("/api/v1/cashiers", headers=admin_headers)).json()
    assert [c["id"] for c in listed] == [str(cashier.id)]

    response = await client.delete(f"/api/v1/cashiers/{cashier.id}", headers=admin_headers)
    assert response.status_code == 204
    assert (await db_session.execute(select(func.count(Cashier.id)))).scalar() == 0
    remaining = (await db_session.execute(select(User.email))).scalars().all()
    assert remaining == ["admin@example.com"]

    missing = await client.delete(f"/api/v1/cashiers/{cashier.id}", headers=admin_headers)
    assert missing.status_code == 404
