from httpx import AsyncClient


async def create_year(client: AsyncClient, headers, name: str, active: bool = False):
    return await client.post(
        "/api/v1/academic-years", json={"year_name": name, "is_active": active}, headers=headers
    )


async def test_create_and_list_newest_first(client: AsyncClient, admin_headers) -> None:
    assert (await create_year(client, admin_headers, "2023-2024")).status_code == 201
    assert (await create_year(client, admin_headers, "2024-2025")).status_code == 201

    response = await client.get("/api/v1/academic-years", headers=admin_headers)
    assert response.status_code == 200
    assert [y["year_name"] for y in response.json()] == ["2024-2025", "2023-2024"]


async def test_year_name_format_and_uniqueness(client: AsyncClient, admin_headers) -> None:
    assert (await create_year(client, admin_headers, "2024-25")).status_code == 422
    assert (await create_year(client, admin_headers, "2024-2026")).status_code == 422
    assert (await create_year(client, admin_headers, "2024-2025")).status_code == 201
    duplicate = await create_year(client, admin_headers, "2024-2025")
    assert duplicate.status_code == 409


async def test_activating_a_year_deactivates_others(client: AsyncClient, admin_headers) -> None:
    first = (await create_year(client, admin_headers, "2023-2024", active=True)).json()
    second = (await create_year(client, admin_headers, "2024-2025", active=True)).json()

    active = (await client.get("/api/v1/academic-years/active", headers=admin_headers)).json()
    assert [y["id"] for y in active] == [second["id"]]

    response = await client.put(
        f"/api/v1/academic-years/{first['id']}", json={"is_active": True}, headers=admin_headers
    )
    assert response.status_code == 200
    active = (await client.get("/api/v1/academic-years/active", headers=admin_headers)).json()
    assert [y["id"] for y in active] == [first["id"]]


async def test_no_active_year_is_an_empty_list(client: AsyncClient, admin_headers) -> None:
    await create_year(client, admin_headers, "2023-2024")
    active = await client.get("/api/v1/academic-years/active", headers=admin_headers)
    assert active.status_code == 200
    assert active.json() == []


async def test_active_year_cannot_be_deleted(client: AsyncClient, admin_headers) -> None:
    active = (await create_year(client, admin_headers, "2024-2025", active=True)).json()
    old = (await create_year(client, admin_headers, "2022-2023")).json()
    response = await client.delete(f"/api/v1/academic-years/{active['id']}", headers=admin_headers)
    assert response.status_code == 409

    response = await client.delete(f"/api/v1/academic-years/{old['id']}", headers=admin_headers)
    assert response.status_code == 204
    assert (await client.get(f"/api/v1/academic-years/{old['id']}", headers=admin_headers)).status_code == 404


async def test_cashier_cannot_create_year(client: AsyncClient, cashier_headers) -> None:
    assert (await create_year(client, cashier_headers, "2024-2025")).status_code == 403
