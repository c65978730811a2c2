from decimal import Decimal

from httpx import AsyncClient


async def test_student_type_create_returns_existing(client: AsyncClient, admin_headers) -> None:
    first = await client.post("/api/v1/masters/student-types", json={"name": "Hosteller"}, headers=admin_headers)
    assert first.status_code == 201
    again = await client.post("/api/v1/masters/student-types", json={"name": "hosteller "}, headers=admin_headers)
    assert again.status_code == 201
    assert again.json()["id"] == first.json()["id"]

    listed = await client.get("/api/v1/masters/student-types", headers=admin_headers)
    assert [t["name"] for t in listed.json()] == ["Hosteller"]


async def test_department_duplicates_conflict(client: AsyncClient, admin_headers, cashier_headers) -> None:
    assert (await client.post("/api/v1/masters/departments", json={"name": "Library"}, headers=admin_headers)).status_code == 201
    duplicate = await client.post("/api/v1/masters/departments", json={"name": "LIBRARY"}, headers=admin_headers)
    assert duplicate.status_code == 409

    assert (await client.get("/api/v1/masters/departments", headers=cashier_headers)).status_code == 200
    forbidden = await client.post("/api/v1/masters/departments", json={"name": "Lab"}, headers=cashier_headers)
    assert forbidden.status_code == 403


async def test_fee_structure_crud(client: AsyncClient, admin_headers, student_type) -> None:
    group = await client.post("/api/v1/masters/class-groups", json={"name": "Science"}, headers=admin_headers)
    created = await client.post(
        "/api/v1/fee-structures",
        json={
            "fee_name": "Tuition Fee",
            "amount": "45000",
            "fee_type": "Tuition",
            "class_group_id": group.json()["id"],
            "student_type_id": str(student_type.id),
        },
        headers=admin_headers,
    )
    assert created.status_code == 201
    data = created.json()
    assert data["class_group_name"] == "Science"
    assert data["student_type_name"] == "Day Scholar"

    updated = await client.put(
        f"/api/v1/fee-structures/{data['id']}", json={"amount": "47000"}, headers=admin_headers
    )
    assert updated.status_code == 200
    assert Decimal(updated.json()["amount"]) == Decimal("47000")

    negative = await client.post(
        "/api/v1/fee-structures", json={"fee_name": "Bad", "amount": "-1"}, headers=admin_headers
    )
    assert negative.status_code == 422

    assert (await client.delete(f"/api/v1/fee-structures/{data['id']}", headers=admin_headers)).status_code == 204
    assert (await client.get(f"/api/v1/fee-structures/{data['id']}", headers=admin_headers)).status_code == 404
