from datetime import date
from decimal import Decimal

from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import FeeStructure, Invoice, InvoiceItem, StudentType


async def make_fee(db: AsyncSession, name: str = "Exam Fee", amount: str = "1500") -> FeeStructure:
    fee = FeeStructure(fee_name=name, amount=Decimal(amount), fee_type="Custom")
    db.add(fee)
    await db.commit()
    return fee


async def count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar()


async def test_no_matching_students(client: AsyncClient, admin_headers, make_student, db_session: AsyncSession) -> None:
    fee = await make_fee(db_session)
    await make_student(class_name="BSc", section="A")

    response = await client.post(
        "/api/v1/invoices/generate",
        json={"fee_structure_id": str(fee.id), "due_date": "2024-07-15", "class": "BCom", "section": "B"},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "No students found matching the selected criteria."
    assert await count(db_session, Invoice) == 0


async def test_generate_one_invoice_per_student(
    client: AsyncClient, admin_headers, make_student, db_session: AsyncSession
) -> None:
    fee = await make_fee(db_session)
    for n in range(3):
        await make_student(roll_number=f"R00{n}", name=f"Student {n}", minutes=n)
    await make_student(roll_number="R100", section="B")

    response = await client.post(
        "/api/v1/invoices/generate",
        json={
            "fee_structure_id": str(fee.id),
            "due_date": "2024-07-15",
            "class": "BSc",
            "section": "A",
            "student_type": "all",
            "penalty_amount_per_day": "10",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["count"] == 3
    assert data["batch_description"] == "Exam Fee for Class BSc-A (All Types)"

    invoices = (await db_session.execute(select(Invoice))).scalars().all()
    assert len(invoices) == 3
    assert {str(inv.batch_id) for inv in invoices} == {data["batch_id"]}
    assert all(inv.status == "unpaid" and inv.paid_amount == 0 for inv in invoices)
    assert all(inv.total_amount == Decimal("1500") for inv in invoices)
    assert all(inv.due_date == date(2024, 7, 15) for inv in invoices)
    items = (await db_session.execute(select(InvoiceItem))).scalars().all()
    assert len(items) == 3
    assert {i.description for i in items} == {"Exam Fee"}


async def test_student_type_filter(
    client: AsyncClient, admin_headers, make_student, student_type, db_session: AsyncSession
) -> None:
    fee = await make_fee(db_session)
    await make_student(roll_number="R001", student_type_id=student_type.id)
    await make_student(roll_number="R002")

    response = await client.post(
        "/api/v1/invoices/generate",
        json={
            "fee_structure_id": str(fee.id),
            "due_date": "2024-07-15",
            "class": "BSc",
            "section": "A",
            "student_type": str(student_type.id),
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["count"] == 1
    assert response.json()["batch_description"] == "Exam Fee for Class BSc-A (Day Scholar)"


async def test_unknown_fee_structure_and_bad_penalty(
    client: AsyncClient, admin_headers, make_student, db_session: AsyncSession
) -> None:
    fee = await make_fee(db_session)
    await make_student()
    body = {"fee_structure_id": str(fee.id), "due_date": "2024-07-15", "class": "BSc", "section": "A"}

    missing = await client.post(
        "/api/v1/invoices/generate",
        json={**body, "fee_structure_id": "00000000-0000-0000-0000-000000000000"},
        headers=admin_headers,
    )
    assert missing.status_code == 404

    negative = await client.post(
        "/api/v1/invoices/generate", json={**body, "penalty_amount_per_day": "-1"}, headers=admin_headers
    )
    assert negative.status_code == 422
    assert await count(db_session, Invoice) == 0


async def test_generate_requires_admin(client: AsyncClient, cashier_headers, db_session: AsyncSession) -> None:
    fee = await make_fee(db_session)
    response = await client.post(
        "/api/v1/invoices/generate",
        json={"fee_structure_id": str(fee.id), "due_date": "2024-07-15", "class": "BSc", "section": "A"},
        headers=cashier_headers,
    )
    assert response.status_code == 403


async def test_bulk_generation_skips_bad_rows(
    client: AsyncClient, admin_headers, make_student, db_session: AsyncSession
) -> None:
    await make_fee(db_session, "Exam Fee")
    await make_fee(db_session, "Lab Fee", "800")
    await make_student()

    lines = ["fee_name,due_date,class,section,student_type,penalty_amount_per_day"]
    for n in range(10):
        fee_name = "Sports Fee" if n in (2, 5, 8) else ("Exam Fee" if n % 2 else "Lab Fee")
        lines.append(f"{fee_name},2024-08-{n + 1:02d},BSc,A,all,0")
    csv_content = "\n".join(lines) + "\n"

    response = await client.post(
        "/api/v1/invoices/bulk-upload",
        files={"file": ("invoices.csv", csv_content.encode(), "text/csv")},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_rows"] == 10
    assert data["created"] == 7
    assert len(data["batches"]) == 7
    assert len({b["batch_id"] for b in data["batches"]}) == 7
    assert [s["row"] for s in data["skipped"]] == [4, 7, 10]
    assert all(s["reason"] == "Unknown fee name: Sports Fee" for s in data["skipped"])
    assert await count(db_session, Invoice) == 7


async def test_bulk_generation_row_errors(
    client: AsyncClient, admin_headers, make_student, db_session: AsyncSession
) -> None:
    await make_fee(db_session)
    db_session.add(StudentType(name="Hosteller"))
    await db_session.commit()
    await make_student()

    csv_content = (
        "fee_name,due_date,class,section,student_type\n"
        "Exam Fee,not-a-date,BSc,A,all\n"
        "Exam Fee,2024-08-01,,A,all\n"
        "Exam Fee,2024-08-01,BSc,A,Martian\n"
        "Exam Fee,2024-08-01,BSc,A,Hosteller\n"
        "Exam Fee,2024-08-01,BSc,A,\n"
    )
    response = await client.post(
        "/api/v1/invoices/bulk-upload",
        files={"file": ("invoices.csv", csv_content.encode(), "text/csv")},
        headers=admin_headers,
    )
    data = response.json()
    assert data["created"] == 1
    reasons = {s["row"]: s["reason"] for s in data["skipped"]}
    assert reasons == {
        2: "Invalid due date: not-a-date",
        3: "Missing class or section",
        4: "Unknown student type: Martian",
        5: "No students found matching the selected criteria.",
    }


async def test_batch_listing_and_search(
    client: AsyncClient, admin_headers, make_student, db_session: AsyncSession
) -> None:
    fee = await make_fee(db_session)
    await make_student(roll_number="R001", name="Asha Rao")
    await make_student(roll_number="R002", name="Vikram Shah")
    created = await client.post(
        "/api/v1/invoices/generate",
        json={"fee_structure_id": str(fee.id), "due_date": "2024-07-15", "class": "BSc", "section": "A"},
        headers=admin_headers,
    )
    batch_id = created.json()["batch_id"]

    batches = (await client.get("/api/v1/invoices/batches", headers=admin_headers)).json()
    assert len(batches) == 1
    assert batches[0]["batch_id"] == batch_id
    assert batches[0]["invoice_count"] == 2
    assert batches[0]["paid_count"] == 0
    assert Decimal(batches[0]["total_amount"]) == Decimal("3000")

    detail = await client.get(
        f"/api/v1/invoices/batches/{batch_id}", params={"search": "vik"}, headers=admin_headers
    )
    assert detail.status_code == 200
    assert [i["roll_number"] for i in detail.json()["invoices"]] == ["R002"]
    assert detail.json()["invoice_count"] == 2

    unknown = await client.get(
        "/api/v1/invoices/batches/00000000-0000-0000-0000-000000000000", headers=admin_headers
    )
    assert unknown.status_code == 404


async def test_get_single_invoice(
    client: AsyncClient, admin_headers, cashier_headers, make_student, db_session: AsyncSession
) -> None:
    fee = await make_fee(db_session)
    await make_student(roll_number="R001", name="Asha Rao")
    await client.post(
        "/api/v1/invoices/generate",
        json={"fee_structure_id": str(fee.id), "due_date": "2024-07-15", "class": "BSc", "section": "A"},
        headers=admin_headers,
    )
    invoice = (await db_session.execute(select(Invoice))).scalars().one()

    response = await client.get(f"/api/v1/invoices/{invoice.id}", headers=cashier_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["roll_number"] == "R001"
    assert data["status"] == "unpaid"
    assert Decimal(data["total_amount"]) == Decimal("1500")

    missing = await client.get(
        "/api/v1/invoices/00000000-0000-0000-0000-000000000000", headers=cashier_headers
    )
    assert missing.status_code == 404
