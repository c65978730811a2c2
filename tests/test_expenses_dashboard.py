from datetime import date, datetime
from decimal import Decimal

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.dashboard.service import get_monthly_report, get_stats
from app.core.models import Department, Expense, Invoice, InvoiceItem, Payment


async def test_expense_entry_needs_permission(
    client: AsyncClient, make_cashier, headers_for, db_session: AsyncSession
) -> None:
    department = Department(name="Maintenance")
    db_session.add(department)
    await db_session.commit()
    body = {
        "description": "Plumbing",
        "amount": "2500",
        "expense_date": "2024-06-05",
        "department_id": str(department.id),
    }

    plain = await make_cashier(email="plain@example.com")
    response = await client.post("/api/v1/expenses", json=body, headers=await headers_for(plain))
    assert response.status_code == 403

    allowed = await make_cashier(email="spender@example.com", expenses=True)
    response = await client.post("/api/v1/expenses", json=body, headers=await headers_for(allowed))
    assert response.status_code == 201
    data = response.json()
    assert data["cashier_id"] == str(allowed.id)
    assert data["department_name"] == "Maintenance"

    listed = await client.get(
        "/api/v1/expenses", params={"date_from": "2024-06-01"}, headers=await headers_for(allowed)
    )
    assert [e["description"] for e in listed.json()] == ["Plumbing"]


async def test_activity_log_listing_is_admin_only(
    client: AsyncClient, admin_headers, cashier, cashier_headers, make_student
) -> None:
    student = await make_student()
    await client.post(
        "/api/v1/fee-collection/payments",
        json={"student_id": str(student.id), "fee_type": "Admission", "amount": "100", "payment_method": "cash"},
        headers=cashier_headers,
    )

    assert (await client.get("/api/v1/activity-logs", headers=cashier_headers)).status_code == 403
    logs = (await client.get("/api/v1/activity-logs", headers=admin_headers)).json()
    assert len(logs) == 1
    assert logs[0]["action"] == "Fee Collection"
    assert logs[0]["cashier_name"] == "Counter One"
    assert logs[0]["student_name"] == "Asha Rao"


async def test_dashboard_figures(db_session: AsyncSession, make_student) -> None:
    student = await make_student()
    db_session.add_all([
        Payment(student_id=student.id, amount=Decimal("1000"), fee_type="1st Year - Tuition Fee",
                payment_method="cash", created_at=datetime(2024, 6, 3)),
        Payment(student_id=student.id, amount=Decimal("200"), fee_type="1st Year - JVD Fee",
                payment_method="cash", created_at=datetime(2024, 6, 4)),
        Payment(student_id=student.id, amount=Decimal("300"), fee_type="Library",
                payment_method="cash", created_at=datetime(2024, 3, 4)),
        Expense(description="Chalk", amount=Decimal("50"), expense_date=date(2024, 6, 2)),
        Expense(description="Paint", amount=Decimal("70"), expense_date=date(2024, 2, 2)),
    ])
    for status in ("paid", "unpaid", "unpaid"):
        db_session.add(Invoice(
            student_id=student.id,
            due_date=date(2024, 7, 1),
            status=status,
            total_amount=Decimal("10"),
            paid_amount=Decimal("0"),
            penalty_amount_per_day=Decimal("0"),
            batch_id=student.id,
            items=[InvoiceItem(description="Exam Fee", amount=Decimal("10"))],
        ))
    await db_session.commit()

    stats = await get_stats(db_session, today=date(2024, 6, 20))
    assert (stats.total_invoices, stats.paid_invoices, stats.pending_invoices) == (3, 1, 2)
    assert stats.monthly_collection == Decimal("1200")
    assert stats.monthly_expenses == Decimal("50")
    assert stats.monthly_profit == Decimal("1150")
    income = {e.name: e.value for e in stats.income_breakdown}
    assert income == {"Tuition Fee": Decimal("1000"), "Other Fees": Decimal("500")}
    assert {e.name: e.value for e in stats.expense_breakdown} == {"Uncategorized": Decimal("120")}

    report = await get_monthly_report(db_session, 2024)
    assert len(report.months) == 12
    assert report.months[5].month == "Jun"
    assert report.months[5].income == Decimal("1200")
    assert report.months[2].income == Decimal("300")
    assert report.months[1].expenses == Decimal("70")
    assert report.months[0].income == 0
