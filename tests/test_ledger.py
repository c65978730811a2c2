from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

from app.api.v1.fee_collection.ledger import (
    aggregate,
    format_fee_type,
    merge_fee_details,
    outstanding_for_item,
)
from app.api.v1.students.schemas import FeeItem


def record(studying_year, fee_details, created_at):
    return SimpleNamespace(
        id=uuid4(),
        studying_year=studying_year,
        fee_details=fee_details,
        created_at=created_at,
    )


def payment(amount, fee_type, fee_year=None, fee_item_id=None):
    return SimpleNamespace(
        amount=Decimal(str(amount)),
        fee_type=fee_type,
        fee_year=fee_year,
        fee_item_id=fee_item_id,
    )


def invoice(total, status="unpaid"):
    return SimpleNamespace(total_amount=Decimal(str(total)), status=status)


def tuition(amount, concession=0, item_id="t1"):
    return FeeItem(id=item_id, name="Tuition Fee", amount=Decimal(str(amount)), concession=Decimal(str(concession)))


def test_empty_input_gives_empty_report() -> None:
    report = aggregate([], [], [])
    assert report.years == []
    assert report.yearly == []
    assert report.merged_fee_details == {}
    assert report.overall.total_due == 0
    assert report.overall.total_paid == 0
    assert report.overall.balance == 0


def test_overpaid_item_clamps_pending_and_year_balance_to_zero() -> None:
    records = [record("1st Year", {"1st Year": [tuition(1000)]}, datetime(2024, 1, 1))]
    payments = [payment(1500, "1st Year - Tuition Fee")]

    report = aggregate(records, payments, [])

    year = report.yearly[0]
    assert year.lines[0].paid == Decimal("1500")
    assert year.lines[0].pending == 0
    assert year.balance == 0
    assert report.fee_type_balances == {"Tuition Fee": 0}


def test_partial_payment_with_concession_leaves_nothing_pending() -> None:
    records = [record("1st Year", {"1st Year": [tuition(1000, 200)]}, datetime(2024, 1, 1))]
    payments = [payment(900, "1st Year - Tuition Fee")]

    report = aggregate(records, payments, [])

    line = report.yearly[0].lines[0]
    assert line.amount == Decimal("1000")
    assert line.concession == Decimal("200")
    assert line.paid == Decimal("900")
    assert line.pending == 0
    assert report.yearly[0].balance == 0


def test_overall_balance_adds_outstanding_invoices() -> None:
    records = [record("1st Year", {"1st Year": [tuition(1000, 100)]}, datetime(2024, 1, 1))]
    payments = [payment(200, "1st Year - Tuition Fee")]
    invoices = [invoice(500), invoice(300, status="paid")]

    report = aggregate(records, payments, invoices)

    assert report.yearly[0].balance == Decimal("700")
    assert report.overall.outstanding_invoice_total == Decimal("500")
    assert report.overall.balance == Decimal("1200")


def test_most_recent_record_wins_per_year_key() -> None:
    older = record(
        "1st Year",
        {"1st Year": [tuition(1000, item_id="old")], "2nd Year": [tuition(2000, item_id="y2")]},
        datetime(2024, 1, 1),
    )
    newer = record("1st Year", {"1st Year": [tuition(1200, item_id="new")]}, datetime(2024, 6, 1))

    # Input order must not matter: creation time decides
    merged = merge_fee_details([newer, older])

    assert [i.id for i in merged["1st Year"]] == ["new"]
    assert [i.id for i in merged["2nd Year"]] == ["y2"]


def test_linked_payment_matches_by_item_id_not_label() -> None:
    items = [tuition(1000, item_id="t1"), FeeItem(id="j1", name="JVD Fee", amount=Decimal("300"))]
    records = [record("1st Year", {"1st Year": items}, datetime(2024, 1, 1))]
    payments = [
        payment(400, "Tuition (renamed label)", fee_year="1st Year", fee_item_id="t1"),
        payment(100, "1st Year - JVD Fee"),
        payment(50, "1st Year - Library"),
    ]

    report = aggregate(records, payments, [])

    lines = {line.name: line for line in report.yearly[0].lines}
    assert lines["Tuition Fee"].paid == Decimal("400")
    assert lines["JVD Fee"].paid == Decimal("100")
    # Year total counts every payment booked under the year, matched to an item or not
    assert report.yearly[0].total_paid == Decimal("550")
    assert report.yearly[0].balance == Decimal("750")


def test_year_without_items_has_no_fee_structure() -> None:
    records = [record("2nd Year", {"1st Year": [tuition(1000)], "2nd Year": []}, datetime(2024, 1, 1))]

    report = aggregate(records, [payment(100, "2nd Year - Tuition Fee")], [])

    summaries = {y.year: y for y in report.yearly}
    assert report.years == ["1st Year", "2nd Year"]
    assert summaries["2nd Year"].has_fee_structure is False
    assert summaries["2nd Year"].total_paid == 0
    assert summaries["2nd Year"].enrollment_id == records[0].id
    assert summaries["1st Year"].enrollment_id is None


def test_totals_sum_across_years() -> None:
    first = record("1st Year", {"1st Year": [tuition(1000, 100)]}, datetime(2023, 6, 1))
    second = record(
        "2nd Year",
        {"1st Year": [tuition(1000, 100)], "2nd Year": [tuition(1500, item_id="t2")]},
        datetime(2024, 6, 1),
    )
    payments = [payment(900, "1st Year - Tuition Fee"), payment(500, "2nd Year - Tuition Fee")]

    report = aggregate([first, second], payments, [])

    assert report.overall.total_due == Decimal("2500")
    assert report.overall.total_concession == Decimal("100")
    assert report.overall.total_paid == Decimal("1400")
    assert report.overall.balance == Decimal("1000")
    assert report.fee_type_balances == {"Tuition Fee": Decimal("1000")}
    assert report.fee_types == ["Tuition Fee"]


def test_aggregate_is_deterministic() -> None:
    records = [record("1st Year", {"1st Year": [tuition(1000, 250)]}, datetime(2024, 1, 1))]
    payments = [payment(100, "1st Year - Tuition Fee")]

    assert aggregate(records, payments, [invoice(10)]) == aggregate(records, payments, [invoice(10)])


def test_outstanding_for_item() -> None:
    details = {"1st Year": [tuition(1000, 200)]}
    payments = [payment(300, format_fee_type("1st Year", "Tuition Fee"))]

    assert outstanding_for_item(details, payments, "1st Year", "Tuition Fee") == Decimal("500")
    assert outstanding_for_item(details, payments * 3, "1st Year", "Tuition Fee") == 0
    assert outstanding_for_item(details, payments, "3rd Year", "Tuition Fee") == 0
