"""
Fee ledger aggregation.

Folds a student's enrollment records, payments and unpaid invoices into per-year and
overall balances. Pure functions only: nothing here touches the database, so the
collection screen, the student-fee lookup and the tests all share the same arithmetic.

Records are overlaid oldest first; for each studying-year key the most recently created
record wins outright (no item-level merge).
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from app.api.v1.students.schemas import FeeDetails, FeeItem

from .schemas import AggregateReport, LedgerLine, OverallSummary, YearlySummary

ZERO = Decimal("0")
_EPOCH = datetime.min


def format_fee_type(year: str, item_name: str) -> str:
    """Payment label for one fee item, e.g. "1st Year - Tuition Fee"."""
    return f"{year} - {item_name}"


def _sort_key(record):
    created = getattr(record, "created_at", None) or _EPOCH
    # naive and aware datetimes cannot be compared; records from one store share a kind
    return created.replace(tzinfo=None)


def merge_fee_details(records: Iterable) -> FeeDetails:
    merged: FeeDetails = {}
    for record in sorted(records, key=_sort_key):
        for year, items in (record.fee_details or {}).items():
            merged[year] = list(items)
    return merged


def _matches_item(payment, year: str, item: FeeItem) -> bool:
    if payment.fee_year and payment.fee_item_id:
        return payment.fee_year == year and payment.fee_item_id == item.id
    return payment.fee_type == format_fee_type(year, item.name)


def _matches_year(payment, year: str) -> bool:
    if payment.fee_year:
        return payment.fee_year == year
    return (payment.fee_type or "").startswith(f"{year} - ")


def _paid_for_item(payments: Sequence, year: str, item: FeeItem) -> Decimal:
    return sum((Decimal(p.amount) for p in payments if _matches_item(p, year, item)), ZERO)


def outstanding_for_item(
    fee_details: FeeDetails,
    payments: Sequence,
    year: str,
    item_name: str,
) -> Decimal:
    """Amount still owed on one item, used to pre-fill the payment form. Never negative."""
    for item in fee_details.get(year, []):
        if item.name == item_name:
            return max(ZERO, item.payable - _paid_for_item(payments, year, item))
    return ZERO


def _enrollment_for_year(records: Sequence, year: str):
    match = None
    for record in records:
        if record.studying_year == year:
            match = record
    return match.id if match is not None else None


def _yearly_summary(year: str, items: List[FeeItem], records: Sequence, payments: Sequence) -> YearlySummary:
    lines = []
    for item in items:
        paid = _paid_for_item(payments, year, item)
        lines.append(LedgerLine(
            fee_item_id=item.id,
            name=item.name,
            amount=item.amount,
            concession=item.concession,
            payable=item.payable,
            paid=paid,
            pending=max(ZERO, item.payable - paid),
        ))
    if not items:
        return YearlySummary(
            year=year,
            enrollment_id=_enrollment_for_year(records, year),
            has_fee_structure=False,
            lines=[],
            total_due=ZERO,
            total_concession=ZERO,
            total_paid=ZERO,
            balance=ZERO,
        )
    total_due = sum((i.amount for i in items), ZERO)
    total_concession = sum((i.concession for i in items), ZERO)
    total_paid = sum((Decimal(p.amount) for p in payments if _matches_year(p, year)), ZERO)
    return YearlySummary(
        year=year,
        enrollment_id=_enrollment_for_year(records, year),
        has_fee_structure=True,
        lines=lines,
        total_due=total_due,
        total_concession=total_concession,
        total_paid=total_paid,
        balance=max(ZERO, total_due - total_concession - total_paid),
    )


def aggregate(
    records: Sequence,
    payments: Sequence,
    invoices: Optional[Sequence] = None,
) -> AggregateReport:
    """
    Build the AggregateReport for one student.

    records: enrollment records (id, studying_year, fee_details, created_at).
    payments: payment rows (amount, fee_type, fee_year, fee_item_id).
    invoices: invoice rows (status, total_amount); only unpaid ones count.

    The overall balance adds the outstanding invoice total on top of the fee balance.
    Yearly balances are clamped at zero, the overall fee part is not.
    """
    if not records:
        return AggregateReport()

    ordered = sorted(records, key=_sort_key)
    merged = merge_fee_details(ordered)
    years = sorted(merged)
    fee_types = sorted({item.name for items in merged.values() for item in items})

    yearly = [_yearly_summary(year, merged[year], ordered, payments) for year in years]

    fee_type_balances: Dict[str, Decimal] = {name: ZERO for name in fee_types}
    for summary in yearly:
        for line in summary.lines:
            fee_type_balances[line.name] += line.pending

    total_due = sum((y.total_due for y in yearly), ZERO)
    total_concession = sum((y.total_concession for y in yearly), ZERO)
    total_paid = sum((y.total_paid for y in yearly), ZERO)
    outstanding = sum(
        (Decimal(inv.total_amount) for inv in (invoices or []) if inv.status == "unpaid"),
        ZERO,
    )
    return AggregateReport(
        merged_fee_details=merged,
        years=years,
        fee_types=fee_types,
        yearly=yearly,
        fee_type_balances=fee_type_balances,
        overall=OverallSummary(
            total_due=total_due,
            total_concession=total_concession,
            total_paid=total_paid,
            outstanding_invoice_total=outstanding,
            balance=(total_due - total_concession - total_paid) + outstanding,
        ),
    )
