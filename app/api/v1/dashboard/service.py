"""Admin dashboard figures. Read-only aggregates over invoices, payments and expenses."""

import calendar
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.enums import InvoiceStatus
from app.core.models import Expense, Invoice, Payment

from .schemas import BreakdownEntry, DashboardStats, MonthlyReport, MonthlyTotals

ZERO = Decimal("0")
TUITION = "Tuition Fee"
OTHER_FEES = "Other Fees"
UNCATEGORIZED = "Uncategorized"


def income_category(fee_type: str) -> str:
    return TUITION if "Tuition" in (fee_type or "") else OTHER_FEES


def _entries(totals: Dict[str, Decimal]):
    return [BreakdownEntry(name=k, value=v) for k, v in totals.items()]


async def get_stats(db: AsyncSession, today: Optional[date] = None) -> DashboardStats:
    today = today or date.today()
    month_start = today.replace(day=1)

    status_counts = dict(
        (await db.execute(select(Invoice.status, func.count(Invoice.id)).group_by(Invoice.status))).all()
    )
    total_invoices = sum(status_counts.values())
    paid_invoices = status_counts.get(InvoiceStatus.PAID.value, 0)

    monthly_collection = (
        await db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.created_at >= datetime.combine(month_start, datetime.min.time())
            )
        )
    ).scalar()
    monthly_expenses = (
        await db.execute(
            select(func.coalesce(func.sum(Expense.amount), 0)).where(Expense.expense_date >= month_start)
        )
    ).scalar()
    monthly_collection = Decimal(str(monthly_collection or 0))
    monthly_expenses = Decimal(str(monthly_expenses or 0))

    income: Dict[str, Decimal] = OrderedDict()
    for fee_type, amount in (await db.execute(select(Payment.fee_type, Payment.amount))).all():
        key = income_category(fee_type)
        income[key] = income.get(key, ZERO) + Decimal(amount)

    expenses_by_dept: Dict[str, Decimal] = OrderedDict()
    result = await db.execute(select(Expense).options(selectinload(Expense.department)))
    for expense in result.scalars().all():
        key = expense.department.name if expense.department else UNCATEGORIZED
        expenses_by_dept[key] = expenses_by_dept.get(key, ZERO) + Decimal(expense.amount)

    return DashboardStats(
        total_invoices=total_invoices,
        paid_invoices=paid_invoices,
        pending_invoices=total_invoices - paid_invoices,
        monthly_collection=monthly_collection,
        monthly_expenses=monthly_expenses,
        monthly_profit=monthly_collection - monthly_expenses,
        income_breakdown=_entries(income),
        expense_breakdown=_entries(expenses_by_dept),
    )


async def get_monthly_report(db: AsyncSession, year: int) -> MonthlyReport:
    """Income and expenses per calendar month of `year`; months without activity are zero."""
    income = [ZERO] * 12
    spent = [ZERO] * 12

    start, end = datetime(year, 1, 1), datetime(year + 1, 1, 1)
    payments = await db.execute(
        select(Payment.created_at, Payment.amount).where(Payment.created_at >= start, Payment.created_at < end)
    )
    for created_at, amount in payments.all():
        income[created_at.month - 1] += Decimal(amount)

    expenses = await db.execute(
        select(Expense.expense_date, Expense.amount).where(
            Expense.expense_date >= start.date(), Expense.expense_date < end.date()
        )
    )
    for expense_date, amount in expenses.all():
        spent[expense_date.month - 1] += Decimal(amount)

    return MonthlyReport(
        year=year,
        months=[
            MonthlyTotals(month=calendar.month_abbr[i + 1], income=income[i], expenses=spent[i])
            for i in range(12)
        ],
    )
