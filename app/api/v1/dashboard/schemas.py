from decimal import Decimal
from typing import List

from pydantic import BaseModel


class BreakdownEntry(BaseModel):
    name: str
    value: Decimal


class DashboardStats(BaseModel):
    total_invoices: int
    paid_invoices: int
    pending_invoices: int
    monthly_collection: Decimal
    monthly_expenses: Decimal
    monthly_profit: Decimal
    income_breakdown: List[BreakdownEntry]
    expense_breakdown: List[BreakdownEntry]


class MonthlyTotals(BaseModel):
    month: str
    income: Decimal
    expenses: Decimal


class MonthlyReport(BaseModel):
    year: int
    months: List[MonthlyTotals]
