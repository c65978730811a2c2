from app.core.models.academic_year import AcademicYear
from app.core.models.masters import ClassGroup, Department, StudentType
from app.core.models.student import Student
from app.core.models.fee_structure import FeeStructure
from app.core.models.cashier import Cashier
from app.core.models.payment import Payment
from app.core.models.invoice import Invoice, InvoiceItem
from app.core.models.activity_log import ActivityLog
from app.core.models.expense import Expense

__all__ = [
    "AcademicYear",
    "ActivityLog",
    "Cashier",
    "ClassGroup",
    "Department",
    "Expense",
    "FeeStructure",
    "Invoice",
    "InvoiceItem",
    "Payment",
    "Student",
    "StudentType",
]
