from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    CASHIER = "cashier"


class PaymentMethod(str, Enum):
    CASH = "cash"
    UPI = "upi"


class InvoiceStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class FeeStructureType(str, Enum):
    TUITION = "Tuition"
    CUSTOM = "Custom"


class CashierPermission(str, Enum):
    DISCOUNT = "has_discount_permission"
    EXPENSES = "has_expenses_permission"
