from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    ACCOUNTANT = "ACCOUNTANT"
    STAFF = "STAFF"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class CompanyStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class AttendanceStatus(str, Enum):
    """Attendance approval status as stored in the database."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ABSENT = "ABSENT"
    LEAVE = "LEAVE"


class SalaryType(str, Enum):
    MONTHLY = "MONTHLY"
    HOURLY = "HOURLY"
    DAILY = "DAILY"


class SalaryStatus(str, Enum):
    """Salary lifecycle: PENDING -> APPROVED -> PAID, or PENDING -> REJECTED."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"
    REJECTED = "REJECTED"


class BreakdownType(str, Enum):
    BASE_SALARY = "BASE_SALARY"
    LOSS_OF_PAY = "LOSS_OF_PAY"
    OVERTIME = "OVERTIME"
    BONUS = "BONUS"
    LATE_PENALTY = "LATE_PENALTY"
    ABSENT_PENALTY = "ABSENT_PENALTY"
    PF_DEDUCTION = "PF_DEDUCTION"
    ESI_DEDUCTION = "ESI_DEDUCTION"


class LedgerEntryType(str, Enum):
    PAYMENT = "PAYMENT"
    DEDUCTION = "DEDUCTION"
    RECOVERY = "RECOVERY"
    ADJUSTMENT = "ADJUSTMENT"


class CashbookTransactionType(str, Enum):
    SALARY_PAYMENT = "SALARY_PAYMENT"
    ADVANCE = "ADVANCE"
    RECOVERY = "RECOVERY"
    VENDOR_PAYMENT = "VENDOR_PAYMENT"
    CLIENT_PAYMENT = "CLIENT_PAYMENT"
    EXPENSE = "EXPENSE"
    ADJUSTMENT = "ADJUSTMENT"


class CashbookDirection(str, Enum):
    """CREDIT increases company cash, DEBIT decreases it."""

    CREDIT = "CREDIT"
    DEBIT = "DEBIT"

    def opposite(self) -> "CashbookDirection":
        return CashbookDirection.DEBIT if self is CashbookDirection.CREDIT else CashbookDirection.CREDIT


class PaymentMode(str, Enum):
    CASH = "CASH"
    BANK = "BANK"
    UPI = "UPI"
    CHEQUE = "CHEQUE"


class AuditAction(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"
    RECALCULATED = "RECALCULATED"
    REVERSED = "REVERSED"


class BalanceScope(str, Enum):
    OVERALL = "OVERALL"
    MONTHLY = "MONTHLY"
    STAFF = "STAFF"
