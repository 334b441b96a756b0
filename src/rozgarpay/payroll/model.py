from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import BreakdownType, LedgerEntryType, SalaryStatus, SalaryType


@dataclass(frozen=True)
class SalaryPeriod:
    """The natural key of a salary row."""

    user_id: int
    company_id: int
    month: int
    year: int


@dataclass(frozen=True)
class Salary:
    """Domain entity: one user's pay for one calendar month."""

    salary_id: int
    user_id: int
    company_id: int
    month: int
    year: int
    salary_type: SalaryType
    base_amount: Decimal
    gross_amount: Decimal
    net_amount: Decimal
    status: SalaryStatus = SalaryStatus.PENDING
    overtime_amount: Decimal = Decimal("0.00")
    penalty_amount: Decimal = Decimal("0.00")
    deduction_amount: Decimal = Decimal("0.00")

    total_working_days: int = 0
    total_working_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    late_minutes: int = 0
    half_days: int = 0
    absent_days: int = 0

    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    locked_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    pdf_url: Optional[str] = None
    version: int = 1
    created_at: Optional[datetime] = None

    @property
    def period(self) -> SalaryPeriod:
        return SalaryPeriod(user_id=self.user_id, company_id=self.company_id, month=self.month, year=self.year)

    @property
    def is_locked(self) -> bool:
        return self.locked_at is not None


@dataclass(frozen=True)
class BreakdownLine:
    """An unsaved salary component. Earnings are positive, deductions negative."""

    type: BreakdownType
    description: str
    amount: Decimal
    quantity: Optional[Decimal] = None
    hours: Optional[Decimal] = None


@dataclass(frozen=True)
class SalaryBreakdown:
    breakdown_id: int
    salary_id: int
    type: BreakdownType
    description: str
    amount: Decimal
    quantity: Optional[Decimal] = None
    hours: Optional[Decimal] = None


@dataclass(frozen=True)
class SalaryDraft:
    """Computed amounts plus the attendance snapshot, ready to be stored."""

    salary_type: SalaryType
    base_amount: Decimal
    overtime_amount: Decimal
    penalty_amount: Decimal
    deduction_amount: Decimal
    gross_amount: Decimal
    net_amount: Decimal
    lines: tuple[BreakdownLine, ...] = ()
    total_working_days: int = 0
    total_working_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    late_minutes: int = 0
    half_days: int = 0
    absent_days: int = 0


@dataclass(frozen=True)
class SalaryLedgerEntry:
    """Append-only adjustment to a salary. Positive amounts increase what is owed."""

    ledger_id: int
    salary_id: int
    user_id: int
    company_id: int
    type: LedgerEntryType
    amount: Decimal
    reason: Optional[str] = None
    cashbook_entry_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class GeneratedSalary:
    salary: Salary
    breakdowns: list[SalaryBreakdown]
    created: bool


@dataclass(frozen=True)
class BatchError:
    user_id: int
    kind: str
    message: str


@dataclass
class BatchResult:
    processed: int = 0
    created: int = 0
    errors: list[BatchError] = field(default_factory=list)


@dataclass(frozen=True)
class SalaryStatement:
    salary: Salary
    breakdowns: list[SalaryBreakdown]
    ledger_entries: list[SalaryLedgerEntry]
    balance: Decimal


@dataclass(frozen=True)
class PaymentDetails:
    paid_on: date
    method: Optional[str] = None
    reference: Optional[str] = None
