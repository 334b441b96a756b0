from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import CashbookDirection, CashbookTransactionType, PaymentMode
from ..payroll.model import Salary, SalaryLedgerEntry


@dataclass(frozen=True)
class CashbookEntry:
    """Company journal line. ``amount`` is always positive; ``direction`` carries the sign."""

    entry_id: int
    company_id: int
    transaction_type: CashbookTransactionType
    direction: CashbookDirection
    amount: Decimal
    description: str
    transaction_date: date
    user_id: Optional[int] = None
    payment_mode: Optional[PaymentMode] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    reversal_of: Optional[int] = None
    is_reversed: bool = False
    created_at: Optional[datetime] = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction == CashbookDirection.CREDIT else -self.amount


@dataclass(frozen=True)
class NewCashbookEntry:
    company_id: int
    transaction_type: CashbookTransactionType
    direction: CashbookDirection
    amount: Decimal
    description: str
    transaction_date: date
    user_id: Optional[int] = None
    payment_mode: Optional[PaymentMode] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    reversal_of: Optional[int] = None


@dataclass(frozen=True)
class CashbookFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    transaction_type: Optional[CashbookTransactionType] = None
    direction: Optional[CashbookDirection] = None
    payment_mode: Optional[PaymentMode] = None
    user_id: Optional[int] = None
    search: Optional[str] = None


@dataclass(frozen=True)
class EntryPage:
    entries: list[CashbookEntry]
    total: int
    page: int
    limit: int


@dataclass(frozen=True)
class Balance:
    credit: Decimal
    debit: Decimal
    balance: Decimal


@dataclass(frozen=True)
class BalanceSummary:
    month: int
    year: int
    opening_balance: Decimal
    monthly_credit: Decimal
    monthly_debit: Decimal
    closing_balance: Decimal


@dataclass(frozen=True)
class LedgerEvent:
    salary: Salary
    ledger_entry: SalaryLedgerEntry
    cashbook_entry: CashbookEntry


@dataclass(frozen=True)
class Reversal:
    original_entry: CashbookEntry
    reversal_entry: CashbookEntry
    ledger_entry: Optional[SalaryLedgerEntry] = None
