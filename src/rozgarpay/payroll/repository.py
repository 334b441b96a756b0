from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import LedgerEntryType
from ..database.unit_of_work import Transaction
from .model import (
    BreakdownLine,
    Salary,
    SalaryBreakdown,
    SalaryDraft,
    SalaryLedgerEntry,
    SalaryPeriod,
)


class SalaryRepository(Protocol):
    def get_by_id(self, salary_id: int, *, tx: Optional[Transaction] = None, for_update: bool = False) -> Optional[Salary]:
        raise NotImplementedError

    def get_for_period(
        self, period: SalaryPeriod, *, tx: Optional[Transaction] = None, for_update: bool = False
    ) -> Optional[Salary]:
        raise NotImplementedError

    def create(self, period: SalaryPeriod, draft: SalaryDraft, *, tx: Optional[Transaction] = None) -> int:
        """Insert a PENDING salary. Raises ``DuplicateEntryError`` if the period already has one."""

        raise NotImplementedError

    def update_amounts(
        self, salary_id: int, draft: SalaryDraft, *, expected_version: int, tx: Optional[Transaction] = None
    ) -> bool:
        """Overwrite amounts of an unlocked salary; False when locked or the version moved."""

        raise NotImplementedError

    def mark_approved(self, salary_id: int, *, approved_by: int, at: datetime, tx: Optional[Transaction] = None) -> bool:
        raise NotImplementedError

    def mark_rejected(
        self, salary_id: int, *, rejected_by: int, reason: str, at: datetime, tx: Optional[Transaction] = None
    ) -> bool:
        raise NotImplementedError

    def mark_paid(
        self,
        salary_id: int,
        *,
        at: datetime,
        method: Optional[str],
        reference: Optional[str],
        tx: Optional[Transaction] = None,
    ) -> bool:
        raise NotImplementedError

    def list_breakdowns(self, salary_id: int, *, tx: Optional[Transaction] = None) -> Sequence[SalaryBreakdown]:
        raise NotImplementedError

    def add_breakdowns(self, salary_id: int, lines: Sequence[BreakdownLine], *, tx: Optional[Transaction] = None) -> None:
        raise NotImplementedError

    def delete_breakdowns(self, salary_id: int, *, tx: Optional[Transaction] = None) -> None:
        raise NotImplementedError


class LedgerRepository(Protocol):
    def add(
        self,
        *,
        salary_id: int,
        user_id: int,
        company_id: int,
        type: LedgerEntryType,
        amount: Decimal,
        reason: Optional[str],
        cashbook_entry_id: Optional[int],
        created_by: Optional[int],
        tx: Optional[Transaction] = None,
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, ledger_id: int, *, tx: Optional[Transaction] = None) -> Optional[SalaryLedgerEntry]:
        raise NotImplementedError

    def list_for_salary(self, salary_id: int, *, tx: Optional[Transaction] = None) -> Sequence[SalaryLedgerEntry]:
        raise NotImplementedError

    def find_by_cashbook_entry(
        self, cashbook_entry_id: int, *, tx: Optional[Transaction] = None
    ) -> Optional[SalaryLedgerEntry]:
        raise NotImplementedError

    def find_latest_unlinked(
        self, *, salary_id: int, user_id: int, tx: Optional[Transaction] = None
    ) -> Optional[SalaryLedgerEntry]:
        """Newest entry of a salary/user pair that has no cashbook link (rows from before linking existed)."""

        raise NotImplementedError
