from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..database.unit_of_work import Transaction
from .model import CashbookEntry, CashbookFilters, NewCashbookEntry


class CashbookRepository(Protocol):
    def add(self, entry: NewCashbookEntry, *, tx: Optional[Transaction] = None) -> int:
        raise NotImplementedError

    def get_by_id(
        self, entry_id: int, *, tx: Optional[Transaction] = None, for_update: bool = False
    ) -> Optional[CashbookEntry]:
        raise NotImplementedError

    def mark_reversed(self, entry_id: int, *, tx: Optional[Transaction] = None) -> bool:
        """Flip ``is_reversed`` only if it is still unset; False means someone else got there first."""

        raise NotImplementedError

    def list_entries(
        self, company_id: int, filters: CashbookFilters, *, offset: int, limit: int
    ) -> tuple[Sequence[CashbookEntry], int]:
        raise NotImplementedError

    def sum_by_direction(
        self,
        company_id: int,
        *,
        user_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> tuple[Decimal, Decimal]:
        """(credit, debit) totals over entries that are not reversed."""

        raise NotImplementedError
