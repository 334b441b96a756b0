from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import LedgerEntryType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, fetchall, fetchone, insert_row, tx_cursor
from ..database.unit_of_work import Transaction
from .model import SalaryLedgerEntry
from .repository import LedgerRepository

_COLUMNS = "ledger_id, salary_id, user_id, company_id, type, amount, reason, cashbook_entry_id, created_by, created_at"


class MySQLLedgerRepository(LedgerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_model(r: dict) -> SalaryLedgerEntry:
        return SalaryLedgerEntry(
            ledger_id=int(r["ledger_id"]),
            salary_id=int(r["salary_id"]),
            user_id=int(r["user_id"]),
            company_id=int(r["company_id"]),
            type=LedgerEntryType(r["type"]),
            amount=as_decimal(r["amount"]) or Decimal("0.00"),
            reason=r.get("reason"),
            cashbook_entry_id=r.get("cashbook_entry_id"),
            created_by=r.get("created_by"),
            created_at=r.get("created_at"),
        )

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
        with tx_cursor(self._conn_factory, tx) as cur:
            return insert_row(
                cur,
                """
                INSERT INTO salary_ledger(salary_id, user_id, company_id, type, amount, reason, cashbook_entry_id, created_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (salary_id, user_id, company_id, type.value, amount, reason, cashbook_entry_id, created_by),
            )

    def get_by_id(self, ledger_id: int, *, tx: Optional[Transaction] = None) -> Optional[SalaryLedgerEntry]:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(f"SELECT {_COLUMNS} FROM salary_ledger WHERE ledger_id=%s", (int(ledger_id),))
            r = fetchone(cur)
            return self._to_model(r) if r else None

    def list_for_salary(self, salary_id: int, *, tx: Optional[Transaction] = None) -> Sequence[SalaryLedgerEntry]:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM salary_ledger WHERE salary_id=%s ORDER BY ledger_id ASC",
                (int(salary_id),),
            )
            return [self._to_model(r) for r in fetchall(cur)]

    def find_by_cashbook_entry(
        self, cashbook_entry_id: int, *, tx: Optional[Transaction] = None
    ) -> Optional[SalaryLedgerEntry]:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM salary_ledger WHERE cashbook_entry_id=%s ORDER BY ledger_id DESC LIMIT 1",
                (int(cashbook_entry_id),),
            )
            r = fetchone(cur)
            return self._to_model(r) if r else None

    def find_latest_unlinked(
        self, *, salary_id: int, user_id: int, tx: Optional[Transaction] = None
    ) -> Optional[SalaryLedgerEntry]:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM salary_ledger
                WHERE salary_id=%s AND user_id=%s AND cashbook_entry_id IS NULL
                ORDER BY created_at DESC, ledger_id DESC
                LIMIT 1
                """,
                (int(salary_id), int(user_id)),
            )
            r = fetchone(cur)
            return self._to_model(r) if r else None
