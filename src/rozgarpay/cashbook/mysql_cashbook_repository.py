from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import CashbookDirection, CashbookTransactionType, PaymentMode
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_decimal, db_cursor, fetchall, fetchone, insert_row, tx_cursor
from ..database.unit_of_work import Transaction
from .model import CashbookEntry, CashbookFilters, NewCashbookEntry
from .repository import CashbookRepository

_COLUMNS = """
    entry_id, company_id, user_id, transaction_type, direction, amount, payment_mode,
    reference, description, notes, transaction_date, created_by, reversal_of, is_reversed, created_at
"""


class MySQLCashbookRepository(CashbookRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_model(r: dict) -> CashbookEntry:
        return CashbookEntry(
            entry_id=int(r["entry_id"]),
            company_id=int(r["company_id"]),
            user_id=r.get("user_id"),
            transaction_type=CashbookTransactionType(r["transaction_type"]),
            direction=CashbookDirection(r["direction"]),
            amount=as_decimal(r["amount"]) or Decimal("0.00"),
            payment_mode=PaymentMode(r["payment_mode"]) if r.get("payment_mode") else None,
            reference=r.get("reference"),
            description=r["description"],
            notes=r.get("notes"),
            transaction_date=r["transaction_date"],
            created_by=r.get("created_by"),
            reversal_of=r.get("reversal_of"),
            is_reversed=as_bool(r.get("is_reversed")),
            created_at=r.get("created_at"),
        )

    def add(self, entry: NewCashbookEntry, *, tx: Optional[Transaction] = None) -> int:
        with tx_cursor(self._conn_factory, tx) as cur:
            return insert_row(
                cur,
                """
                INSERT INTO cashbook_entries(
                    company_id, user_id, transaction_type, direction, amount, payment_mode,
                    reference, description, notes, transaction_date, created_by, reversal_of
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    entry.company_id,
                    entry.user_id,
                    entry.transaction_type.value,
                    entry.direction.value,
                    entry.amount,
                    entry.payment_mode.value if entry.payment_mode else None,
                    entry.reference,
                    entry.description,
                    entry.notes,
                    entry.transaction_date,
                    entry.created_by,
                    entry.reversal_of,
                ),
            )

    def get_by_id(
        self, entry_id: int, *, tx: Optional[Transaction] = None, for_update: bool = False
    ) -> Optional[CashbookEntry]:
        lock = " FOR UPDATE" if for_update and tx is not None else ""
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(f"SELECT {_COLUMNS} FROM cashbook_entries WHERE entry_id=%s{lock}", (int(entry_id),))
            r = fetchone(cur)
            return self._to_model(r) if r else None

    def mark_reversed(self, entry_id: int, *, tx: Optional[Transaction] = None) -> bool:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                "UPDATE cashbook_entries SET is_reversed=1 WHERE entry_id=%s AND is_reversed=0",
                (int(entry_id),),
            )
            return cur.rowcount == 1

    @staticmethod
    def _where(company_id: int, filters: CashbookFilters) -> tuple[str, list]:
        clauses = ["company_id=%s"]
        params: list = [int(company_id)]
        if filters.start_date:
            clauses.append("transaction_date >= %s")
            params.append(filters.start_date)
        if filters.end_date:
            clauses.append("transaction_date <= %s")
            params.append(filters.end_date)
        if filters.transaction_type:
            clauses.append("transaction_type=%s")
            params.append(filters.transaction_type.value)
        if filters.direction:
            clauses.append("direction=%s")
            params.append(filters.direction.value)
        if filters.payment_mode:
            clauses.append("payment_mode=%s")
            params.append(filters.payment_mode.value)
        if filters.user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(filters.user_id))
        if filters.search:
            like = f"%{filters.search}%"
            clauses.append("(description LIKE %s OR reference LIKE %s OR notes LIKE %s)")
            params.extend([like, like, like])
        return " AND ".join(clauses), params

    def list_entries(
        self, company_id: int, filters: CashbookFilters, *, offset: int, limit: int
    ) -> tuple[Sequence[CashbookEntry], int]:
        where, params = self._where(company_id, filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM cashbook_entries WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM cashbook_entries
                WHERE {where}
                ORDER BY transaction_date DESC, entry_id DESC
                LIMIT %s OFFSET %s
                """,
                (*params, int(limit), int(offset)),
            )
            return [self._to_model(r) for r in fetchall(cur)], total

    def sum_by_direction(
        self,
        company_id: int,
        *,
        user_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> tuple[Decimal, Decimal]:
        clauses = ["company_id=%s", "is_reversed=0"]
        params: list = [int(company_id)]
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))
        if start_date:
            clauses.append("transaction_date >= %s")
            params.append(start_date)
        if end_date:
            clauses.append("transaction_date <= %s")
            params.append(end_date)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT
                    COALESCE(SUM(CASE WHEN direction='CREDIT' THEN amount ELSE 0 END), 0) AS credit,
                    COALESCE(SUM(CASE WHEN direction='DEBIT' THEN amount ELSE 0 END), 0) AS debit
                FROM cashbook_entries
                WHERE {' AND '.join(clauses)}
                """,
                tuple(params),
            )
            r = fetchone(cur) or {}
            return as_decimal(r.get("credit")) or Decimal("0"), as_decimal(r.get("debit")) or Decimal("0")
