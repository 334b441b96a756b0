from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import BreakdownType, SalaryStatus, SalaryType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, fetchall, fetchone, insert_row, tx_cursor
from ..database.unit_of_work import Transaction
from .model import BreakdownLine, Salary, SalaryBreakdown, SalaryDraft, SalaryPeriod
from .repository import SalaryRepository

_COLUMNS = """
    salary_id, user_id, company_id, month, year, salary_type, status,
    base_amount, overtime_amount, penalty_amount, deduction_amount, gross_amount, net_amount,
    total_working_days, total_working_hours, overtime_hours, late_minutes, half_days, absent_days,
    approved_by, approved_at, rejected_by, rejected_at, rejection_reason, locked_at,
    paid_at, payment_method, payment_reference, pdf_url, version, created_at
"""


def _dec(value) -> Decimal:
    v = as_decimal(value)
    return v if v is not None else Decimal("0.00")


class MySQLSalaryRepository(SalaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_model(r: dict) -> Salary:
        return Salary(
            salary_id=int(r["salary_id"]),
            user_id=int(r["user_id"]),
            company_id=int(r["company_id"]),
            month=int(r["month"]),
            year=int(r["year"]),
            salary_type=SalaryType(r["salary_type"]),
            status=SalaryStatus(r["status"]),
            base_amount=_dec(r["base_amount"]),
            overtime_amount=_dec(r.get("overtime_amount")),
            penalty_amount=_dec(r.get("penalty_amount")),
            deduction_amount=_dec(r.get("deduction_amount")),
            gross_amount=_dec(r["gross_amount"]),
            net_amount=_dec(r["net_amount"]),
            total_working_days=int(r.get("total_working_days") or 0),
            total_working_hours=_dec(r.get("total_working_hours")),
            overtime_hours=_dec(r.get("overtime_hours")),
            late_minutes=int(r.get("late_minutes") or 0),
            half_days=int(r.get("half_days") or 0),
            absent_days=int(r.get("absent_days") or 0),
            approved_by=r.get("approved_by"),
            approved_at=r.get("approved_at"),
            rejected_by=r.get("rejected_by"),
            rejected_at=r.get("rejected_at"),
            rejection_reason=r.get("rejection_reason"),
            locked_at=r.get("locked_at"),
            paid_at=r.get("paid_at"),
            payment_method=r.get("payment_method"),
            payment_reference=r.get("payment_reference"),
            pdf_url=r.get("pdf_url"),
            version=int(r.get("version") or 1),
            created_at=r.get("created_at"),
        )

    def get_by_id(self, salary_id: int, *, tx: Optional[Transaction] = None, for_update: bool = False) -> Optional[Salary]:
        lock = " FOR UPDATE" if for_update and tx is not None else ""
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(f"SELECT {_COLUMNS} FROM salaries WHERE salary_id=%s{lock}", (int(salary_id),))
            r = fetchone(cur)
            return self._to_model(r) if r else None

    def get_for_period(
        self, period: SalaryPeriod, *, tx: Optional[Transaction] = None, for_update: bool = False
    ) -> Optional[Salary]:
        lock = " FOR UPDATE" if for_update and tx is not None else ""
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM salaries
                WHERE user_id=%s AND company_id=%s AND month=%s AND year=%s{lock}
                """,
                (period.user_id, period.company_id, period.month, period.year),
            )
            r = fetchone(cur)
            return self._to_model(r) if r else None

    def create(self, period: SalaryPeriod, draft: SalaryDraft, *, tx: Optional[Transaction] = None) -> int:
        with tx_cursor(self._conn_factory, tx) as cur:
            return insert_row(
                cur,
                """
                INSERT INTO salaries(
                    user_id, company_id, month, year, salary_type, status,
                    base_amount, overtime_amount, penalty_amount, deduction_amount, gross_amount, net_amount,
                    total_working_days, total_working_hours, overtime_hours, late_minutes, half_days, absent_days,
                    version
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (
                    period.user_id,
                    period.company_id,
                    period.month,
                    period.year,
                    draft.salary_type.value,
                    SalaryStatus.PENDING.value,
                    draft.base_amount,
                    draft.overtime_amount,
                    draft.penalty_amount,
                    draft.deduction_amount,
                    draft.gross_amount,
                    draft.net_amount,
                    draft.total_working_days,
                    draft.total_working_hours,
                    draft.overtime_hours,
                    draft.late_minutes,
                    draft.half_days,
                    draft.absent_days,
                ),
            )

    def update_amounts(
        self, salary_id: int, draft: SalaryDraft, *, expected_version: int, tx: Optional[Transaction] = None
    ) -> bool:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                """
                UPDATE salaries
                SET salary_type=%s, base_amount=%s, overtime_amount=%s, penalty_amount=%s,
                    deduction_amount=%s, gross_amount=%s, net_amount=%s,
                    total_working_days=%s, total_working_hours=%s, overtime_hours=%s,
                    late_minutes=%s, half_days=%s, absent_days=%s,
                    version=version + 1
                WHERE salary_id=%s AND locked_at IS NULL AND version=%s
                """,
                (
                    draft.salary_type.value,
                    draft.base_amount,
                    draft.overtime_amount,
                    draft.penalty_amount,
                    draft.deduction_amount,
                    draft.gross_amount,
                    draft.net_amount,
                    draft.total_working_days,
                    draft.total_working_hours,
                    draft.overtime_hours,
                    draft.late_minutes,
                    draft.half_days,
                    draft.absent_days,
                    int(salary_id),
                    int(expected_version),
                ),
            )
            return cur.rowcount == 1

    def mark_approved(self, salary_id: int, *, approved_by: int, at: datetime, tx: Optional[Transaction] = None) -> bool:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                """
                UPDATE salaries
                SET status=%s, approved_by=%s, approved_at=%s, locked_at=%s, version=version + 1
                WHERE salary_id=%s AND status=%s
                """,
                (SalaryStatus.APPROVED.value, approved_by, at, at, int(salary_id), SalaryStatus.PENDING.value),
            )
            return cur.rowcount == 1

    def mark_rejected(
        self, salary_id: int, *, rejected_by: int, reason: str, at: datetime, tx: Optional[Transaction] = None
    ) -> bool:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                """
                UPDATE salaries
                SET status=%s, rejected_by=%s, rejected_at=%s, rejection_reason=%s, locked_at=%s,
                    version=version + 1
                WHERE salary_id=%s AND status=%s
                """,
                (SalaryStatus.REJECTED.value, rejected_by, at, reason, at, int(salary_id), SalaryStatus.PENDING.value),
            )
            return cur.rowcount == 1

    def mark_paid(
        self,
        salary_id: int,
        *,
        at: datetime,
        method: Optional[str],
        reference: Optional[str],
        tx: Optional[Transaction] = None,
    ) -> bool:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                """
                UPDATE salaries
                SET status=%s, paid_at=%s, payment_method=%s, payment_reference=%s, version=version + 1
                WHERE salary_id=%s AND status=%s
                """,
                (SalaryStatus.PAID.value, at, method, reference, int(salary_id), SalaryStatus.APPROVED.value),
            )
            return cur.rowcount == 1

    def list_breakdowns(self, salary_id: int, *, tx: Optional[Transaction] = None) -> Sequence[SalaryBreakdown]:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                """
                SELECT breakdown_id, salary_id, type, description, amount, quantity, hours
                FROM salary_breakdowns
                WHERE salary_id=%s
                ORDER BY breakdown_id ASC
                """,
                (int(salary_id),),
            )
            return [
                SalaryBreakdown(
                    breakdown_id=int(r["breakdown_id"]),
                    salary_id=int(r["salary_id"]),
                    type=BreakdownType(r["type"]),
                    description=r["description"],
                    amount=_dec(r["amount"]),
                    quantity=as_decimal(r.get("quantity")),
                    hours=as_decimal(r.get("hours")),
                )
                for r in fetchall(cur)
            ]

    def add_breakdowns(self, salary_id: int, lines: Sequence[BreakdownLine], *, tx: Optional[Transaction] = None) -> None:
        if not lines:
            return
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.executemany(
                """
                INSERT INTO salary_breakdowns(salary_id, type, description, amount, quantity, hours)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                [(int(salary_id), ln.type.value, ln.description, ln.amount, ln.quantity, ln.hours) for ln in lines],
            )

    def delete_breakdowns(self, salary_id: int, *, tx: Optional[Transaction] = None) -> None:
        with tx_cursor(self._conn_factory, tx) as cur:
            cur.execute("DELETE FROM salary_breakdowns WHERE salary_id=%s", (int(salary_id),))
