from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_decimal, db_cursor, fetchall
from .model import AttendanceRecord
from .repository import AttendanceRepository


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_period(
        self,
        *,
        user_id: int,
        company_id: int,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT attendance_id, user_id, company_id, attendance_date, status,
                       punch_in, punch_out, working_hours, overtime_hours, is_late, auto_punch_out
                FROM attendance
                WHERE user_id=%s AND company_id=%s AND attendance_date BETWEEN %s AND %s
                ORDER BY attendance_date ASC
                """,
                (int(user_id), int(company_id), start_date, end_date),
            )
            rows = fetchall(cur)

        return [
            AttendanceRecord(
                attendance_id=int(r["attendance_id"]),
                user_id=int(r["user_id"]),
                company_id=int(r["company_id"]),
                attendance_date=r["attendance_date"],
                status=AttendanceStatus(r["status"]),
                punch_in=r.get("punch_in"),
                punch_out=r.get("punch_out"),
                working_hours=as_decimal(r.get("working_hours")) or Decimal("0"),
                overtime_hours=as_decimal(r.get("overtime_hours")) or Decimal("0"),
                is_late=as_bool(r.get("is_late")),
                auto_punch_out=as_bool(r.get("auto_punch_out")),
            )
            for r in rows
        ]
