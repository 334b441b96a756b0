from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..core.enums import Role, SalaryType, UserStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_decimal, db_cursor, fetchall, fetchone
from .model import StaffMember
from .repository import UserRepository

_COLUMNS = """
    user_id, company_id, full_name, role, status, salary_type,
    base_salary, hourly_rate, daily_rate, overtime_rate, pf_esi_applicable
"""


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_model(r: dict) -> StaffMember:
        return StaffMember(
            user_id=int(r["user_id"]),
            company_id=int(r["company_id"]),
            full_name=r["full_name"],
            role=Role(r["role"]),
            status=UserStatus(r["status"]),
            salary_type=SalaryType(r["salary_type"]) if r.get("salary_type") else None,
            base_salary=as_decimal(r.get("base_salary")),
            hourly_rate=as_decimal(r.get("hourly_rate")),
            daily_rate=as_decimal(r.get("daily_rate")),
            overtime_rate=as_decimal(r.get("overtime_rate")),
            pf_esi_applicable=as_bool(r.get("pf_esi_applicable")),
        )

    def get_by_id(self, user_id: int) -> Optional[StaffMember]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            r = fetchone(cur)
            return self._to_model(r) if r else None

    def list_active(self, *, company_id: int, roles: Iterable[Role]) -> Sequence[StaffMember]:
        role_values = [r.value for r in roles]
        if not role_values:
            return []
        placeholders = ", ".join(["%s"] * len(role_values))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM users
                WHERE company_id=%s AND status=%s AND role IN ({placeholders})
                ORDER BY user_id ASC
                """,
                (int(company_id), UserStatus.ACTIVE.value, *role_values),
            )
            return [self._to_model(r) for r in fetchall(cur)]
