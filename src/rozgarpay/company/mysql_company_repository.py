from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..core import constants
from ..core.enums import CompanyStatus, SalaryType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_decimal, db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import CompanyPolicy
from .repository import CompanyRepository

_COLUMNS = """
    company_id, name, status, timezone,
    shift_start_time, shift_end_time, grace_period_minutes, overtime_threshold_hours,
    default_salary_type, enable_overtime, overtime_multiplier, monthly_hours_divisor, prorate_absent_days,
    enable_late_penalty, late_penalty_per_minute, enable_absent_penalty, absent_penalty_per_day,
    half_day_threshold_hours, pf_percentage, esi_percentage
"""


class MySQLCompanyRepository(CompanyRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, default_timezone: str = constants.DEFAULT_TIMEZONE):
        self._conn_factory = conn_factory
        self._default_timezone = default_timezone

    def _to_model(self, r: dict) -> CompanyPolicy:
        defaults = CompanyPolicy(company_id=0, name="")

        def dec(key: str, fallback: Decimal) -> Decimal:
            v = as_decimal(r.get(key))
            return v if v is not None else fallback

        return CompanyPolicy(
            company_id=int(r["company_id"]),
            name=r["name"],
            status=CompanyStatus(r["status"]),
            timezone=r.get("timezone") or self._default_timezone,
            shift_start_time=normalize_mysql_time(r.get("shift_start_time")) or defaults.shift_start_time,
            shift_end_time=normalize_mysql_time(r.get("shift_end_time")) or defaults.shift_end_time,
            grace_period_minutes=int(r["grace_period_minutes"] if r.get("grace_period_minutes") is not None else defaults.grace_period_minutes),
            overtime_threshold_hours=dec("overtime_threshold_hours", defaults.overtime_threshold_hours),
            default_salary_type=SalaryType(r["default_salary_type"]) if r.get("default_salary_type") else defaults.default_salary_type,
            enable_overtime=as_bool(r.get("enable_overtime")),
            overtime_multiplier=dec("overtime_multiplier", defaults.overtime_multiplier),
            monthly_hours_divisor=int(r.get("monthly_hours_divisor") or defaults.monthly_hours_divisor),
            prorate_absent_days=as_bool(r.get("prorate_absent_days")),
            enable_late_penalty=as_bool(r.get("enable_late_penalty")),
            late_penalty_per_minute=dec("late_penalty_per_minute", defaults.late_penalty_per_minute),
            enable_absent_penalty=as_bool(r.get("enable_absent_penalty")),
            absent_penalty_per_day=dec("absent_penalty_per_day", defaults.absent_penalty_per_day),
            half_day_threshold_hours=dec("half_day_threshold_hours", defaults.half_day_threshold_hours),
            pf_percentage=dec("pf_percentage", defaults.pf_percentage),
            esi_percentage=dec("esi_percentage", defaults.esi_percentage),
        )

    def get_policy(self, company_id: int) -> Optional[CompanyPolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM companies WHERE company_id=%s", (int(company_id),))
            r = fetchone(cur)
            return self._to_model(r) if r else None

    def list_active(self) -> Sequence[CompanyPolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM companies WHERE status=%s ORDER BY company_id ASC",
                (CompanyStatus.ACTIVE.value,),
            )
            return [self._to_model(r) for r in fetchall(cur)]
