from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance day of a user.

    ``attendance_date`` is the company-local calendar date, punches are UTC.
    """

    attendance_id: int
    user_id: int
    company_id: int
    attendance_date: date
    status: AttendanceStatus
    punch_in: Optional[datetime] = None
    punch_out: Optional[datetime] = None
    working_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    is_late: bool = False
    auto_punch_out: bool = False


@dataclass(frozen=True)
class AttendanceSummary:
    """Read-model consumed by the salary calculator."""

    user_id: int
    month: int
    year: int
    elapsed_days: int
    present_days: int
    half_days: int
    absent_days: int
    leave_days: int
    rejected_days: int
    late_days: int
    late_minutes: int
    working_hours: Decimal
    overtime_hours: Decimal
