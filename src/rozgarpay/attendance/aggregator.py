"""Monthly attendance aggregation.

Turns the raw attendance rows of one user into the counters the salary
calculator works from. The month window is always expressed in company-local
calendar dates; the company zone comes from the policy.

A day is absent only when it has no attendance row at all. Pending and
rejected days are not present, but they are not absent either.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from ..common.datetime_utils import as_utc, local_date, month_window, utc_now, zone
from ..company.model import CompanyPolicy
from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, AttendanceSummary
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceAggregator:
    def __init__(self, attendance: AttendanceRepository):
        self._attendance = attendance

    def summarize(
        self,
        *,
        user_id: int,
        company_id: int,
        month: int,
        year: int,
        policy: CompanyPolicy,
        today: Optional[date] = None,
    ) -> AttendanceSummary:
        first, last = month_window(year, month)
        if today is None:
            today = local_date(utc_now(), policy.timezone)

        rows = self._attendance.list_for_period(
            user_id=user_id,
            company_id=company_id,
            start_date=first,
            end_date=last,
        )
        return self.summarize_rows(rows, user_id=user_id, month=month, year=year, policy=policy, today=today)

    def summarize_rows(
        self,
        rows: Iterable[AttendanceRecord],
        *,
        user_id: int,
        month: int,
        year: int,
        policy: CompanyPolicy,
        today: date,
    ) -> AttendanceSummary:
        first, last = month_window(year, month)
        elapsed_days = _elapsed_days(first, last, today)

        present = half = leave = rejected = late_days = late_minutes = 0
        recorded = 0
        hours = Decimal("0")
        overtime = Decimal("0")
        seen: set[date] = set()

        for r in rows:
            if r.attendance_date < first or r.attendance_date > last:
                continue
            if r.attendance_date in seen:
                # One row per day is the rule; a stray duplicate must not double-count.
                logger.warning("Duplicate attendance row user=%s date=%s", r.user_id, r.attendance_date)
                continue
            seen.add(r.attendance_date)
            if r.attendance_date <= today:
                recorded += 1

            if r.status == AttendanceStatus.LEAVE:
                present += 1
                leave += 1
            elif r.status == AttendanceStatus.REJECTED:
                rejected += 1
            elif r.status == AttendanceStatus.APPROVED:
                present += 1
                hours += r.working_hours
                overtime += r.overtime_hours
                if 0 < r.working_hours < policy.half_day_threshold_hours:
                    half += 1
                if r.is_late:
                    late_days += 1
                    late_minutes += _late_minutes(r, policy)

        return AttendanceSummary(
            user_id=user_id,
            month=month,
            year=year,
            elapsed_days=elapsed_days,
            present_days=present,
            half_days=half,
            absent_days=max(0, elapsed_days - recorded),
            leave_days=leave,
            rejected_days=rejected,
            late_days=late_days,
            late_minutes=late_minutes,
            working_hours=hours,
            overtime_hours=overtime,
        )


def _elapsed_days(first: date, last: date, today: date) -> int:
    if today < first:
        return 0
    end = min(last, today)
    return (end - first).days + 1


def _late_minutes(record: AttendanceRecord, policy: CompanyPolicy) -> int:
    if record.punch_in is None:
        return 0
    tz = zone(policy.timezone)
    punch_in = as_utc(record.punch_in).astimezone(tz)
    cutoff = datetime.combine(record.attendance_date, policy.shift_start_time, tzinfo=tz) + timedelta(
        minutes=policy.grace_period_minutes
    )
    delta = punch_in - cutoff
    return max(0, int(delta.total_seconds() // 60))
