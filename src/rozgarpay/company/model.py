from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from decimal import Decimal

from ..core import constants
from ..core.enums import CompanyStatus, SalaryType


@dataclass(frozen=True)
class CompanyPolicy:
    """Per-company pay and attendance-window configuration."""

    company_id: int
    name: str
    status: CompanyStatus = CompanyStatus.ACTIVE
    timezone: str = constants.DEFAULT_TIMEZONE

    shift_start_time: time = time(9, 0)
    shift_end_time: time = time(18, 0)
    grace_period_minutes: int = constants.DEFAULT_GRACE_MINUTES
    overtime_threshold_hours: Decimal = Decimal(constants.DEFAULT_OVERTIME_THRESHOLD_HOURS)

    default_salary_type: SalaryType = SalaryType.MONTHLY
    enable_overtime: bool = True
    overtime_multiplier: Decimal = Decimal(constants.DEFAULT_OVERTIME_MULTIPLIER)
    monthly_hours_divisor: int = constants.DEFAULT_MONTHLY_HOURS_DIVISOR
    prorate_absent_days: bool = True

    enable_late_penalty: bool = False
    late_penalty_per_minute: Decimal = Decimal("0")
    enable_absent_penalty: bool = False
    absent_penalty_per_day: Decimal = Decimal("0")
    half_day_threshold_hours: Decimal = Decimal(constants.DEFAULT_HALF_DAY_THRESHOLD_HOURS)

    pf_percentage: Decimal = Decimal(constants.DEFAULT_PF_PERCENTAGE)
    esi_percentage: Decimal = Decimal(constants.DEFAULT_ESI_PERCENTAGE)

    @property
    def is_active(self) -> bool:
        return self.status == CompanyStatus.ACTIVE

    @property
    def shift_hours(self) -> Decimal:
        start = self.shift_start_time.hour * 60 + self.shift_start_time.minute
        end = self.shift_end_time.hour * 60 + self.shift_end_time.minute
        minutes = end - start
        if minutes <= 0:
            # Night shift crossing midnight.
            minutes += 24 * 60
        return Decimal(minutes) / Decimal(60)
