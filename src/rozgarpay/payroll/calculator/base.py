from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ...attendance.model import AttendanceSummary
from ...company.model import CompanyPolicy
from ...core.enums import SalaryType
from ...users.model import StaffMember
from ..model import BreakdownLine, SalaryDraft


@dataclass(frozen=True)
class PayContext:
    staff: StaffMember
    policy: CompanyPolicy
    attendance: AttendanceSummary
    salary_type: SalaryType

    def hourly_equivalent(self) -> Optional[Decimal]:
        """Hourly rate, else monthly base over the hours divisor, else daily rate over shift hours."""
        if self.staff.hourly_rate:
            return self.staff.hourly_rate
        if self.staff.base_salary and self.policy.monthly_hours_divisor:
            return self.staff.base_salary / Decimal(self.policy.monthly_hours_divisor)
        if self.staff.daily_rate and self.policy.shift_hours > 0:
            return self.staff.daily_rate / self.policy.shift_hours
        return None


class BasePayStrategy(ABC):
    """Strategy Pattern: how base pay is earned for one salary type."""

    salary_type: SalaryType

    @abstractmethod
    def require_profile(self, ctx: PayContext) -> None:
        """Raise ``ConfigurationIncomplete`` when the staff pay profile lacks what this type needs."""

        raise NotImplementedError

    @abstractmethod
    def base_lines(self, ctx: PayContext) -> list[BreakdownLine]:
        raise NotImplementedError


class SalaryCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def calculate(self, ctx: PayContext) -> SalaryDraft:
        raise NotImplementedError
