from __future__ import annotations

from decimal import Decimal

from ....common.datetime_utils import days_in_month
from ....common.money import to_money
from ....core.enums import BreakdownType, SalaryType
from ....core.exceptions import ConfigurationIncomplete
from ...model import BreakdownLine
from ..base import BasePayStrategy, PayContext


class MonthlyPayStrategy(BasePayStrategy):
    """Fixed monthly base, reduced pro rata for absent and half days when the company prorates."""

    salary_type = SalaryType.MONTHLY

    def require_profile(self, ctx: PayContext) -> None:
        if not ctx.staff.base_salary or ctx.staff.base_salary <= 0:
            raise ConfigurationIncomplete(f"Monthly base salary is not configured for user {ctx.staff.user_id}")

    def base_lines(self, ctx: PayContext) -> list[BreakdownLine]:
        base = to_money(ctx.staff.base_salary)
        lines = [BreakdownLine(type=BreakdownType.BASE_SALARY, description="Monthly base salary", amount=base)]

        summary = ctx.attendance
        unpaid_days = Decimal(summary.absent_days) + Decimal(summary.half_days) / Decimal(2)
        if ctx.policy.prorate_absent_days and unpaid_days > 0:
            per_day = base / Decimal(days_in_month(summary.year, summary.month))
            loss = min(to_money(per_day * unpaid_days), base)
            lines.append(
                BreakdownLine(
                    type=BreakdownType.LOSS_OF_PAY,
                    description=f"Loss of pay for {unpaid_days.normalize()} day(s)",
                    amount=-loss,
                    quantity=unpaid_days,
                )
            )
        return lines
