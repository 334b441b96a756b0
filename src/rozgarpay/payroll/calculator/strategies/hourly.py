from __future__ import annotations

from ....common.money import to_money
from ....core.enums import BreakdownType, SalaryType
from ....core.exceptions import ConfigurationIncomplete
from ...model import BreakdownLine
from ..base import BasePayStrategy, PayContext


class HourlyPayStrategy(BasePayStrategy):
    salary_type = SalaryType.HOURLY

    def require_profile(self, ctx: PayContext) -> None:
        if not ctx.staff.hourly_rate or ctx.staff.hourly_rate <= 0:
            raise ConfigurationIncomplete(f"Hourly rate is not configured for user {ctx.staff.user_id}")

    def base_lines(self, ctx: PayContext) -> list[BreakdownLine]:
        hours = ctx.attendance.working_hours
        return [
            BreakdownLine(
                type=BreakdownType.BASE_SALARY,
                description=f"{hours.normalize()} hour(s) at {ctx.staff.hourly_rate}",
                amount=to_money(ctx.staff.hourly_rate * hours),
                hours=hours,
            )
        ]
