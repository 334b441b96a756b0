from __future__ import annotations

from decimal import Decimal

from ....common.money import to_money
from ....core.enums import BreakdownType, SalaryType
from ....core.exceptions import ConfigurationIncomplete
from ...model import BreakdownLine
from ..base import BasePayStrategy, PayContext


class DailyPayStrategy(BasePayStrategy):
    """Half days earn half the daily rate."""

    salary_type = SalaryType.DAILY

    def require_profile(self, ctx: PayContext) -> None:
        if not ctx.staff.daily_rate or ctx.staff.daily_rate <= 0:
            raise ConfigurationIncomplete(f"Daily rate is not configured for user {ctx.staff.user_id}")

    def base_lines(self, ctx: PayContext) -> list[BreakdownLine]:
        summary = ctx.attendance
        days = Decimal(summary.present_days) - Decimal(summary.half_days) / Decimal(2)
        return [
            BreakdownLine(
                type=BreakdownType.BASE_SALARY,
                description=f"{days.normalize()} day(s) at {ctx.staff.daily_rate}",
                amount=to_money(ctx.staff.daily_rate * days),
                quantity=days,
            )
        ]
