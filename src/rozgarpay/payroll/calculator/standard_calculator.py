from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ...common.money import ZERO, money_sum, percent_of, to_money
from ...core.enums import BreakdownType
from ..model import BreakdownLine, SalaryDraft
from .base import PayContext, SalaryCalculator
from .factory import BasePayStrategyFactory


class StandardSalaryCalculator(SalaryCalculator):
    """Standard rule set.

    gross = base pay + loss of pay + overtime
    net   = gross - PF - ESI - late penalty - absent penalty

    Every component is rounded half-up to paise on its own, and the stored
    totals are sums of the rounded components.
    """

    def __init__(self, *, strategy_factory: Optional[BasePayStrategyFactory] = None):
        self._factory = strategy_factory or BasePayStrategyFactory()

    def calculate(self, ctx: PayContext) -> SalaryDraft:
        strategy = self._factory.for_type(ctx.salary_type)
        strategy.require_profile(ctx)

        earnings = strategy.base_lines(ctx)
        base_amount = money_sum(ln.amount for ln in earnings if ln.type == BreakdownType.BASE_SALARY)

        overtime = self._overtime_line(ctx)
        if overtime is not None:
            earnings.append(overtime)
        gross = money_sum(ln.amount for ln in earnings)

        statutory = self._statutory_lines(ctx, gross)
        penalties = self._penalty_lines(ctx)
        lines = earnings + statutory + penalties

        summary = ctx.attendance
        return SalaryDraft(
            salary_type=ctx.salary_type,
            base_amount=base_amount,
            overtime_amount=overtime.amount if overtime is not None else ZERO,
            penalty_amount=money_sum(-ln.amount for ln in penalties),
            deduction_amount=money_sum(-ln.amount for ln in statutory),
            gross_amount=gross,
            net_amount=money_sum(ln.amount for ln in lines),
            lines=tuple(lines),
            total_working_days=summary.present_days,
            total_working_hours=summary.working_hours,
            overtime_hours=summary.overtime_hours,
            late_minutes=summary.late_minutes,
            half_days=summary.half_days,
            absent_days=summary.absent_days,
        )

    @staticmethod
    def _overtime_line(ctx: PayContext) -> Optional[BreakdownLine]:
        hours = ctx.attendance.overtime_hours
        if not ctx.policy.enable_overtime or hours <= 0:
            return None

        rate = ctx.staff.overtime_rate
        if not rate:
            hourly = ctx.hourly_equivalent()
            if hourly is None:
                return None
            rate = hourly * ctx.policy.overtime_multiplier

        amount = to_money(rate * hours)
        if amount <= 0:
            return None
        return BreakdownLine(
            type=BreakdownType.OVERTIME,
            description=f"Overtime {hours.normalize()} hour(s)",
            amount=amount,
            hours=hours,
        )

    @staticmethod
    def _statutory_lines(ctx: PayContext, gross: Decimal) -> list[BreakdownLine]:
        if not ctx.staff.pf_esi_applicable or gross <= 0:
            return []
        lines = []
        pf = percent_of(gross, ctx.policy.pf_percentage)
        if pf > 0:
            lines.append(
                BreakdownLine(
                    type=BreakdownType.PF_DEDUCTION,
                    description=f"Provident fund {ctx.policy.pf_percentage}%",
                    amount=-pf,
                )
            )
        esi = percent_of(gross, ctx.policy.esi_percentage)
        if esi > 0:
            lines.append(
                BreakdownLine(
                    type=BreakdownType.ESI_DEDUCTION,
                    description=f"ESI {ctx.policy.esi_percentage}%",
                    amount=-esi,
                )
            )
        return lines

    @staticmethod
    def _penalty_lines(ctx: PayContext) -> list[BreakdownLine]:
        policy = ctx.policy
        summary = ctx.attendance
        lines = []

        if policy.enable_late_penalty and summary.late_minutes > 0 and policy.late_penalty_per_minute > 0:
            lines.append(
                BreakdownLine(
                    type=BreakdownType.LATE_PENALTY,
                    description=f"Late arrival {summary.late_minutes} minute(s)",
                    amount=-to_money(policy.late_penalty_per_minute * summary.late_minutes),
                    quantity=Decimal(summary.late_minutes),
                )
            )

        if policy.enable_absent_penalty and summary.absent_days > 0 and policy.absent_penalty_per_day > 0:
            lines.append(
                BreakdownLine(
                    type=BreakdownType.ABSENT_PENALTY,
                    description=f"Absent {summary.absent_days} day(s)",
                    amount=-to_money(policy.absent_penalty_per_day * summary.absent_days),
                    quantity=Decimal(summary.absent_days),
                )
            )
        return lines
