from __future__ import annotations

from dataclasses import dataclass, field

from ...core.enums import SalaryType
from ...core.exceptions import ConfigurationIncomplete
from .base import BasePayStrategy
from .strategies.daily import DailyPayStrategy
from .strategies.hourly import HourlyPayStrategy
from .strategies.monthly import MonthlyPayStrategy


def _default_strategies() -> dict[SalaryType, BasePayStrategy]:
    return {s.salary_type: s for s in (MonthlyPayStrategy(), HourlyPayStrategy(), DailyPayStrategy())}


@dataclass
class BasePayStrategyFactory:
    """Factory Pattern: choose the base-pay strategy for a salary type."""

    strategies: dict[SalaryType, BasePayStrategy] = field(default_factory=_default_strategies)

    def for_type(self, salary_type: SalaryType) -> BasePayStrategy:
        try:
            return self.strategies[salary_type]
        except KeyError:
            raise ConfigurationIncomplete(f"No pay rule for salary type {salary_type}")
