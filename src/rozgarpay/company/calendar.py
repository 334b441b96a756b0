from __future__ import annotations

from datetime import date, datetime

from ..common.datetime_utils import local_date
from ..core import constants
from .repository import CompanyRepository


def company_today(
    companies: CompanyRepository,
    company_id: int,
    now: datetime,
    *,
    default_timezone: str = constants.DEFAULT_TIMEZONE,
) -> date:
    """Today's calendar date in the company's zone."""
    policy = companies.get_policy(company_id)
    return local_date(now, policy.timezone if policy else default_timezone)
