from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import local_date, utc_now
from ..company.repository import CompanyRepository
from ..core.enums import Role
from ..notifications.dispatcher import NotificationDispatcher, notify_quietly
from ..users.repository import UserRepository
from .model import BatchResult
from .service import SalaryService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompanyRun:
    company_id: int
    month: int
    year: int
    result: Optional[BatchResult] = None
    error: Optional[str] = None


@dataclass
class SchedulerRun:
    total_processed: int = 0
    total_errors: int = 0
    companies: list[CompanyRun] = field(default_factory=list)


class AutoGenerationScheduler:
    """Generates the current month's salaries for every active company."""

    def __init__(
        self,
        salary_service: SalaryService,
        companies: CompanyRepository,
        users: UserRepository,
        notifier: NotificationDispatcher,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._salary_service = salary_service
        self._companies = companies
        self._users = users
        self._notifier = notifier
        self._clock = clock

    def run(self, now: Optional[datetime] = None) -> SchedulerRun:
        now = now or self._clock()
        run = SchedulerRun()

        for policy in self._companies.list_active():
            today = local_date(now, policy.timezone)
            try:
                result = self._salary_service.auto_generate_salaries(
                    company_id=policy.company_id, month=today.month, year=today.year
                )
            except Exception as e:
                logger.exception("Salary generation failed for company %s", policy.company_id)
                run.total_errors += 1
                run.companies.append(
                    CompanyRun(company_id=policy.company_id, month=today.month, year=today.year, error=str(e))
                )
                continue

            run.total_processed += result.processed
            run.total_errors += len(result.errors)
            run.companies.append(
                CompanyRun(company_id=policy.company_id, month=today.month, year=today.year, result=result)
            )
            self._notify_admins(policy.company_id, today.month, today.year, result)

        logger.info("Scheduler run: processed=%s errors=%s", run.total_processed, run.total_errors)
        return run

    def _notify_admins(self, company_id: int, month: int, year: int, result: BatchResult) -> None:
        try:
            admins = self._users.list_active(company_id=company_id, roles=(Role.ADMIN, Role.MANAGER))
        except Exception:
            logger.exception("Could not load admins of company %s", company_id)
            return

        message = (
            f"Salaries for {month:02d}/{year}: {result.created} generated, "
            f"{result.processed} processed, {len(result.errors)} failed."
        )
        for admin in admins:
            notify_quietly(
                self._notifier,
                user_id=admin.user_id,
                company_id=company_id,
                title="Salary generation completed",
                message=message,
                meta={"month": month, "year": year, "created": result.created, "errors": len(result.errors)},
            )
