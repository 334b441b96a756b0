from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..attendance.aggregator import AttendanceAggregator
from ..audit.service import AuditTrail
from ..common.datetime_utils import local_date, utc_now, validate_period
from ..common.money import ZERO, to_money
from ..common.permissions import PAYROLL_ADMINS, require_company, require_role
from ..common.retry import retry_once
from ..company.model import CompanyPolicy
from ..company.repository import CompanyRepository
from ..core.enums import AuditAction, BreakdownType, Role, SalaryType
from ..core.exceptions import ConfigurationIncomplete, ConflictError, DomainError, DuplicateEntryError, NotFoundError
from ..database.unit_of_work import Transaction, UnitOfWork
from ..users.model import Actor, StaffMember
from ..users.repository import UserRepository
from .calculator.base import PayContext, SalaryCalculator
from .calculator.standard_calculator import StandardSalaryCalculator
from .model import BatchError, BatchResult, BreakdownLine, GeneratedSalary, Salary, SalaryDraft, SalaryPeriod
from .repository import SalaryRepository

logger = logging.getLogger(__name__)

SALARIED_ROLES = (Role.STAFF, Role.MANAGER, Role.ACCOUNTANT)


class SalaryService:
    """Generates and recalculates monthly salaries from approved attendance."""

    def __init__(
        self,
        uow: UnitOfWork,
        salaries: SalaryRepository,
        users: UserRepository,
        companies: CompanyRepository,
        aggregator: AttendanceAggregator,
        audit: AuditTrail,
        *,
        calculator: Optional[SalaryCalculator] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._uow = uow
        self._salaries = salaries
        self._users = users
        self._companies = companies
        self._aggregator = aggregator
        self._audit = audit
        self._calculator = calculator or StandardSalaryCalculator()
        self._clock = clock

    def generate_salary(self, *, user_id: int, company_id: int, month: int, year: int) -> GeneratedSalary:
        validate_period(month, year)
        period = SalaryPeriod(user_id=int(user_id), company_id=int(company_id), month=month, year=year)

        existing = self._salaries.get_for_period(period)
        if existing:
            return GeneratedSalary(
                salary=existing,
                breakdowns=list(self._salaries.list_breakdowns(existing.salary_id)),
                created=False,
            )

        staff = self._load_staff(period.user_id, period.company_id)
        policy = self._load_policy(period.company_id)
        draft = self._compute(staff, policy, month=month, year=year)

        try:
            with self._uow.begin() as tx:
                salary_id = self._salaries.create(period, draft, tx=tx)
                self._salaries.add_breakdowns(salary_id, draft.lines, tx=tx)
        except DuplicateEntryError:
            # Lost the race against a concurrent generator: the winner's row stands.
            logger.info("Salary for %s already generated concurrently", period)
            winner = self._salaries.get_for_period(period)
            if winner is None:
                raise ConflictError("Salary could not be generated, please retry")
            return GeneratedSalary(
                salary=winner,
                breakdowns=list(self._salaries.list_breakdowns(winner.salary_id)),
                created=False,
            )

        salary = self._salaries.get_by_id(salary_id)
        logger.info(
            "Generated salary %s for user %s %02d/%s net=%s", salary_id, period.user_id, month, year, draft.net_amount
        )
        self._audit.record(
            user_id=None,
            action=AuditAction.CREATED,
            entity="salary",
            entity_id=salary_id,
            salary_id=salary_id,
            meta={"net_amount": str(draft.net_amount), "month": month, "year": year},
        )
        return GeneratedSalary(salary=salary, breakdowns=list(self._salaries.list_breakdowns(salary_id)), created=True)

    def recalculate_salary(self, salary_id: int, *, actor: Optional[Actor] = None) -> Salary:
        with self._uow.begin() as tx:
            salary = self._salaries.get_by_id(salary_id, tx=tx, for_update=True)
            if salary is None:
                raise NotFoundError("Salary not found")
            if actor is not None:
                require_role(actor, PAYROLL_ADMINS)
                require_company(actor, salary.company_id)
            if salary.is_locked:
                raise ConflictError(f"Salary is {salary.status.value.lower()} and can no longer be recalculated")

            staff = self._load_staff(salary.user_id, salary.company_id)
            policy = self._load_policy(salary.company_id)
            draft = self._compute(staff, policy, month=salary.month, year=salary.year)

            if not self._salaries.update_amounts(salary.salary_id, draft, expected_version=salary.version, tx=tx):
                raise ConflictError("Salary was changed by another action, please retry")
            self._salaries.delete_breakdowns(salary.salary_id, tx=tx)
            self._salaries.add_breakdowns(salary.salary_id, draft.lines, tx=tx)

        logger.info("Recalculated salary %s net %s -> %s", salary_id, salary.net_amount, draft.net_amount)
        self._audit.record(
            user_id=actor.user_id if actor else None,
            action=AuditAction.RECALCULATED,
            entity="salary",
            entity_id=salary.salary_id,
            salary_id=salary.salary_id,
            meta={"previous_net": str(salary.net_amount), "net_amount": str(draft.net_amount)},
        )
        return self._salaries.get_by_id(salary.salary_id)

    def auto_generate_salaries(self, *, company_id: int, month: int, year: int) -> BatchResult:
        """Generate every active member's salary; one user's failure never stops the batch."""
        validate_period(month, year)
        result = BatchResult()

        for staff in self._users.list_active(company_id=company_id, roles=SALARIED_ROLES):
            result.processed += 1
            try:
                generated = retry_once(
                    self.generate_salary, user_id=staff.user_id, company_id=company_id, month=month, year=year
                )
            except DomainError as e:
                logger.warning("Salary generation failed for user %s: %s", staff.user_id, e.message)
                result.errors.append(BatchError(user_id=staff.user_id, kind=e.kind, message=e.message))
                continue
            except Exception as e:
                logger.exception("Unexpected error generating salary for user %s", staff.user_id)
                result.errors.append(BatchError(user_id=staff.user_id, kind="INTERNAL_ERROR", message=str(e)))
                continue
            if generated.created:
                result.created += 1

        logger.info(
            "Batch %02d/%s company %s: processed=%s created=%s errors=%s",
            month,
            year,
            company_id,
            result.processed,
            result.created,
            len(result.errors),
        )
        return result

    def ensure_for_period(self, period: SalaryPeriod, *, tx: Transaction) -> Salary:
        """Locked salary row of a period, created from the default pay profile when missing."""
        validate_period(period.month, period.year)
        salary = self._salaries.get_for_period(period, tx=tx, for_update=True)
        if salary is not None:
            return salary

        staff = self._load_staff(period.user_id, period.company_id)
        policy = self._companies.get_policy(period.company_id)
        salary_type = staff.salary_type or (policy.default_salary_type if policy else SalaryType.MONTHLY)
        base = to_money(staff.base_salary) if staff.base_salary else ZERO
        lines = ()
        if base > 0:
            lines = (BreakdownLine(type=BreakdownType.BASE_SALARY, description="Monthly base salary", amount=base),)
        draft = SalaryDraft(
            salary_type=salary_type,
            base_amount=base,
            overtime_amount=ZERO,
            penalty_amount=ZERO,
            deduction_amount=ZERO,
            gross_amount=base,
            net_amount=base,
            lines=lines,
        )

        try:
            salary_id = self._salaries.create(period, draft, tx=tx)
            self._salaries.add_breakdowns(salary_id, draft.lines, tx=tx)
            logger.info("Created placeholder salary %s for %s", salary_id, period)
        except DuplicateEntryError:
            logger.info("Salary for %s created concurrently, using existing row", period)

        salary = self._salaries.get_for_period(period, tx=tx, for_update=True)
        if salary is None:
            raise ConflictError("Salary could not be created, please retry")
        return salary

    def _load_staff(self, user_id: int, company_id: int) -> StaffMember:
        staff = self._users.get_by_id(user_id)
        if staff is None or staff.company_id != int(company_id):
            raise NotFoundError("Staff member not found")
        return staff

    def _load_policy(self, company_id: int) -> CompanyPolicy:
        policy = self._companies.get_policy(company_id)
        if policy is None:
            raise ConfigurationIncomplete(f"Pay policy is not configured for company {company_id}")
        return policy

    def _compute(self, staff: StaffMember, policy: CompanyPolicy, *, month: int, year: int) -> SalaryDraft:
        summary = self._aggregator.summarize(
            user_id=staff.user_id,
            company_id=staff.company_id,
            month=month,
            year=year,
            policy=policy,
            today=local_date(self._clock(), policy.timezone),
        )
        ctx = PayContext(
            staff=staff,
            policy=policy,
            attendance=summary,
            salary_type=staff.salary_type or policy.default_salary_type,
        )
        return self._calculator.calculate(ctx)
