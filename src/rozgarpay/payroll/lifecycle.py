from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional

from ..audit.service import AuditTrail
from ..cashbook.model import NewCashbookEntry
from ..cashbook.repository import CashbookRepository
from ..common.datetime_utils import utc_now
from ..common.money import ZERO
from ..common.permissions import PAYROLL_ADMINS, require_company, require_role
from ..common.validators import optional_text, parse_enum, require_non_empty
from ..company.calendar import company_today
from ..company.repository import CompanyRepository
from ..core.enums import (
    AuditAction,
    CashbookDirection,
    CashbookTransactionType,
    LedgerEntryType,
    PaymentMode,
    SalaryStatus,
)
from ..core.exceptions import ConflictError, NotFoundError
from ..database.unit_of_work import Transaction, UnitOfWork
from ..notifications.dispatcher import NotificationDispatcher, notify_quietly
from ..users.model import Actor
from .balance import outstanding_balance
from .model import Salary
from .repository import LedgerRepository, SalaryRepository

logger = logging.getLogger(__name__)


class SalaryLifecycleService:
    """PENDING -> APPROVED -> PAID, or PENDING -> REJECTED.

    Each transition locks the salary row and flips the status with a guarded
    update, so two concurrent approvals produce one APPROVED row and one
    ``ConflictError``.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        salaries: SalaryRepository,
        ledger: LedgerRepository,
        cashbook: CashbookRepository,
        companies: CompanyRepository,
        audit: AuditTrail,
        notifier: NotificationDispatcher,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._uow = uow
        self._salaries = salaries
        self._ledger = ledger
        self._cashbook = cashbook
        self._companies = companies
        self._audit = audit
        self._notifier = notifier
        self._clock = clock

    def approve_salary(self, salary_id: int, actor: Actor) -> Salary:
        require_role(actor, PAYROLL_ADMINS)
        now = self._clock()
        with self._uow.begin() as tx:
            salary = self._lock(salary_id, actor, tx, expected=SalaryStatus.PENDING)
            if not self._salaries.mark_approved(salary.salary_id, approved_by=actor.user_id, at=now, tx=tx):
                raise ConflictError("Salary was changed by another action")

        logger.info("Salary %s approved by %s", salary.salary_id, actor.user_id)
        self._audit.record(
            user_id=actor.user_id,
            action=AuditAction.APPROVED,
            entity="salary",
            entity_id=salary.salary_id,
            salary_id=salary.salary_id,
        )
        return self._salaries.get_by_id(salary.salary_id)

    def reject_salary(self, salary_id: int, actor: Actor, reason: Optional[str]) -> Salary:
        reason = require_non_empty(reason, "reason")
        require_role(actor, PAYROLL_ADMINS)
        now = self._clock()
        with self._uow.begin() as tx:
            salary = self._lock(salary_id, actor, tx, expected=SalaryStatus.PENDING)
            if not self._salaries.mark_rejected(
                salary.salary_id, rejected_by=actor.user_id, reason=reason, at=now, tx=tx
            ):
                raise ConflictError("Salary was changed by another action")

        logger.info("Salary %s rejected by %s", salary.salary_id, actor.user_id)
        self._audit.record(
            user_id=actor.user_id,
            action=AuditAction.REJECTED,
            entity="salary",
            entity_id=salary.salary_id,
            salary_id=salary.salary_id,
            meta={"reason": reason},
        )
        return self._salaries.get_by_id(salary.salary_id)

    def mark_paid(
        self,
        salary_id: int,
        actor: Actor,
        *,
        paid_on: Optional[date] = None,
        method=None,
        reference: Optional[str] = None,
    ) -> Salary:
        """Settle an approved salary.

        Whatever is still owed is paid out through the cashbook in the same
        transaction, so a PAID salary has a zero outstanding balance.
        """
        require_role(actor, PAYROLL_ADMINS)
        mode = parse_enum(PaymentMode, method, "method") if method else None
        reference = optional_text(reference)
        now = self._clock()

        with self._uow.begin() as tx:
            salary = self._lock(salary_id, actor, tx, expected=SalaryStatus.APPROVED)
            paid_on = paid_on or company_today(self._companies, salary.company_id, now)
            owed = outstanding_balance(salary, self._ledger.list_for_salary(salary.salary_id, tx=tx))

            if not self._salaries.mark_paid(
                salary.salary_id, at=now, method=mode.value if mode else None, reference=reference, tx=tx
            ):
                raise ConflictError("Salary was changed by another action")

            if owed > 0:
                description = f"Salary payment {salary.month:02d}/{salary.year}"
                entry_id = self._cashbook.add(
                    NewCashbookEntry(
                        company_id=salary.company_id,
                        user_id=salary.user_id,
                        transaction_type=CashbookTransactionType.SALARY_PAYMENT,
                        direction=CashbookDirection.DEBIT,
                        amount=owed,
                        payment_mode=mode,
                        reference=str(salary.salary_id),
                        description=description,
                        notes=f"Payment reference: {reference}" if reference else None,
                        transaction_date=paid_on,
                        created_by=actor.user_id,
                    ),
                    tx=tx,
                )
                self._ledger.add(
                    salary_id=salary.salary_id,
                    user_id=salary.user_id,
                    company_id=salary.company_id,
                    type=LedgerEntryType.PAYMENT,
                    amount=-owed,
                    reason=description,
                    cashbook_entry_id=entry_id,
                    created_by=actor.user_id,
                    tx=tx,
                )

        logger.info("Salary %s paid by %s amount=%s", salary.salary_id, actor.user_id, owed)
        self._audit.record(
            user_id=actor.user_id,
            action=AuditAction.PAID,
            entity="salary",
            entity_id=salary.salary_id,
            salary_id=salary.salary_id,
            meta={
                "amount": str(owed if owed > 0 else ZERO),
                "method": mode.value if mode else None,
                "reference": reference,
            },
        )
        notify_quietly(
            self._notifier,
            user_id=salary.user_id,
            company_id=salary.company_id,
            title="Salary paid",
            message=f"Your salary for {salary.month:02d}/{salary.year} has been paid.",
            meta={"salary_id": salary.salary_id},
        )
        return self._salaries.get_by_id(salary.salary_id)

    def _lock(self, salary_id: int, actor: Actor, tx: Transaction, *, expected: SalaryStatus) -> Salary:
        salary = self._salaries.get_by_id(salary_id, tx=tx, for_update=True)
        if salary is None:
            raise NotFoundError("Salary not found")
        require_company(actor, salary.company_id)
        if salary.status != expected:
            raise ConflictError(f"Salary is {salary.status.value.lower()}, expected {expected.value.lower()}")
        return salary
