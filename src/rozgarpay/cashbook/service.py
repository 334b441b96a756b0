"""Ledger reconciliation.

Every cash movement that touches a salary is written twice in one
transaction: a positive cashbook line carrying the direction, and a signed
salary-ledger line pointing back at it through ``cashbook_entry_id``. Neither
row is ever updated afterwards; mistakes are undone with a compensating
reversal.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional, Union

from ..audit.service import AuditTrail
from ..common.datetime_utils import month_window, utc_now, validate_period
from ..common.money import require_positive_amount, to_money
from ..common.permissions import PAYROLL_ADMINS, require_company, require_role
from ..common.validators import optional_text, parse_enum, require_non_empty
from ..company.calendar import company_today
from ..company.repository import CompanyRepository
from ..core import constants
from ..core.enums import (
    AuditAction,
    BalanceScope,
    CashbookDirection,
    CashbookTransactionType,
    LedgerEntryType,
    PaymentMode,
    Role,
    SalaryStatus,
)
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..database.unit_of_work import Transaction, UnitOfWork
from ..payroll.balance import outstanding_balance
from ..payroll.model import Salary, SalaryLedgerEntry, SalaryPeriod, SalaryStatement
from ..payroll.repository import LedgerRepository, SalaryRepository
from ..payroll.service import SalaryService
from ..users.model import Actor
from ..users.repository import UserRepository
from .model import (
    Balance,
    BalanceSummary,
    CashbookEntry,
    CashbookFilters,
    EntryPage,
    LedgerEvent,
    NewCashbookEntry,
    Reversal,
)
from .repository import CashbookRepository

logger = logging.getLogger(__name__)

# Ledger event -> (cashbook direction, cashbook transaction type)
EVENT_RULES = {
    LedgerEntryType.DEDUCTION: (CashbookDirection.CREDIT, CashbookTransactionType.EXPENSE),
    LedgerEntryType.RECOVERY: (CashbookDirection.CREDIT, CashbookTransactionType.RECOVERY),
    LedgerEntryType.PAYMENT: (CashbookDirection.DEBIT, CashbookTransactionType.ADVANCE),
}

_EVENT_ROLES = {
    LedgerEntryType.DEDUCTION: frozenset({Role.ADMIN}),
    LedgerEntryType.RECOVERY: frozenset({Role.ADMIN}),
    LedgerEntryType.PAYMENT: PAYROLL_ADMINS,
}

_READ_ROLES = frozenset({Role.ADMIN, Role.MANAGER, Role.ACCOUNTANT})

SalaryTarget = Union[int, SalaryPeriod]


class LedgerReconciliationService:
    def __init__(
        self,
        uow: UnitOfWork,
        cashbook: CashbookRepository,
        salaries: SalaryRepository,
        ledger: LedgerRepository,
        users: UserRepository,
        companies: CompanyRepository,
        salary_service: SalaryService,
        audit: AuditTrail,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._uow = uow
        self._cashbook = cashbook
        self._salaries = salaries
        self._ledger = ledger
        self._users = users
        self._companies = companies
        self._salary_service = salary_service
        self._audit = audit
        self._clock = clock

    # ---- salary-linked events ----

    def record_ledger_event(
        self,
        target: SalaryTarget,
        event_type: LedgerEntryType,
        amount,
        reason: Optional[str],
        on_date: Optional[date],
        actor: Actor,
        *,
        payment_mode: Optional[PaymentMode] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LedgerEvent:
        event_type = parse_enum(LedgerEntryType, event_type, "type")
        if event_type not in EVENT_RULES:
            raise ValidationError(f"{event_type.value} cannot be recorded directly", field="type")
        require_role(actor, _EVENT_ROLES[event_type])
        if actor.company_id is None:
            raise AuthorizationError("You are not assigned to a company")

        value = require_positive_amount(amount)
        if event_type == LedgerEntryType.RECOVERY:
            reason = require_non_empty(reason, "reason")
        reason = optional_text(reason)
        payment_mode = parse_enum(PaymentMode, payment_mode, "mode") if payment_mode else None

        if isinstance(target, SalaryPeriod):
            require_company(actor, target.company_id)
            self._require_staff(target.user_id, actor.company_id)
        if on_date is None:
            on_date = self._today(actor.company_id)

        direction, transaction_type = EVENT_RULES[event_type]
        with self._uow.begin() as tx:
            salary = self._lock_salary(target, actor, tx)
            if event_type == LedgerEntryType.DEDUCTION and (salary.status == SalaryStatus.PAID or salary.is_locked):
                raise ConflictError(
                    f"Cannot add a deduction to a {salary.status.value.lower()} salary for "
                    f"{salary.month:02d}/{salary.year}"
                )

            description = reason or f"{event_type.value.title()} for salary {salary.month:02d}/{salary.year}"
            entry_id = self._cashbook.add(
                NewCashbookEntry(
                    company_id=salary.company_id,
                    user_id=salary.user_id,
                    transaction_type=transaction_type,
                    direction=direction,
                    amount=value,
                    payment_mode=payment_mode,
                    reference=str(salary.salary_id),
                    description=description,
                    notes=_join_notes(optional_text(notes), f"Payment reference: {reference}" if reference else None),
                    transaction_date=on_date,
                    created_by=actor.user_id,
                ),
                tx=tx,
            )
            ledger_id = self._ledger.add(
                salary_id=salary.salary_id,
                user_id=salary.user_id,
                company_id=salary.company_id,
                type=event_type,
                amount=-value,
                reason=description,
                cashbook_entry_id=entry_id,
                created_by=actor.user_id,
                tx=tx,
            )
            cashbook_entry = self._cashbook.get_by_id(entry_id, tx=tx)
            ledger_entry = self._ledger.get_by_id(ledger_id, tx=tx)

        logger.info(
            "Recorded %s of %s on salary %s (cashbook %s, ledger %s)",
            event_type.value,
            value,
            salary.salary_id,
            entry_id,
            ledger_id,
        )
        self._audit.record(
            user_id=actor.user_id,
            action=AuditAction.CREATED,
            entity="salary_ledger",
            entity_id=ledger_id,
            salary_id=salary.salary_id,
            meta={"type": event_type.value, "amount": str(value), "cashbook_entry_id": entry_id},
        )
        return LedgerEvent(salary=salary, ledger_entry=ledger_entry, cashbook_entry=cashbook_entry)

    def record_deduction(
        self, *, user_id: int, amount, on_date: Optional[date], description: Optional[str], actor: Actor
    ) -> LedgerEvent:
        return self.record_ledger_event(
            self._period_for(user_id, on_date, actor), LedgerEntryType.DEDUCTION, amount, description, on_date, actor
        )

    def record_recovery(
        self, *, user_id: int, amount, on_date: Optional[date], reason: Optional[str], actor: Actor
    ) -> LedgerEvent:
        return self.record_ledger_event(
            self._period_for(user_id, on_date, actor), LedgerEntryType.RECOVERY, amount, reason, on_date, actor
        )

    def record_payment(
        self,
        *,
        user_id: int,
        amount,
        on_date: Optional[date],
        actor: Actor,
        mode: Optional[PaymentMode] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> LedgerEvent:
        return self.record_ledger_event(
            self._period_for(user_id, on_date, actor),
            LedgerEntryType.PAYMENT,
            amount,
            description,
            on_date,
            actor,
            payment_mode=mode,
            reference=reference,
        )

    # ---- reversal ----

    def reverse_entry(self, entry_id: int, *, reason: Optional[str], notes: Optional[str], actor: Actor) -> Reversal:
        require_role(actor, {Role.ADMIN})
        reason = require_non_empty(reason, "reason")

        with self._uow.begin() as tx:
            original = self._cashbook.get_by_id(entry_id, tx=tx, for_update=True)
            if original is None:
                raise NotFoundError("Cashbook entry not found")
            require_company(actor, original.company_id)
            if original.is_reversed:
                raise ConflictError("Entry is already reversed")
            if not self._cashbook.mark_reversed(original.entry_id, tx=tx):
                raise ConflictError("Entry is already reversed")

            reversal_id = self._cashbook.add(
                NewCashbookEntry(
                    company_id=original.company_id,
                    user_id=original.user_id,
                    transaction_type=CashbookTransactionType.ADJUSTMENT,
                    direction=original.direction.opposite(),
                    amount=original.amount,
                    payment_mode=original.payment_mode,
                    reference=f"REVERSAL-{original.entry_id}",
                    description=f"{constants.REVERSAL_PREFIX}{original.description}",
                    notes=_join_notes(f"Reversal reason: {reason}", optional_text(notes)),
                    transaction_date=self._today(original.company_id),
                    created_by=actor.user_id,
                    reversal_of=original.entry_id,
                ),
                tx=tx,
            )

            ledger_entry = None
            linked = self._linked_ledger_entry(original, tx)
            if linked is not None:
                ledger_id = self._ledger.add(
                    salary_id=linked.salary_id,
                    user_id=linked.user_id,
                    company_id=linked.company_id,
                    type=LedgerEntryType.ADJUSTMENT,
                    amount=-linked.amount,
                    reason=f"{constants.REVERSAL_PREFIX}{reason}",
                    cashbook_entry_id=reversal_id,
                    created_by=actor.user_id,
                    tx=tx,
                )
                ledger_entry = self._ledger.get_by_id(ledger_id, tx=tx)

            self._audit.record_in(
                tx,
                user_id=actor.user_id,
                action=AuditAction.REVERSED,
                entity="cashbook_entry",
                entity_id=original.entry_id,
                salary_id=linked.salary_id if linked else None,
                meta={"reversal_entry_id": reversal_id, "reason": reason, "amount": str(original.amount)},
            )
            reversed_original = self._cashbook.get_by_id(original.entry_id, tx=tx)
            reversal_entry = self._cashbook.get_by_id(reversal_id, tx=tx)

        logger.info("Reversed cashbook entry %s with %s", original.entry_id, reversal_id)
        return Reversal(original_entry=reversed_original, reversal_entry=reversal_entry, ledger_entry=ledger_entry)

    # ---- manual cashbook ----

    def create_entry(
        self,
        actor: Actor,
        *,
        transaction_type,
        direction,
        amount,
        description: Optional[str],
        transaction_date: Optional[date] = None,
        payment_mode=None,
        user_id: Optional[int] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CashbookEntry:
        require_role(actor, PAYROLL_ADMINS)
        if actor.company_id is None:
            raise AuthorizationError("You are not assigned to a company")

        entry = NewCashbookEntry(
            company_id=actor.company_id,
            user_id=self._require_staff(user_id, actor.company_id).user_id if user_id is not None else None,
            transaction_type=parse_enum(CashbookTransactionType, transaction_type, "transactionType"),
            direction=parse_enum(CashbookDirection, direction, "direction"),
            amount=require_positive_amount(amount),
            payment_mode=parse_enum(PaymentMode, payment_mode, "paymentMode") if payment_mode else None,
            reference=optional_text(reference),
            description=require_non_empty(description, "description"),
            notes=optional_text(notes),
            transaction_date=transaction_date or self._today(actor.company_id),
            created_by=actor.user_id,
        )
        entry_id = self._cashbook.add(entry)
        self._audit.record(
            user_id=actor.user_id,
            action=AuditAction.CREATED,
            entity="cashbook_entry",
            entity_id=entry_id,
            meta={"type": entry.transaction_type.value, "direction": entry.direction.value, "amount": str(entry.amount)},
        )
        return self._cashbook.get_by_id(entry_id)

    def list_entries(
        self,
        actor: Actor,
        filters: Optional[CashbookFilters] = None,
        *,
        page: int = 1,
        limit: int = constants.DEFAULT_PAGE_SIZE,
    ) -> EntryPage:
        if actor.company_id is None:
            raise AuthorizationError("You are not assigned to a company")
        filters = filters or CashbookFilters()
        if actor.role == Role.STAFF:
            filters = CashbookFilters(
                start_date=filters.start_date,
                end_date=filters.end_date,
                transaction_type=filters.transaction_type,
                direction=filters.direction,
                payment_mode=filters.payment_mode,
                user_id=actor.user_id,
                search=filters.search,
            )
        else:
            require_role(actor, _READ_ROLES)

        page = max(1, int(page))
        limit = min(max(1, int(limit)), constants.MAX_PAGE_SIZE)
        entries, total = self._cashbook.list_entries(actor.company_id, filters, offset=(page - 1) * limit, limit=limit)
        return EntryPage(entries=list(entries), total=total, page=page, limit=limit)

    # ---- balances ----

    def get_balance(
        self,
        company_id: int,
        scope: BalanceScope = BalanceScope.OVERALL,
        *,
        user_id: Optional[int] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> Balance:
        scope = parse_enum(BalanceScope, scope, "scope")
        start = end = None
        if scope == BalanceScope.MONTHLY:
            if month is None or year is None:
                raise ValidationError("Month and year are required for a monthly balance", field="month")
            validate_period(month, year)
            start, end = month_window(year, month)
        elif scope == BalanceScope.STAFF:
            if user_id is None:
                raise ValidationError("User is required for a staff balance", field="userId")
        else:
            user_id = None

        credit, debit = self._cashbook.sum_by_direction(
            company_id,
            user_id=user_id if scope == BalanceScope.STAFF else None,
            start_date=start,
            end_date=end,
        )
        return Balance(credit=to_money(credit), debit=to_money(debit), balance=to_money(credit - debit))

    def get_balance_summary(self, company_id: int, today: Optional[date] = None) -> BalanceSummary:
        today = today or self._today(company_id)
        overall = self.get_balance(company_id, BalanceScope.OVERALL)
        monthly = self.get_balance(company_id, BalanceScope.MONTHLY, month=today.month, year=today.year)
        return BalanceSummary(
            month=today.month,
            year=today.year,
            opening_balance=to_money(overall.balance - monthly.balance),
            monthly_credit=monthly.credit,
            monthly_debit=monthly.debit,
            closing_balance=overall.balance,
        )

    def salary_statement(self, salary_id: int, actor: Actor) -> SalaryStatement:
        salary = self._salaries.get_by_id(salary_id)
        if salary is None:
            raise NotFoundError("Salary not found")
        require_company(actor, salary.company_id)
        if actor.role == Role.STAFF:
            if salary.user_id != actor.user_id:
                raise AuthorizationError("You can only view your own salary")
        else:
            require_role(actor, _READ_ROLES)

        entries = list(self._ledger.list_for_salary(salary.salary_id))
        return SalaryStatement(
            salary=salary,
            breakdowns=list(self._salaries.list_breakdowns(salary.salary_id)),
            ledger_entries=entries,
            balance=outstanding_balance(salary, entries),
        )

    # ---- helpers ----

    def _lock_salary(self, target: SalaryTarget, actor: Actor, tx: Transaction) -> Salary:
        if isinstance(target, SalaryPeriod):
            return self._salary_service.ensure_for_period(target, tx=tx)
        salary = self._salaries.get_by_id(int(target), tx=tx, for_update=True)
        if salary is None:
            raise NotFoundError("Salary not found")
        require_company(actor, salary.company_id)
        return salary

    def _linked_ledger_entry(self, original: CashbookEntry, tx: Transaction) -> Optional[SalaryLedgerEntry]:
        linked = self._ledger.find_by_cashbook_entry(original.entry_id, tx=tx)
        if linked is not None:
            return linked
        # Rows written before ledger entries carried a cashbook link: the cashbook
        # reference holds the salary id.
        if original.user_id is None or not (original.reference or "").isdigit():
            return None
        legacy = self._ledger.find_latest_unlinked(salary_id=int(original.reference), user_id=original.user_id, tx=tx)
        if legacy is not None and legacy.company_id != original.company_id:
            return None
        return legacy

    def _require_staff(self, user_id: int, company_id: int):
        staff = self._users.get_by_id(int(user_id))
        if staff is None or staff.company_id != int(company_id):
            raise NotFoundError("Staff member not found")
        return staff

    def _period_for(self, user_id: int, on_date: Optional[date], actor: Actor) -> SalaryPeriod:
        if actor.company_id is None:
            raise AuthorizationError("You are not assigned to a company")
        on_date = on_date or self._today(actor.company_id)
        return SalaryPeriod(user_id=int(user_id), company_id=actor.company_id, month=on_date.month, year=on_date.year)

    def _today(self, company_id: int) -> date:
        return company_today(self._companies, company_id, self._clock())


def _join_notes(*parts: Optional[str]) -> Optional[str]:
    text = "\n".join(p for p in parts if p)
    return text or None
