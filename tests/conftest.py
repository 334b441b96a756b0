from __future__ import annotations

import copy
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

import pytest

from rozgarpay.attendance.aggregator import AttendanceAggregator
from rozgarpay.attendance.model import AttendanceRecord
from rozgarpay.audit.model import AuditLog
from rozgarpay.audit.service import AuditTrail
from rozgarpay.cashbook.model import CashbookEntry, CashbookFilters, NewCashbookEntry
from rozgarpay.cashbook.service import LedgerReconciliationService
from rozgarpay.company.model import CompanyPolicy
from rozgarpay.core.enums import (
    AttendanceStatus,
    CashbookDirection,
    CashbookTransactionType,
    CompanyStatus,
    LedgerEntryType,
    Role,
    SalaryStatus,
    SalaryType,
    UserStatus,
)
from rozgarpay.core.exceptions import DuplicateEntryError, TransactionFailure
from rozgarpay.payroll.lifecycle import SalaryLifecycleService
from rozgarpay.payroll.model import Salary, SalaryBreakdown, SalaryLedgerEntry
from rozgarpay.payroll.scheduler import AutoGenerationScheduler
from rozgarpay.payroll.service import SalaryService
from rozgarpay.users.model import Actor, StaffMember

# 2025-01-31 17:30 in Asia/Kolkata
NOW = datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc)


@dataclass
class InMemoryStore:
    """Tables of the fake database. Everything mutable lives in ``tables`` so a
    unit of work can snapshot and restore it."""

    tables: dict = field(
        default_factory=lambda: {
            "companies": {},
            "users": {},
            "attendance": [],
            "salaries": {},
            "breakdowns": {},
            "ledger": {},
            "cashbook": {},
            "audits": [],
            "notifications": [],
            "seq": {},
        }
    )
    fail_on: set = field(default_factory=set)
    # get_for_period calls that miss rows committed by a "concurrent" writer
    stale_reads: int = 0

    def next_id(self, name: str) -> int:
        seq = self.tables["seq"]
        seq[name] = seq.get(name, 0) + 1
        return seq[name]

    def check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise TransactionFailure(f"simulated failure in {operation}")

    # ---- seeding helpers ----

    def add_company(self, company_id: int = 1, **overrides) -> CompanyPolicy:
        policy = CompanyPolicy(company_id=company_id, name=f"Company {company_id}", **overrides)
        self.tables["companies"][company_id] = policy
        return policy

    def add_user(self, user_id: int, company_id: int = 1, **overrides) -> StaffMember:
        values = dict(
            user_id=user_id,
            company_id=company_id,
            full_name=f"User {user_id}",
            role=Role.STAFF,
            status=UserStatus.ACTIVE,
            salary_type=SalaryType.MONTHLY,
            base_salary=Decimal("30000.00"),
        )
        values.update(overrides)
        staff = StaffMember(**values)
        self.tables["users"][user_id] = staff
        return staff

    def add_attendance(self, user_id: int, day: date, company_id: int = 1, **overrides) -> AttendanceRecord:
        values = dict(
            attendance_id=self.next_id("attendance"),
            user_id=user_id,
            company_id=company_id,
            attendance_date=day,
            status=AttendanceStatus.APPROVED,
            working_hours=Decimal("9"),
        )
        values.update(overrides)
        record = AttendanceRecord(**values)
        self.tables["attendance"].append(record)
        return record

    def add_salary(self, user_id: int, company_id: int = 1, month: int = 1, year: int = 2025, **overrides) -> Salary:
        net = Decimal(str(overrides.pop("net_amount", "20000.00")))
        values = dict(
            salary_id=self.next_id("salaries"),
            user_id=user_id,
            company_id=company_id,
            month=month,
            year=year,
            salary_type=SalaryType.MONTHLY,
            base_amount=net,
            gross_amount=net,
            net_amount=net,
        )
        values.update(overrides)
        salary = Salary(**values)
        self.tables["salaries"][salary.salary_id] = salary
        return salary

    def add_cashbook(self, company_id: int = 1, **overrides) -> CashbookEntry:
        values = dict(
            entry_id=self.next_id("cashbook"),
            company_id=company_id,
            transaction_type=CashbookTransactionType.CLIENT_PAYMENT,
            direction=CashbookDirection.CREDIT,
            amount=Decimal("100.00"),
            description="Opening cash",
            transaction_date=date(2025, 1, 5),
        )
        values.update(overrides)
        entry = CashbookEntry(**values)
        self.tables["cashbook"][entry.entry_id] = entry
        return entry

    def add_ledger(self, salary: Salary, amount: str, **overrides) -> SalaryLedgerEntry:
        values = dict(
            ledger_id=self.next_id("ledger"),
            salary_id=salary.salary_id,
            user_id=salary.user_id,
            company_id=salary.company_id,
            type=LedgerEntryType.DEDUCTION,
            amount=Decimal(amount),
            created_at=NOW,
        )
        values.update(overrides)
        entry = SalaryLedgerEntry(**values)
        self.tables["ledger"][entry.ledger_id] = entry
        return entry

    # ---- views used by assertions ----

    @property
    def salaries(self) -> list[Salary]:
        return list(self.tables["salaries"].values())

    @property
    def ledger(self) -> list[SalaryLedgerEntry]:
        return list(self.tables["ledger"].values())

    @property
    def cashbook(self) -> list[CashbookEntry]:
        return list(self.tables["cashbook"].values())

    @property
    def audits(self) -> list[AuditLog]:
        return list(self.tables["audits"])

    @property
    def notifications(self) -> list[dict]:
        return list(self.tables["notifications"])


class FakeTransaction:
    cursor = None


class InMemoryUnitOfWork:
    """Snapshots every table on begin and restores them if the block raises."""

    def __init__(self, store: InMemoryStore):
        self._store = store
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def begin(self):
        snapshot = copy.deepcopy(self._store.tables)
        try:
            yield FakeTransaction()
        except BaseException:
            self._store.tables = snapshot
            self.rollbacks += 1
            raise
        self.commits += 1


class InMemoryCompanies:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_policy(self, company_id: int) -> Optional[CompanyPolicy]:
        return self._store.tables["companies"].get(int(company_id))

    def list_active(self):
        return [c for c in self._store.tables["companies"].values() if c.status == CompanyStatus.ACTIVE]


class InMemoryUsers:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, user_id: int) -> Optional[StaffMember]:
        return self._store.tables["users"].get(int(user_id))

    def list_active(self, *, company_id: int, roles):
        roles = set(roles)
        return [
            u
            for u in sorted(self._store.tables["users"].values(), key=lambda u: u.user_id)
            if u.company_id == company_id and u.status == UserStatus.ACTIVE and u.role in roles
        ]


class InMemoryAttendance:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def list_for_period(self, *, user_id: int, company_id: int, start_date: date, end_date: date):
        self._store.check("attendance.list_for_period")
        rows = [
            r
            for r in self._store.tables["attendance"]
            if r.user_id == user_id and r.company_id == company_id and start_date <= r.attendance_date <= end_date
        ]
        return sorted(rows, key=lambda r: r.attendance_date)


class InMemorySalaries:
    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _rows(self) -> dict:
        return self._store.tables["salaries"]

    def get_by_id(self, salary_id: int, *, tx=None, for_update: bool = False):
        return self._rows.get(int(salary_id))

    def get_for_period(self, period, *, tx=None, for_update: bool = False):
        if self._store.stale_reads > 0:
            self._store.stale_reads -= 1
            return None
        return self._find(period)

    def _find(self, period):
        for s in self._rows.values():
            if (s.user_id, s.company_id, s.month, s.year) == (
                period.user_id,
                period.company_id,
                period.month,
                period.year,
            ):
                return s
        return None

    def create(self, period, draft, *, tx=None) -> int:
        self._store.check("salaries.create")
        if self._find(period) is not None:
            raise DuplicateEntryError("uq_salary_period")
        salary_id = self._store.next_id("salaries")
        self._rows[salary_id] = Salary(
            salary_id=salary_id,
            user_id=period.user_id,
            company_id=period.company_id,
            month=period.month,
            year=period.year,
            salary_type=draft.salary_type,
            base_amount=draft.base_amount,
            overtime_amount=draft.overtime_amount,
            penalty_amount=draft.penalty_amount,
            deduction_amount=draft.deduction_amount,
            gross_amount=draft.gross_amount,
            net_amount=draft.net_amount,
            total_working_days=draft.total_working_days,
            total_working_hours=draft.total_working_hours,
            overtime_hours=draft.overtime_hours,
            late_minutes=draft.late_minutes,
            half_days=draft.half_days,
            absent_days=draft.absent_days,
            created_at=NOW,
        )
        return salary_id

    def update_amounts(self, salary_id: int, draft, *, expected_version: int, tx=None) -> bool:
        s = self._rows.get(salary_id)
        if s is None or s.locked_at is not None or s.version != expected_version:
            return False
        self._rows[salary_id] = replace(
            s,
            salary_type=draft.salary_type,
            base_amount=draft.base_amount,
            overtime_amount=draft.overtime_amount,
            penalty_amount=draft.penalty_amount,
            deduction_amount=draft.deduction_amount,
            gross_amount=draft.gross_amount,
            net_amount=draft.net_amount,
            total_working_days=draft.total_working_days,
            total_working_hours=draft.total_working_hours,
            overtime_hours=draft.overtime_hours,
            late_minutes=draft.late_minutes,
            half_days=draft.half_days,
            absent_days=draft.absent_days,
            version=s.version + 1,
        )
        return True

    def _transition(self, salary_id: int, expected: SalaryStatus, **changes) -> bool:
        s = self._rows.get(salary_id)
        if s is None or s.status != expected:
            return False
        self._rows[salary_id] = replace(s, version=s.version + 1, **changes)
        return True

    def mark_approved(self, salary_id: int, *, approved_by: int, at: datetime, tx=None) -> bool:
        return self._transition(
            salary_id, SalaryStatus.PENDING, status=SalaryStatus.APPROVED, approved_by=approved_by, approved_at=at, locked_at=at
        )

    def mark_rejected(self, salary_id: int, *, rejected_by: int, reason: str, at: datetime, tx=None) -> bool:
        return self._transition(
            salary_id,
            SalaryStatus.PENDING,
            status=SalaryStatus.REJECTED,
            rejected_by=rejected_by,
            rejected_at=at,
            rejection_reason=reason,
            locked_at=at,
        )

    def mark_paid(self, salary_id: int, *, at: datetime, method, reference, tx=None) -> bool:
        self._store.check("salaries.mark_paid")
        return self._transition(
            salary_id, SalaryStatus.APPROVED, status=SalaryStatus.PAID, paid_at=at, payment_method=method, payment_reference=reference
        )

    def list_breakdowns(self, salary_id: int, *, tx=None):
        rows = [b for b in self._store.tables["breakdowns"].values() if b.salary_id == salary_id]
        return sorted(rows, key=lambda b: b.breakdown_id)

    def add_breakdowns(self, salary_id: int, lines, *, tx=None) -> None:
        self._store.check("salaries.add_breakdowns")
        for ln in lines:
            breakdown_id = self._store.next_id("breakdowns")
            self._store.tables["breakdowns"][breakdown_id] = SalaryBreakdown(
                breakdown_id=breakdown_id,
                salary_id=salary_id,
                type=ln.type,
                description=ln.description,
                amount=ln.amount,
                quantity=ln.quantity,
                hours=ln.hours,
            )

    def delete_breakdowns(self, salary_id: int, *, tx=None) -> None:
        rows = self._store.tables["breakdowns"]
        for breakdown_id in [k for k, b in rows.items() if b.salary_id == salary_id]:
            del rows[breakdown_id]


class InMemoryLedger:
    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _rows(self) -> dict:
        return self._store.tables["ledger"]

    def add(self, *, salary_id, user_id, company_id, type, amount, reason, cashbook_entry_id, created_by, tx=None) -> int:
        self._store.check("ledger.add")
        ledger_id = self._store.next_id("ledger")
        self._rows[ledger_id] = SalaryLedgerEntry(
            ledger_id=ledger_id,
            salary_id=salary_id,
            user_id=user_id,
            company_id=company_id,
            type=type,
            amount=amount,
            reason=reason,
            cashbook_entry_id=cashbook_entry_id,
            created_by=created_by,
            created_at=NOW,
        )
        return ledger_id

    def get_by_id(self, ledger_id: int, *, tx=None):
        return self._rows.get(ledger_id)

    def list_for_salary(self, salary_id: int, *, tx=None):
        return sorted((e for e in self._rows.values() if e.salary_id == salary_id), key=lambda e: e.ledger_id)

    def find_by_cashbook_entry(self, cashbook_entry_id: int, *, tx=None):
        matches = [e for e in self._rows.values() if e.cashbook_entry_id == cashbook_entry_id]
        return max(matches, key=lambda e: e.ledger_id) if matches else None

    def find_latest_unlinked(self, *, salary_id: int, user_id: int, tx=None):
        matches = [
            e
            for e in self._rows.values()
            if e.salary_id == salary_id and e.user_id == user_id and e.cashbook_entry_id is None
        ]
        return max(matches, key=lambda e: (e.created_at, e.ledger_id)) if matches else None


class InMemoryCashbook:
    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _rows(self) -> dict:
        return self._store.tables["cashbook"]

    def add(self, entry: NewCashbookEntry, *, tx=None) -> int:
        self._store.check("cashbook.add")
        entry_id = self._store.next_id("cashbook")
        self._rows[entry_id] = CashbookEntry(entry_id=entry_id, created_at=NOW, **entry.__dict__)
        return entry_id

    def get_by_id(self, entry_id: int, *, tx=None, for_update: bool = False):
        return self._rows.get(int(entry_id))

    def mark_reversed(self, entry_id: int, *, tx=None) -> bool:
        e = self._rows.get(entry_id)
        if e is None or e.is_reversed:
            return False
        self._rows[entry_id] = replace(e, is_reversed=True)
        return True

    def list_entries(self, company_id: int, filters: CashbookFilters, *, offset: int, limit: int):
        rows = [e for e in self._rows.values() if e.company_id == company_id]
        if filters.user_id is not None:
            rows = [e for e in rows if e.user_id == filters.user_id]
        if filters.direction:
            rows = [e for e in rows if e.direction == filters.direction]
        if filters.transaction_type:
            rows = [e for e in rows if e.transaction_type == filters.transaction_type]
        if filters.start_date:
            rows = [e for e in rows if e.transaction_date >= filters.start_date]
        if filters.end_date:
            rows = [e for e in rows if e.transaction_date <= filters.end_date]
        if filters.search:
            rows = [e for e in rows if filters.search.lower() in e.description.lower()]
        rows.sort(key=lambda e: (e.transaction_date, e.entry_id), reverse=True)
        return rows[offset : offset + limit], len(rows)

    def sum_by_direction(self, company_id: int, *, user_id=None, start_date=None, end_date=None):
        credit = debit = Decimal("0")
        for e in self._rows.values():
            if e.company_id != company_id or e.is_reversed:
                continue
            if user_id is not None and e.user_id != user_id:
                continue
            if start_date and e.transaction_date < start_date:
                continue
            if end_date and e.transaction_date > end_date:
                continue
            if e.direction == CashbookDirection.CREDIT:
                credit += e.amount
            else:
                debit += e.amount
        return credit, debit


class InMemoryAudits:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def add(self, *, user_id, action, entity, entity_id, salary_id=None, meta=None, tx=None) -> int:
        self._store.check("audits.add")
        audit_id = self._store.next_id("audits")
        self._store.tables["audits"].append(
            AuditLog(
                audit_id=audit_id,
                user_id=user_id,
                action=action,
                entity=entity,
                entity_id=entity_id,
                salary_id=salary_id,
                meta=dict(meta or {}),
                created_at=NOW,
            )
        )
        return audit_id

    def list_for_entity(self, entity: str, entity_id: int):
        return [a for a in self._store.tables["audits"] if a.entity == entity and a.entity_id == entity_id]


class InMemoryNotifier:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def notify(self, *, user_id, company_id, title, message, meta=None) -> None:
        self._store.check("notifications.notify")
        self._store.tables["notifications"].append(
            {"user_id": user_id, "company_id": company_id, "title": title, "message": message, "meta": meta or {}}
        )


def build_world(store: InMemoryStore, now: datetime = NOW) -> SimpleNamespace:
    clock = lambda: now  # noqa: E731
    uow = InMemoryUnitOfWork(store)
    companies = InMemoryCompanies(store)
    users = InMemoryUsers(store)
    salaries = InMemorySalaries(store)
    ledger = InMemoryLedger(store)
    cashbook = InMemoryCashbook(store)
    notifier = InMemoryNotifier(store)
    audit = AuditTrail(InMemoryAudits(store))

    salary_service = SalaryService(
        uow, salaries, users, companies, AttendanceAggregator(InMemoryAttendance(store)), audit, clock=clock
    )
    lifecycle = SalaryLifecycleService(uow, salaries, ledger, cashbook, companies, audit, notifier, clock=clock)
    reconciliation = LedgerReconciliationService(
        uow, cashbook, salaries, ledger, users, companies, salary_service, audit, clock=clock
    )
    scheduler = AutoGenerationScheduler(salary_service, companies, users, notifier, clock=clock)

    return SimpleNamespace(
        store=store,
        uow=uow,
        salary_service=salary_service,
        lifecycle=lifecycle,
        reconciliation=reconciliation,
        scheduler=scheduler,
        admin=Actor(user_id=900, company_id=1, role=Role.ADMIN),
        manager=Actor(user_id=901, company_id=1, role=Role.MANAGER),
        staff=Actor(user_id=2, company_id=1, role=Role.STAFF),
        outsider=Actor(user_id=950, company_id=2, role=Role.ADMIN),
    )


@pytest.fixture()
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.add_company(1)
    return s


@pytest.fixture()
def world(store: InMemoryStore) -> SimpleNamespace:
    return build_world(store)
