from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from rozgarpay.cashbook.model import CashbookFilters
from rozgarpay.core.enums import (
    AuditAction,
    BalanceScope,
    CashbookDirection,
    CashbookTransactionType,
    LedgerEntryType,
    PaymentMode,
    SalaryStatus,
)
from rozgarpay.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TransactionFailure,
    ValidationError,
)
from rozgarpay.payroll.model import SalaryPeriod


def _balance(world, company_id: int = 1) -> Decimal:
    return world.reconciliation.get_balance(company_id).balance


def test_recovery_reduces_salary_balance_and_credits_cashbook(world, store):
    store.add_user(2)
    salary = store.add_salary(2, net_amount="20000.00")

    event = world.reconciliation.record_recovery(
        user_id=2, amount="500", on_date=date(2025, 1, 15), reason="Advance recovered", actor=world.admin
    )

    assert event.salary.salary_id == salary.salary_id
    assert event.cashbook_entry.direction == CashbookDirection.CREDIT
    assert event.cashbook_entry.transaction_type == CashbookTransactionType.RECOVERY
    assert event.cashbook_entry.amount == Decimal("500.00")
    assert event.cashbook_entry.reference == str(salary.salary_id)
    assert event.ledger_entry.amount == Decimal("-500.00")
    assert event.ledger_entry.cashbook_entry_id == event.cashbook_entry.entry_id

    statement = world.reconciliation.salary_statement(salary.salary_id, world.admin)
    assert statement.balance == Decimal("19500.00")
    assert _balance(world) == Decimal("500.00")
    assert store.audits[-1].action == AuditAction.CREATED


def test_deduction_creates_missing_salary_from_pay_profile(world, store):
    store.add_user(2, base_salary=Decimal("25000"))

    event = world.reconciliation.record_deduction(
        user_id=2, amount=300, on_date=date(2025, 3, 4), description="Broken equipment", actor=world.admin
    )

    salary = event.salary
    assert (salary.month, salary.year) == (3, 2025)
    assert salary.status == SalaryStatus.PENDING
    assert salary.net_amount == Decimal("25000.00")
    assert event.cashbook_entry.direction == CashbookDirection.CREDIT
    assert event.cashbook_entry.transaction_type == CashbookTransactionType.EXPENSE
    assert event.ledger_entry.type == LedgerEntryType.DEDUCTION
    assert world.reconciliation.salary_statement(salary.salary_id, world.admin).balance == Decimal("24700.00")


def test_lazy_salary_creation_tolerates_a_concurrent_insert(world, store):
    store.add_user(2)
    existing = store.add_salary(2, month=3)
    store.stale_reads = 1

    event = world.reconciliation.record_deduction(
        user_id=2, amount=100, on_date=date(2025, 3, 4), description="Fine", actor=world.admin
    )

    assert event.salary.salary_id == existing.salary_id
    assert len(store.salaries) == 1


def test_date_defaults_to_today_in_company_zone(world, store):
    store.add_user(2)

    event = world.reconciliation.record_payment(user_id=2, amount=1000, on_date=None, actor=world.manager)

    # NOW is 2025-01-31 17:30 in Kolkata
    assert event.cashbook_entry.transaction_date == date(2025, 1, 31)
    assert (event.salary.month, event.salary.year) == (1, 2025)


@pytest.mark.parametrize("status", [SalaryStatus.APPROVED, SalaryStatus.PAID])
def test_deduction_on_locked_salary_is_refused(world, store, status):
    store.add_user(2)
    store.add_salary(2, status=status, locked_at=datetime(2025, 1, 31, tzinfo=timezone.utc))

    with pytest.raises(ConflictError):
        world.reconciliation.record_deduction(
            user_id=2, amount=100, on_date=date(2025, 1, 10), description="Late fee", actor=world.admin
        )

    assert store.cashbook == []
    assert store.ledger == []


def test_recovery_on_paid_salary_is_allowed(world, store):
    store.add_user(2)
    store.add_salary(2, status=SalaryStatus.PAID, locked_at=datetime(2025, 1, 31, tzinfo=timezone.utc))

    event = world.reconciliation.record_recovery(
        user_id=2, amount=100, on_date=date(2025, 1, 20), reason="Overpaid", actor=world.admin
    )

    assert event.ledger_entry.type == LedgerEntryType.RECOVERY


def test_failed_ledger_write_leaves_no_trace(world, store):
    store.add_user(2)
    store.fail_on.add("ledger.add")

    with pytest.raises(TransactionFailure):
        world.reconciliation.record_recovery(
            user_id=2, amount=500, on_date=date(2025, 1, 15), reason="Advance", actor=world.admin
        )

    assert store.cashbook == []
    assert store.ledger == []
    assert store.salaries == []
    assert store.audits == []


def test_payment_is_a_debit_advance_with_reference_in_notes(world, store):
    store.add_user(2)
    salary = store.add_salary(2)

    event = world.reconciliation.record_payment(
        user_id=2,
        amount="2500.50",
        on_date=date(2025, 1, 12),
        actor=world.manager,
        mode=PaymentMode.UPI,
        reference="UPI-778",
    )

    entry = event.cashbook_entry
    assert entry.direction == CashbookDirection.DEBIT
    assert entry.transaction_type == CashbookTransactionType.ADVANCE
    assert entry.payment_mode == PaymentMode.UPI
    assert entry.reference == str(salary.salary_id)
    assert "UPI-778" in entry.notes
    assert _balance(world) == Decimal("-2500.50")


def test_event_validation_and_permissions(world, store):
    store.add_user(2)
    store.add_user(3, company_id=2)
    svc = world.reconciliation

    with pytest.raises(ValidationError) as exc:
        svc.record_recovery(user_id=2, amount=100, on_date=None, reason="", actor=world.admin)
    assert exc.value.field == "reason"

    with pytest.raises(ValidationError) as exc:
        svc.record_deduction(user_id=2, amount=0, on_date=None, description="x", actor=world.admin)
    assert exc.value.field == "amount"

    with pytest.raises(AuthorizationError):
        svc.record_deduction(user_id=2, amount=10, on_date=None, description="x", actor=world.manager)
    with pytest.raises(AuthorizationError):
        svc.record_payment(user_id=2, amount=10, on_date=None, actor=world.staff)
    with pytest.raises(NotFoundError):
        svc.record_deduction(user_id=3, amount=10, on_date=None, description="x", actor=world.admin)

    assert store.cashbook == []


def test_event_against_salary_of_another_company_is_unauthorized(world, store):
    store.add_user(3, company_id=2)
    salary = store.add_salary(3, company_id=2)

    with pytest.raises(AuthorizationError):
        world.reconciliation.record_ledger_event(
            salary.salary_id, LedgerEntryType.DEDUCTION, 10, "x", date(2025, 1, 2), world.admin
        )


def test_adjustment_cannot_be_recorded_directly(world, store):
    store.add_user(2)

    with pytest.raises(ValidationError):
        world.reconciliation.record_ledger_event(
            SalaryPeriod(user_id=2, company_id=1, month=1, year=2025),
            LedgerEntryType.ADJUSTMENT,
            10,
            "x",
            date(2025, 1, 2),
            world.admin,
        )


def test_reverse_entry_offsets_cashbook_and_ledger(world, store):
    store.add_user(2)
    salary = store.add_salary(2, net_amount="20000.00")
    event = world.reconciliation.record_recovery(
        user_id=2, amount=500, on_date=date(2025, 1, 15), reason="Advance", actor=world.admin
    )

    reversal = world.reconciliation.reverse_entry(
        event.cashbook_entry.entry_id, reason="Entered twice", notes="checked with bank", actor=world.admin
    )

    original = reversal.original_entry
    counter = reversal.reversal_entry
    assert original.is_reversed is True
    assert counter.direction == CashbookDirection.DEBIT
    assert counter.transaction_type == CashbookTransactionType.ADJUSTMENT
    assert counter.amount == Decimal("500.00")
    assert counter.reversal_of == original.entry_id
    assert counter.reference == f"REVERSAL-{original.entry_id}"
    assert counter.description == "Reversal: Advance"
    assert counter.notes.startswith("Reversal reason: Entered twice")

    assert reversal.ledger_entry.type == LedgerEntryType.ADJUSTMENT
    assert reversal.ledger_entry.amount == Decimal("500.00")
    assert reversal.ledger_entry.cashbook_entry_id == counter.entry_id

    assert world.reconciliation.salary_statement(salary.salary_id, world.admin).balance == Decimal("20000.00")
    # the original credit drops out and the reversal debit counts
    assert _balance(world) == Decimal("-500.00")
    reversed_audits = [a for a in store.audits if a.action == AuditAction.REVERSED]
    assert [(a.entity_id, a.salary_id) for a in reversed_audits] == [(original.entry_id, salary.salary_id)]


def test_reversing_twice_is_conflict_without_new_rows(world, store):
    entry = store.add_cashbook()
    world.reconciliation.reverse_entry(entry.entry_id, reason="Mistake", notes=None, actor=world.admin)
    rows_before = len(store.cashbook)
    audits_before = len(store.audits)

    with pytest.raises(ConflictError):
        world.reconciliation.reverse_entry(entry.entry_id, reason="Again", notes=None, actor=world.admin)

    assert len(store.cashbook) == rows_before
    assert len(store.audits) == audits_before


def test_reversal_round_trip_restores_the_original_effect(world, store):
    a = store.add_cashbook(amount=Decimal("100.00"), direction=CashbookDirection.CREDIT)
    assert _balance(world) == Decimal("100.00")

    b = world.reconciliation.reverse_entry(a.entry_id, reason="Wrong", notes=None, actor=world.admin).reversal_entry
    assert b.direction == CashbookDirection.DEBIT
    assert _balance(world) == Decimal("-100.00")

    c = world.reconciliation.reverse_entry(b.entry_id, reason="Was right", notes=None, actor=world.admin).reversal_entry
    assert c.direction == CashbookDirection.CREDIT
    assert c.reversal_of == b.entry_id
    assert _balance(world) == Decimal("100.00")


def test_reversal_of_legacy_entry_finds_unlinked_ledger_row(world, store):
    salary = store.add_salary(2, net_amount="20000.00")
    store.add_ledger(salary, "-700.00", created_at=datetime(2024, 12, 1, tzinfo=timezone.utc))
    store.add_ledger(salary, "-400.00")
    legacy = store.add_cashbook(
        user_id=2,
        amount=Decimal("400.00"),
        reference=str(salary.salary_id),
        transaction_type=CashbookTransactionType.EXPENSE,
    )

    reversal = world.reconciliation.reverse_entry(legacy.entry_id, reason="Waived", notes=None, actor=world.admin)

    assert reversal.ledger_entry.amount == Decimal("400.00")
    assert reversal.ledger_entry.salary_id == salary.salary_id
    assert world.reconciliation.salary_statement(salary.salary_id, world.admin).balance == Decimal("19300.00")


def test_reversal_of_plain_entry_has_no_ledger_effect(world, store):
    entry = store.add_cashbook(reference="INV-9")

    reversal = world.reconciliation.reverse_entry(entry.entry_id, reason="Void", notes=None, actor=world.admin)

    assert reversal.ledger_entry is None
    assert store.ledger == []


def test_reverse_checks_reason_role_and_company(world, store):
    mine = store.add_cashbook()
    theirs = store.add_cashbook(company_id=2)
    svc = world.reconciliation

    with pytest.raises(ValidationError):
        svc.reverse_entry(mine.entry_id, reason=None, notes=None, actor=world.admin)
    with pytest.raises(AuthorizationError):
        svc.reverse_entry(mine.entry_id, reason="x", notes=None, actor=world.manager)
    with pytest.raises(AuthorizationError):
        svc.reverse_entry(theirs.entry_id, reason="x", notes=None, actor=world.admin)
    with pytest.raises(NotFoundError):
        svc.reverse_entry(999, reason="x", notes=None, actor=world.admin)

    assert not store.tables["cashbook"][mine.entry_id].is_reversed
    assert not store.tables["cashbook"][theirs.entry_id].is_reversed


def test_reversal_audit_failure_rolls_back_the_reversal(world, store):
    entry = store.add_cashbook()
    store.fail_on.add("audits.add")

    with pytest.raises(TransactionFailure):
        world.reconciliation.reverse_entry(entry.entry_id, reason="x", notes=None, actor=world.admin)

    assert not store.tables["cashbook"][entry.entry_id].is_reversed
    assert len(store.cashbook) == 1


def test_balance_scopes_and_summary(world, store):
    store.add_cashbook(amount=Decimal("1000.00"), transaction_date=date(2024, 12, 20))
    store.add_cashbook(amount=Decimal("250.00"), direction=CashbookDirection.DEBIT, user_id=2, transaction_date=date(2025, 1, 3))
    store.add_cashbook(amount=Decimal("50.00"), user_id=2, transaction_date=date(2025, 1, 9))
    store.add_cashbook(amount=Decimal("999.00"), is_reversed=True, transaction_date=date(2025, 1, 9))
    store.add_cashbook(company_id=2, amount=Decimal("5000.00"))
    svc = world.reconciliation

    overall = svc.get_balance(1, BalanceScope.OVERALL)
    assert (overall.credit, overall.debit, overall.balance) == (Decimal("1050.00"), Decimal("250.00"), Decimal("800.00"))

    monthly = svc.get_balance(1, BalanceScope.MONTHLY, month=1, year=2025)
    assert monthly.balance == Decimal("-200.00")

    staff = svc.get_balance(1, "staff", user_id=2)
    assert staff.balance == Decimal("-200.00")

    summary = svc.get_balance_summary(1, today=date(2025, 1, 31))
    assert summary.opening_balance == Decimal("1000.00")
    assert summary.monthly_credit == Decimal("50.00")
    assert summary.monthly_debit == Decimal("250.00")
    assert summary.closing_balance == Decimal("800.00")

    with pytest.raises(ValidationError):
        svc.get_balance(1, BalanceScope.MONTHLY)
    with pytest.raises(ValidationError):
        svc.get_balance(1, BalanceScope.STAFF)


def test_list_entries_limits_staff_to_own_rows(world, store):
    store.add_cashbook(user_id=2, description="Advance to Ravi")
    store.add_cashbook(user_id=3, description="Advance to Meena")
    store.add_cashbook(description="Office rent")

    own = world.reconciliation.list_entries(world.staff, CashbookFilters(user_id=3))
    assert [e.user_id for e in own.entries] == [2]

    everything = world.reconciliation.list_entries(world.admin, page=1, limit=2)
    assert everything.total == 3
    assert len(everything.entries) == 2

    searched = world.reconciliation.list_entries(world.admin, CashbookFilters(search="rent"))
    assert [e.description for e in searched.entries] == ["Office rent"]


def test_create_entry_validates_and_audits(world, store):
    store.add_user(2)

    entry = world.reconciliation.create_entry(
        world.manager,
        transaction_type="vendor_payment",
        direction="debit",
        amount="1200",
        description="Stationery",
        payment_mode="cash",
        user_id=2,
    )

    assert entry.company_id == 1
    assert entry.transaction_type == CashbookTransactionType.VENDOR_PAYMENT
    assert entry.amount == Decimal("1200.00")
    assert entry.transaction_date == date(2025, 1, 31)
    assert store.audits[-1].entity == "cashbook_entry"

    with pytest.raises(ValidationError):
        world.reconciliation.create_entry(
            world.admin, transaction_type="EXPENSE", direction="SIDEWAYS", amount=1, description="x"
        )
    with pytest.raises(ValidationError):
        world.reconciliation.create_entry(
            world.admin, transaction_type="EXPENSE", direction="DEBIT", amount=-5, description="x"
        )
    with pytest.raises(AuthorizationError):
        world.reconciliation.create_entry(
            world.staff, transaction_type="EXPENSE", direction="DEBIT", amount=5, description="x"
        )


def test_staff_can_only_read_own_statement(world, store):
    own = store.add_salary(2)
    other = store.add_salary(3)

    assert world.reconciliation.salary_statement(own.salary_id, world.staff).salary.user_id == 2
    with pytest.raises(AuthorizationError):
        world.reconciliation.salary_statement(other.salary_id, world.staff)
    with pytest.raises(NotFoundError):
        world.reconciliation.salary_statement(999, world.admin)


def test_reverse_checks_role_before_reason(world, store):
    entry = store.add_cashbook()

    with pytest.raises(AuthorizationError):
        world.reconciliation.reverse_entry(entry.entry_id, reason=None, notes=None, actor=world.staff)
