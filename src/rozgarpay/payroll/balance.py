from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from ..common.money import money_sum, to_money
from .model import Salary, SalaryLedgerEntry


def outstanding_balance(salary: Salary, ledger_entries: Iterable[SalaryLedgerEntry]) -> Decimal:
    """What is still owed to the staff member: net pay plus every signed ledger amount."""
    return to_money(salary.net_amount + money_sum(e.amount for e in ledger_entries))
