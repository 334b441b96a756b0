from __future__ import annotations

from dataclasses import dataclass

from .attendance.aggregator import AttendanceAggregator
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.service import AuditTrail
from .cashbook.mysql_cashbook_repository import MySQLCashbookRepository
from .cashbook.service import LedgerReconciliationService
from .company.mysql_company_repository import MySQLCompanyRepository
from .core import constants
from .database.connection import DatabaseConnection, DBConfig
from .database.mysql_base import MySQLUnitOfWork
from .notifications.dispatcher import MySQLNotificationDispatcher
from .payroll.lifecycle import SalaryLifecycleService
from .payroll.mysql_ledger_repository import MySQLLedgerRepository
from .payroll.mysql_salary_repository import MySQLSalaryRepository
from .payroll.scheduler import AutoGenerationScheduler
from .payroll.service import SalaryService
from .users.mysql_user_repository import MySQLUserRepository


@dataclass(frozen=True)
class Container:
    salary_service: SalaryService
    lifecycle_service: SalaryLifecycleService
    reconciliation_service: LedgerReconciliationService
    scheduler: AutoGenerationScheduler
    cron_secret_token: str = ""


def build_container(
    *,
    db_config: dict,
    default_timezone: str = constants.DEFAULT_TIMEZONE,
    cron_secret_token: str = "",
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    uow = MySQLUnitOfWork(conn)

    users_repo = MySQLUserRepository(conn)
    companies_repo = MySQLCompanyRepository(conn, default_timezone=default_timezone)
    attendance_repo = MySQLAttendanceRepository(conn)
    salaries_repo = MySQLSalaryRepository(conn)
    ledger_repo = MySQLLedgerRepository(conn)
    cashbook_repo = MySQLCashbookRepository(conn)

    audit = AuditTrail(MySQLAuditRepository(conn))
    notifier = MySQLNotificationDispatcher(conn)

    salary_service = SalaryService(
        uow,
        salaries_repo,
        users_repo,
        companies_repo,
        AttendanceAggregator(attendance_repo),
        audit,
    )
    lifecycle_service = SalaryLifecycleService(
        uow, salaries_repo, ledger_repo, cashbook_repo, companies_repo, audit, notifier
    )
    reconciliation_service = LedgerReconciliationService(
        uow, cashbook_repo, salaries_repo, ledger_repo, users_repo, companies_repo, salary_service, audit
    )
    scheduler = AutoGenerationScheduler(salary_service, companies_repo, users_repo, notifier)

    return Container(
        salary_service=salary_service,
        lifecycle_service=lifecycle_service,
        reconciliation_service=reconciliation_service,
        scheduler=scheduler,
        cron_secret_token=cron_secret_token,
    )
