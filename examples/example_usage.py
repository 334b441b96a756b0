"""Example: use the service layer directly (without Flask).

Controllers stay thin; payroll rules live in the services.
"""

import importlib

from rozgarpay.config import get_settings_module
from rozgarpay.container import build_container
from rozgarpay.core.enums import Role
from rozgarpay.users.model import Actor


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    generated = container.salary_service.generate_salary(user_id=2, company_id=1, month=1, year=2025)
    print(generated.salary.net_amount, [(b.type.value, b.amount) for b in generated.breakdowns])

    admin = Actor(user_id=1, company_id=1, role=Role.ADMIN)
    statement = container.reconciliation_service.salary_statement(generated.salary.salary_id, admin)
    print("outstanding:", statement.balance)


if __name__ == "__main__":
    main()
