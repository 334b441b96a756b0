"""Rozgarpay payroll core.

Feature packages (attendance, payroll, cashbook, ...) each hold a domain model,
a repository protocol with its MySQL implementation, a service layer and a thin
Flask controller.
"""

__version__ = "0.1.0"
