"""Transaction boundary shared by services and repositories.

Repository write methods accept ``tx=`` so several inserts/updates across
tables commit or roll back together. Without a ``tx`` a repository call runs
in its own short transaction.
"""

from __future__ import annotations

from typing import Any, ContextManager, Protocol


class Transaction(Protocol):
    """Opaque handle passed to repositories; the MySQL one wraps a cursor."""

    cursor: Any


class UnitOfWork(Protocol):
    def begin(self) -> ContextManager[Transaction]:
        """Open a transaction: commit on clean exit, roll back on any exception."""

        raise NotImplementedError
