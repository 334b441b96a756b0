from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import AuditAction
from ..database.unit_of_work import Transaction
from .model import AuditLog


class AuditRepository(Protocol):
    def add(
        self,
        *,
        user_id: Optional[int],
        action: AuditAction,
        entity: str,
        entity_id: Optional[int],
        salary_id: Optional[int] = None,
        meta: Optional[dict] = None,
        tx: Optional[Transaction] = None,
    ) -> int:
        raise NotImplementedError

    def list_for_entity(self, entity: str, entity_id: int) -> Sequence[AuditLog]:
        raise NotImplementedError
