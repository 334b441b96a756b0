from __future__ import annotations

import logging
from typing import Optional

from ..core.enums import AuditAction
from ..database.unit_of_work import Transaction
from .repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditTrail:
    """Writes audit rows.

    ``record`` is best-effort and runs after the business commit: a failure is
    logged and swallowed. ``record_in`` joins the caller's transaction so the
    audit row commits or rolls back with the change it describes.
    """

    def __init__(self, audits: AuditRepository):
        self._audits = audits

    def record(
        self,
        *,
        user_id: Optional[int],
        action: AuditAction,
        entity: str,
        entity_id: Optional[int],
        salary_id: Optional[int] = None,
        meta: Optional[dict] = None,
    ) -> None:
        try:
            self._audits.add(
                user_id=user_id,
                action=action,
                entity=entity,
                entity_id=entity_id,
                salary_id=salary_id,
                meta=meta,
            )
        except Exception:
            logger.exception("Audit write failed action=%s entity=%s id=%s", action.value, entity, entity_id)

    def record_in(
        self,
        tx: Transaction,
        *,
        user_id: Optional[int],
        action: AuditAction,
        entity: str,
        entity_id: Optional[int],
        salary_id: Optional[int] = None,
        meta: Optional[dict] = None,
    ) -> int:
        return self._audits.add(
            user_id=user_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            salary_id=salary_id,
            meta=meta,
            tx=tx,
        )
