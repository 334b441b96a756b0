from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import AuditAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, insert_row, load_json, tx_cursor
from ..database.unit_of_work import Transaction
from .model import AuditLog
from .repository import AuditRepository


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with tx_cursor(self._conn_factory, tx) as cur:
            return insert_row(
                cur,
                """
                INSERT INTO audit_logs(user_id, action, entity, entity_id, salary_id, meta)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (user_id, action.value, entity, entity_id, salary_id, dump_json(meta or {})),
            )

    def list_for_entity(self, entity: str, entity_id: int) -> Sequence[AuditLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT audit_id, user_id, action, entity, entity_id, salary_id, meta, created_at
                FROM audit_logs
                WHERE entity=%s AND entity_id=%s
                ORDER BY audit_id ASC
                """,
                (entity, int(entity_id)),
            )
            return [
                AuditLog(
                    audit_id=int(r["audit_id"]),
                    user_id=r.get("user_id"),
                    action=AuditAction(r["action"]),
                    entity=r["entity"],
                    entity_id=r.get("entity_id"),
                    salary_id=r.get("salary_id"),
                    meta=load_json(r.get("meta")),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
