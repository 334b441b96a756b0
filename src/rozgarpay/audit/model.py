from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import AuditAction


@dataclass(frozen=True)
class AuditLog:
    """Append-only record of who did what to which entity."""

    audit_id: int
    user_id: Optional[int]
    action: AuditAction
    entity: str
    entity_id: Optional[int]
    salary_id: Optional[int] = None
    meta: dict = field(default_factory=dict)
    created_at: Optional[datetime] = None
