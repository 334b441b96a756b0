from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..core.enums import Role, SalaryType, UserStatus


@dataclass(frozen=True)
class Actor:
    """Who is performing an action, as supplied by the identity provider."""

    user_id: int
    company_id: Optional[int]
    role: Role

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles


SYSTEM_ACTOR_ID = 0


@dataclass(frozen=True)
class StaffMember:
    """Domain entity: a company user together with their pay profile."""

    user_id: int
    company_id: int
    full_name: str
    role: Role
    status: UserStatus
    salary_type: Optional[SalaryType] = None
    base_salary: Optional[Decimal] = None
    hourly_rate: Optional[Decimal] = None
    daily_rate: Optional[Decimal] = None
    overtime_rate: Optional[Decimal] = None
    pf_esi_applicable: bool = False

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE
