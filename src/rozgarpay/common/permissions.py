from __future__ import annotations

from typing import Iterable

from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..users.model import Actor

PAYROLL_ADMINS = frozenset({Role.ADMIN, Role.MANAGER})


def require_role(actor: Actor, roles: Iterable[Role]) -> None:
    if actor is None or actor.role not in set(roles):
        raise AuthorizationError("You do not have permission for this action")


def require_company(actor: Actor, company_id: int) -> None:
    """Tenant isolation: the company always comes from the actor, never from input."""
    if actor.company_id is None or int(actor.company_id) != int(company_id):
        raise AuthorizationError("Record does not belong to your company")
