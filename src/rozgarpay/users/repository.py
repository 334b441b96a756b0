from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import StaffMember


class UserRepository(Protocol):
    def get_by_id(self, user_id: int) -> Optional[StaffMember]:
        raise NotImplementedError

    def list_active(self, *, company_id: int, roles: Iterable[Role]) -> Sequence[StaffMember]:
        """Active users of a company having one of ``roles``."""

        raise NotImplementedError
