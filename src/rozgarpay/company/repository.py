from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import CompanyPolicy


class CompanyRepository(Protocol):
    def get_policy(self, company_id: int) -> Optional[CompanyPolicy]:
        raise NotImplementedError

    def list_active(self) -> Sequence[CompanyPolicy]:
        raise NotImplementedError
