from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def list_for_period(
        self,
        *,
        user_id: int,
        company_id: int,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceRecord]:
        """Rows whose ``attendance_date`` lies in ``[start_date, end_date]``, oldest first."""

        raise NotImplementedError
