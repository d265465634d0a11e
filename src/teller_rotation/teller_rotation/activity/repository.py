from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceSnapshot


class ActivityRepository(Protocol):
    """Teller report history: the confirmed-activity signal."""

    def report_days(self, *, worker_id: int, start_day_key: str, end_day_key: str) -> Sequence[str]:
        """Distinct day keys (inclusive range) on which the worker filed a report, newest first."""

        raise NotImplementedError

    def count_report_days_since(self, *, worker_id: int, start_day_key: str) -> int:
        raise NotImplementedError

    def reporters_for_day(self, day_key: str) -> Sequence[int]:
        """Distinct worker ids with a report filed for ``day_key``."""

        raise NotImplementedError


class AttendanceSnapshotRepository(Protocol):
    def get_for_day(self, day_key: str) -> Optional[AttendanceSnapshot]:
        raise NotImplementedError
