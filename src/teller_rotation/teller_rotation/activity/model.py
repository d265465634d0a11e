from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class AttendanceSnapshot:
    """Read-model: who was recorded present on a given day."""

    day_key: str
    present_worker_ids: tuple[int, ...] = field(default_factory=tuple)
    attendance_rate: Optional[float] = None

    @property
    def has_presence(self) -> bool:
        return bool(self.present_worker_ids)
