from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role, WorkerStatus


@dataclass(frozen=True)
class Worker:
    """Domain entity: a roster member.

    Note: The rotation engine only ever writes ``last_worked``,
    ``total_work_days``, ``skip_until`` and ``last_absent_reason``.
    """

    worker_id: int
    name: str
    username: str
    role: Role
    status: WorkerStatus
    last_worked: Optional[str] = None
    total_work_days: int = 0
    skip_until: Optional[str] = None
    last_absent_reason: Optional[str] = None
    supervisor_id: Optional[int] = None
    supervisor_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.username
