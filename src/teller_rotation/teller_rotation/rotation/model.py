from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..activity.model import AttendanceSnapshot
from ..assignments.model import Assignment, NewAssignment
from ..core.enums import AssignmentMethod, AssignmentStatus
from ..scoring.scorer import ScoreBreakdown
from ..workers.model import Worker


@dataclass(frozen=True)
class ScheduleResult:
    """A day's authoritative roster plus what this call did to it.

    ``generated`` is False both for "already generated" and for "no one
    available"; ``message`` says which.
    """

    day_key: str
    assignments: list[Assignment]
    generated: bool = False
    already_exists: bool = False
    message: str = ""
    method: Optional[AssignmentMethod] = None
    skipped: list[NewAssignment] = field(default_factory=list)
    total_work_days: dict[int, int] = field(default_factory=dict)
    scores: list[ScoreBreakdown] = field(default_factory=list)
    alternatives: list[ScoreBreakdown] = field(default_factory=list)
    attendance: Optional[AttendanceSnapshot] = None

    @property
    def is_empty(self) -> bool:
        return not self.assignments

    def to_dict(self) -> dict:
        out = {
            "date": self.day_key,
            "generated": self.generated,
            "already_exists": self.already_exists,
            "message": self.message,
            "method": self.method.value if self.method else None,
            "schedule": [
                {**a.to_dict(), "total_work_days": self.total_work_days.get(a.teller_id, 0)}
                for a in self.assignments
            ],
            "skipped": [r.teller_id for r in self.skipped],
        }
        if self.scores:
            out["scores"] = [s.to_dict() for s in self.scores]
            out["alternatives"] = [s.to_dict() for s in self.alternatives]
        if self.attendance is not None:
            out["attendance"] = {
                "date": self.attendance.day_key,
                "total_present": len(self.attendance.present_worker_ids),
                "attendance_rate": self.attendance.attendance_rate,
            }
        return out


@dataclass(frozen=True)
class ResizeResult:
    day_key: str
    requested: int
    assignments: list[Assignment]
    added: list[Assignment] = field(default_factory=list)
    removed: list[Assignment] = field(default_factory=list)
    skipped: list[NewAssignment] = field(default_factory=list)
    message: str = ""

    @property
    def count(self) -> int:
        return len(self.assignments)

    @property
    def converged(self) -> bool:
        return self.count == self.requested

    def to_dict(self) -> dict:
        return {
            "date": self.day_key,
            "requested": self.requested,
            "count": self.count,
            "message": self.message,
            "added": [a.assignment_id for a in self.added],
            "removed": [a.assignment_id for a in self.removed],
            "skipped": [r.teller_id for r in self.skipped],
            "schedule": [a.to_dict() for a in self.assignments],
        }


@dataclass(frozen=True)
class StatusChange:
    """Result of mark-present / mark-absent / replace.

    ``changed`` is False when the call was a repeat of an already recorded
    outcome.
    """

    assignment: Assignment
    previous_status: Optional[AssignmentStatus]
    changed: bool
    message: str = ""
    skip_until: Optional[str] = None
    replaced_teller_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "assignment": self.assignment.to_dict(),
            "previous_status": self.previous_status.value if self.previous_status else None,
            "changed": self.changed,
            "message": self.message,
            "skip_until": self.skip_until,
            "replaced_teller_id": self.replaced_teller_id,
        }


@dataclass(frozen=True)
class Suggestion:
    worker: Worker
    weekly_worked_days: int
    last_worked: Optional[str]

    def to_dict(self) -> dict:
        return {
            "worker_id": self.worker.worker_id,
            "name": self.worker.display_name,
            "username": self.worker.username,
            "weekly_worked_days": self.weekly_worked_days,
            "last_worked": self.last_worked,
            "skip_until": self.worker.skip_until,
            "last_absent_reason": self.worker.last_absent_reason,
        }
