from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from ..core.enums import AssignmentMethod, AssignmentStatus


@dataclass(frozen=True)
class NewAssignment:
    """Insert payload for one (day_key, teller) slot."""

    day_key: str
    teller_id: int
    teller_name: str
    assigned_at: datetime
    status: AssignmentStatus = AssignmentStatus.SCHEDULED
    supervisor_id: Optional[int] = None
    supervisor_name: Optional[str] = None
    absent_reason: str = ""
    penalty_days: int = 0
    method: AssignmentMethod = AssignmentMethod.TRADITIONAL_ROTATION
    score: Optional[int] = None
    rank: Optional[int] = None
    reason: Optional[str] = None
    recency_score: Optional[int] = None
    inactivity_score: Optional[int] = None
    balance_score: Optional[int] = None


@dataclass(frozen=True)
class Assignment:
    """Domain entity: one worker's rotation slot on one day.

    ``teller_name`` is denormalized at creation so the day's roster reads the
    same even if the worker is renamed later. Scored rows keep the score's
    terms next to the total.
    """

    assignment_id: int
    day_key: str
    teller_id: int
    teller_name: str
    status: AssignmentStatus
    assigned_at: datetime
    supervisor_id: Optional[int] = None
    supervisor_name: Optional[str] = None
    absent_reason: str = ""
    penalty_days: int = 0
    method: AssignmentMethod = AssignmentMethod.TRADITIONAL_ROTATION
    score: Optional[int] = None
    rank: Optional[int] = None
    reason: Optional[str] = None
    recency_score: Optional[int] = None
    inactivity_score: Optional[int] = None
    balance_score: Optional[int] = None

    @property
    def score_terms(self) -> Optional[dict]:
        if self.score is None:
            return None
        return {
            "recency": self.recency_score,
            "inactivity": self.inactivity_score,
            "balance": self.balance_score,
        }

    def to_dict(self) -> dict:
        return {
            "assignment_id": self.assignment_id,
            "day_key": self.day_key,
            "teller_id": self.teller_id,
            "teller_name": self.teller_name,
            "supervisor_id": self.supervisor_id,
            "supervisor_name": self.supervisor_name or "",
            "status": self.status.value,
            "absent_reason": self.absent_reason,
            "penalty_days": self.penalty_days,
            "assigned_at": self.assigned_at.isoformat(),
            "method": self.method.value,
            "score": self.score,
            "score_terms": self.score_terms,
            "rank": self.rank,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class WorkerEffect:
    """Worker write that commits or rolls back together with an assignment change.

    ``add_work_day`` adds one confirmed day and stamps ``last_worked`` with the
    assignment's day; ``fields`` is a partial update of engine-owned fields.
    """

    worker_id: int
    add_work_day: bool = False
    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InsertResult:
    """Outcome of a batch insert: rows written and rows skipped on conflict."""

    inserted: list[Assignment] = field(default_factory=list)
    skipped: list[NewAssignment] = field(default_factory=list)


@dataclass(frozen=True)
class StatusUpsert:
    assignment: Assignment
    previous_status: Optional[AssignmentStatus]
    changed: bool

    @property
    def created(self) -> bool:
        return self.previous_status is None
