"""Fairness scorer for attendance-based generation.

A deterministic weighted sum over a worker's trailing assignment history.
Each term is a named function so it can be tested on its own. Nothing here
reads the clock; the target day is always passed in.

    total = BASE_SCORE
          + recency_term(assignments in window)        # up to +50
          + inactivity_term(days since last assignment) # up to +30, or +50 if never
          + balance_term(total_work_days, mean)         # +20 when under-worked
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ..assignments.model import Assignment
from ..common.calendar import days_between, parse_day_key
from ..workers.model import Worker

BASE_SCORE = 100
RECENCY_WEIGHT = 5
RECENCY_CAP_COUNT = 10
INACTIVITY_WEIGHT = 3
INACTIVITY_CAP = 30
NEVER_ASSIGNED_BONUS = 50
BALANCE_BONUS = 20


def recency_term(recent_assignments: int) -> int:
    return RECENCY_WEIGHT * max(0, RECENCY_CAP_COUNT - int(recent_assignments))


def inactivity_term(days_since_last: Optional[int]) -> int:
    if days_since_last is None:
        return NEVER_ASSIGNED_BONUS
    # An assignment dated after the target day counts as "just worked".
    return min(INACTIVITY_WEIGHT * max(int(days_since_last), 0), INACTIVITY_CAP)


def balance_term(total_work_days: int, mean_assignments: float) -> int:
    return BALANCE_BONUS if total_work_days < mean_assignments else 0


def mean_assignments(history_size: int, present_count: int) -> float:
    """Window assignments spread over today's present candidates."""
    if present_count <= 0:
        return 0.0
    return history_size / present_count


@dataclass(frozen=True)
class ScoreBreakdown:
    worker_id: int
    recent_assignments: int
    last_assigned: Optional[str]
    total_work_days: int
    base: int
    recency: int
    inactivity: int
    balance: int

    @property
    def total(self) -> int:
        return self.base + self.recency + self.inactivity + self.balance

    @property
    def reason(self) -> str:
        return f"Score: {self.total} (Recent: {self.recent_assignments}, Last: {self.last_assigned or 'never'})"

    def to_dict(self) -> dict:
        return {
            "worker_id": self.worker_id,
            "score": self.total,
            "base": self.base,
            "recency": self.recency,
            "inactivity": self.inactivity,
            "balance": self.balance,
            "recent_assignments": self.recent_assignments,
            "last_assigned": self.last_assigned or "never",
            "total_work_days": self.total_work_days,
        }


class FairnessScorer:
    """Pure function of (worker, window history, target day, mean load)."""

    def score(
        self,
        worker: Worker,
        *,
        history: Iterable[Assignment],
        target_day_key: str,
        mean: float,
    ) -> ScoreBreakdown:
        own_days = [a.day_key for a in history if a.teller_id == worker.worker_id]
        last_assigned = max(own_days, key=parse_day_key) if own_days else None
        days_since = days_between(last_assigned, target_day_key) if last_assigned else None

        return ScoreBreakdown(
            worker_id=worker.worker_id,
            recent_assignments=len(own_days),
            last_assigned=last_assigned,
            total_work_days=worker.total_work_days,
            base=BASE_SCORE,
            recency=recency_term(len(own_days)),
            inactivity=inactivity_term(days_since),
            balance=balance_term(worker.total_work_days, mean),
        )

    def score_all(
        self,
        candidates: Sequence[Worker],
        *,
        history: Sequence[Assignment],
        target_day_key: str,
        present_count: Optional[int] = None,
    ) -> list[ScoreBreakdown]:
        present = len(candidates) if present_count is None else present_count
        mean = mean_assignments(len(history), present)
        return [self.score(w, history=history, target_day_key=target_day_key, mean=mean) for w in candidates]
