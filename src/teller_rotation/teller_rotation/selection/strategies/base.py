from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ...assignments.model import Assignment
from ...common.calendar import parse_day_key
from ...core.enums import AssignmentMethod
from ...scoring.scorer import ScoreBreakdown
from ...workers.model import Worker


@dataclass(frozen=True)
class Selection:
    worker: Worker
    method: AssignmentMethod
    rank: int
    score: Optional[ScoreBreakdown] = None

    @property
    def reason(self) -> Optional[str]:
        return self.score.reason if self.score else None


def rotation_sort_key(worker: Worker) -> tuple:
    """Fair rotation order: never worked first, then oldest ``last_worked``,
    then fewest confirmed work days. ``worker_id`` keeps ties stable."""

    if worker.last_worked is None:
        return (0, date.min, worker.total_work_days, worker.worker_id)
    return (1, parse_day_key(worker.last_worked), worker.total_work_days, worker.worker_id)


class SelectionStrategy(ABC):
    """Strategy Pattern: encapsulate how candidates are ordered for a day."""

    method: AssignmentMethod

    @abstractmethod
    def rank(
        self,
        *,
        candidates: Sequence[Worker],
        target_day_key: str,
        history: Sequence[Assignment] = (),
    ) -> list[Selection]:
        """Every candidate, best first."""

        raise NotImplementedError

    def select(
        self,
        *,
        candidates: Sequence[Worker],
        target_day_key: str,
        count: int,
        history: Sequence[Assignment] = (),
    ) -> list[Selection]:
        if count <= 0:
            return []
        return self.rank(candidates=candidates, target_day_key=target_day_key, history=history)[:count]
