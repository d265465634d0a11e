from __future__ import annotations

from typing import Optional, Sequence

from ...assignments.model import Assignment
from ...core.enums import AssignmentMethod
from ...scoring.scorer import FairnessScorer
from ...workers.model import Worker
from .base import Selection, SelectionStrategy, rotation_sort_key


class FairnessScoredStrategy(SelectionStrategy):
    """Highest fairness score first; equal scores fall back to rotation order."""

    method = AssignmentMethod.AI_ATTENDANCE_BASED

    def __init__(self, scorer: Optional[FairnessScorer] = None, *, present_count: Optional[int] = None):
        self._scorer = scorer or FairnessScorer()
        self._present_count = present_count

    def rank(
        self,
        *,
        candidates: Sequence[Worker],
        target_day_key: str,
        history: Sequence[Assignment] = (),
    ) -> list[Selection]:
        scores = self._scorer.score_all(
            candidates,
            history=history,
            target_day_key=target_day_key,
            present_count=self._present_count,
        )
        paired = sorted(zip(candidates, scores), key=lambda ws: (-ws[1].total, rotation_sort_key(ws[0])))
        return [
            Selection(worker=w, method=self.method, rank=i + 1, score=s)
            for i, (w, s) in enumerate(paired)
        ]
