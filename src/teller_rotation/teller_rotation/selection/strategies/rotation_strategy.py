from __future__ import annotations

from typing import Sequence

from ...assignments.model import Assignment
from ...core.enums import AssignmentMethod
from ...workers.model import Worker
from .base import Selection, SelectionStrategy, rotation_sort_key


class RotationOrderStrategy(SelectionStrategy):
    """Plain fair rotation over the roster."""

    method = AssignmentMethod.TRADITIONAL_ROTATION

    def rank(
        self,
        *,
        candidates: Sequence[Worker],
        target_day_key: str,
        history: Sequence[Assignment] = (),
    ) -> list[Selection]:
        ordered = sorted(candidates, key=rotation_sort_key)
        return [Selection(worker=w, method=self.method, rank=i + 1) for i, w in enumerate(ordered)]
