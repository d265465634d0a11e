from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..activity.model import AttendanceSnapshot
from ..scoring.scorer import FairnessScorer
from .strategies.base import SelectionStrategy
from .strategies.rotation_strategy import RotationOrderStrategy
from .strategies.scored_strategy import FairnessScoredStrategy


@dataclass
class SelectionStrategyFactory:
    """Factory Pattern: pick the candidate ordering for a generation run."""

    scorer: FairnessScorer = field(default_factory=FairnessScorer)

    def for_rotation(self) -> SelectionStrategy:
        return RotationOrderStrategy()

    def for_generation(self, snapshot: Optional[AttendanceSnapshot]) -> SelectionStrategy:
        # No presence data for the reference day: plain rotation.
        if snapshot is None or not snapshot.has_presence:
            return RotationOrderStrategy()
        return FairnessScoredStrategy(self.scorer, present_count=len(snapshot.present_worker_ids))
