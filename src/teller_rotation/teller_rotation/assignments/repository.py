from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import AssignmentStatus
from .model import Assignment, InsertResult, NewAssignment, StatusUpsert, WorkerEffect


class AssignmentRepository(Protocol):
    """Per-day assignment store.

    Implementations must enforce uniqueness of (day_key, teller_id) in the
    data layer itself.
    """

    def find_for_day(self, day_key: str) -> Sequence[Assignment]:
        """Assignments of one day, oldest ``assigned_at`` first."""

        raise NotImplementedError

    def find_since(self, start_day_key: str) -> Sequence[Assignment]:
        """Assignments with ``day_key >= start_day_key``, newest day first."""

        raise NotImplementedError

    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        raise NotImplementedError

    def get_for_teller_and_day(self, *, teller_id: int, day_key: str) -> Optional[Assignment]:
        raise NotImplementedError

    def insert_many(self, rows: Sequence[NewAssignment], *, stamp_last_worked: bool = False) -> InsertResult:
        """Insert each row; rows hitting the uniqueness constraint are
        skipped and reported, the rest are kept.

        With ``stamp_last_worked`` each inserted worker's ``last_worked`` is
        set to the row's day in the same transaction.
        """

        raise NotImplementedError

    def upsert_status(
        self,
        *,
        row: NewAssignment,
        allowed_from: Iterable[AssignmentStatus],
        effect: Optional[WorkerEffect] = None,
    ) -> StatusUpsert:
        """Move the (row.day_key, row.teller_id) assignment to ``row.status``.

        Creates the assignment from ``row`` when none exists. An existing
        assignment is only updated when its current status is in
        ``allowed_from``; ``absent_reason`` and ``penalty_days`` are copied
        from ``row``. The check, the write and ``effect`` (applied only when
        the status changed) commit together or not at all.
        """

        raise NotImplementedError

    def reassign(
        self,
        *,
        assignment_id: int,
        teller_id: int,
        teller_name: str,
        status: AssignmentStatus,
        allowed_from: Iterable[AssignmentStatus],
        effect: Optional[WorkerEffect] = None,
    ) -> Optional[Assignment]:
        """Swap the worker on an assignment. Returns None when the current
        status is not in ``allowed_from``. Raises ConflictError when the new
        worker already holds an assignment that day. ``effect`` commits with
        the swap."""

        raise NotImplementedError

    def delete_many(self, assignment_ids: Iterable[int]) -> int:
        raise NotImplementedError

    def delete_for_day(self, day_key: str) -> int:
        raise NotImplementedError
