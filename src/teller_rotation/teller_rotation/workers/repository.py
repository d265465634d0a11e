from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import Role, WorkerStatus
from .model import Worker


class WorkerRepository(Protocol):
    """Roster access used by the rotation engine.

    Note (DIP): services depend on this interface, never on a concrete DB.
    """

    def find_eligible(
        self,
        *,
        roles: Sequence[Role],
        status: WorkerStatus,
        reference_day_key: str,
        exclude_ids: Iterable[int] = (),
    ) -> Sequence[Worker]:
        """Workers with a matching role and status and no active penalty.

        A penalty is active while ``skip_until`` is strictly after
        ``reference_day_key``; on the ``skip_until`` day itself the worker is
        eligible again.
        """

        raise NotImplementedError

    def get_by_id(self, worker_id: int) -> Optional[Worker]:
        raise NotImplementedError

    def get_many(self, worker_ids: Iterable[int]) -> Sequence[Worker]:
        raise NotImplementedError

    def list_by_roles(self, roles: Sequence[Role]) -> Sequence[Worker]:
        raise NotImplementedError

    def update_fields(self, worker_id: int, **fields) -> bool:
        """Partial update of the engine-owned fields."""

        raise NotImplementedError

    def increment_work_days(self, worker_id: int, *, last_worked: str) -> bool:
        """Atomically add one confirmed work day and stamp ``last_worked``."""

        raise NotImplementedError
