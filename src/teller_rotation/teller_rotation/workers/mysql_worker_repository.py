from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..core.enums import Role, WorkerStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import day_key_param, day_key_value, db_cursor, fetchall, fetchone, in_clause
from .model import Worker
from .repository import WorkerRepository

_SELECT = """
    SELECT
        w.worker_id, w.name, w.username, w.role, w.status, w.last_worked,
        w.total_work_days, w.skip_until, w.last_absent_reason, w.supervisor_id,
        COALESCE(NULLIF(s.name, ''), s.username) AS supervisor_name
    FROM workers w
    LEFT JOIN workers s ON s.worker_id = w.supervisor_id
"""

# Rotation order: never-worked first, then oldest last_worked, then lightest load.
_ROTATION_ORDER = "ORDER BY w.last_worked IS NOT NULL, w.last_worked ASC, w.total_work_days ASC, w.worker_id ASC"

_UPDATABLE = {
    "last_worked": day_key_param,
    "total_work_days": int,
    "skip_until": day_key_param,
    "last_absent_reason": lambda v: v,
}


def _to_worker(r: dict) -> Worker:
    return Worker(
        worker_id=int(r["worker_id"]),
        name=r.get("name") or "",
        username=r["username"],
        role=Role(r["role"]),
        status=WorkerStatus(r["status"]),
        last_worked=day_key_value(r.get("last_worked")),
        total_work_days=int(r.get("total_work_days") or 0),
        skip_until=day_key_value(r.get("skip_until")),
        last_absent_reason=r.get("last_absent_reason"),
        supervisor_id=int(r["supervisor_id"]) if r.get("supervisor_id") is not None else None,
        supervisor_name=r.get("supervisor_name"),
    )


def update_worker_fields(cur, worker_id: int, fields: dict) -> bool:
    """Partial worker update on an open cursor, so callers can share a transaction."""

    unknown = set(fields) - set(_UPDATABLE)
    if unknown:
        raise ValueError(f"Unsupported worker fields: {sorted(unknown)}")
    if not fields:
        return False

    names = sorted(fields)
    assignments = ", ".join(f"{name}=%s" for name in names)
    params = [_UPDATABLE[name](fields[name]) for name in names]
    cur.execute(f"UPDATE workers SET {assignments} WHERE worker_id=%s", (*params, int(worker_id)))
    return cur.rowcount > 0


def increment_worker_days(cur, worker_id: int, *, last_worked: str) -> bool:
    cur.execute(
        """
        UPDATE workers
        SET total_work_days = total_work_days + 1, last_worked=%s
        WHERE worker_id=%s
        """,
        (day_key_param(last_worked), int(worker_id)),
    )
    return cur.rowcount > 0


class MySQLWorkerRepository(WorkerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_eligible(
        self,
        *,
        roles: Sequence[Role],
        status: WorkerStatus,
        reference_day_key: str,
        exclude_ids: Iterable[int] = (),
    ) -> Sequence[Worker]:
        role_values = [Role(r).value for r in roles]
        if not role_values:
            return []

        clauses = [
            f"w.role IN ({in_clause(role_values)})",
            "w.status=%s",
            "(w.skip_until IS NULL OR w.skip_until <= %s)",
        ]
        params: list[object] = [*role_values, status.value, day_key_param(reference_day_key)]

        excluded = [int(i) for i in exclude_ids]
        if excluded:
            clauses.append(f"w.worker_id NOT IN ({in_clause(excluded)})")
            params.extend(excluded)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE {' AND '.join(clauses)} {_ROTATION_ORDER}", tuple(params))
            return [_to_worker(r) for r in fetchall(cur)]

    def get_by_id(self, worker_id: int) -> Optional[Worker]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE w.worker_id=%s", (int(worker_id),))
            r = fetchone(cur)
            return _to_worker(r) if r else None

    def get_many(self, worker_ids: Iterable[int]) -> Sequence[Worker]:
        ids = [int(i) for i in worker_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE w.worker_id IN ({in_clause(ids)})", tuple(ids))
            return [_to_worker(r) for r in fetchall(cur)]

    def list_by_roles(self, roles: Sequence[Role]) -> Sequence[Worker]:
        role_values = [Role(r).value for r in roles]
        if not role_values:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE w.role IN ({in_clause(role_values)}) {_ROTATION_ORDER}", tuple(role_values))
            return [_to_worker(r) for r in fetchall(cur)]

    def update_fields(self, worker_id: int, **fields) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return update_worker_fields(cur, worker_id, fields)

    def increment_work_days(self, worker_id: int, *, last_worked: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return increment_worker_days(cur, worker_id, last_worked=last_worked)
