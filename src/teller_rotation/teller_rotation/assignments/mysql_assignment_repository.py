from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import AssignmentMethod, AssignmentStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    day_key_param,
    day_key_value,
    db_cursor,
    fetchall,
    fetchone,
    in_clause,
    is_duplicate_key,
    run_in_transaction,
)
from ..workers.mysql_worker_repository import increment_worker_days, update_worker_fields
from .model import Assignment, InsertResult, NewAssignment, StatusUpsert, WorkerEffect
from .repository import AssignmentRepository

logger = logging.getLogger(__name__)

_COLUMNS = """
    assignment_id, day_key, teller_id, teller_name, supervisor_id, supervisor_name,
    status, absent_reason, penalty_days, assigned_at, method, score, `rank`, reason,
    recency_score, inactivity_score, balance_score
"""


def _optional_int(r: dict, key: str) -> Optional[int]:
    return int(r[key]) if r.get(key) is not None else None


def _to_assignment(r: dict) -> Assignment:
    return Assignment(
        assignment_id=int(r["assignment_id"]),
        day_key=day_key_value(r["day_key"]),
        teller_id=int(r["teller_id"]),
        teller_name=r["teller_name"],
        status=AssignmentStatus(r["status"]),
        assigned_at=r["assigned_at"],
        supervisor_id=_optional_int(r, "supervisor_id"),
        supervisor_name=r.get("supervisor_name"),
        absent_reason=r.get("absent_reason") or "",
        penalty_days=int(r.get("penalty_days") or 0),
        method=AssignmentMethod(r.get("method") or AssignmentMethod.TRADITIONAL_ROTATION.value),
        score=_optional_int(r, "score"),
        rank=_optional_int(r, "rank"),
        reason=r.get("reason"),
        recency_score=_optional_int(r, "recency_score"),
        inactivity_score=_optional_int(r, "inactivity_score"),
        balance_score=_optional_int(r, "balance_score"),
    )


def _insert(cur, row: NewAssignment) -> int:
    cur.execute(
        """
        INSERT INTO daily_teller_assignments(
            day_key, teller_id, teller_name, supervisor_id, supervisor_name, status,
            absent_reason, penalty_days, assigned_at, method, score, `rank`, reason,
            recency_score, inactivity_score, balance_score
        )
        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
        """,
        (
            day_key_param(row.day_key),
            int(row.teller_id),
            row.teller_name,
            row.supervisor_id,
            row.supervisor_name,
            row.status.value,
            row.absent_reason or "",
            int(row.penalty_days or 0),
            row.assigned_at.replace(tzinfo=None),
            row.method.value,
            row.score,
            row.rank,
            row.reason,
            row.recency_score,
            row.inactivity_score,
            row.balance_score,
        ),
    )
    return int(cur.lastrowid)


def _select_by_id(cur, assignment_id: int) -> Optional[dict]:
    cur.execute(f"SELECT {_COLUMNS} FROM daily_teller_assignments WHERE assignment_id=%s", (int(assignment_id),))
    return fetchone(cur)


def _lock_natural_key(cur, *, day_key: str, teller_id: int) -> Optional[dict]:
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM daily_teller_assignments
        WHERE day_key=%s AND teller_id=%s
        FOR UPDATE
        """,
        (day_key_param(day_key), int(teller_id)),
    )
    return fetchone(cur)


def _apply_effect(cur, effect: Optional[WorkerEffect], *, day_key: str) -> None:
    if effect is None:
        return
    if effect.add_work_day:
        increment_worker_days(cur, effect.worker_id, last_worked=day_key)
    if effect.fields:
        update_worker_fields(cur, effect.worker_id, dict(effect.fields))


class MySQLAssignmentRepository(AssignmentRepository):
    """Write paths run through ``run_in_transaction`` so a deadlock victim is
    replayed once instead of failing the caller."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_for_day(self, day_key: str) -> Sequence[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM daily_teller_assignments
                WHERE day_key=%s
                ORDER BY assigned_at ASC, assignment_id ASC
                """,
                (day_key_param(day_key),),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def find_since(self, start_day_key: str) -> Sequence[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM daily_teller_assignments
                WHERE day_key >= %s
                ORDER BY day_key DESC, assigned_at ASC, assignment_id ASC
                """,
                (day_key_param(start_day_key),),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            r = _select_by_id(cur, assignment_id)
            return _to_assignment(r) if r else None

    def get_for_teller_and_day(self, *, teller_id: int, day_key: str) -> Optional[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM daily_teller_assignments WHERE day_key=%s AND teller_id=%s",
                (day_key_param(day_key), int(teller_id)),
            )
            r = fetchone(cur)
            return _to_assignment(r) if r else None

    def insert_many(self, rows: Sequence[NewAssignment], *, stamp_last_worked: bool = False) -> InsertResult:
        if not rows:
            return InsertResult()

        def work(cur) -> InsertResult:
            result = InsertResult()
            for row in rows:
                try:
                    new_id = _insert(cur, row)
                except IntegrityError as exc:
                    if not is_duplicate_key(exc):
                        raise
                    # A duplicate only fails its own statement; earlier rows stay in the transaction.
                    logger.info("Skipped duplicate assignment day=%s teller=%s", row.day_key, row.teller_id)
                    result.skipped.append(row)
                    continue
                if stamp_last_worked:
                    update_worker_fields(cur, row.teller_id, {"last_worked": row.day_key})
                result.inserted.append(_to_assignment(_select_by_id(cur, new_id)))
            return result

        return run_in_transaction(self._conn_factory, work)

    def upsert_status(
        self,
        *,
        row: NewAssignment,
        allowed_from: Iterable[AssignmentStatus],
        effect: Optional[WorkerEffect] = None,
    ) -> StatusUpsert:
        allowed = {AssignmentStatus(s) for s in allowed_from}

        def work(cur) -> StatusUpsert:
            current = _lock_natural_key(cur, day_key=row.day_key, teller_id=row.teller_id)
            if current is None:
                try:
                    new_id = _insert(cur, row)
                except IntegrityError as exc:
                    if not is_duplicate_key(exc):
                        raise
                    # Lost the insert race; fall through to the update path.
                    current = _lock_natural_key(cur, day_key=row.day_key, teller_id=row.teller_id)
                else:
                    _apply_effect(cur, effect, day_key=row.day_key)
                    return StatusUpsert(
                        assignment=_to_assignment(_select_by_id(cur, new_id)),
                        previous_status=None,
                        changed=True,
                    )

            previous = AssignmentStatus(current["status"])
            if previous not in allowed:
                return StatusUpsert(assignment=_to_assignment(current), previous_status=previous, changed=False)

            cur.execute(
                """
                UPDATE daily_teller_assignments
                SET status=%s, absent_reason=%s, penalty_days=%s
                WHERE assignment_id=%s
                """,
                (row.status.value, row.absent_reason or "", int(row.penalty_days or 0), int(current["assignment_id"])),
            )
            _apply_effect(cur, effect, day_key=row.day_key)
            updated = _to_assignment(_select_by_id(cur, int(current["assignment_id"])))
            return StatusUpsert(assignment=updated, previous_status=previous, changed=True)

        return run_in_transaction(self._conn_factory, work)

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
        allowed = [AssignmentStatus(s).value for s in allowed_from]
        if not allowed:
            return None

        def work(cur) -> Optional[Assignment]:
            try:
                cur.execute(
                    f"""
                    UPDATE daily_teller_assignments
                    SET teller_id=%s, teller_name=%s, status=%s, method=%s
                    WHERE assignment_id=%s AND status IN ({in_clause(allowed)})
                    """,
                    (
                        int(teller_id),
                        teller_name,
                        status.value,
                        AssignmentMethod.MANUAL.value,
                        int(assignment_id),
                        *allowed,
                    ),
                )
            except IntegrityError as exc:
                if not is_duplicate_key(exc):
                    raise
                raise ConflictError("Replacement teller is already assigned on this day")

            if cur.rowcount == 0:
                return None
            updated = _to_assignment(_select_by_id(cur, assignment_id))
            _apply_effect(cur, effect, day_key=updated.day_key)
            return updated

        return run_in_transaction(self._conn_factory, work)

    def delete_many(self, assignment_ids: Iterable[int]) -> int:
        ids = [int(i) for i in assignment_ids]
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM daily_teller_assignments WHERE assignment_id IN ({in_clause(ids)})", tuple(ids))
            return int(cur.rowcount)

    def delete_for_day(self, day_key: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM daily_teller_assignments WHERE day_key=%s", (day_key_param(day_key),))
            return int(cur.rowcount)
