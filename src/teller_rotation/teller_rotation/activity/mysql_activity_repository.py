from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import day_key_param, day_key_value, db_cursor, fetchall, fetchone
from .model import AttendanceSnapshot
from .repository import ActivityRepository, AttendanceSnapshotRepository


class MySQLActivityRepository(ActivityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def report_days(self, *, worker_id: int, start_day_key: str, end_day_key: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT day_key
                FROM teller_reports
                WHERE worker_id=%s AND day_key BETWEEN %s AND %s
                ORDER BY day_key DESC
                """,
                (int(worker_id), day_key_param(start_day_key), day_key_param(end_day_key)),
            )
            return [day_key_value(r["day_key"]) for r in fetchall(cur)]

    def count_report_days_since(self, *, worker_id: int, start_day_key: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(DISTINCT day_key) AS days
                FROM teller_reports
                WHERE worker_id=%s AND day_key >= %s
                """,
                (int(worker_id), day_key_param(start_day_key)),
            )
            r = fetchone(cur)
            return int(r["days"]) if r else 0

    def reporters_for_day(self, day_key: str) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT worker_id, MIN(report_id) AS first_report
                FROM teller_reports
                WHERE day_key=%s
                GROUP BY worker_id
                ORDER BY first_report ASC
                """,
                (day_key_param(day_key),),
            )
            return [int(r["worker_id"]) for r in fetchall(cur)]


class MySQLAttendanceSnapshotRepository(AttendanceSnapshotRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_day(self, day_key: str) -> Optional[AttendanceSnapshot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT day_key, attendance_rate FROM daily_attendance WHERE day_key=%s", (day_key_param(day_key),))
            head = fetchone(cur)
            if not head:
                return None

            cur.execute(
                "SELECT worker_id FROM daily_attendance_present WHERE day_key=%s ORDER BY worker_id ASC",
                (day_key_param(day_key),),
            )
            present = tuple(int(r["worker_id"]) for r in fetchall(cur))
            rate = head.get("attendance_rate")
            return AttendanceSnapshot(
                day_key=day_key,
                present_worker_ids=present,
                attendance_rate=float(rate) if rate is not None else None,
            )
