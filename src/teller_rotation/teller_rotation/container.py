from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .activity.mysql_activity_repository import MySQLActivityRepository, MySQLAttendanceSnapshotRepository
from .assignments.mysql_assignment_repository import MySQLAssignmentRepository
from .common.calendar import CalendarResolver
from .core.constants import (
    DEFAULT_HEADCOUNT,
    DEFAULT_HISTORY_DAYS,
    DEFAULT_SCORE_HISTORY_DAYS,
    DEFAULT_SUGGEST_LIMIT,
    DEFAULT_SUGGEST_WINDOW_DAYS,
    DEFAULT_TIMEZONE,
)
from .database.connection import DatabaseConnection
from .notifications.notifier import EventNotifier, LoggingNotifier
from .rotation.service import RotationService
from .selection.factory import SelectionStrategyFactory
from .workers.mysql_worker_repository import MySQLWorkerRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    workers_repo: MySQLWorkerRepository
    assignments_repo: MySQLAssignmentRepository
    activity_repo: MySQLActivityRepository
    attendance_repo: MySQLAttendanceSnapshotRepository

    calendar: CalendarResolver
    notifier: EventNotifier
    rotation_service: RotationService


def build_container(
    *,
    db_config: dict,
    settings: object = None,
    notifier: Optional[EventNotifier] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> Container:
    """Wire MySQL adapters into the rotation service.

    ``settings`` is a settings module (see ``config``); missing attributes
    fall back to the package defaults.
    """

    conn = DatabaseConnection.from_dict(db_config)

    workers_repo = MySQLWorkerRepository(conn)
    assignments_repo = MySQLAssignmentRepository(conn)
    activity_repo = MySQLActivityRepository(conn)
    attendance_repo = MySQLAttendanceSnapshotRepository(conn)

    calendar = CalendarResolver(getattr(settings, "TIMEZONE", DEFAULT_TIMEZONE), now=now)
    notifier = notifier or LoggingNotifier()

    rotation_service = RotationService(
        workers_repo,
        assignments_repo,
        activity_repo,
        attendance_repo,
        notifier=notifier,
        calendar=calendar,
        strategy_factory=SelectionStrategyFactory(),
        default_headcount=int(getattr(settings, "DEFAULT_HEADCOUNT", DEFAULT_HEADCOUNT)),
        score_history_days=int(getattr(settings, "SCORE_HISTORY_DAYS", DEFAULT_SCORE_HISTORY_DAYS)),
        suggest_window_days=int(getattr(settings, "SUGGEST_WINDOW_DAYS", DEFAULT_SUGGEST_WINDOW_DAYS)),
        suggest_limit=int(getattr(settings, "SUGGEST_LIMIT", DEFAULT_SUGGEST_LIMIT)),
        history_days=int(getattr(settings, "HISTORY_DAYS", DEFAULT_HISTORY_DAYS)),
    )

    return Container(
        conn=conn,
        workers_repo=workers_repo,
        assignments_repo=assignments_repo,
        activity_repo=activity_repo,
        attendance_repo=attendance_repo,
        calendar=calendar,
        notifier=notifier,
        rotation_service=rotation_service,
    )
