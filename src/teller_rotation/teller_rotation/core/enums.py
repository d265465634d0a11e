from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Worker roles known to the roster."""

    TELLER = "teller"
    SUPERVISOR_TELLER = "supervisor_teller"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ROTATION_ROLES = (Role.TELLER, Role.SUPERVISOR_TELLER)


class WorkerStatus(str, Enum):
    """Approval gate on the roster."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AssignmentStatus(str, Enum):
    """Per-day assignment state. Everything except SCHEDULED is terminal."""

    SCHEDULED = "scheduled"
    PRESENT = "present"
    ABSENT = "absent"
    REPLACED = "replaced"

    @property
    def is_terminal(self) -> bool:
        return self is not AssignmentStatus.SCHEDULED


class AssignmentMethod(str, Enum):
    """How an assignment's worker was picked."""

    TRADITIONAL_ROTATION = "traditional_rotation"
    AI_ATTENDANCE_BASED = "ai_attendance_based"
    MANUAL = "manual"


class EventName(str, Enum):
    SCHEDULE_GENERATED = "scheduleGenerated"
    SCHEDULE_RESIZED = "scheduleResized"
    SCHEDULE_UPDATED = "scheduleUpdated"
    SCHEDULE_CLEARED = "scheduleCleared"
