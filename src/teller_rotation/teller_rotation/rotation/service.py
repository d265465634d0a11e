from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from ..activity.repository import ActivityRepository, AttendanceSnapshotRepository
from ..assignments.model import Assignment, InsertResult, NewAssignment, WorkerEffect
from ..assignments.repository import AssignmentRepository
from ..common.calendar import CalendarResolver, add_days, is_after, require_day_key
from ..common.validators import require_id, require_non_negative_int, require_positive_int
from ..core.constants import (
    DEFAULT_HEADCOUNT,
    DEFAULT_HISTORY_DAYS,
    DEFAULT_SCORE_HISTORY_DAYS,
    DEFAULT_SUGGEST_LIMIT,
    DEFAULT_SUGGEST_WINDOW_DAYS,
    MAX_REASON_LENGTH,
    NO_REASON,
)
from ..core.enums import ROTATION_ROLES, AssignmentMethod, AssignmentStatus, EventName, WorkerStatus
from ..core.exceptions import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from ..notifications.notifier import EventNotifier, NullNotifier, safe_emit
from ..selection.factory import SelectionStrategyFactory
from ..selection.strategies.base import Selection, rotation_sort_key
from ..workers.model import Worker
from ..workers.repository import WorkerRepository
from .model import ResizeResult, ScheduleResult, StatusChange, Suggestion

logger = logging.getLogger(__name__)


def is_eligible(worker: Worker, day_key: str) -> bool:
    """Approved rotation-role worker with no penalty running past ``day_key``."""
    if worker.role not in ROTATION_ROLES or worker.status != WorkerStatus.APPROVED:
        return False
    return worker.skip_until is None or not is_after(worker.skip_until, day_key)


class RotationService:
    """Daily teller rotation: generation, headcount and attendance outcomes.

    Assignments move ``scheduled -> present | absent | replaced``; the three
    outcomes are terminal. ``total_work_days`` only grows on the transition
    into ``present``. A replacement worker's day is therefore never confirmed here; it is
    picked up by ``recalculate_work_days`` from their teller reports.
    """

    def __init__(
        self,
        workers: WorkerRepository,
        assignments: AssignmentRepository,
        activity: ActivityRepository,
        attendance: AttendanceSnapshotRepository,
        *,
        notifier: EventNotifier | None = None,
        calendar: CalendarResolver | None = None,
        strategy_factory: SelectionStrategyFactory | None = None,
        default_headcount: int = DEFAULT_HEADCOUNT,
        score_history_days: int = DEFAULT_SCORE_HISTORY_DAYS,
        suggest_window_days: int = DEFAULT_SUGGEST_WINDOW_DAYS,
        suggest_limit: int = DEFAULT_SUGGEST_LIMIT,
        history_days: int = DEFAULT_HISTORY_DAYS,
    ):
        self._workers = workers
        self._assignments = assignments
        self._activity = activity
        self._attendance = attendance
        self._notifier = notifier or NullNotifier()
        self._calendar = calendar or CalendarResolver()
        self._factory = strategy_factory or SelectionStrategyFactory()
        self._default_headcount = require_positive_int(default_headcount, "default_headcount")
        self._score_history_days = require_non_negative_int(score_history_days, "score_history_days")
        self._suggest_window_days = require_non_negative_int(suggest_window_days, "suggest_window_days")
        self._suggest_limit = require_positive_int(suggest_limit, "suggest_limit")
        self._history_days = require_non_negative_int(history_days, "history_days")

    @property
    def calendar(self) -> CalendarResolver:
        return self._calendar

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def generate_or_fetch(self, day_key: Optional[str] = None, *, headcount: Optional[int] = None) -> ScheduleResult:
        day_key = self._day_or(day_key, offset=1)
        headcount = self._headcount(headcount, "headcount")

        existing = self._assignments.find_for_day(day_key)
        if existing:
            return ScheduleResult(
                day_key=day_key,
                assignments=list(existing),
                already_exists=True,
                message="Schedule already generated",
                total_work_days=self._work_days(existing),
            )

        candidates = self._eligible(day_key)
        if not candidates:
            logger.warning("No approved tellers available for %s", day_key)
            return ScheduleResult(day_key=day_key, assignments=[], message="No tellers available")

        strategy = self._factory.for_rotation()
        selections = strategy.select(candidates=candidates, target_day_key=day_key, count=headcount)
        return self._create_schedule(day_key, selections, method=strategy.method)

    def generate_scored(
        self,
        day_key: Optional[str] = None,
        *,
        required_count: Optional[int] = None,
        force_regenerate: bool = False,
    ) -> ScheduleResult:
        """Attendance-based generation.

        Candidates are the workers recorded present on the reference day
        (today) who are also eligible for ``day_key``; they are ranked by
        fairness score. Without attendance data for today this falls back to
        plain rotation over the whole roster.
        """

        day_key = self._day_or(day_key, offset=1)
        required_count = self._headcount(required_count, "required_count")
        reference_day = self._calendar.today()

        existing = self._assignments.find_for_day(day_key)
        if existing and not force_regenerate:
            return ScheduleResult(
                day_key=day_key,
                assignments=list(existing),
                already_exists=True,
                message=f"Schedule for {day_key} already exists. Use force_regenerate to override.",
                total_work_days=self._work_days(existing),
            )

        snapshot = self._attendance.get_for_day(reference_day)
        strategy = self._factory.for_generation(snapshot)

        if existing:
            self.clear_day(day_key)

        if strategy.method == AssignmentMethod.TRADITIONAL_ROTATION:
            logger.info("No attendance data for %s, falling back to rotation order", reference_day)
            candidates = self._eligible(day_key)
            history: Sequence[Assignment] = ()
            snapshot = None
        else:
            present = self._workers.get_many(snapshot.present_worker_ids)
            candidates = [w for w in present if is_eligible(w, day_key)]
            window_start = add_days(reference_day, -self._score_history_days)
            history = self._assignments.find_since(window_start)

        if not candidates:
            logger.warning("No eligible tellers for scored generation on %s", day_key)
            return ScheduleResult(
                day_key=day_key,
                assignments=[],
                message="No tellers available",
                method=strategy.method,
                attendance=snapshot,
            )

        ranked = strategy.rank(candidates=candidates, target_day_key=day_key, history=history)
        selections = ranked[:required_count]
        result = self._create_schedule(day_key, selections, method=strategy.method)

        return ScheduleResult(
            day_key=result.day_key,
            assignments=result.assignments,
            generated=result.generated,
            message=result.message,
            method=strategy.method,
            skipped=result.skipped,
            total_work_days=result.total_work_days,
            scores=[s.score for s in selections if s.score is not None],
            alternatives=[s.score for s in ranked[required_count:] if s.score is not None],
            attendance=snapshot,
        )

    def resize(self, day_key: Optional[str], desired_count: int) -> ResizeResult:
        """Move the day's headcount toward ``desired_count``.

        Additions follow rotation order. Removals take the most recently
        created ``scheduled`` assignments first; recorded outcomes are never
        dropped, so a day whose excess is all terminal stays above target.
        """

        day_key = self._day_or(day_key, offset=1)
        desired_count = require_positive_int(desired_count, "desired_count")

        current = list(self._assignments.find_for_day(day_key))
        current_count = len(current)

        if desired_count == current_count:
            return ResizeResult(day_key=day_key, requested=desired_count, assignments=current, message="No change")

        added: list[Assignment] = []
        removed: list[Assignment] = []
        skipped: list[NewAssignment] = []

        if desired_count > current_count:
            needed = desired_count - current_count
            candidates = self._eligible(day_key, exclude_ids=[a.teller_id for a in current])
            selections = self._factory.for_rotation().select(
                candidates=candidates, target_day_key=day_key, count=needed
            )
            outcome = self._persist(day_key, self._new_rows(day_key, selections))
            added, skipped = outcome.inserted, outcome.skipped
            logger.info("Resize %s: added %d of %d needed", day_key, len(added), needed)
        else:
            excess = current_count - desired_count
            removable = [a for a in current if a.status == AssignmentStatus.SCHEDULED]
            removable.sort(key=lambda a: (a.assigned_at, a.assignment_id), reverse=True)
            removed = removable[:excess]
            if removed:
                self._assignments.delete_many([a.assignment_id for a in removed])
            logger.info("Resize %s: removed %d of %d excess", day_key, len(removed), excess)

        final = list(self._assignments.find_for_day(day_key))
        if added or removed:
            safe_emit(
                self._notifier,
                EventName.SCHEDULE_RESIZED.value,
                {"day_key": day_key, "count": len(final), "requested": desired_count},
            )

        message = f"Teller count updated to {len(final)}"
        if len(final) != desired_count:
            message += f" (requested {desired_count})"
        return ResizeResult(
            day_key=day_key,
            requested=desired_count,
            assignments=final,
            added=added,
            removed=removed,
            skipped=skipped,
            message=message,
        )

    def clear_day(self, day_key: str) -> int:
        """Administrative wipe of one day's partition so it can be regenerated."""

        day_key = require_day_key(day_key)
        deleted = self._assignments.delete_for_day(day_key)
        logger.info("Cleared %d assignments for %s", deleted, day_key)
        safe_emit(self._notifier, EventName.SCHEDULE_CLEARED.value, {"day_key": day_key, "deleted": deleted})
        return deleted

    # ------------------------------------------------------------------
    # Attendance outcomes
    # ------------------------------------------------------------------
    def mark_present(
        self,
        assignment_id: Optional[int] = None,
        *,
        teller_id: Optional[int] = None,
        day_key: Optional[str] = None,
    ) -> StatusChange:
        day_key, worker, existing = self._resolve_target(assignment_id, teller_id, day_key)
        self._check_transition(existing, AssignmentStatus.PRESENT)

        row = self._status_row(day_key, worker, existing, status=AssignmentStatus.PRESENT)
        # The only place confirmed work accrues; it commits with the status change.
        upsert = self._assignments.upsert_status(
            row=row,
            allowed_from=(AssignmentStatus.SCHEDULED,),
            effect=WorkerEffect(worker.worker_id, add_work_day=True),
        )
        self._check_transition_result(upsert.assignment, upsert.changed, AssignmentStatus.PRESENT)

        if not upsert.changed:
            return StatusChange(
                assignment=upsert.assignment,
                previous_status=upsert.previous_status,
                changed=False,
                message=f"{upsert.assignment.teller_name} already marked as present",
            )

        self._emit_update(upsert.assignment)
        return StatusChange(
            assignment=upsert.assignment,
            previous_status=upsert.previous_status,
            changed=True,
            message=f"{upsert.assignment.teller_name} marked as present",
        )

    def mark_absent(
        self,
        assignment_id: Optional[int] = None,
        *,
        teller_id: Optional[int] = None,
        day_key: Optional[str] = None,
        reason: Optional[str] = None,
        penalty_days: Optional[int] = 0,
    ) -> StatusChange:
        penalty_days = require_non_negative_int(penalty_days or 0, "penalty_days")
        reason = (reason or "").strip() or NO_REASON
        if len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(f"reason cannot exceed {MAX_REASON_LENGTH} characters")

        day_key, worker, existing = self._resolve_target(assignment_id, teller_id, day_key)
        self._check_transition(existing, AssignmentStatus.ABSENT)

        row = self._status_row(
            day_key,
            worker,
            existing,
            status=AssignmentStatus.ABSENT,
            absent_reason=reason,
            penalty_days=penalty_days,
        )
        skip_until = add_days(day_key, penalty_days) if penalty_days > 0 else None
        effect = None
        if skip_until:
            effect = WorkerEffect(worker.worker_id, fields={"skip_until": skip_until, "last_absent_reason": reason})

        upsert = self._assignments.upsert_status(
            row=row,
            allowed_from=(AssignmentStatus.SCHEDULED,),
            effect=effect,
        )
        self._check_transition_result(upsert.assignment, upsert.changed, AssignmentStatus.ABSENT)

        if not upsert.changed:
            return StatusChange(
                assignment=upsert.assignment,
                previous_status=upsert.previous_status,
                changed=False,
                message=f"{upsert.assignment.teller_name} already marked as absent",
            )

        if skip_until:
            logger.info(
                "Teller %s will skip work until %s (penalty: %d days)",
                worker.display_name,
                skip_until,
                penalty_days,
            )

        self._emit_update(upsert.assignment, reason=reason, penalty_days=penalty_days)

        message = f"Marked {upsert.assignment.teller_name} as absent"
        if penalty_days > 0:
            message += f" with {penalty_days} day penalty"
        return StatusChange(
            assignment=upsert.assignment,
            previous_status=upsert.previous_status,
            changed=True,
            message=message,
            skip_until=skip_until,
        )

    def replace(self, assignment_id: int, replacement_id: int) -> StatusChange:
        """Put another worker on a scheduled slot.

        The displaced worker's aggregates are left alone; the replacement
        only gets ``last_worked`` stamped.
        """

        assignment_id = require_id(assignment_id, "assignment_id")
        replacement_id = require_id(replacement_id, "replacement_id")

        assignment = self._assignments.get_by_id(assignment_id)
        if not assignment:
            raise NotFoundError("Assignment not found")

        replacement = self._workers.get_by_id(replacement_id)
        if not replacement:
            raise NotFoundError("Replacement teller not found")

        if assignment.status == AssignmentStatus.REPLACED and assignment.teller_id == replacement_id:
            return StatusChange(
                assignment=assignment,
                previous_status=assignment.status,
                changed=False,
                message="Replacement teller already assigned",
            )
        if assignment.status != AssignmentStatus.SCHEDULED:
            raise InvalidTransitionError(f"Cannot replace a teller on a {assignment.status.value} assignment")
        if assignment.teller_id == replacement_id:
            raise ValidationError("Replacement must be a different teller")
        if self._assignments.get_for_teller_and_day(teller_id=replacement_id, day_key=assignment.day_key):
            raise ConflictError("Replacement teller is already assigned on this day")

        updated = self._assignments.reassign(
            assignment_id=assignment_id,
            teller_id=replacement_id,
            teller_name=replacement.display_name,
            status=AssignmentStatus.REPLACED,
            allowed_from=(AssignmentStatus.SCHEDULED,),
            effect=WorkerEffect(replacement_id, fields={"last_worked": assignment.day_key}),
        )
        if updated is None:
            raise InvalidTransitionError("Assignment changed while replacing; reload and retry")

        self._emit_update(updated, replaced_teller_id=assignment.teller_id)
        return StatusChange(
            assignment=updated,
            previous_status=assignment.status,
            changed=True,
            message="Replacement teller assigned",
            replaced_teller_id=assignment.teller_id,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def fetch_day(self, day_key: Optional[str] = None) -> ScheduleResult:
        day_key = self._day_or(day_key, offset=0)
        rows = list(self._assignments.find_for_day(day_key))
        return ScheduleResult(day_key=day_key, assignments=rows, total_work_days=self._work_days(rows))

    def history(self, days: Optional[int] = None) -> list[Assignment]:
        days = self._history_days if days is None else require_non_negative_int(days, "days")
        start = self._calendar.resolve(-days)
        return list(self._assignments.find_since(start))

    def suggest(self, day_key: str) -> list[Suggestion]:
        """Unassigned eligible workers, least worked in the trailing week first."""

        day_key = require_day_key(day_key)
        window_start = add_days(day_key, -self._suggest_window_days)

        assigned = {a.teller_id for a in self._assignments.find_for_day(day_key)}
        candidates = self._eligible(day_key, exclude_ids=assigned)

        suggestions: list[Suggestion] = []
        for worker in candidates:
            worked_days = self._activity.report_days(
                worker_id=worker.worker_id, start_day_key=window_start, end_day_key=day_key
            )
            suggestions.append(
                Suggestion(
                    worker=worker,
                    weekly_worked_days=len(worked_days),
                    last_worked=worked_days[0] if worked_days else worker.last_worked,
                )
            )

        suggestions.sort(key=lambda s: (s.weekly_worked_days, rotation_sort_key(s.worker)))
        return suggestions[: self._suggest_limit]

    def working_on(self, day_key: str) -> list[Worker]:
        """Workers who filed a teller report for ``day_key``."""

        day_key = require_day_key(day_key)
        ids = list(self._activity.reporters_for_day(day_key))
        by_id = {w.worker_id: w for w in self._workers.get_many(ids)}
        return [by_id[i] for i in ids if i in by_id]

    def recalculate_work_days(self, since: str) -> int:
        """Reset every rotation worker's ``total_work_days`` to their distinct
        report days since ``since``. Returns how many workers changed."""

        since = require_day_key(since)
        updated = 0
        for worker in self._workers.list_by_roles(ROTATION_ROLES):
            days = self._activity.count_report_days_since(worker_id=worker.worker_id, start_day_key=since)
            if days != worker.total_work_days:
                self._workers.update_fields(worker.worker_id, total_work_days=days)
                updated += 1
        logger.info("Recalculated work days for %d tellers since %s", updated, since)
        return updated

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _day_or(self, day_key: Optional[str], *, offset: int) -> str:
        if day_key is None:
            return self._calendar.resolve(offset)
        return require_day_key(day_key)

    def _headcount(self, value: Optional[int], field_name: str) -> int:
        if value is None:
            return self._default_headcount
        return require_positive_int(value, field_name)

    def _eligible(self, day_key: str, *, exclude_ids: Iterable[int] = ()) -> list[Worker]:
        excluded = set(exclude_ids)
        rows = self._workers.find_eligible(
            roles=ROTATION_ROLES,
            status=WorkerStatus.APPROVED,
            reference_day_key=day_key,
            exclude_ids=excluded,
        )
        return [w for w in rows if w.worker_id not in excluded and is_eligible(w, day_key)]

    def _new_rows(self, day_key: str, selections: Sequence[Selection]) -> list[NewAssignment]:
        now = self._calendar.now()
        return [
            NewAssignment(
                day_key=day_key,
                teller_id=s.worker.worker_id,
                teller_name=s.worker.display_name,
                assigned_at=now,
                supervisor_id=s.worker.supervisor_id,
                supervisor_name=s.worker.supervisor_name,
                method=s.method,
                score=s.score.total if s.score else None,
                rank=s.rank if s.score else None,
                reason=s.reason,
                recency_score=s.score.recency if s.score else None,
                inactivity_score=s.score.inactivity if s.score else None,
                balance_score=s.score.balance if s.score else None,
            )
            for s in selections
        ]

    def _persist(self, day_key: str, rows: Sequence[NewAssignment]) -> InsertResult:
        # Scheduling stamps last_worked only; total_work_days waits for mark_present.
        outcome = self._assignments.insert_many(rows, stamp_last_worked=True)
        for r in outcome.skipped:
            logger.warning("Teller %s already assigned on %s, skipped", r.teller_id, day_key)
        return outcome

    def _create_schedule(self, day_key: str, selections: Sequence[Selection], *, method: AssignmentMethod) -> ScheduleResult:
        outcome = self._persist(day_key, self._new_rows(day_key, selections))
        final = list(self._assignments.find_for_day(day_key))

        logger.info(
            "Generated schedule for %s: selected=%d inserted=%d skipped=%d method=%s",
            day_key,
            len(selections),
            len(outcome.inserted),
            len(outcome.skipped),
            method.value,
        )
        if outcome.inserted:
            safe_emit(
                self._notifier,
                EventName.SCHEDULE_GENERATED.value,
                {"day_key": day_key, "count": len(final), "method": method.value},
            )

        return ScheduleResult(
            day_key=day_key,
            assignments=final,
            generated=bool(outcome.inserted),
            message=f"Schedule generated for {day_key}",
            method=method,
            skipped=list(outcome.skipped),
            total_work_days=self._work_days(final),
        )

    def _work_days(self, rows: Sequence[Assignment]) -> dict[int, int]:
        workers = self._workers.get_many({a.teller_id for a in rows})
        return {w.worker_id: w.total_work_days for w in workers}

    def _resolve_target(
        self,
        assignment_id: Optional[int],
        teller_id: Optional[int],
        day_key: Optional[str],
    ) -> tuple[str, Worker, Optional[Assignment]]:
        if assignment_id is not None:
            assignment = self._assignments.get_by_id(require_id(assignment_id, "assignment_id"))
            if not assignment:
                raise NotFoundError("Assignment not found")
            worker = self._workers.get_by_id(assignment.teller_id)
            if not worker:
                raise NotFoundError("Teller not found")
            return assignment.day_key, worker, assignment

        if teller_id is None or day_key is None:
            raise ValidationError("Either assignment_id or both teller_id and day_key are required")

        day_key = require_day_key(day_key)
        worker = self._workers.get_by_id(require_id(teller_id, "teller_id"))
        if not worker:
            raise NotFoundError("Teller not found")
        existing = self._assignments.get_for_teller_and_day(teller_id=worker.worker_id, day_key=day_key)
        return day_key, worker, existing

    @staticmethod
    def _check_transition(existing: Optional[Assignment], target: AssignmentStatus) -> None:
        if existing is None or existing.status in (AssignmentStatus.SCHEDULED, target):
            return
        raise InvalidTransitionError(
            f"Assignment is already {existing.status.value}; clear the day to record a different outcome"
        )

    @staticmethod
    def _check_transition_result(assignment: Assignment, changed: bool, target: AssignmentStatus) -> None:
        # Another session may have recorded a different outcome between our read and write.
        if not changed and assignment.status != target:
            raise InvalidTransitionError(f"Assignment is already {assignment.status.value}")

    def _status_row(
        self,
        day_key: str,
        worker: Worker,
        existing: Optional[Assignment],
        *,
        status: AssignmentStatus,
        absent_reason: str = "",
        penalty_days: int = 0,
    ) -> NewAssignment:
        return NewAssignment(
            day_key=day_key,
            teller_id=worker.worker_id,
            teller_name=existing.teller_name if existing else worker.display_name,
            assigned_at=self._calendar.now(),
            status=status,
            supervisor_id=worker.supervisor_id,
            supervisor_name=worker.supervisor_name,
            absent_reason=absent_reason,
            penalty_days=penalty_days,
            method=existing.method if existing else AssignmentMethod.MANUAL,
        )

    def _emit_update(self, assignment: Assignment, **extra) -> None:
        payload = {
            "teller_id": assignment.teller_id,
            "teller_name": assignment.teller_name,
            "status": assignment.status.value,
            "day_key": assignment.day_key,
            **extra,
        }
        safe_emit(self._notifier, EventName.SCHEDULE_UPDATED.value, payload)
