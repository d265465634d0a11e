import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.teller_rotation.teller_rotation.core.enums import AssignmentMethod, AssignmentStatus
from src.teller_rotation.teller_rotation.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from tests.fakes import ExplodingNotifier, build_harness, make_worker

DAY = "2025-06-02"


def _scheduled(h, headcount=1):
    return h.service.generate_or_fetch(DAY, headcount=headcount).assignments


def test_mark_present_counts_work_once():
    h = build_harness([make_worker(1, total_work_days=4)])
    (assignment,) = _scheduled(h)

    first = h.service.mark_present(assignment.assignment_id)
    second = h.service.mark_present(assignment.assignment_id)

    assert first.changed is True
    assert first.previous_status == AssignmentStatus.SCHEDULED
    assert first.assignment.status == AssignmentStatus.PRESENT
    assert second.changed is False
    worker = h.workers.get_by_id(1)
    assert worker.total_work_days == 5
    assert worker.last_worked == DAY
    assert h.notifier.names() == ["scheduleGenerated", "scheduleUpdated"]


def test_concurrent_mark_present_increments_once():
    h = build_harness([make_worker(1)])
    (assignment,) = _scheduled(h)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: h.service.mark_present(assignment.assignment_id), range(8)))

    assert sum(r.changed for r in results) == 1
    assert h.workers.get_by_id(1).total_work_days == 1


def test_mark_present_without_assignment_creates_it():
    h = build_harness([make_worker(7, name="Gil")])

    change = h.service.mark_present(teller_id=7, day_key="2025-06-05")

    assert change.changed is True
    assert change.previous_status is None
    assert change.assignment.status == AssignmentStatus.PRESENT
    assert change.assignment.method == AssignmentMethod.MANUAL
    assert change.assignment.teller_name == "Gil"
    assert h.workers.get_by_id(7).total_work_days == 1


def test_absent_penalty_blocks_until_skip_day():
    h = build_harness([make_worker(1), make_worker(2, last_worked="2025-05-01")])

    change = h.service.mark_absent(teller_id=1, day_key="2025-06-10", reason="sick", penalty_days=5)

    assert change.skip_until == "2025-06-15"
    assert change.assignment.status == AssignmentStatus.ABSENT
    assert change.assignment.absent_reason == "sick"
    assert change.assignment.penalty_days == 5
    worker = h.workers.get_by_id(1)
    assert worker.skip_until == "2025-06-15"
    assert worker.last_absent_reason == "sick"
    assert worker.total_work_days == 0

    blocked = h.service.generate_or_fetch("2025-06-14", headcount=2)
    assert [a.teller_id for a in blocked.assignments] == [2]

    back = h.service.generate_or_fetch("2025-06-15", headcount=2)
    assert sorted(a.teller_id for a in back.assignments) == [1, 2]


def test_absent_without_penalty_leaves_worker_untouched():
    h = build_harness([make_worker(1)])
    (assignment,) = _scheduled(h)

    change = h.service.mark_absent(assignment.assignment_id, reason="   ")

    assert change.assignment.absent_reason == "No reason provided"
    assert change.skip_until is None
    worker = h.workers.get_by_id(1)
    assert worker.skip_until is None
    assert worker.last_absent_reason is None
    assert change.message == "Marked Teller 1 as absent"


def test_absent_event_carries_reason_and_penalty():
    h = build_harness([make_worker(1)])
    (assignment,) = _scheduled(h)

    h.service.mark_absent(assignment.assignment_id, reason="family", penalty_days=2)

    name, payload = h.notifier.events[-1]
    assert name == "scheduleUpdated"
    assert payload["status"] == "absent"
    assert payload["reason"] == "family"
    assert payload["penalty_days"] == 2


def test_repeated_absent_is_a_no_op():
    h = build_harness([make_worker(1)])
    (assignment,) = _scheduled(h)
    h.service.mark_absent(assignment.assignment_id, penalty_days=3)

    again = h.service.mark_absent(assignment.assignment_id, penalty_days=9)

    assert again.changed is False
    assert h.workers.get_by_id(1).skip_until == "2025-06-05"


@pytest.mark.parametrize("penalty", [-1, 1.5, "2"])
def test_absent_rejects_bad_penalty(penalty):
    h = build_harness([make_worker(1)])
    (assignment,) = _scheduled(h)

    with pytest.raises(ValidationError):
        h.service.mark_absent(assignment.assignment_id, penalty_days=penalty)


def test_terminal_outcomes_cannot_be_overwritten():
    h = build_harness([make_worker(1), make_worker(2)])
    first, second = _scheduled(h, headcount=2)
    h.service.mark_present(first.assignment_id)
    h.service.mark_absent(second.assignment_id)

    with pytest.raises(InvalidTransitionError):
        h.service.mark_absent(first.assignment_id)
    with pytest.raises(InvalidTransitionError):
        h.service.mark_present(second.assignment_id)
    assert h.workers.get_by_id(2).total_work_days == 0


def test_target_resolution_errors():
    h = build_harness([make_worker(1)])

    with pytest.raises(NotFoundError):
        h.service.mark_present(999)
    with pytest.raises(NotFoundError):
        h.service.mark_absent(teller_id=42, day_key=DAY)
    with pytest.raises(ValidationError):
        h.service.mark_present(teller_id=1)
    with pytest.raises(ValidationError):
        h.service.mark_present(teller_id=1, day_key="06/02/2025")


def test_replace_swaps_teller_and_stamps_replacement():
    h = build_harness([make_worker(1), make_worker(2, last_worked="2025-05-01", total_work_days=6)])
    (assignment,) = _scheduled(h)

    change = h.service.replace(assignment.assignment_id, 2)

    assert change.changed is True
    assert change.replaced_teller_id == 1
    updated = change.assignment
    assert updated.assignment_id == assignment.assignment_id
    assert (updated.teller_id, updated.teller_name) == (2, "Teller 2")
    assert updated.status == AssignmentStatus.REPLACED
    assert updated.method == AssignmentMethod.MANUAL

    replacement = h.workers.get_by_id(2)
    assert replacement.last_worked == DAY
    assert replacement.total_work_days == 6
    displaced = h.workers.get_by_id(1)
    assert (displaced.last_worked, displaced.total_work_days) == (DAY, 0)

    name, payload = h.notifier.events[-1]
    assert name == "scheduleUpdated"
    assert payload["replaced_teller_id"] == 1


def test_replace_repeat_is_a_no_op_but_other_worker_is_rejected():
    h = build_harness([make_worker(1), make_worker(2), make_worker(3)])
    (assignment,) = _scheduled(h)
    h.service.replace(assignment.assignment_id, 2)

    again = h.service.replace(assignment.assignment_id, 2)
    assert again.changed is False

    with pytest.raises(InvalidTransitionError):
        h.service.replace(assignment.assignment_id, 3)


def test_replace_guards():
    h = build_harness([make_worker(1), make_worker(2), make_worker(3)])
    first, second = _scheduled(h, headcount=2)

    with pytest.raises(ConflictError):
        h.service.replace(first.assignment_id, second.teller_id)
    with pytest.raises(ValidationError):
        h.service.replace(first.assignment_id, first.teller_id)
    with pytest.raises(NotFoundError):
        h.service.replace(999, 3)
    with pytest.raises(NotFoundError):
        h.service.replace(first.assignment_id, 999)

    h.service.mark_present(second.assignment_id)
    with pytest.raises(InvalidTransitionError):
        h.service.replace(second.assignment_id, 3)


def test_notifier_failure_does_not_fail_the_operation(caplog):
    h = build_harness([make_worker(1)], notifier=ExplodingNotifier())

    with caplog.at_level(logging.ERROR):
        result = h.service.generate_or_fetch(DAY, headcount=1)
        change = h.service.mark_present(result.assignments[0].assignment_id)

    assert result.generated is True
    assert change.changed is True
    assert h.workers.get_by_id(1).total_work_days == 1
    assert "Notifier failed for event scheduleGenerated" in caplog.text


def _fail_once(monkeypatch, target, name):
    real = getattr(target, name)
    calls = []

    def flaky(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            raise RuntimeError("connection lost")
        return real(*args, **kwargs)

    monkeypatch.setattr(target, name, flaky)


def test_failed_work_day_write_rolls_back_and_retry_converges(monkeypatch):
    h = build_harness([make_worker(1)])
    (assignment,) = _scheduled(h)
    _fail_once(monkeypatch, h.workers, "increment_work_days")

    with pytest.raises(RuntimeError):
        h.service.mark_present(assignment.assignment_id)

    assert h.assignments.get_by_id(assignment.assignment_id).status == AssignmentStatus.SCHEDULED
    assert h.workers.get_by_id(1).total_work_days == 0

    retry = h.service.mark_present(assignment.assignment_id)

    assert retry.changed is True
    assert retry.assignment.status == AssignmentStatus.PRESENT
    assert h.workers.get_by_id(1).total_work_days == 1
    assert h.notifier.names() == ["scheduleGenerated", "scheduleUpdated"]


def test_failed_penalty_write_rolls_back_and_retry_converges(monkeypatch):
    h = build_harness([make_worker(1)])
    (assignment,) = _scheduled(h)
    _fail_once(monkeypatch, h.workers, "update_fields")

    with pytest.raises(RuntimeError):
        h.service.mark_absent(assignment.assignment_id, reason="sick", penalty_days=2)

    assert h.assignments.get_by_id(assignment.assignment_id).status == AssignmentStatus.SCHEDULED
    assert h.workers.get_by_id(1).skip_until is None

    retry = h.service.mark_absent(assignment.assignment_id, reason="sick", penalty_days=2)

    assert retry.changed is True
    assert h.workers.get_by_id(1).skip_until == "2025-06-04"
    assert h.workers.get_by_id(1).last_absent_reason == "sick"


def test_failed_replacement_stamp_keeps_original_teller(monkeypatch):
    h = build_harness([make_worker(1), make_worker(2, last_worked="2025-05-01")])
    (assignment,) = _scheduled(h)
    _fail_once(monkeypatch, h.workers, "update_fields")

    with pytest.raises(RuntimeError):
        h.service.replace(assignment.assignment_id, 2)

    current = h.assignments.get_by_id(assignment.assignment_id)
    assert (current.teller_id, current.status) == (1, AssignmentStatus.SCHEDULED)
    assert h.workers.get_by_id(2).last_worked == "2025-05-01"

    assert h.service.replace(assignment.assignment_id, 2).changed is True
    assert h.workers.get_by_id(2).last_worked == DAY


def test_absent_reason_length_is_bounded():
    h = build_harness([make_worker(1)])
    (assignment,) = _scheduled(h)

    with pytest.raises(ValidationError):
        h.service.mark_absent(assignment.assignment_id, reason="x" * 256)

    assert h.assignments.get_by_id(assignment.assignment_id).status == AssignmentStatus.SCHEDULED
    assert h.service.mark_absent(assignment.assignment_id, reason="x" * 255).changed is True


def test_replacement_day_is_counted_only_by_recalculation():
    h = build_harness([make_worker(1), make_worker(2, last_worked="2025-05-01")])
    (assignment,) = _scheduled(h)
    h.service.replace(assignment.assignment_id, 2)

    with pytest.raises(InvalidTransitionError):
        h.service.mark_present(teller_id=2, day_key=DAY)
    assert h.workers.get_by_id(2).total_work_days == 0

    h.activity.reports.append((2, DAY))

    assert h.service.recalculate_work_days("2025-06-01") == 1
    assert h.workers.get_by_id(2).total_work_days == 1
