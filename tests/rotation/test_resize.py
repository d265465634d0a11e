from datetime import timedelta

import pytest

from src.teller_rotation.teller_rotation.core.enums import AssignmentStatus
from src.teller_rotation.teller_rotation.core.exceptions import ValidationError
from tests.fakes import FIXED_NOW, build_harness, make_worker, scheduled_row

DAY = "2025-06-02"


def _workers(n):
    return [make_worker(i) for i in range(1, n + 1)]


def test_resize_up_adds_in_rotation_order_without_duplicates():
    workers = _workers(3) + [
        make_worker(4, last_worked="2025-05-01"),
        make_worker(5, last_worked="2025-04-01"),
    ]
    h = build_harness(workers)
    h.service.generate_or_fetch(DAY, headcount=3)

    result = h.service.resize(DAY, 5)

    assert result.count == 5
    assert result.converged
    assert sorted(a.teller_id for a in result.added) == [4, 5]
    teller_ids = [a.teller_id for a in result.assignments]
    assert len(teller_ids) == len(set(teller_ids))
    assert h.workers.get_by_id(5).last_worked == DAY
    assert h.notifier.names() == ["scheduleGenerated", "scheduleResized"]


def test_resize_up_caps_at_available_workers():
    h = build_harness(_workers(3))
    h.service.generate_or_fetch(DAY, headcount=2)

    result = h.service.resize(DAY, 6)

    assert result.count == 3
    assert not result.converged
    assert result.message == "Teller count updated to 3 (requested 6)"


def test_resize_down_removes_newest_scheduled_first():
    workers = _workers(4)
    h = build_harness(workers)
    for offset, worker in enumerate(workers):
        h.assignments.seed(scheduled_row(DAY, worker, at=FIXED_NOW + timedelta(minutes=offset)))

    result = h.service.resize(DAY, 2)

    assert sorted(a.teller_id for a in result.removed) == [3, 4]
    assert [a.teller_id for a in result.assignments] == [1, 2]
    assert result.converged


def test_resize_down_uses_id_when_created_together():
    workers = _workers(3)
    h = build_harness(workers)
    for worker in workers:
        h.assignments.seed(scheduled_row(DAY, worker))

    result = h.service.resize(DAY, 2)

    assert [a.teller_id for a in result.removed] == [3]


def test_resize_down_never_drops_recorded_outcomes():
    workers = _workers(4)
    h = build_harness(workers)
    h.assignments.seed(scheduled_row(DAY, workers[0], status=AssignmentStatus.PRESENT))
    h.assignments.seed(scheduled_row(DAY, workers[1], status=AssignmentStatus.ABSENT))
    h.assignments.seed(scheduled_row(DAY, workers[2], at=FIXED_NOW + timedelta(hours=1)))
    h.assignments.seed(scheduled_row(DAY, workers[3], status=AssignmentStatus.REPLACED))

    result = h.service.resize(DAY, 1)

    assert [a.teller_id for a in result.removed] == [3]
    assert result.count == 3
    assert not result.converged
    statuses = {a.status for a in result.assignments}
    assert statuses == {AssignmentStatus.PRESENT, AssignmentStatus.ABSENT, AssignmentStatus.REPLACED}


def test_resize_to_current_count_is_a_no_op():
    h = build_harness(_workers(3))
    h.service.generate_or_fetch(DAY, headcount=2)

    result = h.service.resize(DAY, 2)

    assert result.message == "No change"
    assert result.added == [] and result.removed == []
    assert h.notifier.names() == ["scheduleGenerated"]


def test_resize_empty_day_behaves_like_generation():
    h = build_harness(_workers(3))

    result = h.service.resize(DAY, 2)

    assert result.count == 2
    assert [a.teller_id for a in result.added] == [1, 2]


@pytest.mark.parametrize("count", [0, -2, "4", None])
def test_resize_rejects_bad_count(count):
    h = build_harness(_workers(2))

    with pytest.raises(ValidationError):
        h.service.resize(DAY, count)
