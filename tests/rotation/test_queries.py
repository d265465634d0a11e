import pytest

from src.teller_rotation.teller_rotation.core.enums import Role
from src.teller_rotation.teller_rotation.core.exceptions import ValidationError
from tests.fakes import build_harness, make_worker, scheduled_row

DAY = "2025-06-02"


def test_suggest_orders_by_weekly_load_and_skips_assigned():
    workers = [
        make_worker(1),
        make_worker(2, last_worked="2025-05-29"),
        make_worker(3, last_worked="2025-05-20"),
        make_worker(4, skip_until="2025-06-10"),
        make_worker(5),
    ]
    h = build_harness(workers)
    h.assignments.seed(scheduled_row(DAY, workers[0]))
    h.activity.reports.extend(
        [
            (2, "2025-05-28"),
            (2, "2025-05-29"),
            (2, "2025-05-29"),
            (3, "2025-05-20"),
            (5, "2025-05-26"),
        ]
    )

    suggestions = h.service.suggest(DAY)

    assert [s.worker.worker_id for s in suggestions] == [3, 5, 2]
    assert [s.weekly_worked_days for s in suggestions] == [0, 1, 2]
    assert suggestions[0].last_worked == "2025-05-20"
    assert suggestions[2].last_worked == "2025-05-29"
    assert suggestions[1].to_dict()["name"] == "Teller 5"


def test_suggest_is_capped():
    h = build_harness([make_worker(i) for i in range(1, 6)], suggest_limit=2)

    assert [s.worker.worker_id for s in h.service.suggest(DAY)] == [1, 2]


def test_history_covers_trailing_window():
    w = make_worker(1)
    h = build_harness([w])
    for day in ["2025-05-24", "2025-05-25", "2025-06-01", "2025-06-03"]:
        h.assignments.seed(scheduled_row(day, w))

    assert [a.day_key for a in h.service.history()] == ["2025-06-03", "2025-06-01", "2025-05-25"]
    assert [a.day_key for a in h.service.history(0)] == ["2025-06-03", "2025-06-01"]
    with pytest.raises(ValidationError):
        h.service.history(-1)


def test_working_on_lists_report_submitters():
    h = build_harness([make_worker(1), make_worker(2), make_worker(3)])
    h.activity.reports.extend([(2, "2025-06-01"), (1, "2025-06-01"), (2, "2025-06-01"), (3, "2025-05-31")])

    assert [w.worker_id for w in h.service.working_on("2025-06-01")] == [2, 1]


def test_recalculate_work_days_from_reports():
    workers = [
        make_worker(1, total_work_days=5),
        make_worker(2, total_work_days=0),
        make_worker(3, role=Role.ADMIN, total_work_days=9),
        make_worker(4, role=Role.SUPERVISOR_TELLER, total_work_days=0),
    ]
    h = build_harness(workers)
    h.activity.reports.extend(
        [
            (1, "2025-05-20"),
            (1, "2025-05-21"),
            (1, "2025-05-21"),
            (1, "2025-04-01"),
            (3, "2025-05-22"),
            (4, "2025-05-23"),
        ]
    )

    changed = h.service.recalculate_work_days("2025-05-01")

    assert changed == 2
    assert h.workers.get_by_id(1).total_work_days == 2
    assert h.workers.get_by_id(2).total_work_days == 0
    assert h.workers.get_by_id(3).total_work_days == 9
    assert h.workers.get_by_id(4).total_work_days == 1


def test_fetch_day_defaults_to_today():
    w = make_worker(1, total_work_days=3)
    h = build_harness([w])
    h.assignments.seed(scheduled_row("2025-06-01", w))

    result = h.service.fetch_day()

    assert result.day_key == "2025-06-01"
    assert [a.teller_id for a in result.assignments] == [1]
    assert result.to_dict()["schedule"][0]["total_work_days"] == 3


def test_clear_day_removes_only_that_day():
    w = make_worker(1)
    h = build_harness([w])
    h.assignments.seed(scheduled_row(DAY, w))
    h.assignments.seed(scheduled_row("2025-06-03", w))

    assert h.service.clear_day(DAY) == 1
    assert [a.day_key for a in h.assignments.all()] == ["2025-06-03"]
    assert h.notifier.events == [("scheduleCleared", {"day_key": DAY, "deleted": 1})]


def test_queries_validate_day_keys():
    h = build_harness([])

    for call in (h.service.suggest, h.service.working_on, h.service.clear_day, h.service.recalculate_work_days):
        with pytest.raises(ValidationError):
            call("June 2")
