from datetime import date, datetime, time

from app.core.errors import ErrorKind
from app.modules.conflicts.schemas import ACTIVE_MEAL_REQUEST, PENDING_DINNER_REQUEST, TERMINATED_RESULTS
from tests.factories import seed_group

STEP_ORDER = ["meal_votes", "meal_options", "dinner_responses", "meal_requests", "dinner_requests",
              "terminated_session"]


def _leftover_cycle(dinner, meals, archiver, group):
    created = dinner.create_request(group["id"], "u1", date(2026, 10, 20), time(19, 0), "random",
                                    datetime(2026, 10, 20, 17, 0))
    dinner.record_response(created.request.id, "u2", "accepted")
    options = meals.get_options(created.meal_request_id).options
    meals.vote(created.meal_request_id, options[0].id, "u2", "yes")
    meals.vote(created.meal_request_id, options[1].id, "u3", "no")
    archiver.archive(group["id"], group["name"], [], [])
    return created


def test_clean_group_has_no_conflicts(resolver, group4):
    report = resolver.detect_conflicts(group4["id"])

    assert report.success
    assert not report.has_conflicts
    assert not report.requires_cleanup


def test_detect_reports_every_category_without_side_effects(db, resolver, dinner, meals, archiver, group4):
    _leftover_cycle(dinner, meals, archiver, group4)
    before = {t: len(db.rows(t)) for t in db.tables}

    report = resolver.detect_conflicts(group4["id"])

    assert set(report.categories()) == {ACTIVE_MEAL_REQUEST, PENDING_DINNER_REQUEST, TERMINATED_RESULTS}
    assert report.get(ACTIVE_MEAL_REQUEST).count == 1
    assert report.requires_cleanup
    assert {t: len(db.rows(t)) for t in db.tables} == before


def test_archived_results_alone_do_not_require_cleanup(resolver, archiver, group4):
    archiver.archive(group4["id"], group4["name"], [], [])

    report = resolver.detect_conflicts(group4["id"])

    assert report.has_conflicts
    assert not report.requires_cleanup


def test_resolve_removes_children_before_parents(db, resolver, dinner, meals, archiver, group4):
    _leftover_cycle(dinner, meals, archiver, group4)
    db.calls.clear()

    report = resolver.resolve(group4["id"])

    assert report.success
    assert not report.partial
    assert [s.step for s in report.steps] == STEP_ORDER
    assert report.count_for("meal_votes") == 2
    assert report.count_for("meal_options") == 12
    assert report.count_for("dinner_responses") == 1
    assert report.count_for("terminated_session") == 1
    deletes = [table for table, op in db.calls if op == "delete"]
    assert deletes == ["meal_votes", "meal_request_options", "dinner_request_responses", "meal_requests",
                       "dinner_requests", "terminated_sessions"]
    for table in ("meal_votes", "meal_request_options", "dinner_request_responses", "meal_requests",
                  "dinner_requests", "terminated_sessions"):
        assert db.rows(table) == []
    assert report.duration_ms is not None


def test_resolve_is_idempotent(resolver, dinner, meals, archiver, group4):
    _leftover_cycle(dinner, meals, archiver, group4)
    resolver.resolve(group4["id"])

    again = resolver.resolve(group4["id"])

    assert again.success
    assert all(s.count == 0 for s in again.steps)


def test_resolve_only_touches_the_given_group(db, resolver, meals, group4):
    other = seed_group(db, ["u7", "u8"], name="Other")
    meals.open(other["id"], "u7", 3)
    meals.open(group4["id"], "u1", 3)

    resolver.resolve(group4["id"])

    assert [r["group_id"] for r in db.rows("meal_requests")] == [other["id"]]
    assert len(db.rows("meal_request_options")) == 3


def test_failed_step_does_not_stop_later_steps(db, resolver, dinner, meals, archiver, group4):
    _leftover_cycle(dinner, meals, archiver, group4)
    db.fail("meal_request_options", "delete")

    report = resolver.resolve(group4["id"])

    assert not report.success
    assert report.partial
    assert report.error_kind == ErrorKind.PARTIAL_FAILURE
    assert report.errors == ["meal_options: delete on meal_request_options failed"]
    assert db.rows("meal_votes") == []
    assert db.rows("dinner_requests") == []
    assert db.rows("terminated_sessions") == []
    assert len(db.rows("meal_request_options")) == 12
