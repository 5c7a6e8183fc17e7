import pytest

from app.config import settings
from app.scripts import cleanup_group_sessions as script
from tests.factories import seed_group


@pytest.fixture()
def stuck(db, meals):
    busy = seed_group(db, ["u1", "u2"], name="Busy")
    seed_group(db, ["u3"], name="Clean")
    meals.open(busy["id"], "u1", 3)
    return busy


def test_dry_run_only_reports(db, resolver, stuck):
    failed = script.cleanup_groups(resolver, script.active_group_ids(db), dry_run=True)

    assert failed == 0
    assert len(db.rows("meal_requests")) == 1


def test_cleanup_resolves_groups_with_conflicts(db, resolver, stuck):
    db.calls.clear()

    failed = script.cleanup_groups(resolver, script.active_group_ids(db))

    assert failed == 0
    assert db.rows("meal_requests") == []
    assert db.rows("meal_request_options") == []
    deleted_from = {table for table, op in db.calls if op == "delete"}
    assert "meal_requests" in deleted_from


def test_failed_cleanup_is_counted(db, resolver, stuck):
    db.fail("meal_requests", "delete")

    assert script.cleanup_groups(resolver, [stuck["id"]]) == 1


def test_main_exits_nonzero_on_failure(db, stuck, monkeypatch):
    monkeypatch.setattr(script.SupabaseClient, "get_service_client", classmethod(lambda cls: db))
    db.fail("meal_request_options", "delete")

    with pytest.raises(SystemExit) as exc_info:
        script.main([stuck["id"]])

    assert exc_info.value.code == 1


def test_main_cleans_every_active_group(db, stuck, monkeypatch):
    monkeypatch.setattr(script.SupabaseClient, "get_service_client", classmethod(lambda cls: db))

    script.main([])

    assert db.rows("meal_requests") == []


def test_main_refuses_to_run_without_the_service_role_key(monkeypatch):
    monkeypatch.setattr(settings, "supabase_service_role_key", None)
    script.SupabaseClient.reset_client()

    with pytest.raises(SystemExit) as exc_info:
        script.main([])

    assert exc_info.value.code == 1
