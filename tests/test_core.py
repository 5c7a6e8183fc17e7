import time

import pytest
from fastapi import HTTPException

from app.core.errors import (
    ErrorKind, ConflictError, OperationTimeout, classify_api_error, is_unique_violation
)
from app.core.results import CleanupReport, ServiceResult, StepOutcome, raise_for_result, PERMISSION_GUIDANCE
from app.core.timeouts import run_with_timeout
from tests.fake_supabase import api_error


def test_run_with_timeout_returns_the_value():
    assert run_with_timeout(lambda a, b: a + b, 1.0, "adding", 2, b=3) == 5


def test_run_with_timeout_reraises_in_the_caller():
    def boom():
        raise ValueError("bad row")

    with pytest.raises(ValueError, match="bad row"):
        run_with_timeout(boom, 1.0, "exploding")


def test_run_with_timeout_gives_up_on_slow_work():
    with pytest.raises(OperationTimeout):
        run_with_timeout(time.sleep, 0.05, "sleeping", 0.5)


def test_timeout_result_uses_the_action_name():
    result = ServiceResult.from_exception(OperationTimeout("x timed out"), "creating group")

    assert result.error_kind == ErrorKind.TIMEOUT
    assert result.error == "Creating group is taking too long. Please try again."


def test_api_errors_are_classified():
    assert classify_api_error(api_error("23505", "duplicate")) == ErrorKind.CONFLICT
    assert classify_api_error(api_error("42501", "denied")) == ErrorKind.PERMISSION_DENIED
    assert classify_api_error(api_error("PGRST116", "no rows")) == ErrorKind.NOT_FOUND
    assert is_unique_violation(api_error("23505", 'violates unique constraint "groups_join_code_key"'),
                               "join_code")
    assert not is_unique_violation(api_error("23505", 'violates unique constraint "groups_pkey"'), "join_code")
    assert not is_unique_violation(ValueError("23505"))


def test_insufficient_privilege_gets_guidance():
    result = ServiceResult.from_exception(api_error("42501", "new row violates row-level security"), "voting")

    assert result.error == PERMISSION_GUIDANCE
    assert result.code == "42501"


def test_unexpected_exceptions_become_failed_results():
    result = ServiceResult.from_exception(RuntimeError("disk on fire"), "voting")

    assert not result.success
    assert result.error_kind == ErrorKind.UNEXPECTED
    assert result.error == "disk on fire"


@pytest.mark.parametrize("kind, status_code", [
    (ErrorKind.AUTHENTICATION, 401),
    (ErrorKind.PERMISSION_DENIED, 403),
    (ErrorKind.CONFLICT, 409),
    (ErrorKind.NOT_FOUND, 404),
    (ErrorKind.INVALID, 400),
    (ErrorKind.TIMEOUT, 504),
    (ErrorKind.UNEXPECTED, 500),
])
def test_raise_for_result_maps_kinds_to_status(kind, status_code):
    with pytest.raises(HTTPException) as exc_info:
        raise_for_result(ServiceResult.failure(kind, "nope"))

    assert exc_info.value.status_code == status_code
    assert exc_info.value.detail == "nope"


def test_raise_for_result_keeps_context_in_detail():
    result = ServiceResult.from_exception(
        ConflictError("already open", code="EXISTING_REQUEST_FOUND", context={"id": "r1"}), "opening")

    with pytest.raises(HTTPException) as exc_info:
        raise_for_result(result)

    assert exc_info.value.detail == {"error": "already open", "code": "EXISTING_REQUEST_FOUND",
                                     "context": {"id": "r1"}}


def test_raise_for_result_passes_success_through():
    ok = ServiceResult()

    assert raise_for_result(ok) is ok


def test_cleanup_report_partial_and_messages():
    report = CleanupReport(group_id="g1")
    report.record(StepOutcome(step="meal_votes", count=2))
    report.record(StepOutcome(step="meal_options", success=False, error="boom"))
    report.finalize()

    assert not report.success
    assert report.partial
    assert report.error_kind == ErrorKind.PARTIAL_FAILURE
    assert report.errors == ["meal_options: boom"]
    assert report.error == "Cleanup partially failed: meal_options: boom"


def test_empty_cleanup_report_succeeds():
    report = CleanupReport(group_id="g1").finalize()

    assert report.success
    assert not report.partial
    assert report.message == "Nothing to clean up"
