"""
Structured results returned by every public service operation.

Services never let exceptions escape: each public method wraps its body and
returns `<Result>.from_exception(exc, action)` on failure. Routes turn failed
results into HTTP errors with `raise_for_result`.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from postgrest.exceptions import APIError
from pydantic import BaseModel, Field, computed_field

from app.core.errors import ErrorKind, ServiceError, classify_api_error, INSUFFICIENT_PRIVILEGE

logger = logging.getLogger(__name__)

PERMISSION_GUIDANCE = (
    "Permission denied: you may not be an active member of this group or the "
    "voting session may have ended. Check your group membership and try again."
)
TIMEOUT_GUIDANCE = "is taking too long. Please try again."


class ServiceResult(BaseModel):
    success: bool = True
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    code: Optional[str] = None
    message: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def failure(cls, kind: ErrorKind, error: str, code: Optional[str] = None,
                context: Optional[Dict[str, Any]] = None, **fields):
        return cls(
            success=False,
            error=error,
            error_kind=kind,
            code=code,
            context=context or {},
            **fields
        )

    @classmethod
    def from_exception(cls, exc: BaseException, action: str, **fields):
        """Convert an exception raised inside a service into a failed result."""
        if isinstance(exc, ServiceError):
            if exc.kind == ErrorKind.TIMEOUT:
                return cls.failure(exc.kind, f"{action.capitalize()} {TIMEOUT_GUIDANCE}",
                                   code=exc.code, context=exc.context, **fields)
            return cls.failure(exc.kind, exc.message, code=exc.code, context=exc.context, **fields)
        if isinstance(exc, APIError):
            kind = classify_api_error(exc)
            logger.error(f"Store error while {action}: {exc.code} {exc.message}")
            if exc.code == INSUFFICIENT_PRIVILEGE:
                return cls.failure(kind, PERMISSION_GUIDANCE, code=exc.code, **fields)
            return cls.failure(kind, exc.message or f"Failed {action}", code=exc.code, **fields)
        logger.exception(f"Unexpected error while {action}: {exc}")
        return cls.failure(ErrorKind.UNEXPECTED, str(exc) or f"Failed {action}", **fields)


class StepOutcome(BaseModel):
    step: str
    success: bool = True
    count: int = 0
    error: Optional[str] = None


class CleanupReport(ServiceResult):
    """Outcome of a best-effort multi-step deletion."""
    group_id: str
    steps: List[StepOutcome] = Field(default_factory=list)
    duration_ms: Optional[int] = None

    @computed_field
    @property
    def errors(self) -> List[str]:
        return [f"{s.step}: {s.error}" for s in self.steps if not s.success]

    @computed_field
    @property
    def partial(self) -> bool:
        return any(s.success for s in self.steps) and any(not s.success for s in self.steps)

    def count_for(self, step: str) -> int:
        for outcome in self.steps:
            if outcome.step == step:
                return outcome.count
        return 0

    def record(self, outcome: StepOutcome) -> None:
        self.steps.append(outcome)

    def finalize(self) -> "CleanupReport":
        failed = [s for s in self.steps if not s.success]
        if failed:
            self.success = False
            self.error_kind = ErrorKind.PARTIAL_FAILURE
            self.error = f"Cleanup partially failed: {', '.join(self.errors)}"
        else:
            self.success = True
        summary = ", ".join(f"{s.count} {s.step.replace('_', ' ')}" for s in self.steps)
        self.message = f"Cleaned up {summary}" if summary else "Nothing to clean up"
        return self


_HTTP_STATUS = {
    ErrorKind.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID: status.HTTP_400_BAD_REQUEST,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}


def raise_for_result(result: ServiceResult) -> ServiceResult:
    """Return the result unchanged when it succeeded, else raise HTTPException."""
    if result.success:
        return result
    status_code = _HTTP_STATUS.get(result.error_kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail: Any = result.error
    if result.context or result.code:
        detail = {"error": result.error, "code": result.code, "context": result.context}
    raise HTTPException(status_code=status_code, detail=detail)
