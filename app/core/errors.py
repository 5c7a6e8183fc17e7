"""
Error taxonomy shared by the decision-workflow services.

Services raise these internally and convert them to structured results at
their public boundary (see app.core.results).
"""

from enum import Enum
from typing import Any, Dict, Optional

from postgrest.exceptions import APIError

# Postgres / PostgREST error codes seen from the row store
UNIQUE_VIOLATION = "23505"
INSUFFICIENT_PRIVILEGE = "42501"
NO_ROWS = "PGRST116"


class ErrorKind(str, Enum):
    AUTHENTICATION = "authentication"
    PERMISSION_DENIED = "permission_denied"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    TIMEOUT = "timeout"
    PARTIAL_FAILURE = "partial_failure"
    UNEXPECTED = "unexpected"


class ServiceError(Exception):
    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context or {}


class AuthenticationRequired(ServiceError):
    kind = ErrorKind.AUTHENTICATION


class PermissionDenied(ServiceError):
    kind = ErrorKind.PERMISSION_DENIED


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class InvalidInput(ServiceError):
    kind = ErrorKind.INVALID


class OperationTimeout(ServiceError):
    kind = ErrorKind.TIMEOUT


def api_error_code(exc: BaseException) -> Optional[str]:
    if isinstance(exc, APIError):
        return exc.code
    return None


def is_unique_violation(exc: BaseException, constraint: Optional[str] = None) -> bool:
    if api_error_code(exc) != UNIQUE_VIOLATION:
        return False
    if constraint is None:
        return True
    return constraint in (exc.message or "") or constraint in str(exc.details or "")


def classify_api_error(exc: APIError) -> ErrorKind:
    code = exc.code
    if code == INSUFFICIENT_PRIVILEGE:
        return ErrorKind.PERMISSION_DENIED
    if code == UNIQUE_VIOLATION:
        return ErrorKind.CONFLICT
    if code == NO_ROWS:
        return ErrorKind.NOT_FOUND
    return ErrorKind.UNEXPECTED
