"""Domain errors raised by service code.

Each error carries the HTTP status it maps to; the global handlers in
``shikhi.middleware.error_handler`` turn them into JSON responses.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for errors surfaced verbatim to API callers."""

    status_code: int = 500
    code: str = "internal"

    def __init__(self, message: str, **extra: Any) -> None:  # noqa: ANN401
        super().__init__(message)
        self.message = message
        self.extra = extra


class UnauthorizedError(ServiceError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(ServiceError):
    status_code = 403
    code = "forbidden"


class NotFoundError(ServiceError, LookupError):
    status_code = 404
    code = "not_found"


class ValidationError(ServiceError, ValueError):
    status_code = 400
    code = "validation_error"


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"


class PreconditionFailedError(ServiceError):
    status_code = 412
    code = "precondition_failed"


class InternalError(ServiceError):
    status_code = 500
    code = "internal"
