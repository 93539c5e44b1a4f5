from __future__ import annotations

from typing import Any


class APIError(Exception):
    def __init__(
        self,
        code: str,
        message: str,
        status_code: int,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


def invalid_submission(field: str, reason: str, message: str) -> APIError:
    return APIError(
        code="VALIDATION_ERROR",
        message=message,
        status_code=400,
        details={"field": field, "reason": reason},
    )


def rate_limited() -> APIError:
    return APIError(
        code="RATE_LIMITED",
        message="Too many submissions, try again later",
        status_code=429,
    )


def storage_error(message: str) -> APIError:
    # The message is fixed per route; store internals never reach the client.
    return APIError(code="STORAGE_ERROR", message=message, status_code=500)


def store_unavailable() -> APIError:
    return APIError(
        code="STORE_UNAVAILABLE",
        message="Redis readiness check failed",
        status_code=503,
    )
