from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class DdbError(Exception):
    """Base error for DynamoDB operations.

    Rendered into problem-details responses by the app's exception handler.
    """

    message: str
    operation: str | None = None
    table_name: str | None = None
    key: dict[str, Any] | None = None
    aws_request_id: str | None = None
    retryable: bool = False
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class DdbNotFound(DdbError):
    pass


@dataclass(slots=True)
class DdbConflict(DdbError):
    pass


@dataclass(slots=True)
class DdbValidation(DdbError):
    pass


@dataclass(slots=True)
class DdbThrottled(DdbError):
    pass


@dataclass(slots=True)
class DdbUnavailable(DdbError):
    pass


@dataclass(slots=True)
class DdbInternal(DdbError):
    pass


def http_status_for(exc: DdbError) -> tuple[int, str]:
    if isinstance(exc, DdbValidation):
        return 400, "Bad Request"
    if isinstance(exc, DdbNotFound):
        return 404, "Not Found"
    if isinstance(exc, DdbConflict):
        return 409, "Conflict"
    if isinstance(exc, (DdbThrottled, DdbUnavailable)):
        return 503, "Service Unavailable"
    return 500, "Storage Error"
