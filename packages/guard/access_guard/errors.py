"""
Error taxonomy and classifier for the guard pipeline.

Validators never raise for a denial: they return an ``Outcome`` carrying a
``GuardError``. At the edge of the guard ``classify`` turns a denial into the
single externally visible ``GuardValidationFailed`` exception.

Bad-request failures keep their kind and full message. Unauthorized failures
are stripped to a uniform denial tagged ``UNAUTHORIZED``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    INVALID_IDENTIFIER_FORMAT = "invalid_identifier_format"
    RESOURCE_NOT_FOUND = "resource_not_found"
    NOT_ORGANIZATION_MEMBER = "not_organization_member"
    NOT_PROJECT_MEMBER = "not_project_member"
    TENANT_FEATURE_DISABLED = "tenant_feature_disabled"
    INSUFFICIENT_ROLE = "insufficient_role"
    LOOKUP_FAILURE = "lookup_failure"


class ErrorClass(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"


ERROR_CLASSES: dict[ErrorKind, ErrorClass] = {
    ErrorKind.INVALID_IDENTIFIER_FORMAT: ErrorClass.BAD_REQUEST,
    ErrorKind.RESOURCE_NOT_FOUND: ErrorClass.BAD_REQUEST,
    ErrorKind.NOT_ORGANIZATION_MEMBER: ErrorClass.BAD_REQUEST,
    ErrorKind.NOT_PROJECT_MEMBER: ErrorClass.BAD_REQUEST,
    ErrorKind.TENANT_FEATURE_DISABLED: ErrorClass.UNAUTHORIZED,
    ErrorKind.INSUFFICIENT_ROLE: ErrorClass.UNAUTHORIZED,
    ErrorKind.LOOKUP_FAILURE: ErrorClass.INTERNAL,
}


class GuardFailureType(str, Enum):
    """Subtype tag carried by ``GuardValidationFailed``."""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"


GENERIC_FAILURE_MESSAGE = "Guard validation failed"


@dataclass(frozen=True)
class GuardError:
    """A classified denial produced inside the pipeline."""

    kind: ErrorKind
    message: str
    cause: Optional[BaseException] = None

    @property
    def error_class(self) -> ErrorClass:
        return ERROR_CLASSES[self.kind]


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or a ``GuardError``."""

    value: Optional[T] = None
    error: Optional[GuardError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def deny(
        cls, kind: ErrorKind, message: str, cause: BaseException | None = None
    ) -> "Outcome[T]":
        return cls(error=GuardError(kind=kind, message=message, cause=cause))


class GuardValidationFailed(Exception):
    """The one exception callers outside the guard ever see."""

    def __init__(
        self,
        failure_type: GuardFailureType = GuardFailureType.BAD_REQUEST,
        message: str = GENERIC_FAILURE_MESSAGE,
        kind: ErrorKind | None = None,
    ):
        super().__init__(message)
        self.failure_type = failure_type
        self.message = message
        self.kind = kind

    @property
    def status_code(self) -> int:
        return 401 if self.failure_type is GuardFailureType.UNAUTHORIZED else 400


def classify(error: GuardError) -> GuardValidationFailed:
    """Map an internal denial to the externally visible exception."""
    if error.error_class is ErrorClass.UNAUTHORIZED:
        return GuardValidationFailed(GuardFailureType.UNAUTHORIZED)
    # Bad-request and wrapped internal failures pass through with detail
    return GuardValidationFailed(
        GuardFailureType.BAD_REQUEST, message=error.message, kind=error.kind
    )
