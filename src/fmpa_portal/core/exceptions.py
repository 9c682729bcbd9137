from __future__ import annotations

from typing import TYPE_CHECKING

from .enums import ErrorKind

if TYPE_CHECKING:
    from .result import Failure


class DomainError(Exception):
    """Base exception for business rule violations.

    Services report rejections through ``Result``; this is raised only when a
    caller chooses to ``unwrap()`` a failed result.
    """

    def __init__(self, failure: "Failure"):
        super().__init__(failure.message)
        self.failure = failure

    @property
    def reason(self):
        return self.failure.reason


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class BusinessRuleError(DomainError):
    """Raised when a command is well-formed but not allowed right now."""


class ConflictError(DomainError):
    """Raised when a concurrent edit won the race (e.g. duplicate registration)."""


EXCEPTION_BY_KIND = {
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.BUSINESS_RULE: BusinessRuleError,
    ErrorKind.CONFLICT: ConflictError,
}
