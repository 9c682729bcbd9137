from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

from .enums import ErrorKind, Reason
from .exceptions import EXCEPTION_BY_KIND

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Failure:
    """Tagged rejection: kind for routing, reason for the client, details for self-correction."""

    kind: ErrorKind
    reason: Reason
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "reason": self.reason.value,
            "message": self.message,
            "details": dict(self.details),
        }


def invalid(reason: Reason, message: str, **details: Any) -> Failure:
    return Failure(ErrorKind.VALIDATION, reason, message, details)


def not_found(reason: Reason, message: str, **details: Any) -> Failure:
    return Failure(ErrorKind.NOT_FOUND, reason, message, details)


def violation(reason: Reason, message: str, **details: Any) -> Failure:
    return Failure(ErrorKind.BUSINESS_RULE, reason, message, details)


def conflict(reason: Reason, message: str, **details: Any) -> Failure:
    return Failure(ErrorKind.CONFLICT, reason, message, details)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a ``Failure``; never both."""

    value: Optional[T] = None
    error: Optional[Failure] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: Failure) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise EXCEPTION_BY_KIND[self.error.kind](self.error)
        return self.value  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        if self.error is not None:
            return Result(error=self.error)
        return Result(value=fn(self.value))  # type: ignore[arg-type]
