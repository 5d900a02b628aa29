"""Result values returned by billing use cases.

Use cases never raise for expected business outcomes. They return either
``Ok(value)`` or a ``Failure`` tagged with an ``ErrorKind``; the API layer
translates failures into HTTP responses.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Failure taxonomy shared by all use cases."""

    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    GATEWAY = "gateway"


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T


@dataclass(frozen=True, slots=True)
class Failure:
    """Expected failure with a caller-facing message."""

    kind: ErrorKind
    message: str

    @classmethod
    def authorization(cls, message: str = "Insufficient permissions") -> Failure:
        return cls(ErrorKind.AUTHORIZATION, message)

    @classmethod
    def validation(cls, message: str) -> Failure:
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def not_found(cls, message: str = "Invoice not found") -> Failure:
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def conflict(cls, message: str) -> Failure:
        return cls(ErrorKind.CONFLICT, message)

    @classmethod
    def gateway(cls, message: str) -> Failure:
        return cls(ErrorKind.GATEWAY, message)


Outcome: TypeAlias = Union[Ok[T], Failure]


__all__ = ["ErrorKind", "Failure", "Ok", "Outcome"]
