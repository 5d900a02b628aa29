"""Translation of use-case failures into HTTP errors."""

from __future__ import annotations

from typing import TypeVar

from fastapi import HTTPException, status

from workshop_billing.services.results import ErrorKind, Failure, Outcome

T = TypeVar("T")

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.GATEWAY: status.HTTP_502_BAD_GATEWAY,
}


def status_for(failure: Failure) -> int:
    return STATUS_BY_KIND[failure.kind]


def unwrap(outcome: Outcome[T]) -> T:
    """Return the successful value or raise the matching HTTPException."""

    if isinstance(outcome, Failure):
        raise HTTPException(status_code=status_for(outcome), detail=outcome.message)
    return outcome.value
