"""Caller identity and ownership checks."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from workshop_billing.models.user import UserRole


@dataclass(frozen=True, slots=True)
class CallerContext:
    """Immutable identity of the authenticated caller."""

    user_id: uuid.UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def can_manage_invoice(caller: CallerContext, owner_id: uuid.UUID) -> bool:
    """Return True when the caller owns the invoice or is an administrator."""

    return caller.is_admin or caller.user_id == owner_id


__all__ = ["CallerContext", "can_manage_invoice"]
