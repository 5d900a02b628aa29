"""Group registration schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field

from workshop_billing.schemas.invoice import InvoiceRead, ParticipantRead


class ItemSelection(BaseModel):
    """A catalog style or option chosen for one child."""

    id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(default=1, ge=1)


class ChildRegistration(BaseModel):
    """One child in a group booking."""

    child_id: str = Field(min_length=1, max_length=64)
    child_name: str = Field(min_length=1, max_length=255)
    styles: list[ItemSelection] = Field(default_factory=list)
    options: list[ItemSelection] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=2000)


class GroupRegistrationCreate(BaseModel):
    """Payload registering several children for one workshop."""

    workshop_id: uuid.UUID
    parent_id: uuid.UUID | None = None
    children: list[ChildRegistration] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)


class GroupRegistrationRead(BaseModel):
    """Created invoice together with its participants."""

    invoice: InvoiceRead
    participants: list[ParticipantRead]
