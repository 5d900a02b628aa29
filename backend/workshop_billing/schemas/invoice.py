"""Invoice schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from workshop_billing.models.invoice import InvoiceItemKind, InvoiceStatus, RefundStatus


class InvoiceItemRead(BaseModel):
    """Serialized invoice line."""

    kind: InvoiceItemKind
    catalog_id: str
    name: str
    quantity: int
    unit_price: Decimal
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class ParticipantRead(BaseModel):
    """Serialized participant; ``paid`` mirrors the parent invoice."""

    id: uuid.UUID
    invoice_id: uuid.UUID
    workshop_id: uuid.UUID
    child_id: str
    child_name: str
    selected_styles: list[dict[str, Any]]
    selected_options: list[dict[str, Any]]
    total_amount: Decimal
    notes: str | None = None
    paid: bool = False

    model_config = ConfigDict(from_attributes=True)


class InvoiceRead(BaseModel):
    """Serialized invoice."""

    id: uuid.UUID
    owner_id: uuid.UUID
    workshop_id: uuid.UUID
    external_id: str | None = None
    amount: Decimal
    status: InvoiceStatus
    refund_status: RefundStatus
    payment_method: str | None = None
    paid_at: datetime | None = None
    refund_request_id: str | None = None
    refund_amount: Decimal | None = None
    notes: str | None = None
    created_at: datetime
    items: list[InvoiceItemRead] = []
    participants: list[ParticipantRead] = []

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def _mark_paid_participants(self) -> InvoiceRead:
        paid = self.status == InvoiceStatus.PAID
        for participant in self.participants:
            participant.paid = paid
        return self
