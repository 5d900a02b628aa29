"""Schemas for payment links and refunds."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from workshop_billing.models.invoice import RefundStatus


class PaymentLinkRead(BaseModel):
    """Hosted payment form the client should submit."""

    invoice_id: UUID
    external_id: str
    url: str
    fields: dict[str, str]


class RefundCheckRead(BaseModel):
    """Refund availability report."""

    refund_available: bool
    hours_until_workshop: float
    workshop_starts_at: datetime
    message: str


class RefundCreate(BaseModel):
    """Request payload for a refund."""

    amount: Decimal | None = Field(default=None, gt=Decimal("0"), decimal_places=2)
    reason: str | None = Field(default=None, max_length=1000)
    email: str | None = Field(
        default=None, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
    )


class RefundSubmittedRead(BaseModel):
    """Refund request accepted by the gateway."""

    invoice_id: UUID
    request_id: str
    amount: Decimal
    refund_status: RefundStatus
    message: str = "Refund request submitted"


class InvoiceCancel(BaseModel):
    """Administrative cancellation payload."""

    reason: str | None = Field(default=None, max_length=1000)
