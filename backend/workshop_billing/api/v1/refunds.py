"""Refund endpoints for parents and administrators."""

from __future__ import annotations

import uuid
from datetime import timedelta

from fastapi import APIRouter

from workshop_billing.api.deps import Caller, DbSession, Gateway, ObserverDep
from workshop_billing.api.errors import unwrap
from workshop_billing.core.config import get_settings
from workshop_billing.schemas.invoice import InvoiceRead
from workshop_billing.schemas.payments import (
    InvoiceCancel,
    RefundCheckRead,
    RefundCreate,
    RefundSubmittedRead,
)
from workshop_billing.services import refund_service

router = APIRouter(prefix="/invoices", tags=["refunds"])


def _cutoff() -> timedelta:
    return timedelta(hours=get_settings().refund_cutoff_hours)


@router.get("/{invoice_id}/refund/check", response_model=RefundCheckRead)
async def check_refund(
    invoice_id: uuid.UUID, session: DbSession, caller: Caller
) -> RefundCheckRead:
    """Report whether a refund can be requested right now."""
    window = unwrap(
        await refund_service.check_refund(session, caller, invoice_id, cutoff=_cutoff())
    )
    return RefundCheckRead(
        refund_available=window.refund_available,
        hours_until_workshop=window.hours_until_workshop,
        workshop_starts_at=window.workshop_starts_at,
        message=window.message,
    )


@router.post("/{invoice_id}/refund", response_model=RefundSubmittedRead)
async def initiate_refund(
    invoice_id: uuid.UUID,
    session: DbSession,
    caller: Caller,
    gateway: Gateway,
    observer: ObserverDep,
    payload: RefundCreate | None = None,
) -> RefundSubmittedRead:
    """Submit a refund request for a paid invoice."""
    payload = payload or RefundCreate()
    submitted = unwrap(
        await refund_service.initiate_refund(
            session,
            caller,
            invoice_id,
            gateway=gateway,
            observer=observer,
            amount=payload.amount,
            reason=payload.reason,
            email=payload.email,
            cutoff=_cutoff(),
        )
    )
    return RefundSubmittedRead(
        invoice_id=submitted.invoice_id,
        request_id=submitted.request_id,
        amount=submitted.amount,
        refund_status=submitted.refund_status,
    )


@router.post("/{invoice_id}/refund/sync", response_model=InvoiceRead)
async def sync_refund_status(
    invoice_id: uuid.UUID,
    session: DbSession,
    caller: Caller,
    gateway: Gateway,
    observer: ObserverDep,
) -> InvoiceRead:
    """Poll the gateway for the outcome of a pending refund."""
    invoice = unwrap(
        await refund_service.sync_refund_status(
            session, caller, invoice_id, gateway=gateway, observer=observer
        )
    )
    return InvoiceRead.model_validate(invoice)


@router.post("/{invoice_id}/cancel", response_model=InvoiceRead)
async def cancel_invoice(
    invoice_id: uuid.UUID,
    session: DbSession,
    caller: Caller,
    gateway: Gateway,
    observer: ObserverDep,
    payload: InvoiceCancel | None = None,
) -> InvoiceRead:
    """Cancel an invoice, refunding it in full when it was paid."""
    payload = payload or InvoiceCancel()
    invoice = unwrap(
        await refund_service.cancel_invoice(
            session,
            caller,
            invoice_id,
            gateway=gateway,
            observer=observer,
            reason=payload.reason,
            cutoff=_cutoff(),
        )
    )
    return InvoiceRead.model_validate(invoice)
