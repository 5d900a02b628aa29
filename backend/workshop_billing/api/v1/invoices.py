"""Invoice read and payment-link endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter

from workshop_billing.api.deps import Caller, DbSession, Gateway
from workshop_billing.api.errors import unwrap
from workshop_billing.schemas.invoice import InvoiceRead
from workshop_billing.schemas.payments import PaymentLinkRead
from workshop_billing.services import payments_service

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("/{invoice_id}", response_model=InvoiceRead)
async def get_invoice(
    invoice_id: uuid.UUID, session: DbSession, caller: Caller
) -> InvoiceRead:
    invoice = unwrap(await payments_service.get_invoice(session, caller, invoice_id))
    return InvoiceRead.model_validate(invoice)


@router.post("/{invoice_id}/pay", response_model=PaymentLinkRead)
async def create_payment_link(
    invoice_id: uuid.UUID, session: DbSession, caller: Caller, gateway: Gateway
) -> PaymentLinkRead:
    """Return the signed Robokassa form for a pending invoice."""
    form = unwrap(
        await payments_service.create_payment_link(
            session, caller, invoice_id, gateway=gateway
        )
    )
    return PaymentLinkRead(
        invoice_id=invoice_id,
        external_id=form.fields["InvId"],
        url=form.url,
        fields=form.fields,
    )
