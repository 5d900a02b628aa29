"""Refund initiation and tracking against paid invoices."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workshop_billing.integrations import (
    RefundLine,
    RobokassaClient,
    RobokassaClientError,
)
from workshop_billing.models import Invoice, InvoiceStatus, RefundStatus
from workshop_billing.security.permissions import CallerContext, can_manage_invoice
from workshop_billing.services.invoice_store import InvoiceStore
from workshop_billing.services.observability import Observer
from workshop_billing.services.refund_policy import (
    DEFAULT_CUTOFF,
    RefundWindow,
    is_refund_allowed,
    refund_window,
)
from workshop_billing.services.results import Failure, Ok, Outcome

REFUND_FINISHED = "finished"
REFUND_CANCELED = "canceled"
CENT = Decimal("0.01")

_NOT_PAID = "Refund is available only for paid invoices"
_ALREADY_REQUESTED = "Refund has already been requested for this invoice"


class RefundRequestLost(RuntimeError):
    """The gateway accepted a refund whose request id is not stored locally."""


@dataclass(frozen=True, slots=True)
class RefundSubmitted:
    """Refund request accepted by the gateway."""

    invoice_id: uuid.UUID
    request_id: str
    amount: Decimal
    refund_status: RefundStatus


async def _load_for_caller(
    store: InvoiceStore, caller: CallerContext, invoice_id: uuid.UUID
) -> Outcome[Invoice]:
    invoice = await store.get(invoice_id)
    if invoice is None:
        return Failure.not_found()
    if not can_manage_invoice(caller, invoice.owner_id):
        return Failure.authorization()
    return Ok(invoice)


async def check_refund(
    session: AsyncSession,
    caller: CallerContext,
    invoice_id: uuid.UUID,
    *,
    now: datetime | None = None,
    cutoff: timedelta = DEFAULT_CUTOFF,
) -> Outcome[RefundWindow]:
    """Report whether the caller could request a refund right now."""

    loaded = await _load_for_caller(InvoiceStore(session), caller, invoice_id)
    if isinstance(loaded, Failure):
        return loaded
    invoice = loaded.value

    window = refund_window(
        now or datetime.now(UTC), invoice.workshop.starts_at, cutoff=cutoff
    )
    if invoice.status != InvoiceStatus.PAID:
        window = replace(window, refund_available=False, message=_NOT_PAID)
    elif invoice.refund_status != RefundStatus.NONE:
        window = replace(window, refund_available=False, message=_ALREADY_REQUESTED)
    return Ok(window)


async def _resolve_operation_key(
    store: InvoiceStore, invoice: Invoice, gateway: RobokassaClient
) -> Outcome[str]:
    if invoice.operation_key:
        return Ok(invoice.operation_key)
    if not invoice.external_id:
        return Failure.not_found("Payment operation not found")
    try:
        state = await gateway.get_operation_state(invoice.external_id)
    except RobokassaClientError as exc:
        return Failure.gateway(str(exc))
    if not state.found or not state.operation_key:
        return Failure.not_found(state.description or "Payment operation not found")
    await store.remember_operation_key(invoice.id, state.operation_key)
    return Ok(state.operation_key)


async def _submit_refund(
    store: InvoiceStore,
    caller: CallerContext,
    invoice: Invoice,
    *,
    gateway: RobokassaClient,
    observer: Observer,
    now: datetime,
    cutoff: timedelta,
    amount: Decimal | None,
    reason: str | None,
    email: str | None,
    include_lines: bool,
) -> Outcome[RefundSubmitted]:
    if invoice.status != InvoiceStatus.PAID:
        return Failure.conflict(_NOT_PAID)
    if not is_refund_allowed(now, invoice.workshop.starts_at, cutoff=cutoff):
        hours = int(cutoff.total_seconds() // 3600)
        return Failure.conflict(
            f"Refund is not available less than {hours} hours before the workshop"
        )
    if invoice.refund_status != RefundStatus.NONE:
        return Failure.conflict(_ALREADY_REQUESTED)

    refund_sum = (invoice.amount if amount is None else amount).quantize(
        CENT, rounding=ROUND_HALF_UP
    )
    if refund_sum <= 0 or refund_sum > invoice.amount:
        return Failure.validation(
            "Refund amount must be positive and not exceed the invoice amount"
        )

    operation_key = await _resolve_operation_key(store, invoice, gateway)
    if isinstance(operation_key, Failure):
        return operation_key

    claimed = await store.claim_refund(
        invoice.id, amount=refund_sum, requested_at=now, reason=reason, email=email
    )
    if not claimed:
        return Failure.conflict(_ALREADY_REQUESTED)

    lines = None
    if include_lines:
        lines = [
            RefundLine(
                name=item.name, quantity=item.quantity, unit_price=item.unit_price
            )
            for item in invoice.items
        ]
    try:
        request_id = await gateway.create_refund(
            operation_key=operation_key.value, amount=refund_sum, lines=lines
        )
    except RobokassaClientError as exc:
        await store.release_refund_claim(invoice.id)
        observer.record("refund.rejected", invoice_id=invoice.id, reason=str(exc))
        return Failure.gateway(str(exc))

    try:
        recorded = await store.record_refund_request(invoice.id, request_id)
    except SQLAlchemyError as exc:
        observer.side_effect_failed(
            "refund_request_record", exc, invoice_id=invoice.id, request_id=request_id
        )
        raise
    if not recorded:
        observer.side_effect_failed(
            "refund_request_record",
            RefundRequestLost("refund claim changed before the request id was saved"),
            invoice_id=invoice.id,
            request_id=request_id,
        )
    observer.record(
        "refund.requested",
        invoice_id=invoice.id,
        request_id=request_id,
        caller=caller.user_id,
    )
    return Ok(
        RefundSubmitted(
            invoice_id=invoice.id,
            request_id=request_id,
            amount=refund_sum,
            refund_status=RefundStatus.PENDING,
        )
    )


async def initiate_refund(
    session: AsyncSession,
    caller: CallerContext,
    invoice_id: uuid.UUID,
    *,
    gateway: RobokassaClient,
    observer: Observer,
    amount: Decimal | None = None,
    reason: str | None = None,
    email: str | None = None,
    now: datetime | None = None,
    cutoff: timedelta = DEFAULT_CUTOFF,
) -> Outcome[RefundSubmitted]:
    """Request a refund of a paid invoice from the gateway.

    Preconditions are checked in order and the first failing one is returned:
    ownership, paid status, the refund window, and no earlier refund request.
    The refund slot is claimed before the gateway call and released again if
    the gateway rejects the request, so the invoice is left unchanged on
    failure.
    """

    store = InvoiceStore(session)
    loaded = await _load_for_caller(store, caller, invoice_id)
    if isinstance(loaded, Failure):
        return loaded
    return await _submit_refund(
        store,
        caller,
        loaded.value,
        gateway=gateway,
        observer=observer,
        now=now or datetime.now(UTC),
        cutoff=cutoff,
        amount=amount,
        reason=reason,
        email=email,
        include_lines=False,
    )


async def cancel_invoice(
    session: AsyncSession,
    caller: CallerContext,
    invoice_id: uuid.UUID,
    *,
    gateway: RobokassaClient,
    observer: Observer,
    reason: str | None = None,
    now: datetime | None = None,
    cutoff: timedelta = DEFAULT_CUTOFF,
) -> Outcome[Invoice]:
    """Administrative cancellation.

    Unpaid invoices are cancelled on the spot. Paid invoices get a full refund
    with the original line items; they become cancelled once the gateway
    reports the refund finished (see ``sync_refund_status``).
    """

    if not caller.is_admin:
        return Failure.authorization()
    store = InvoiceStore(session)
    invoice = await store.get(invoice_id)
    if invoice is None:
        return Failure.not_found()

    if invoice.status == InvoiceStatus.CANCELLED:
        return Failure.conflict("Invoice is already cancelled")
    if invoice.status == InvoiceStatus.PENDING:
        if not await store.cancel_unpaid(invoice.id):
            return Failure.conflict("Invoice status changed, try again")
        observer.record(
            "invoice.cancelled", invoice_id=invoice.id, caller=caller.user_id
        )
    else:
        submitted = await _submit_refund(
            store,
            caller,
            invoice,
            gateway=gateway,
            observer=observer,
            now=now or datetime.now(UTC),
            cutoff=cutoff,
            amount=None,
            reason=reason,
            email=None,
            include_lines=True,
        )
        if isinstance(submitted, Failure):
            return submitted

    refreshed = await store.get(invoice.id)
    if refreshed is None:
        return Failure.not_found()
    return Ok(refreshed)


async def sync_refund_status(
    session: AsyncSession,
    caller: CallerContext,
    invoice_id: uuid.UUID,
    *,
    gateway: RobokassaClient,
    observer: Observer,
) -> Outcome[Invoice]:
    """Poll the gateway and apply a terminal refund state if one is reported."""

    store = InvoiceStore(session)
    loaded = await _load_for_caller(store, caller, invoice_id)
    if isinstance(loaded, Failure):
        return loaded
    invoice = loaded.value
    if invoice.refund_request_id is None:
        if invoice.refund_status == RefundStatus.PENDING:
            # Claimed but the gateway request id was never saved; needs manual repair.
            observer.side_effect_failed(
                "refund_request_record",
                RefundRequestLost("pending refund has no gateway request id"),
                invoice_id=invoice.id,
                requested_at=invoice.refund_requested_at,
            )
        return Failure.not_found("Refund request not found")
    if invoice.refund_status != RefundStatus.PENDING:
        return Ok(invoice)

    try:
        state = await gateway.get_refund_state(invoice.refund_request_id)
    except RobokassaClientError as exc:
        return Failure.gateway(str(exc))

    if state.label == REFUND_FINISHED:
        if await store.complete_refund(invoice.id):
            observer.record("refund.completed", invoice_id=invoice.id)
    elif state.label == REFUND_CANCELED:
        if await store.fail_refund(invoice.id):
            observer.record("refund.failed", invoice_id=invoice.id)

    refreshed = await store.get(invoice.id)
    if refreshed is None:
        return Failure.not_found()
    return Ok(refreshed)


__all__ = [
    "RefundRequestLost",
    "RefundSubmitted",
    "cancel_invoice",
    "check_refund",
    "initiate_refund",
    "sync_refund_status",
]
