"""Payment lifecycle: payment links and gateway notifications.

Both notification channels race for the same ``pending -> paid`` edge. The
edge is a conditional update, so exactly one delivery wins; only the winner
issues the fiscal receipt and the "invoice paid" event. Replays and losers
acknowledge without side effects.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Final

from sqlalchemy.ext.asyncio import AsyncSession

from workshop_billing.integrations import EventPublisher, PaymentForm, RobokassaClient
from workshop_billing.models import Invoice, InvoiceStatus
from workshop_billing.schemas.notifications import (
    ClassicNotification,
    TokenNotification,
    VerifiedNotification,
)
from workshop_billing.security.permissions import CallerContext, can_manage_invoice
from workshop_billing.services import receipt_service
from workshop_billing.services.invoice_store import InvoiceStore
from workshop_billing.services.observability import Observer
from workshop_billing.services.results import Failure, Ok, Outcome

_AMOUNT_TOLERANCE: Final = Decimal("0.01")
INVOICE_ID_PARAM: Final = "Shp_invoice_id"


@dataclass(frozen=True, slots=True)
class NotificationAck:
    """What the webhook should tell the gateway."""

    external_id: str
    invoice_id: uuid.UUID | None
    payment_failed: bool = False
    transitioned: bool = False


async def _after_payment(
    invoice: Invoice,
    *,
    gateway: RobokassaClient,
    publisher: EventPublisher,
    observer: Observer,
) -> None:
    try:
        await receipt_service.issue_second_receipt(invoice, gateway=gateway)
    except Exception as exc:  # receipts never undo a payment
        observer.side_effect_failed("fiscal_receipt", exc, invoice_id=invoice.id)
    else:
        observer.record("receipt.issued", invoice_id=invoice.id)

    try:
        await publisher.invoice_paid(invoice_id=invoice.id, owner_id=invoice.owner_id)
    except Exception as exc:  # event delivery never undoes a payment
        observer.side_effect_failed("invoice_paid_event", exc, invoice_id=invoice.id)


async def _settle(
    store: InvoiceStore,
    invoice: Invoice,
    *,
    payment_id: str,
    payment_method: str | None,
    operation_key: str | None,
    now: datetime,
    gateway: RobokassaClient,
    publisher: EventPublisher,
    observer: Observer,
) -> bool:
    transitioned = await store.mark_paid(
        invoice.id,
        payment_id=payment_id,
        payment_method=payment_method,
        paid_at=now,
        operation_key=operation_key,
    )
    if not transitioned:
        if operation_key:
            await store.remember_operation_key(invoice.id, operation_key)
        observer.record(
            "payment.replayed", invoice_id=invoice.id, status=invoice.status.value
        )
        return False

    observer.record("payment.confirmed", invoice_id=invoice.id, payment_id=payment_id)
    paid_invoice = await store.get(invoice.id)
    if paid_invoice is not None:
        await _after_payment(
            paid_invoice, gateway=gateway, publisher=publisher, observer=observer
        )
    return True


async def handle_classic_notification(
    session: AsyncSession,
    notification: ClassicNotification,
    *,
    raw: dict[str, Any],
    gateway: RobokassaClient,
    publisher: EventPublisher,
    observer: Observer,
    now: datetime | None = None,
) -> Outcome[NotificationAck]:
    """Apply a verified primary (result URL) notification."""

    store = InvoiceStore(session)
    await store.record_notification("classic", notification.external_id, raw)

    invoice = await store.find_by_reference(notification.external_id)
    if invoice is None:
        observer.record("payment.unknown_invoice", external_id=notification.external_id)
        return Failure.not_found("invoice not found")

    if abs(notification.amount - invoice.amount) > _AMOUNT_TOLERANCE:
        observer.record(
            "payment.amount_mismatch",
            invoice_id=invoice.id,
            expected=invoice.amount,
            received=notification.amount,
        )
        return Failure.validation("invalid amount")

    transitioned = await _settle(
        store,
        invoice,
        payment_id=notification.external_id,
        payment_method=notification.payment_method,
        operation_key=None,
        now=now or datetime.now(UTC),
        gateway=gateway,
        publisher=publisher,
        observer=observer,
    )
    return Ok(
        NotificationAck(
            external_id=notification.external_id,
            invoice_id=invoice.id,
            transitioned=transitioned,
        )
    )


async def handle_token_notification(
    session: AsyncSession,
    notification: TokenNotification,
    *,
    raw: dict[str, Any],
    gateway: RobokassaClient,
    publisher: EventPublisher,
    observer: Observer,
    now: datetime | None = None,
) -> Outcome[NotificationAck]:
    """Apply a verified secondary (JWS) notification."""

    store = InvoiceStore(session)
    await store.record_notification("token", notification.external_id, raw)

    if not notification.succeeded:
        observer.record(
            "payment.failed",
            external_id=notification.external_id,
            state=notification.state,
        )
        return Ok(
            NotificationAck(
                external_id=notification.external_id,
                invoice_id=None,
                payment_failed=True,
            )
        )

    invoice = await store.find_by_external_id(notification.external_id)
    if invoice is None:
        observer.record("payment.unknown_invoice", external_id=notification.external_id)
        return Failure.not_found("Invoice not found")

    transitioned = await _settle(
        store,
        invoice,
        payment_id=notification.operation_key or notification.external_id,
        payment_method=notification.payment_method,
        operation_key=notification.operation_key,
        now=now or datetime.now(UTC),
        gateway=gateway,
        publisher=publisher,
        observer=observer,
    )
    return Ok(
        NotificationAck(
            external_id=notification.external_id,
            invoice_id=invoice.id,
            transitioned=transitioned,
        )
    )


async def handle_notification(
    session: AsyncSession,
    notification: VerifiedNotification,
    *,
    raw: dict[str, Any],
    gateway: RobokassaClient,
    publisher: EventPublisher,
    observer: Observer,
    now: datetime | None = None,
) -> Outcome[NotificationAck]:
    """Dispatch a verified notification to the handler for its channel."""

    handler = (
        handle_classic_notification
        if isinstance(notification, ClassicNotification)
        else handle_token_notification
    )
    return await handler(
        session,
        notification,  # type: ignore[arg-type]
        raw=raw,
        gateway=gateway,
        publisher=publisher,
        observer=observer,
        now=now,
    )


async def get_invoice(
    session: AsyncSession, caller: CallerContext, invoice_id: uuid.UUID
) -> Outcome[Invoice]:
    """Return an invoice the caller owns, or any invoice for administrators."""

    invoice = await InvoiceStore(session).get(invoice_id)
    if invoice is None:
        return Failure.not_found()
    if not can_manage_invoice(caller, invoice.owner_id):
        return Failure.authorization()
    return Ok(invoice)


def _new_external_id(now: datetime) -> str:
    return str(int(now.timestamp() * 1000))


async def create_payment_link(
    session: AsyncSession,
    caller: CallerContext,
    invoice_id: uuid.UUID,
    *,
    gateway: RobokassaClient,
    now: datetime | None = None,
) -> Outcome[PaymentForm]:
    """Return the signed hosted-payment form, assigning the gateway id once."""

    store = InvoiceStore(session)
    invoice = await store.get(invoice_id)
    if invoice is None:
        return Failure.not_found()
    if not can_manage_invoice(caller, invoice.owner_id):
        return Failure.authorization()
    if invoice.status != InvoiceStatus.PENDING:
        return Failure.conflict(f"Invoice is already {invoice.status.value}")

    external_id = invoice.external_id
    if external_id is None:
        await store.assign_external_id(
            invoice.id, _new_external_id(now or datetime.now(UTC))
        )
        refreshed = await store.get(invoice.id)
        if refreshed is None or refreshed.external_id is None:
            return Failure.conflict("Could not allocate a payment id, try again")
        invoice = refreshed
        external_id = refreshed.external_id

    workshop = invoice.workshop
    return Ok(
        gateway.build_payment_form(
            external_id=external_id,
            amount=invoice.amount,
            description=f"{workshop.title}, {workshop.school_name}",
            custom_params={INVOICE_ID_PARAM: str(invoice.id)},
        )
    )


__all__ = [
    "NotificationAck",
    "create_payment_link",
    "get_invoice",
    "handle_classic_notification",
    "handle_notification",
    "handle_token_notification",
]
