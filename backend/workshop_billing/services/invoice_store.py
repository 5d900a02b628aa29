"""Narrow persistence interface over invoices and participants.

Every state change is a conditional ``UPDATE`` keyed by the invoice id and the
expected prior state. The methods report whether the row actually changed, so
concurrent or repeated callers can tell the winning transition from a no-op.
"""

from __future__ import annotations

import hashlib
import json
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import ColumnElement, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from workshop_billing.models import (
    GatewayNotification,
    Invoice,
    InvoiceStatus,
    Participant,
    RefundStatus,
)


class InvoiceStore:
    """Invoice reads and compare-and-set writes bound to one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, invoice_id: uuid.UUID) -> Invoice | None:
        stmt = (
            select(Invoice)
            .options(
                selectinload(Invoice.items),
                selectinload(Invoice.participants),
                selectinload(Invoice.workshop),
                selectinload(Invoice.owner),
            )
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        return (await self.session.execute(stmt)).scalars().first()

    async def find_by_external_id(self, external_id: str) -> Invoice | None:
        stmt = select(Invoice.id).where(Invoice.external_id == external_id)
        invoice_id = (await self.session.execute(stmt)).scalar_one_or_none()
        if invoice_id is None:
            return None
        return await self.get(invoice_id)

    async def find_by_reference(self, reference: str) -> Invoice | None:
        """Resolve an invoice by gateway id first, then by internal id."""

        invoice = await self.find_by_external_id(reference)
        if invoice is not None:
            return invoice
        try:
            invoice_id = uuid.UUID(reference)
        except ValueError:
            return None
        return await self.get(invoice_id)

    async def registered_child_ids(
        self, workshop_id: uuid.UUID, child_ids: list[str]
    ) -> set[str]:
        if not child_ids:
            return set()
        stmt = select(Participant.child_id).where(
            Participant.workshop_id == workshop_id,
            Participant.child_id.in_(child_ids),
        )
        return set((await self.session.execute(stmt)).scalars().all())

    async def add_registration(
        self, invoice: Invoice, participants: list[Participant]
    ) -> None:
        """Stage an invoice with its participants inside the open transaction."""

        self.session.add(invoice)
        await self.session.flush()
        for participant in participants:
            participant.invoice_id = invoice.id
            self.session.add(participant)
            await self.session.flush()

    async def _conditional_update(
        self,
        invoice_id: uuid.UUID,
        conditions: list[ColumnElement[bool]],
        values: dict[Any, Any],
    ) -> bool:
        stmt = (
            update(Invoice)
            .where(Invoice.id == invoice_id, *conditions)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def assign_external_id(self, invoice_id: uuid.UUID, external_id: str) -> bool:
        try:
            return await self._conditional_update(
                invoice_id,
                [
                    Invoice.external_id.is_(None),
                    Invoice.status == InvoiceStatus.PENDING,
                ],
                {Invoice.external_id: external_id},
            )
        except IntegrityError:  # gateway id already taken by another invoice
            await self.session.rollback()
            return False

    async def mark_paid(
        self,
        invoice_id: uuid.UUID,
        *,
        payment_id: str,
        payment_method: str | None,
        paid_at: datetime,
        operation_key: str | None = None,
    ) -> bool:
        """Move a pending invoice to paid; False when it was not pending."""

        values: dict[Any, Any] = {
            Invoice.status: InvoiceStatus.PAID,
            Invoice.payment_id: payment_id,
            Invoice.payment_method: payment_method,
            Invoice.paid_at: paid_at,
        }
        if operation_key:
            values[Invoice.operation_key] = operation_key
        return await self._conditional_update(
            invoice_id, [Invoice.status == InvoiceStatus.PENDING], values
        )

    async def remember_operation_key(
        self, invoice_id: uuid.UUID, operation_key: str
    ) -> bool:
        return await self._conditional_update(
            invoice_id,
            [Invoice.operation_key.is_(None)],
            {Invoice.operation_key: operation_key},
        )

    async def claim_refund(
        self,
        invoice_id: uuid.UUID,
        *,
        amount: Decimal,
        requested_at: datetime,
        reason: str | None = None,
        email: str | None = None,
    ) -> bool:
        """Reserve the single refund slot of a paid invoice."""

        return await self._conditional_update(
            invoice_id,
            [
                Invoice.status == InvoiceStatus.PAID,
                Invoice.refund_status == RefundStatus.NONE,
            ],
            {
                Invoice.refund_status: RefundStatus.PENDING,
                Invoice.refund_amount: amount,
                Invoice.refund_reason: reason,
                Invoice.refund_email: email,
                Invoice.refund_requested_at: requested_at,
            },
        )

    async def record_refund_request(
        self, invoice_id: uuid.UUID, request_id: str
    ) -> bool:
        return await self._conditional_update(
            invoice_id,
            [
                Invoice.refund_status == RefundStatus.PENDING,
                Invoice.refund_request_id.is_(None),
            ],
            {Invoice.refund_request_id: request_id},
        )

    async def release_refund_claim(self, invoice_id: uuid.UUID) -> bool:
        """Undo ``claim_refund`` when the gateway did not accept the request."""

        return await self._conditional_update(
            invoice_id,
            [
                Invoice.refund_status == RefundStatus.PENDING,
                Invoice.refund_request_id.is_(None),
            ],
            {
                Invoice.refund_status: RefundStatus.NONE,
                Invoice.refund_amount: None,
                Invoice.refund_reason: None,
                Invoice.refund_email: None,
                Invoice.refund_requested_at: None,
            },
        )

    async def complete_refund(self, invoice_id: uuid.UUID) -> bool:
        return await self._conditional_update(
            invoice_id,
            [
                Invoice.status == InvoiceStatus.PAID,
                Invoice.refund_status == RefundStatus.PENDING,
            ],
            {
                Invoice.refund_status: RefundStatus.COMPLETED,
                Invoice.status: InvoiceStatus.CANCELLED,
            },
        )

    async def fail_refund(self, invoice_id: uuid.UUID) -> bool:
        return await self._conditional_update(
            invoice_id,
            [Invoice.refund_status == RefundStatus.PENDING],
            {Invoice.refund_status: RefundStatus.FAILED},
        )

    async def cancel_unpaid(self, invoice_id: uuid.UUID) -> bool:
        return await self._conditional_update(
            invoice_id,
            [Invoice.status == InvoiceStatus.PENDING],
            {Invoice.status: InvoiceStatus.CANCELLED},
        )

    async def record_notification(
        self, channel: str, external_id: str, raw: dict[str, Any]
    ) -> None:
        """Append a notification to the audit log; exact repeats are ignored."""

        encoded = json.dumps(
            {"channel": channel, "payload": raw}, sort_keys=True, default=str
        )
        self.session.add(
            GatewayNotification(
                channel=channel,
                external_id=external_id,
                fingerprint=hashlib.sha256(encoded.encode("utf-8")).hexdigest(),
                raw=raw,
            )
        )
        try:
            await self.session.commit()
        except IntegrityError:  # duplicate deliveries are ignored
            await self.session.rollback()


__all__ = ["InvoiceStore"]
