"""Atomic registration of several children for one workshop."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Final

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workshop_billing.models import (
    Invoice,
    InvoiceItem,
    InvoiceItemKind,
    InvoiceStatus,
    Participant,
    RefundStatus,
    User,
    Workshop,
)
from workshop_billing.schemas.registration import (
    ChildRegistration,
    GroupRegistrationCreate,
    ItemSelection,
)
from workshop_billing.security.permissions import CallerContext
from workshop_billing.services.invoice_store import InvoiceStore
from workshop_billing.services.observability import Observer
from workshop_billing.services.results import Failure, Ok, Outcome

_MONEY_PLACES: Final = Decimal("0.01")


def _to_money(value: Decimal | float | str) -> Decimal:
    """Normalize numeric values to a money-safe decimal."""

    return Decimal(str(value)).quantize(_MONEY_PLACES, rounding=ROUND_HALF_UP)


@dataclass(slots=True)
class PricedLine:
    """One priced catalog selection."""

    kind: InvoiceItemKind
    catalog_id: str
    name: str
    quantity: int
    unit_price: Decimal

    @property
    def amount(self) -> Decimal:
        return _to_money(self.unit_price * self.quantity)

    def as_selection(self) -> dict[str, Any]:
        return {
            "id": self.catalog_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
        }


@dataclass(slots=True)
class PricedChild:
    """Child registration with catalog prices applied."""

    child: ChildRegistration
    styles: list[PricedLine]
    options: list[PricedLine]

    @property
    def total(self) -> Decimal:
        return _to_money(sum((line.amount for line in self.lines), Decimal("0")))

    @property
    def lines(self) -> list[PricedLine]:
        return [*self.styles, *self.options]


def _catalog(entries: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    return {str(entry.get("id")): entry for entry in entries if entry.get("id")}


def _price_selections(
    selections: list[ItemSelection],
    catalog: dict[str, dict[str, Any]],
    kind: InvoiceItemKind,
) -> Outcome[list[PricedLine]]:
    lines: list[PricedLine] = []
    for selection in selections:
        entry = catalog.get(selection.id)
        if entry is None:
            return Failure.validation(f"Unknown {kind.value} '{selection.id}'")
        try:
            unit_price = _to_money(entry.get("price", "0"))
        except InvalidOperation:
            return Failure.validation(
                f"Invalid price for {kind.value} '{selection.id}'"
            )
        lines.append(
            PricedLine(
                kind=kind,
                catalog_id=selection.id,
                name=str(entry.get("name") or selection.id),
                quantity=selection.quantity,
                unit_price=unit_price,
            )
        )
    return Ok(lines)


def price_child(workshop: Workshop, child: ChildRegistration) -> Outcome[PricedChild]:
    """Price a child's selections against the workshop catalog."""

    styles = _price_selections(
        child.styles, _catalog(workshop.styles), InvoiceItemKind.STYLE
    )
    if isinstance(styles, Failure):
        return styles
    options = _price_selections(
        child.options, _catalog(workshop.options), InvoiceItemKind.OPTION
    )
    if isinstance(options, Failure):
        return options
    if not styles.value and not options.value:
        return Failure.validation(f"No items selected for {child.child_name}")
    return Ok(PricedChild(child=child, styles=styles.value, options=options.value))


def _aggregate_items(priced: list[PricedChild]) -> list[InvoiceItem]:
    merged: dict[tuple[InvoiceItemKind, str, Decimal], PricedLine] = {}
    for priced_child in priced:
        for line in priced_child.lines:
            key = (line.kind, line.catalog_id, line.unit_price)
            existing = merged.get(key)
            if existing is None:
                merged[key] = PricedLine(
                    kind=line.kind,
                    catalog_id=line.catalog_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
            else:
                existing.quantity += line.quantity
    return [
        InvoiceItem(
            position=position,
            kind=line.kind,
            catalog_id=line.catalog_id,
            name=line.name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            amount=line.amount,
        )
        for position, line in enumerate(merged.values())
    ]


async def _resolve_owner(
    session: AsyncSession, caller: CallerContext, parent_id: uuid.UUID | None
) -> Outcome[uuid.UUID]:
    if not caller.is_admin:
        if parent_id is not None and parent_id != caller.user_id:
            return Failure.authorization()
        return Ok(caller.user_id)
    owner_id = parent_id or caller.user_id
    if await session.get(User, owner_id) is None:
        return Failure.not_found("Parent not found")
    return Ok(owner_id)


async def register_group(
    session: AsyncSession,
    caller: CallerContext,
    payload: GroupRegistrationCreate,
    *,
    observer: Observer,
) -> Outcome[Invoice]:
    """Create one pending invoice and a participant per child, atomically.

    The whole batch is rejected when any child is already registered for the
    workshop. The duplicate check runs inside the same transaction as the
    inserts, and the unique constraint on (workshop, child) catches the race
    between two concurrent bookings.
    """

    owner = await _resolve_owner(session, caller, payload.parent_id)
    if isinstance(owner, Failure):
        return owner

    workshop = await session.get(Workshop, payload.workshop_id)
    if workshop is None:
        return Failure.not_found("Workshop not found")

    child_ids = [child.child_id for child in payload.children]
    if len(set(child_ids)) != len(child_ids):
        return Failure.validation("Each child can be listed only once")

    store = InvoiceStore(session)
    already = await store.registered_child_ids(workshop.id, child_ids)
    if already:
        name = next(
            child.child_name for child in payload.children if child.child_id in already
        )
        return Failure.conflict(f"Child {name} is already registered for this workshop")

    priced: list[PricedChild] = []
    for child in payload.children:
        outcome = price_child(workshop, child)
        if isinstance(outcome, Failure):
            return outcome
        priced.append(outcome.value)

    invoice = Invoice(
        owner_id=owner.value,
        workshop_id=workshop.id,
        amount=_to_money(sum((entry.total for entry in priced), Decimal("0"))),
        status=InvoiceStatus.PENDING,
        refund_status=RefundStatus.NONE,
        notes=payload.notes,
        items=_aggregate_items(priced),
    )
    participants = [
        Participant(
            workshop_id=workshop.id,
            child_id=entry.child.child_id,
            child_name=entry.child.child_name,
            selected_styles=[line.as_selection() for line in entry.styles],
            selected_options=[line.as_selection() for line in entry.options],
            total_amount=entry.total,
            notes=entry.child.notes,
        )
        for entry in priced
    ]

    try:
        await store.add_registration(invoice, participants)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        return Failure.conflict(
            "One of the children is already registered for this workshop"
        )
    except Exception:
        await session.rollback()
        raise

    observer.record(
        "registration.created",
        invoice_id=invoice.id,
        workshop_id=workshop.id,
        children=len(participants),
        amount=invoice.amount,
    )
    created = await store.get(invoice.id)
    if created is None:
        return Failure.not_found()
    return Ok(created)


__all__ = ["PricedChild", "PricedLine", "price_child", "register_group"]
