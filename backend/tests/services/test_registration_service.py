"""Tests for atomic group registration."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import event, func, select

from workshop_billing.db.session import get_sessionmaker
from workshop_billing.models import Invoice, InvoiceStatus, Participant, UserRole
from workshop_billing.schemas.registration import GroupRegistrationCreate
from workshop_billing.security.permissions import CallerContext
from workshop_billing.services import registration_service
from workshop_billing.services.results import ErrorKind, Failure, Ok

pytestmark = pytest.mark.asyncio


def _payload(
    workshop_id: uuid.UUID, *children: dict[str, object]
) -> GroupRegistrationCreate:
    return GroupRegistrationCreate.model_validate(
        {"workshop_id": workshop_id, "children": list(children)}
    )


def _child(child_id: str, name: str, **selection: object) -> dict[str, object]:
    return {
        "child_id": child_id,
        "child_name": name,
        "styles": selection.get("styles", [{"id": "classic"}]),
        "options": selection.get("options", []),
    }


async def _counts(session) -> tuple[int, int]:
    invoices = await session.scalar(select(func.count()).select_from(Invoice))
    participants = await session.scalar(
        select(func.count()).select_from(Participant)
    )
    return invoices, participants


async def test_group_registration_creates_one_invoice(
    seeded, db_url: str, observer
) -> None:
    caller = CallerContext(user_id=seeded["parent_id"], role=UserRole.PARENT)
    payload = _payload(
        seeded["workshop_id"],
        _child("c-1", "Masha", styles=[{"id": "classic"}]),
        _child(
            "c-2",
            "Petya",
            styles=[{"id": "classic"}],
            options=[{"id": "gift-box", "quantity": 2}],
        ),
    )

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        outcome = await registration_service.register_group(
            session, caller, payload, observer=observer
        )

        assert isinstance(outcome, Ok)
        invoice = outcome.value
        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.owner_id == seeded["parent_id"]
        assert invoice.amount == Decimal("3600.00")
        assert {item.catalog_id: item.quantity for item in invoice.items} == {
            "classic": 2,
            "gift-box": 2,
        }
        totals = {p.child_id: p.total_amount for p in invoice.participants}
        assert totals == {"c-1": Decimal("1500.00"), "c-2": Decimal("2100.00")}
        assert await _counts(session) == (1, 2)

    assert "registration.created" in observer.names()


async def test_failure_mid_batch_leaves_no_rows(seeded, db_url: str, observer) -> None:
    caller = CallerContext(user_id=seeded["parent_id"], role=UserRole.PARENT)
    payload = _payload(
        seeded["workshop_id"],
        _child("c-1", "Masha"),
        _child("c-2", "Petya"),
        _child("c-3", "Vanya"),
    )

    def fail_on_third_child(mapper, connection, target) -> None:
        if target.child_id == "c-3":
            raise RuntimeError("storage failure")

    event.listen(Participant, "before_insert", fail_on_third_child)
    sessionmaker = get_sessionmaker(db_url)
    try:
        async with sessionmaker() as session:
            with pytest.raises(RuntimeError, match="storage failure"):
                await registration_service.register_group(
                    session, caller, payload, observer=observer
                )
    finally:
        event.remove(Participant, "before_insert", fail_on_third_child)

    async with sessionmaker() as session:
        assert await _counts(session) == (0, 0)


async def test_already_registered_child_rejects_whole_batch(
    seeded, db_url: str, observer
) -> None:
    caller = CallerContext(user_id=seeded["parent_id"], role=UserRole.PARENT)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        first = await registration_service.register_group(
            session,
            caller,
            _payload(seeded["workshop_id"], _child("c-1", "Masha")),
            observer=observer,
        )
        assert isinstance(first, Ok)

        second = await registration_service.register_group(
            session,
            caller,
            _payload(
                seeded["workshop_id"],
                _child("c-2", "Petya"),
                _child("c-1", "Masha"),
            ),
            observer=observer,
        )

        assert isinstance(second, Failure)
        assert second.kind == ErrorKind.CONFLICT
        assert second.message == "Child Masha is already registered for this workshop"
        assert await _counts(session) == (1, 1)


async def test_duplicate_child_in_batch_is_rejected(
    seeded, db_url: str, observer
) -> None:
    caller = CallerContext(user_id=seeded["parent_id"], role=UserRole.PARENT)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        outcome = await registration_service.register_group(
            session,
            caller,
            _payload(
                seeded["workshop_id"],
                _child("c-1", "Masha"),
                _child("c-1", "Masha"),
            ),
            observer=observer,
        )
        assert isinstance(outcome, Failure)
        assert outcome.kind == ErrorKind.VALIDATION
        assert await _counts(session) == (0, 0)


async def test_unknown_catalog_item_is_rejected(
    seeded, db_url: str, observer
) -> None:
    caller = CallerContext(user_id=seeded["parent_id"], role=UserRole.PARENT)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        outcome = await registration_service.register_group(
            session,
            caller,
            _payload(
                seeded["workshop_id"],
                _child("c-1", "Masha", styles=[{"id": "golden"}]),
            ),
            observer=observer,
        )
        assert isinstance(outcome, Failure)
        assert outcome.kind == ErrorKind.VALIDATION
        assert "golden" in outcome.message


async def test_child_without_selection_is_rejected(
    seeded, db_url: str, observer
) -> None:
    caller = CallerContext(user_id=seeded["parent_id"], role=UserRole.PARENT)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        outcome = await registration_service.register_group(
            session,
            caller,
            _payload(seeded["workshop_id"], _child("c-1", "Masha", styles=[])),
            observer=observer,
        )
        assert isinstance(outcome, Failure)
        assert outcome.kind == ErrorKind.VALIDATION


async def test_parent_cannot_register_for_another_parent(
    seeded, db_url: str, observer
) -> None:
    caller = CallerContext(user_id=seeded["parent_id"], role=UserRole.PARENT)
    payload = GroupRegistrationCreate.model_validate(
        {
            "workshop_id": seeded["workshop_id"],
            "parent_id": seeded["other_parent_id"],
            "children": [_child("c-1", "Masha")],
        }
    )
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        outcome = await registration_service.register_group(
            session, caller, payload, observer=observer
        )
        assert isinstance(outcome, Failure)
        assert outcome.kind == ErrorKind.AUTHORIZATION


async def test_admin_registers_on_behalf_of_parent(
    seeded, db_url: str, observer
) -> None:
    caller = CallerContext(user_id=seeded["admin_id"], role=UserRole.ADMIN)
    payload = GroupRegistrationCreate.model_validate(
        {
            "workshop_id": seeded["workshop_id"],
            "parent_id": seeded["other_parent_id"],
            "children": [_child("c-9", "Sasha")],
        }
    )
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        outcome = await registration_service.register_group(
            session, caller, payload, observer=observer
        )
        assert isinstance(outcome, Ok)
        assert outcome.value.owner_id == seeded["other_parent_id"]


async def test_unknown_workshop_is_not_found(seeded, db_url: str, observer) -> None:
    caller = CallerContext(user_id=seeded["parent_id"], role=UserRole.PARENT)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        outcome = await registration_service.register_group(
            session,
            caller,
            _payload(uuid.uuid4(), _child("c-1", "Masha")),
            observer=observer,
        )
        assert isinstance(outcome, Failure)
        assert outcome.kind == ErrorKind.NOT_FOUND
