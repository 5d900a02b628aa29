"""Group registration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from workshop_billing.api.deps import Caller, DbSession, ObserverDep
from workshop_billing.api.errors import unwrap
from workshop_billing.schemas.invoice import InvoiceRead, ParticipantRead
from workshop_billing.schemas.registration import (
    GroupRegistrationCreate,
    GroupRegistrationRead,
)
from workshop_billing.services import registration_service

router = APIRouter(prefix="/registrations", tags=["registrations"])


@router.post(
    "/group",
    response_model=GroupRegistrationRead,
    status_code=status.HTTP_201_CREATED,
)
async def register_group(
    payload: GroupRegistrationCreate,
    session: DbSession,
    caller: Caller,
    observer: ObserverDep,
) -> GroupRegistrationRead:
    """Register several children for one workshop under a single invoice."""
    invoice = unwrap(
        await registration_service.register_group(
            session, caller, payload, observer=observer
        )
    )
    return GroupRegistrationRead(
        invoice=InvoiceRead.model_validate(invoice),
        participants=[
            ParticipantRead.model_validate(participant)
            for participant in invoice.participants
        ],
    )
