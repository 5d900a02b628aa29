"""Schema exports."""

from workshop_billing.schemas.invoice import (
    InvoiceItemRead,
    InvoiceRead,
    ParticipantRead,
)
from workshop_billing.schemas.notifications import (
    ClassicNotification,
    TokenNotification,
    TokenNotificationBody,
    VerifiedNotification,
)
from workshop_billing.schemas.payments import (
    InvoiceCancel,
    PaymentLinkRead,
    RefundCheckRead,
    RefundCreate,
    RefundSubmittedRead,
)
from workshop_billing.schemas.registration import (
    ChildRegistration,
    GroupRegistrationCreate,
    GroupRegistrationRead,
    ItemSelection,
)

__all__ = [
    "ChildRegistration",
    "ClassicNotification",
    "GroupRegistrationCreate",
    "GroupRegistrationRead",
    "InvoiceCancel",
    "InvoiceItemRead",
    "InvoiceRead",
    "ItemSelection",
    "ParticipantRead",
    "PaymentLinkRead",
    "RefundCheckRead",
    "RefundCreate",
    "RefundSubmittedRead",
    "TokenNotification",
    "TokenNotificationBody",
    "VerifiedNotification",
]
