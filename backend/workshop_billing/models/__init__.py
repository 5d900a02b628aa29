"""ORM models package export."""

from workshop_billing.models.invoice import (
    Invoice,
    InvoiceItem,
    InvoiceItemKind,
    InvoiceStatus,
    RefundStatus,
)
from workshop_billing.models.notification import GatewayNotification
from workshop_billing.models.participant import Participant
from workshop_billing.models.user import User, UserRole
from workshop_billing.models.workshop import Workshop

__all__ = [
    "GatewayNotification",
    "Invoice",
    "InvoiceItem",
    "InvoiceItemKind",
    "InvoiceStatus",
    "Participant",
    "RefundStatus",
    "User",
    "UserRole",
    "Workshop",
]
