"""Service layer exports."""
from workshop_billing.services import (
    payments_service,
    receipt_service,
    refund_policy,
    refund_service,
    registration_service,
)

__all__ = [
    "payments_service",
    "receipt_service",
    "refund_policy",
    "refund_service",
    "registration_service",
]
