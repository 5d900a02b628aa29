"""Integration shortcuts."""

from .events import (
    DisabledEventPublisher,
    EventPublisher,
    KafkaEventPublisher,
)
from .robokassa_client import (
    OperationState,
    PaymentForm,
    RefundLine,
    RefundState,
    RobokassaClient,
    RobokassaClientError,
)

__all__ = [
    "DisabledEventPublisher",
    "EventPublisher",
    "KafkaEventPublisher",
    "OperationState",
    "PaymentForm",
    "RefundLine",
    "RefundState",
    "RobokassaClient",
    "RobokassaClientError",
]
