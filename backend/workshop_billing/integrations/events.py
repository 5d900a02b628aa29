"""Outbound platform events."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Protocol

import aiokafka

logger = logging.getLogger(__name__)

INVOICE_PAID = "invoice.paid"


class EventPublisher(Protocol):
    """Port for events consumed by the rest of the platform."""

    async def invoice_paid(self, *, invoice_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        ...


class KafkaEventPublisher:
    """Publishes events to a Kafka topic."""

    def __init__(self, producer: aiokafka.AIOKafkaProducer, topic: str) -> None:
        self._producer = producer
        self._topic = topic

    async def invoice_paid(self, *, invoice_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        data = {
            "event": INVOICE_PAID,
            "invoice_id": str(invoice_id),
            "owner_id": str(owner_id),
        }
        await self._producer.send_and_wait(
            topic=self._topic,
            key=str(invoice_id).encode(),
            value=json.dumps(data).encode(),
        )
        logger.info(
            'sent notification about invoice %s to the "%s" topic',
            invoice_id,
            self._topic,
        )


class DisabledEventPublisher:
    """Publisher used when no Kafka cluster is configured."""

    async def invoice_paid(self, *, invoice_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        logger.debug(
            "Kafka disabled; skipping %s event for %s", INVOICE_PAID, invoice_id
        )


__all__ = [
    "DisabledEventPublisher",
    "EventPublisher",
    "INVOICE_PAID",
    "KafkaEventPublisher",
]
