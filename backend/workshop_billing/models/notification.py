"""Audit log of verified payment-gateway notifications."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from workshop_billing.db.base import Base
from workshop_billing.models.mixins import JSONB_TYPE, TimestampMixin


class GatewayNotification(TimestampMixin, Base):
    """Raw notification payload as received from the gateway."""

    __tablename__ = "gateway_notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    channel: Mapped[str] = mapped_column(String(16), nullable=False)
    external_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    raw: Mapped[dict[str, Any]] = mapped_column(JSONB_TYPE, nullable=False)
