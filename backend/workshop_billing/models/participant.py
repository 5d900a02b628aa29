"""Participant (child registration) model."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workshop_billing.db.base import Base
from workshop_billing.models.mixins import JSONB_TYPE, TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from workshop_billing.models.invoice import Invoice


class Participant(TimestampMixin, Base):
    """One child's enrollment in a workshop occurrence."""

    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint(
            "workshop_id", "child_id", name="uq_participant_workshop_child"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    workshop_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False
    )
    child_id: Mapped[str] = mapped_column(String(64), nullable=False)
    child_name: Mapped[str] = mapped_column(String(255), nullable=False)
    selected_styles: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
    selected_options: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="participants")
