"""Invoice and invoice item models."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workshop_billing.db.base import Base
from workshop_billing.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from workshop_billing.models.participant import Participant
    from workshop_billing.models.user import User
    from workshop_billing.models.workshop import Workshop


class InvoiceStatus(str, enum.Enum):
    """Invoice lifecycle states."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class RefundStatus(str, enum.Enum):
    """Gateway refund request states tracked on the invoice."""

    NONE = "none"
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class InvoiceItemKind(str, enum.Enum):
    """Catalog section a line item was selected from."""

    STYLE = "style"
    OPTION = "option"


class Invoice(TimestampMixin, Base):
    """Bill for one booking of one or more children at a workshop."""

    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    workshop_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    external_id: Mapped[str | None] = mapped_column(String(64), unique=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(
            InvoiceStatus,
            name="invoicestatus",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
        ),
        default=InvoiceStatus.PENDING,
        nullable=False,
    )
    refund_status: Mapped[RefundStatus] = mapped_column(
        Enum(
            RefundStatus,
            name="refundstatus",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
        ),
        default=RefundStatus.NONE,
        nullable=False,
    )
    payment_id: Mapped[str | None] = mapped_column(String(128))
    operation_key: Mapped[str | None] = mapped_column(String(128))
    payment_method: Mapped[str | None] = mapped_column(String(64))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    refund_request_id: Mapped[str | None] = mapped_column(String(128))
    refund_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    refund_reason: Mapped[str | None] = mapped_column(Text)
    refund_email: Mapped[str | None] = mapped_column(String(320))
    refund_requested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    notes: Mapped[str | None] = mapped_column(Text)

    owner: Mapped["User"] = relationship("User")
    workshop: Mapped["Workshop"] = relationship("Workshop")
    items: Mapped[list["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
    )
    participants: Mapped[list["Participant"]] = relationship(
        "Participant", back_populates="invoice", cascade="all, delete-orphan"
    )


class InvoiceItem(TimestampMixin, Base):
    """Aggregated style or option line on an invoice."""

    __tablename__ = "invoice_items"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    kind: Mapped[InvoiceItemKind] = mapped_column(
        Enum(
            InvoiceItemKind,
            name="invoiceitemkind",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
        ),
        nullable=False,
    )
    catalog_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    invoice: Mapped[Invoice] = relationship("Invoice", back_populates="items")
