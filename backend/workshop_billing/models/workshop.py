"""Workshop occurrence with its price catalog."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from workshop_billing.db.base import Base
from workshop_billing.models.mixins import JSONB_TYPE, TimestampMixin


class Workshop(TimestampMixin, Base):
    """A scheduled craft workshop at a school.

    ``styles`` and ``options`` hold the catalog offered at this occurrence as
    lists of ``{"id", "name", "price"}`` mappings.
    """

    __tablename__ = "workshops"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    school_name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str | None] = mapped_column(String(120))
    class_group: Mapped[str | None] = mapped_column(String(64))
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    styles: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
    options: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
