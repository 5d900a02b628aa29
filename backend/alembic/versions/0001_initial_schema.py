"""Initial billing schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    user_role_enum = sa.Enum("admin", "parent", name="userrole")
    invoice_status_enum = sa.Enum("pending", "paid", "cancelled", name="invoicestatus")
    refund_status_enum = sa.Enum(
        "none", "pending", "completed", "failed", name="refundstatus"
    )
    item_kind_enum = sa.Enum("style", "option", name="invoiceitemkind")

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("phone_number", sa.String(length=32)),
        sa.Column("role", user_role_enum, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "workshops",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("school_name", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120)),
        sa.Column("class_group", sa.String(length=64)),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("styles", JSON_TYPE, nullable=False),
        sa.Column("options", JSON_TYPE, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "owner_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "workshop_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("workshops.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("external_id", sa.String(length=64), unique=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", invoice_status_enum, nullable=False),
        sa.Column("refund_status", refund_status_enum, nullable=False),
        sa.Column("payment_id", sa.String(length=128)),
        sa.Column("operation_key", sa.String(length=128)),
        sa.Column("payment_method", sa.String(length=64)),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("refund_request_id", sa.String(length=128)),
        sa.Column("refund_amount", sa.Numeric(10, 2)),
        sa.Column("refund_reason", sa.Text()),
        sa.Column("refund_email", sa.String(length=320)),
        sa.Column("refund_requested_at", sa.DateTime(timezone=True)),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_invoices_owner_id", "invoices", ["owner_id"])
    op.create_index("ix_invoices_workshop_id", "invoices", ["workshop_id"])

    op.create_table(
        "invoice_items",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "invoice_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("invoices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("kind", item_kind_enum, nullable=False),
        sa.Column("catalog_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "participants",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "invoice_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("invoices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "workshop_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("workshops.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("child_id", sa.String(length=64), nullable=False),
        sa.Column("child_name", sa.String(length=255), nullable=False),
        sa.Column("selected_styles", JSON_TYPE, nullable=False),
        sa.Column("selected_options", JSON_TYPE, nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint(
            "workshop_id", "child_id", name="uq_participant_workshop_child"
        ),
    )
    op.create_index("ix_participants_invoice_id", "participants", ["invoice_id"])

    op.create_table(
        "gateway_notifications",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("channel", sa.String(length=16), nullable=False),
        sa.Column("external_id", sa.String(length=64), nullable=False),
        sa.Column("fingerprint", sa.String(length=64), nullable=False, unique=True),
        sa.Column("raw", JSON_TYPE, nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_gateway_notifications_external_id",
        "gateway_notifications",
        ["external_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_gateway_notifications_external_id", table_name="gateway_notifications"
    )
    op.drop_table("gateway_notifications")
    op.drop_index("ix_participants_invoice_id", table_name="participants")
    op.drop_table("participants")
    op.drop_table("invoice_items")
    op.drop_index("ix_invoices_workshop_id", table_name="invoices")
    op.drop_index("ix_invoices_owner_id", table_name="invoices")
    op.drop_table("invoices")
    op.drop_table("workshops")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_name in ("invoiceitemkind", "refundstatus", "invoicestatus", "userrole"):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
