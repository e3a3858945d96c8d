"""Initial schema: categories with their children, shift logs, visibility records, audit logs.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("plant", sa.String(4), nullable=False),
        sa.Column("send_mail", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_categories_plant", "categories", ["plant"])

    op.create_table(
        "category_mails",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "category_id", UUID(as_uuid=True), sa.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("mail_address", sa.String(512), nullable=False),
        sa.UniqueConstraint("category_id", "mail_address", name="uq_category_mail"),
    )
    op.create_index("ix_category_mails_category_id", "category_mails", ["category_id"])

    op.create_table(
        "category_work_centers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "category_id", UUID(as_uuid=True), sa.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("work_center", sa.String(36), nullable=False),
        sa.UniqueConstraint("category_id", "work_center", name="uq_category_work_center"),
    )
    op.create_index("ix_category_work_centers_category_id", "category_work_centers", ["category_id"])

    op.create_table(
        "category_chat_channels",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "category_id",
            UUID(as_uuid=True),
            sa.ForeignKey("categories.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("name", sa.String(255), default=""),
        sa.Column("webhook_url", sa.String(2048), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "category_translations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "category_id", UUID(as_uuid=True), sa.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("language", sa.String(5), nullable=False),
        sa.Column("description", sa.String(255), default=""),
        sa.UniqueConstraint("category_id", "language", name="uq_category_language"),
    )
    op.create_index("ix_category_translations_category_id", "category_translations", ["category_id"])

    op.create_table(
        "shift_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("plant", sa.String(4), nullable=False),
        sa.Column("shop_order", sa.String(30), nullable=False),
        sa.Column("step_id", sa.String(4), nullable=False),
        sa.Column("split", sa.String(3), default=""),
        sa.Column("work_center", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(512), nullable=False),
        sa.Column(
            "category_id", UUID(as_uuid=True), sa.ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False
        ),
        sa.Column("subject", sa.String(1024), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("origin_read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("origin_read_changed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_shift_logs_plant_created", "shift_logs", ["plant", "created_at"])
    op.create_index("idx_shift_logs_work_center", "shift_logs", ["work_center"])
    op.create_index("idx_shift_logs_category", "shift_logs", ["category_id"])

    op.create_table(
        "log_work_centers",
        sa.Column(
            "log_id", UUID(as_uuid=True), sa.ForeignKey("shift_logs.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("work_center", sa.String(36), primary_key=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("read_changed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_log_work_centers_wc", "log_work_centers", ["work_center"])

    op.create_table(
        "audit_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(512), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("detail", sa.Text(), default=""),
        sa.Column("ip_address", sa.String(45), default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("log_work_centers")
    op.drop_table("shift_logs")
    op.drop_table("category_translations")
    op.drop_table("category_chat_channels")
    op.drop_table("category_work_centers")
    op.drop_table("category_mails")
    op.drop_table("categories")
