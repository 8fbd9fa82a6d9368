"""initial id card schema

Revision ID: a1c2e3f4a5b6
Revises:
Create Date: 2026-10-19 12:00:00.000000

This migration creates:
1. admins - administrator credentials and reset token state
2. card_applications - pending/rejected applications
3. approved_applications - applications migrated on approval
4. payments - claimed payment transactions

Uniqueness on trx_id (applications, payments) and on
approved_applications.source_application_id is what keeps duplicate
submissions and repeated approvals out.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a1c2e3f4a5b6"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _applicant_columns() -> list[sa.Column]:
    return [
        sa.Column("student_id", sa.String(length=50), nullable=False),
        sa.Column("card_type", sa.String(length=50), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("program", sa.String(length=200), nullable=False),
        sa.Column("trx_id", sa.String(length=100), nullable=False),
        sa.Column("amount", sa.String(length=20), nullable=False),
        sa.Column("request_type", sa.String(length=50), nullable=False),
        sa.Column("photo", sa.String(length=255), nullable=True),
        sa.Column("gd_copy", sa.String(length=255), nullable=True),
        sa.Column("old_id_image", sa.String(length=255), nullable=True),
        sa.Column("documents", sa.JSON(), nullable=False),
    ]


def upgrade() -> None:
    """Create the ID card tables."""
    # Enum labels are stored by name (uppercase)
    application_status_enum = postgresql.ENUM(
        "PENDING",
        "APPROVED",
        "REJECTED",
        name="card_application_status",
        create_type=False,
    )
    application_status_enum.create(op.get_bind(), checkfirst=True)

    payment_status_enum = postgresql.ENUM(
        "PENDING",
        "APPROVED",
        "REJECTED",
        name="payment_status",
        create_type=False,
    )
    payment_status_enum.create(op.get_bind(), checkfirst=True)

    # Administrators
    op.create_table(
        "admins",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("reset_token_hash", sa.String(length=64), nullable=True),
        sa.Column("reset_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admins_username", "admins", ["username"], unique=True)
    op.create_index("ix_admins_email", "admins", ["email"], unique=True)
    op.create_index("ix_admins_created_at", "admins", ["created_at"])

    # Pending / rejected applications
    op.create_table(
        "card_applications",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        *_applicant_columns(),
        sa.Column("payment_status", sa.String(length=20), nullable=False),
        sa.Column("status", application_status_enum, nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.Uuid(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("trx_id", name="uq_card_applications_trx_id"),
    )
    op.create_index("ix_card_applications_student_id", "card_applications", ["student_id"])
    op.create_index("ix_card_applications_email", "card_applications", ["email"])
    op.create_index("ix_card_applications_status", "card_applications", ["status"])
    op.create_index("ix_card_applications_created_at", "card_applications", ["created_at"])

    # Approved applications
    op.create_table(
        "approved_applications",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        *_applicant_columns(),
        sa.Column("source_application_id", sa.Uuid(), nullable=False),
        sa.Column("payment_status", sa.String(length=20), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved_by", sa.Uuid(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("trx_id", name="uq_approved_applications_trx_id"),
        sa.UniqueConstraint(
            "source_application_id", name="uq_approved_applications_source_application_id"
        ),
    )
    op.create_index(
        "ix_approved_applications_student_id", "approved_applications", ["student_id"]
    )
    op.create_index("ix_approved_applications_email", "approved_applications", ["email"])
    op.create_index(
        "ix_approved_applications_approved_at", "approved_applications", ["approved_at"]
    )
    op.create_index(
        "ix_approved_applications_created_at", "approved_applications", ["created_at"]
    )

    # Payments
    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("trx_id", sa.String(length=100), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("status", payment_status_enum, nullable=False),
        sa.Column("user_info", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("trx_id", name="uq_payments_trx_id"),
    )
    op.create_index("ix_payments_email", "payments", ["email"])
    op.create_index("ix_payments_created_at", "payments", ["created_at"])


def downgrade() -> None:
    """Drop the ID card tables."""
    op.drop_table("payments")
    op.drop_table("approved_applications")
    op.drop_table("card_applications")
    op.drop_table("admins")

    postgresql.ENUM(name="payment_status").drop(op.get_bind(), checkfirst=True)
    postgresql.ENUM(name="card_application_status").drop(op.get_bind(), checkfirst=True)
