"""
Card Applications Models

Pending/rejected ID card applications and the approved applications
they are migrated to when an administrator approves them.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel, utcnow


class ApplicationStatus(str, enum.Enum):
    """Status of a card application."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewAction(str, enum.Enum):
    """Decisions an administrator can take on a pending application."""

    APPROVE = "approve"
    REJECT = "reject"


PAYMENT_STATUS_PENDING = "Pending"
PAYMENT_STATUS_APPROVED = "Approved"


class _ApplicantFields:
    """Columns shared by pending and approved applications."""

    student_id: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    card_type: Mapped[str] = mapped_column(String(50), nullable=False, default="student")
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    program: Mapped[str] = mapped_column(String(200), nullable=False, default="Not Specified")
    trx_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    amount: Mapped[str] = mapped_column(String(20), nullable=False, default="0")
    request_type: Mapped[str] = mapped_column(String(50), nullable=False, default="new")

    # Storage references (bytes live in the blob store)
    photo: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gd_copy: Mapped[str | None] = mapped_column(String(255), nullable=True)
    old_id_image: Mapped[str | None] = mapped_column(String(255), nullable=True)
    documents: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class CardApplication(_ApplicantFields, BaseModel):
    """
    A submitted ID card application awaiting review, or rejected in place.

    Approved applications are removed from this table and copied to
    approved_applications.
    """

    __tablename__ = "card_applications"

    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PAYMENT_STATUS_PENDING
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="card_application_status"),
        nullable=False,
        default=ApplicationStatus.PENDING,
        index=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    def __repr__(self) -> str:
        return f"<CardApplication(id={self.id}, student_id={self.student_id}, status={self.status})>"


class ApprovedApplication(_ApplicantFields, BaseModel):
    """
    Denormalized copy of an approved application.

    source_application_id is unique, so approving the same pending
    application twice can never produce two approved records.
    """

    __tablename__ = "approved_applications"

    source_application_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False)
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PAYMENT_STATUS_APPROVED
    )
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    approved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    approved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    def __repr__(self) -> str:
        return f"<ApprovedApplication(id={self.id}, student_id={self.student_id})>"
