"""
Card Applications Schemas

Pydantic schemas for request validation and response serialization.
Serialized with camelCase keys (studentId, trxId, paymentStatus, ...).
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from app.modules.card_applications.models import ApplicationStatus
from app.modules.shared import CamelSchema


class CardApplicationCreate(CamelSchema):
    """
    Text fields of a multipart application submission.

    Everything is optional here; required fields are checked (after
    trimming) by the service so the error can name all missing fields.
    Lengths match the columns they are stored in.
    """

    student_id: str | None = Field(None, max_length=50)
    card_type: str | None = Field(None, max_length=50)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)
    program: str | None = Field(None, max_length=200)
    trx_id: str | None = Field(None, max_length=100)
    amount: str | None = Field(None, max_length=20)
    request_type: str | None = Field(None, max_length=50)


class AttachmentRefs(CamelSchema):
    """Storage references of the files saved for one submission."""

    photo: str | None = None
    gd_copy: str | None = None
    old_id_image: str | None = None
    documents: list[str] = Field(default_factory=list)

    def all_refs(self) -> list[str]:
        refs = [ref for ref in (self.photo, self.gd_copy, self.old_id_image) if ref]
        return refs + list(self.documents)


class CardApplicationSubmitResponse(CamelSchema):
    """Response for POST /students."""

    id: UUID
    student_id: str
    name: str
    status: ApplicationStatus
    created_at: datetime
    message: str


class CardApplicationResponse(CamelSchema):
    """A pending or rejected application."""

    id: UUID
    student_id: str
    card_type: str
    first_name: str
    last_name: str
    email: str
    program: str
    trx_id: str
    amount: str
    request_type: str
    payment_status: str
    status: ApplicationStatus
    rejection_reason: str | None = None
    reviewed_at: datetime | None = None
    reviewed_by: UUID | None = None
    photo: str | None = None
    gd_copy: str | None = None
    old_id_image: str | None = None
    documents: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ApprovedApplicationResponse(CamelSchema):
    """An approved application."""

    id: UUID
    source_application_id: UUID
    student_id: str
    card_type: str
    first_name: str
    last_name: str
    email: str
    program: str
    trx_id: str
    amount: str
    request_type: str
    payment_status: str
    photo: str | None = None
    gd_copy: str | None = None
    old_id_image: str | None = None
    documents: list[str] = Field(default_factory=list)
    submitted_at: datetime
    approved_at: datetime
    approved_by: UUID | None = None


class ApplicationDetailResponse(CamelSchema):
    """
    Result of looking an application up by student id.

    stage tells which collection the record came from.
    """

    stage: Literal["pending", "approved"]
    id: UUID
    student_id: str
    card_type: str
    first_name: str
    last_name: str
    email: str
    program: str
    trx_id: str
    amount: str
    request_type: str
    payment_status: str
    status: ApplicationStatus
    rejection_reason: str | None = None
    photo: str | None = None
    gd_copy: str | None = None
    old_id_image: str | None = None
    documents: list[str] = Field(default_factory=list)
    submitted_at: datetime
    reviewed_at: datetime | None = None
    approved_at: datetime | None = None


class DashboardResponse(CamelSchema):
    """Response for GET /admin/dashboard."""

    pending_applications: list[CardApplicationResponse]
    total_pending: int


class StudentListResponse(CamelSchema):
    """Response for GET /admin/students."""

    applications: list[CardApplicationResponse]
    total: int


class ApprovedApplicationListResponse(CamelSchema):
    """Response for GET /applications."""

    applications: list[ApprovedApplicationResponse]
    total: int


class ApplicationActionRequest(CamelSchema):
    """Request body for POST /admin/application/{id}/action."""

    action: str = Field(..., max_length=20)
    reason: str | None = Field(None, max_length=1000)


class ApplicationActionResponse(CamelSchema):
    """Response for an approve/reject decision."""

    id: UUID
    status: ApplicationStatus
    message: str
