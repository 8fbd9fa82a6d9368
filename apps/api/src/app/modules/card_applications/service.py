"""
Card Applications Service Layer

Business logic for ID card applications.

1. Intake:
   - Trim fields, apply defaults, name every missing required field
   - Reject a second pending application for the same student and any
     reuse of a transaction reference
   - Store uploaded documents in the blob store; the record keeps only
     their references

2. Review:
   - Dashboard of pending applications, lookup by student id
   - Approve: migrate the record to approved_applications in one
     transaction (idempotent per source application)
   - Reject: mark in place with an optional reason

Status machine: pending -> {approved, rejected}; both are terminal.
"""

import contextlib
import logging
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ServiceError
from app.core.storage import LocalFileStorage
from app.modules.card_applications import repository
from app.modules.card_applications.helpers import (
    approved_to_detail,
    missing_required_fields,
    normalize_submission,
    pending_to_detail,
)
from app.modules.card_applications.models import (
    ApplicationStatus,
    ApprovedApplication,
    CardApplication,
    ReviewAction,
)
from app.modules.card_applications.schemas import (
    ApplicationActionResponse,
    ApplicationDetailResponse,
    AttachmentRefs,
    CardApplicationCreate,
    CardApplicationSubmitResponse,
)

logger = logging.getLogger(__name__)


class ApplicationServiceError(ServiceError):
    """Base exception for application service errors."""


class MissingRequiredFieldsError(ApplicationServiceError):
    """Raised when required submission fields are missing or blank."""

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(
            message=f"Missing required fields: {', '.join(fields)}",
            error_code="MISSING_REQUIRED_FIELDS",
            status_code=400,
        )


class TooManyDocumentsError(ApplicationServiceError):
    """Raised when more supporting documents are uploaded than allowed."""

    def __init__(self, max_documents: int):
        super().__init__(
            message=f"At most {max_documents} documents can be uploaded.",
            error_code="TOO_MANY_DOCUMENTS",
            status_code=400,
        )


class DuplicateApplicationError(ApplicationServiceError):
    """Raised when a duplicate application is detected."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="DUPLICATE_APPLICATION",
            status_code=409,
        )


class ApplicationNotFoundError(ApplicationServiceError):
    """Raised when an application is not found."""

    def __init__(self, identifier: UUID | str | None = None):
        message = f"Application {identifier} not found" if identifier else "Application not found"
        super().__init__(
            message=message,
            error_code="APPLICATION_NOT_FOUND",
            status_code=404,
        )


class InvalidActionError(ApplicationServiceError):
    """Raised when the review action is neither approve nor reject."""

    def __init__(self, action: str):
        super().__init__(
            message=f"Invalid action '{action}'. Use 'approve' or 'reject'.",
            error_code="INVALID_ACTION",
            status_code=400,
        )


class CannotDecideApplicationError(ApplicationServiceError):
    """Raised when application cannot have a decision made (wrong status)."""

    def __init__(self, current_status: str, action: str):
        super().__init__(
            message=f"Cannot {action} application in status: {current_status}. "
            "Application must be in 'pending' status.",
            error_code="CANNOT_DECIDE_APPLICATION",
            status_code=409,
        )


class MissingFilterError(ApplicationServiceError):
    """Raised when an approved-applications query has no filter."""

    def __init__(self):
        super().__init__(
            message="Provide a studentId or email to look up applications.",
            error_code="VALIDATION_ERROR",
            status_code=400,
        )


def _duplicate_trx_message(trx_id: str) -> str:
    return f"TRX ID {trx_id} has already been used for an application."


# ============================================
# Intake
# ============================================


async def _check_duplicates(db: AsyncSession, data: CardApplicationCreate) -> None:
    """Reject a second pending application per student and any reused TRX ID."""
    pending = await repository.get_latest_by_student_id(
        db, data.student_id, status=ApplicationStatus.PENDING
    )
    if pending:
        logger.warning(f"Duplicate pending application for student {data.student_id}")
        raise DuplicateApplicationError(
            f"Student ID {data.student_id} already has a pending application."
        )

    if await repository.get_by_trx_id(db, data.trx_id) or await repository.get_approved_by_trx_id(
        db, data.trx_id
    ):
        logger.warning(f"Duplicate TRX ID on application: {data.trx_id}")
        raise DuplicateApplicationError(_duplicate_trx_message(data.trx_id))


async def _discard_files(storage: LocalFileStorage, refs: list[str]) -> None:
    for ref in refs:
        with contextlib.suppress(OSError):
            await storage.delete(ref)


async def _store_attachments(
    storage: LocalFileStorage,
    photo: UploadFile | None,
    gd_copy: UploadFile | None,
    old_id_image: UploadFile | None,
    documents: list[UploadFile],
) -> AttachmentRefs:
    """Save every provided upload; on failure remove what was already saved."""
    refs = AttachmentRefs()
    try:
        if photo is not None:
            refs.photo = await storage.save(photo, "photo")
        if gd_copy is not None:
            refs.gd_copy = await storage.save(gd_copy, "gdCopy")
        if old_id_image is not None:
            refs.old_id_image = await storage.save(old_id_image, "oldIdImage")
        for document in documents:
            refs.documents.append(await storage.save(document, "documents"))
    except Exception:
        await _discard_files(storage, refs.all_refs())
        raise
    return refs


def _provided(upload: UploadFile | None) -> UploadFile | None:
    """Treat a file part without a filename as absent."""
    if upload is None or not upload.filename:
        return None
    return upload


async def submit_application(
    db: AsyncSession,
    storage: LocalFileStorage,
    data: CardApplicationCreate,
    *,
    photo: UploadFile | None = None,
    gd_copy: UploadFile | None = None,
    old_id_image: UploadFile | None = None,
    documents: list[UploadFile] | None = None,
) -> CardApplicationSubmitResponse:
    """
    Submit a new ID card application.

    Args:
        db: Database session
        storage: Blob store for the uploaded files
        data: Text fields as submitted
        photo, gd_copy, old_id_image: Optional single uploads
        documents: Optional supporting documents (at most MAX_DOCUMENTS)

    Returns:
        Summary of the created pending application

    Raises:
        MissingRequiredFieldsError: Required fields missing or blank
        TooManyDocumentsError: More documents than allowed
        DuplicateApplicationError: Pending application for the student, or TRX ID reused
        FileTooLargeError: An upload exceeds MAX_UPLOAD_SIZE
    """
    cleaned = normalize_submission(data)

    missing = missing_required_fields(cleaned)
    if missing:
        raise MissingRequiredFieldsError(missing)

    provided_documents = [doc for doc in (documents or []) if _provided(doc)]
    if len(provided_documents) > settings.max_documents:
        raise TooManyDocumentsError(settings.max_documents)

    await _check_duplicates(db, cleaned)

    attachments = await _store_attachments(
        storage,
        _provided(photo),
        _provided(gd_copy),
        _provided(old_id_image),
        provided_documents,
    )

    try:
        application = await repository.create(db, cleaned, attachments)
    except IntegrityError as e:
        # Lost a race with a concurrent submission using the same TRX ID
        await db.rollback()
        await _discard_files(storage, attachments.all_refs())
        logger.warning(f"Unique constraint violated on application insert: {e.orig}")
        raise DuplicateApplicationError(_duplicate_trx_message(cleaned.trx_id)) from e
    except Exception:
        await _discard_files(storage, attachments.all_refs())
        raise

    logger.info(f"Application submitted: id={application.id}, student={application.student_id}")

    return CardApplicationSubmitResponse(
        id=application.id,
        student_id=application.student_id,
        name=application.full_name,
        status=application.status,
        created_at=application.created_at,
        message="Application submitted successfully.",
    )


# ============================================
# Review
# ============================================


async def admin_get_pending_applications(db: AsyncSession) -> list[CardApplication]:
    """Pending applications for the dashboard, newest first."""
    return await repository.list_by_status(db, ApplicationStatus.PENDING)


async def admin_get_all_applications(db: AsyncSession) -> list[CardApplication]:
    """Every application still in the pending table (pending or rejected)."""
    return await repository.list_all(db)


async def get_application_by_student_id(
    db: AsyncSession, student_id: str
) -> ApplicationDetailResponse:
    """
    Look up a student's application.

    Preference order: an open (pending) application, then the most
    recent approval, then the most recent rejection.

    Raises:
        ApplicationNotFoundError: If the student has no application
    """
    student_id = student_id.strip()

    pending = await repository.get_latest_by_student_id(
        db, student_id, status=ApplicationStatus.PENDING
    )
    if pending:
        return pending_to_detail(pending)

    approved = await repository.get_latest_approved_by_student_id(db, student_id)
    if approved:
        return approved_to_detail(approved)

    rejected = await repository.get_latest_by_student_id(db, student_id)
    if rejected:
        return pending_to_detail(rejected)

    raise ApplicationNotFoundError(student_id)


async def get_approved_applications(
    db: AsyncSession,
    *,
    student_id: str | None = None,
    email: str | None = None,
) -> list[ApprovedApplication]:
    """
    Approved applications for the student dashboard.

    Raises:
        MissingFilterError: If neither student_id nor email is given
    """
    student_id = student_id.strip() if student_id else None
    email = email.strip().lower() if email else None
    if not student_id and not email:
        raise MissingFilterError()
    return await repository.list_approved(db, student_id=student_id, email=email)


def _parse_action(action: str) -> ReviewAction:
    try:
        return ReviewAction(action.strip().lower())
    except ValueError as e:
        raise InvalidActionError(action) from e


async def admin_decide_application(
    db: AsyncSession,
    application_id: UUID,
    action: str,
    admin_id: UUID,
    reason: str | None = None,
) -> ApplicationActionResponse:
    """
    Approve or reject a pending application.

    The action is validated before anything is read or written. Approving
    an application that was already migrated returns success again
    instead of creating a second approved record.

    Raises:
        InvalidActionError: action is not approve/reject
        ApplicationNotFoundError: no such application
        CannotDecideApplicationError: application is not pending
    """
    review_action = _parse_action(action)

    logger.info(f"Admin {admin_id} {review_action.value} application {application_id}")

    application = await repository.get_by_id(db, application_id)

    if not application:
        if await repository.get_approved_by_source_id(db, application_id):
            if review_action is ReviewAction.APPROVE:
                return ApplicationActionResponse(
                    id=application_id,
                    status=ApplicationStatus.APPROVED,
                    message="Application already approved.",
                )
            raise CannotDecideApplicationError(ApplicationStatus.APPROVED.value, "reject")
        logger.warning(f"Application not found: {application_id}")
        raise ApplicationNotFoundError(application_id)

    if application.status != ApplicationStatus.PENDING:
        logger.warning(
            f"Cannot {review_action.value} application {application_id}: "
            f"status={application.status}"
        )
        raise CannotDecideApplicationError(application.status.value, review_action.value)

    try:
        if review_action is ReviewAction.APPROVE:
            return await _approve(db, application, admin_id)
        return await _reject(db, application, admin_id, reason)
    except repository.InvalidStatusTransitionError as e:
        logger.error(f"Status transition error: {e}")
        raise CannotDecideApplicationError(
            application.status.value, review_action.value
        ) from e


async def _approve(
    db: AsyncSession,
    application: CardApplication,
    admin_id: UUID,
) -> ApplicationActionResponse:
    application_id = application.id
    try:
        approved = await repository.approve(db, application, admin_id)
    except IntegrityError as e:
        # A concurrent approval of the same application committed first
        if await repository.get_approved_by_source_id(db, application_id):
            logger.info(f"Application {application_id} was approved concurrently")
            return ApplicationActionResponse(
                id=application_id,
                status=ApplicationStatus.APPROVED,
                message="Application already approved.",
            )
        raise DuplicateApplicationError(
            "An approved application already uses this TRX ID."
        ) from e

    logger.info(f"Application {application_id} approved as {approved.id}")
    return ApplicationActionResponse(
        id=application_id,
        status=ApplicationStatus.APPROVED,
        message="Application approved successfully.",
    )


async def _reject(
    db: AsyncSession,
    application: CardApplication,
    admin_id: UUID,
    reason: str | None,
) -> ApplicationActionResponse:
    reason = reason.strip() if reason and reason.strip() else None
    updated = await repository.reject(db, application.id, admin_id, rejection_reason=reason)
    logger.info(f"Application {updated.id} rejected")
    return ApplicationActionResponse(
        id=updated.id,
        status=updated.status,
        message="Application rejected.",
    )
