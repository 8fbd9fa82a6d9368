"""
Card Applications Repository

Database operations for pending and approved ID card applications.
All operations are async; no business rules beyond the status state
machine live here.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ApplicationStatus, ApprovedApplication, CardApplication
from .schemas import AttachmentRefs, CardApplicationCreate


async def create(
    db: AsyncSession,
    data: CardApplicationCreate,
    attachments: AttachmentRefs,
) -> CardApplication:
    """Create a new pending application from already-normalized fields."""

    new_application = CardApplication(
        student_id=data.student_id,
        card_type=data.card_type,
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        program=data.program,
        trx_id=data.trx_id,
        amount=data.amount,
        request_type=data.request_type,
        status=ApplicationStatus.PENDING,
        # Attachments
        photo=attachments.photo,
        gd_copy=attachments.gd_copy,
        old_id_image=attachments.old_id_image,
        documents=list(attachments.documents),
    )

    db.add(new_application)
    await db.commit()
    await db.refresh(new_application)

    return new_application


async def get_by_id(db: AsyncSession, id: UUID) -> CardApplication | None:
    """Get application by ID."""
    return await db.get(CardApplication, id)


async def get_latest_by_student_id(
    db: AsyncSession,
    student_id: str,
    status: ApplicationStatus | None = None,
) -> CardApplication | None:
    """Newest application for a student, optionally restricted to one status."""
    query = select(CardApplication).where(CardApplication.student_id == student_id)
    if status is not None:
        query = query.where(CardApplication.status == status)
    result = await db.execute(query.order_by(CardApplication.created_at.desc()).limit(1))
    return result.scalar_one_or_none()


async def get_by_trx_id(db: AsyncSession, trx_id: str) -> CardApplication | None:
    result = await db.execute(select(CardApplication).where(CardApplication.trx_id == trx_id))
    return result.scalar_one_or_none()


async def list_by_status(db: AsyncSession, status: ApplicationStatus) -> list[CardApplication]:
    """Applications in one status, newest first."""
    result = await db.execute(
        select(CardApplication)
        .where(CardApplication.status == status)
        .order_by(CardApplication.created_at.desc())
    )
    return list(result.scalars().all())


async def list_all(db: AsyncSession) -> list[CardApplication]:
    """Every pending or rejected application, newest first."""
    result = await db.execute(select(CardApplication).order_by(CardApplication.created_at.desc()))
    return list(result.scalars().all())


# ============================================
# Approved applications
# ============================================


async def get_approved_by_source_id(
    db: AsyncSession, source_application_id: UUID
) -> ApprovedApplication | None:
    result = await db.execute(
        select(ApprovedApplication).where(
            ApprovedApplication.source_application_id == source_application_id
        )
    )
    return result.scalar_one_or_none()


async def get_approved_by_trx_id(db: AsyncSession, trx_id: str) -> ApprovedApplication | None:
    result = await db.execute(
        select(ApprovedApplication).where(ApprovedApplication.trx_id == trx_id)
    )
    return result.scalar_one_or_none()


async def get_latest_approved_by_student_id(
    db: AsyncSession, student_id: str
) -> ApprovedApplication | None:
    result = await db.execute(
        select(ApprovedApplication)
        .where(ApprovedApplication.student_id == student_id)
        .order_by(ApprovedApplication.approved_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_approved(
    db: AsyncSession,
    *,
    student_id: str | None = None,
    email: str | None = None,
) -> list[ApprovedApplication]:
    """Approved applications matching the filters, newest approval first."""
    query = select(ApprovedApplication)
    if student_id:
        query = query.where(ApprovedApplication.student_id == student_id)
    if email:
        # rows written before emails were normalized may carry mixed case
        query = query.where(func.lower(ApprovedApplication.email) == email.lower())
    result = await db.execute(query.order_by(ApprovedApplication.approved_at.desc()))
    return list(result.scalars().all())


# ============================================
# Status transitions
# ============================================

# Pending is the only state a decision can be taken from
VALID_STATUS_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.PENDING: {
        ApplicationStatus.APPROVED,  # Migrated to approved_applications
        ApplicationStatus.REJECTED,  # Stays in place with a reason
    },
    # Terminal states - no transitions allowed
    ApplicationStatus.APPROVED: set(),
    ApplicationStatus.REJECTED: set(),
}


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        current_status: ApplicationStatus,
        new_status: ApplicationStatus,
    ):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {[s.value for s in valid_transitions]}"
        )


def _check_transition(current_status: ApplicationStatus, new_status: ApplicationStatus) -> None:
    if new_status not in VALID_STATUS_TRANSITIONS.get(current_status, set()):
        raise InvalidStatusTransitionError(current_status, new_status)


async def update_status(
    db: AsyncSession,
    id: UUID,
    status: ApplicationStatus,
    **kwargs,
) -> CardApplication:
    """
    Update application status and optional fields in place.

    Args:
        db: Database session
        id: Application UUID
        status: New status to set
        **kwargs: Additional fields to update (e.g., rejection_reason)

    Raises:
        ValueError: If application not found
        InvalidStatusTransitionError: If status transition is not allowed
    """
    application = await get_by_id(db, id)
    if not application:
        raise ValueError(f"Application {id} not found")

    _check_transition(application.status, status)

    application.status = status

    for key, value in kwargs.items():
        if hasattr(application, key):
            setattr(application, key, value)

    await db.commit()
    await db.refresh(application)

    return application


async def reject(
    db: AsyncSession,
    application_id: UUID,
    reviewed_by: UUID,
    rejection_reason: str | None = None,
) -> CardApplication:
    """Mark an application rejected, recording who decided and when."""
    update_kwargs: dict = {
        "reviewed_at": datetime.now(UTC),
        "reviewed_by": reviewed_by,
    }
    if rejection_reason is not None:
        update_kwargs["rejection_reason"] = rejection_reason

    return await update_status(db, application_id, ApplicationStatus.REJECTED, **update_kwargs)


async def approve(
    db: AsyncSession,
    application: CardApplication,
    approved_by: UUID,
) -> ApprovedApplication:
    """
    Move a pending application to approved_applications.

    The approved copy is inserted (unless one for this source already
    exists) and the pending record deleted in a single commit; on any
    failure the transaction is rolled back and neither table changes.

    Raises:
        InvalidStatusTransitionError: If the application is not pending
        IntegrityError: If a concurrent approval committed first
    """
    _check_transition(application.status, ApplicationStatus.APPROVED)

    try:
        approved = await get_approved_by_source_id(db, application.id)
        if approved is None:
            approved = ApprovedApplication(
                source_application_id=application.id,
                student_id=application.student_id,
                card_type=application.card_type,
                first_name=application.first_name,
                last_name=application.last_name,
                email=application.email,
                program=application.program,
                trx_id=application.trx_id,
                amount=application.amount,
                request_type=application.request_type,
                photo=application.photo,
                gd_copy=application.gd_copy,
                old_id_image=application.old_id_image,
                documents=list(application.documents or []),
                submitted_at=application.created_at,
                approved_at=datetime.now(UTC),
                approved_by=approved_by,
            )
            db.add(approved)

        await db.delete(application)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(approved)
    return approved
