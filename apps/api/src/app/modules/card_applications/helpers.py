"""
Card Applications Shared Helpers

Pure functions used by the service and routers: input normalization,
required-field checks and model-to-schema conversion.
"""

from app.modules.card_applications.models import (
    ApplicationStatus,
    ApprovedApplication,
    CardApplication,
)
from app.modules.card_applications.schemas import (
    ApplicationDetailResponse,
    CardApplicationCreate,
)

# Python attribute -> field name as the client sends it
REQUIRED_FIELDS: dict[str, str] = {
    "student_id": "studentId",
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
    "trx_id": "trxId",
}

FIELD_DEFAULTS: dict[str, str] = {
    "card_type": "student",
    "program": "Not Specified",
    "amount": "0",
    "request_type": "new",
}


def normalize_submission(data: CardApplicationCreate) -> CardApplicationCreate:
    """
    Trim every text field, lowercase the email and apply defaults for
    the optional ones.

    Blank required fields become None so missing_required_fields() can
    report them.
    """
    values: dict[str, str | None] = {}
    for name, value in data.model_dump().items():
        trimmed = value.strip() if isinstance(value, str) else None
        if not trimmed:
            trimmed = FIELD_DEFAULTS.get(name)
        values[name] = trimmed
    if values["email"]:
        values["email"] = values["email"].lower()
    return CardApplicationCreate(**values)


def missing_required_fields(data: CardApplicationCreate) -> list[str]:
    """
    Return the client-facing names of required fields that are empty.

    Args:
        data: A normalized submission

    Returns:
        e.g. ["studentId", "trxId"]; empty when everything is present
    """
    return [label for attr, label in REQUIRED_FIELDS.items() if not getattr(data, attr)]


def pending_to_detail(application: CardApplication) -> ApplicationDetailResponse:
    """Convert a pending/rejected application to the lookup response."""
    return ApplicationDetailResponse(
        stage="pending",
        id=application.id,
        student_id=application.student_id,
        card_type=application.card_type,
        first_name=application.first_name,
        last_name=application.last_name,
        email=application.email,
        program=application.program,
        trx_id=application.trx_id,
        amount=application.amount,
        request_type=application.request_type,
        payment_status=application.payment_status,
        status=application.status,
        rejection_reason=application.rejection_reason,
        photo=application.photo,
        gd_copy=application.gd_copy,
        old_id_image=application.old_id_image,
        documents=list(application.documents or []),
        submitted_at=application.created_at,
        reviewed_at=application.reviewed_at,
    )


def approved_to_detail(application: ApprovedApplication) -> ApplicationDetailResponse:
    """Convert an approved application to the lookup response."""
    return ApplicationDetailResponse(
        stage="approved",
        id=application.id,
        student_id=application.student_id,
        card_type=application.card_type,
        first_name=application.first_name,
        last_name=application.last_name,
        email=application.email,
        program=application.program,
        trx_id=application.trx_id,
        amount=application.amount,
        request_type=application.request_type,
        payment_status=application.payment_status,
        status=ApplicationStatus.APPROVED,
        photo=application.photo,
        gd_copy=application.gd_copy,
        old_id_image=application.old_id_image,
        documents=list(application.documents or []),
        submitted_at=application.submitted_at,
        approved_at=application.approved_at,
    )
