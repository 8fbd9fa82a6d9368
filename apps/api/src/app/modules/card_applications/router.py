"""
Card Applications Router

Public endpoints used by students (no authentication).

Endpoints:
- POST /students - Submit an ID card application (multipart form)
- GET /applications - Approved applications for a student (by studentId or email)

Security:
- Upload size and document count limits enforced server-side
- Stored files are addressed by generated references, never by client filenames
"""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import ServiceError, to_http_exception
from app.core.storage import LocalFileStorage, get_storage
from app.modules.card_applications import service
from app.modules.card_applications.schemas import (
    ApprovedApplicationListResponse,
    ApprovedApplicationResponse,
    CardApplicationCreate,
    CardApplicationSubmitResponse,
)
from app.modules.card_applications.service import DuplicateApplicationError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/students",
    response_model=CardApplicationSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit ID Card Application",
    description="""
Submit a new ID card application as multipart form data.

**Required fields:** `studentId`, `firstName`, `lastName`, `email`, `trxId`
(non-empty after trimming).

**Optional fields:** `cardType` (default "student"), `program` (default
"Not Specified"), `amount` (default "0"), `requestType` (default "new").

**Files:** `photo`, `gdCopy`, `oldIdImage` (one each) and up to 5
`documents`; 10MB per file.

**Duplicate Prevention:**
- One pending application per student ID
- A TRX ID can only be used once
""",
    responses={
        201: {"description": "Application created", "model": CardApplicationSubmitResponse},
        400: {"description": "Missing fields, too many documents or file too large"},
        409: {
            "description": "Duplicate application detected",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "DUPLICATE_APPLICATION",
                            "message": "TRX ID T1 has already been used for an application.",
                        }
                    }
                }
            },
        },
    },
)
async def submit_application(
    student_id: str | None = Form(None, alias="studentId", max_length=50),
    card_type: str | None = Form(None, alias="cardType", max_length=50),
    first_name: str | None = Form(None, alias="firstName", max_length=100),
    last_name: str | None = Form(None, alias="lastName", max_length=100),
    email: str | None = Form(None, max_length=255),
    program: str | None = Form(None, max_length=200),
    trx_id: str | None = Form(None, alias="trxId", max_length=100),
    amount: str | None = Form(None, max_length=20),
    request_type: str | None = Form(None, alias="requestType", max_length=50),
    photo: UploadFile | None = File(None),
    gd_copy: UploadFile | None = File(None, alias="gdCopy"),
    old_id_image: UploadFile | None = File(None, alias="oldIdImage"),
    documents: list[UploadFile] | None = File(None),
    db: AsyncSession = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
) -> CardApplicationSubmitResponse:
    """
    Submit a new ID card application.

    Raises:
        HTTPException 400: Missing required fields or invalid uploads
        HTTPException 409: Duplicate student application or TRX ID
    """
    data = CardApplicationCreate(
        student_id=student_id,
        card_type=card_type,
        first_name=first_name,
        last_name=last_name,
        email=email,
        program=program,
        trx_id=trx_id,
        amount=amount,
        request_type=request_type,
    )

    try:
        response = await service.submit_application(
            db,
            storage,
            data,
            photo=photo,
            gd_copy=gd_copy,
            old_id_image=old_id_image,
            documents=documents,
        )
        logger.info(f"Application submitted successfully: id={response.id}")
        return response

    except DuplicateApplicationError as e:
        logger.warning(f"Duplicate application rejected: {e.message}")
        raise to_http_exception(e) from e
    except ServiceError as e:
        logger.info(f"Application rejected: {e.message}")
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error submitting application: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
            },
        ) from e


@router.get(
    "/applications",
    response_model=ApprovedApplicationListResponse,
    summary="List Approved Applications",
    description="Approved applications for a student, newest approval first. "
    "At least one of `studentId` or `email` is required.",
)
async def list_approved_applications(
    student_id: str | None = Query(None, alias="studentId", max_length=50),
    email: str | None = Query(None, max_length=255),
    db: AsyncSession = Depends(get_db),
) -> ApprovedApplicationListResponse:
    try:
        applications = await service.get_approved_applications(
            db, student_id=student_id, email=email
        )
    except ServiceError as e:
        raise to_http_exception(e) from e

    return ApprovedApplicationListResponse(
        applications=[ApprovedApplicationResponse.model_validate(app) for app in applications],
        total=len(applications),
    )
