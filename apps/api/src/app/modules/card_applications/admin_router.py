"""
Card Applications Admin Router

API endpoints for administrators reviewing ID card applications.
All endpoints require a valid admin access token.

Endpoints:
- GET /admin/dashboard - Pending applications, newest first
- GET /admin/students - Every pending or rejected application
- GET /admin/application/{student_id} - Look up a student's application
- POST /admin/application/{application_id}/action - Approve or reject
- GET /admin/files/{storage_ref} - Download an uploaded document

Security:
- Bearer token required on every endpoint
- Rate limiting on the decision endpoint
- Audit logging for all admin actions
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AdminUser, get_current_admin_user
from app.core.database import get_db
from app.core.exceptions import to_http_exception
from app.core.rate_limit import enforce_rate_limit
from app.core.storage import LocalFileStorage, StoredFileNotFoundError, get_storage
from app.modules.card_applications import service
from app.modules.card_applications.schemas import (
    ApplicationActionRequest,
    ApplicationActionResponse,
    ApplicationDetailResponse,
    CardApplicationResponse,
    DashboardResponse,
    StudentListResponse,
)
from app.modules.card_applications.service import ApplicationServiceError

logger = logging.getLogger(__name__)

router = APIRouter()

DECIDE_LIMIT = (30, 60)  # per admin per minute


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )


# ============================================
# Listing
# ============================================


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Admin Dashboard",
    responses={401: {"description": "Unauthorized - invalid or missing token"}},
)
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> DashboardResponse:
    """Pending applications, newest first, with their count."""
    applications = await service.admin_get_pending_applications(db)

    logger.info(f"Admin {admin.id} fetched dashboard: pending={len(applications)}")

    return DashboardResponse(
        pending_applications=[CardApplicationResponse.model_validate(app) for app in applications],
        total_pending=len(applications),
    )


@router.get(
    "/students",
    response_model=StudentListResponse,
    summary="List All Applications",
    responses={401: {"description": "Unauthorized - invalid or missing token"}},
)
async def list_students(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> StudentListResponse:
    """Every application that has not been approved, newest first."""
    applications = await service.admin_get_all_applications(db)

    logger.info(f"Admin {admin.id} listed applications: total={len(applications)}")

    return StudentListResponse(
        applications=[CardApplicationResponse.model_validate(app) for app in applications],
        total=len(applications),
    )


# ============================================
# Detail & Decision
# ============================================


@router.get(
    "/application/{student_id}",
    response_model=ApplicationDetailResponse,
    summary="Get Application by Student ID",
    responses={
        401: {"description": "Unauthorized - invalid or missing token"},
        404: {"description": "No application for this student"},
    },
)
async def get_application(
    student_id: str,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicationDetailResponse:
    """
    Look up a student's application, pending collection first, then approved.
    """
    try:
        detail = await service.get_application_by_student_id(db, student_id)
        logger.info(f"Admin {admin.id} viewed application of student {student_id}")
        return detail
    except ApplicationServiceError as e:
        raise to_http_exception(e) from e


@router.post(
    "/application/{application_id}/action",
    response_model=ApplicationActionResponse,
    summary="Approve or Reject Application",
    description="""
Take a decision on a pending application.

**Body:** `{"action": "approve" | "reject", "reason": "..."}`

- **approve** moves the application to the approved collection with
  payment status "Approved" (one transaction; repeating it is harmless)
- **reject** keeps the application with status "rejected" and the optional reason

**Rate Limit:** 30 decisions per minute per admin
""",
    responses={
        400: {"description": "Invalid action"},
        401: {"description": "Unauthorized - invalid or missing token"},
        404: {"description": "Application not found"},
        409: {"description": "Application is not pending"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def decide_application(
    application_id: UUID,
    data: ApplicationActionRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicationActionResponse:
    await enforce_rate_limit(f"rl:admin:decide:{admin.id}", *DECIDE_LIMIT)

    try:
        result = await service.admin_decide_application(
            db,
            application_id,
            data.action,
            admin.id,
            reason=data.reason,
        )

        logger.info(
            f"AUDIT: Admin {admin.id} ({admin.username}) set application {application_id} "
            f"to {result.status.value}"
        )

        return result

    except ApplicationServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error deciding application {application_id}: {e}")
        raise _internal_error() from e


# ============================================
# Attachments
# ============================================


@router.get(
    "/files/{storage_ref:path}",
    summary="Download Uploaded Document",
    response_class=StreamingResponse,
    responses={
        401: {"description": "Unauthorized - invalid or missing token"},
        404: {"description": "File not found"},
    },
)
async def download_file(
    storage_ref: str,
    admin: AdminUser = Depends(get_current_admin_user),
    storage: LocalFileStorage = Depends(get_storage),
) -> StreamingResponse:
    """Stream a document referenced by an application."""
    if not await storage.exists(storage_ref):
        raise to_http_exception(StoredFileNotFoundError(storage_ref))

    logger.info(f"Admin {admin.id} downloaded {storage_ref}")

    return StreamingResponse(
        storage.download(storage_ref),
        media_type=storage.content_type(storage_ref),
    )
