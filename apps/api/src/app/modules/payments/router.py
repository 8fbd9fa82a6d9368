"""
Payments Router

Endpoints:
- POST /payments/create - Record a claimed payment (public)
- POST /payments/history - Payment history for an email (public)
- GET /payments/all - Every payment (admin)
- PUT /payments/{payment_id}/status - Approve or reject a payment (admin)
- GET /payments/health - Liveness probe
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AdminUser, get_current_admin_user
from app.core.database import get_db
from app.core.exceptions import to_http_exception
from app.modules.payments import service
from app.modules.payments.schemas import (
    PaymentCreate,
    PaymentCreateResponse,
    PaymentHistoryRequest,
    PaymentHistoryResponse,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatusUpdate,
    PaymentStatusUpdateResponse,
    PaymentSummary,
)
from app.modules.payments.service import PaymentServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", summary="Payments Health Check")
async def payments_health() -> dict[str, str]:
    return {"status": "ok", "service": "payments"}


@router.post(
    "/create",
    response_model=PaymentCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record Payment",
    responses={400: {"description": "Missing fields, non-positive amount or duplicate TRX ID"}},
)
async def create_payment(
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
) -> PaymentCreateResponse:
    try:
        payment = await service.create_payment(db, data)
    except PaymentServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error recording payment: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
            },
        ) from e

    return PaymentCreateResponse(
        message="Payment submitted successfully.",
        payment=PaymentSummary.model_validate(payment),
    )


@router.post(
    "/history",
    response_model=PaymentHistoryResponse,
    summary="Payment History",
    description="The 50 most recent payments for an email, newest first.",
)
async def payment_history(
    data: PaymentHistoryRequest,
    db: AsyncSession = Depends(get_db),
) -> PaymentHistoryResponse:
    try:
        payments = await service.get_payment_history(db, data.email)
    except PaymentServiceError as e:
        raise to_http_exception(e) from e

    return PaymentHistoryResponse(
        payments=[PaymentResponse.model_validate(payment) for payment in payments]
    )


@router.get(
    "/all",
    response_model=PaymentListResponse,
    summary="List All Payments",
    responses={401: {"description": "Unauthorized - invalid or missing token"}},
)
async def list_payments(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> PaymentListResponse:
    payments = await service.list_payments(db)

    logger.info(f"Admin {admin.id} listed payments: total={len(payments)}")

    return PaymentListResponse(
        payments=[PaymentResponse.model_validate(payment) for payment in payments],
        total=len(payments),
    )


@router.put(
    "/{payment_id}/status",
    response_model=PaymentStatusUpdateResponse,
    summary="Update Payment Status",
    responses={
        400: {"description": "Missing or invalid status"},
        401: {"description": "Unauthorized - invalid or missing token"},
        404: {"description": "Payment not found"},
    },
)
async def update_payment_status(
    payment_id: UUID,
    data: PaymentStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> PaymentStatusUpdateResponse:
    try:
        payment = await service.update_payment_status(db, payment_id, data.status, admin.id)
    except PaymentServiceError as e:
        raise to_http_exception(e) from e

    return PaymentStatusUpdateResponse(
        message=f"Payment status updated to {payment.status.value}.",
        payment=PaymentResponse.model_validate(payment),
    )
