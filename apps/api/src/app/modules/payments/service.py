"""
Payments Service Layer

Records payment transactions claimed by students and lets administrators
mark them approved or rejected after checking them by hand.

- A transaction reference (trxId) can be recorded only once; the unique
  constraint on payments.trx_id is authoritative, the pre-check only
  avoids a failed insert in the common case
- Emails are compared case-insensitively
- History is capped at the 50 most recent payments
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.modules.payments import repository
from app.modules.payments.models import Payment, PaymentStatus
from app.modules.payments.schemas import PaymentCreate

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


class PaymentServiceError(ServiceError):
    """Base exception for payment service errors."""


class PaymentValidationError(PaymentServiceError):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
        )


class DuplicateTransactionError(PaymentServiceError):
    """Raised when a transaction reference was already recorded."""

    def __init__(self, trx_id: str):
        super().__init__(
            message=f"TRX ID {trx_id} has already been used.",
            error_code="DUPLICATE_TRX_ID",
            status_code=400,
        )


class PaymentNotFoundError(PaymentServiceError):
    def __init__(self, payment_id: UUID):
        super().__init__(
            message=f"Payment {payment_id} not found",
            error_code="PAYMENT_NOT_FOUND",
            status_code=404,
        )


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def create_payment(db: AsyncSession, data: PaymentCreate) -> Payment:
    """
    Record a new pending payment.

    Raises:
        PaymentValidationError: email, trxId or amount missing, or amount not positive
        DuplicateTransactionError: trxId already recorded
    """
    email = _normalize_email(data.email)
    trx_id = data.trx_id.strip()
    payment_type = data.type.strip() or "topup"

    if not email or not trx_id or not data.amount:
        raise PaymentValidationError("Email, TRX ID and amount are required.")

    if data.amount <= 0:
        raise PaymentValidationError("Amount must be greater than 0.")

    if await repository.get_by_trx_id(db, trx_id):
        logger.warning(f"Duplicate TRX ID on payment: {trx_id}")
        raise DuplicateTransactionError(trx_id)

    user_info = data.user_info.model_dump(by_alias=True) if data.user_info else None

    try:
        payment = await repository.create(
            db,
            email=email,
            trx_id=trx_id,
            amount=data.amount,
            type=payment_type,
            user_info=user_info,
        )
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Concurrent duplicate TRX ID on payment: {trx_id}")
        raise DuplicateTransactionError(trx_id) from e

    logger.info(f"Payment recorded: id={payment.id}, amount={payment.amount}")
    return payment


async def get_payment_history(db: AsyncSession, email: str) -> list[Payment]:
    """
    The 50 most recent payments for an email, newest first.

    Raises:
        PaymentValidationError: If email is missing
    """
    email = _normalize_email(email)
    if not email:
        raise PaymentValidationError("Email is required.")
    return await repository.list_by_email(db, email, HISTORY_LIMIT)


async def list_payments(db: AsyncSession) -> list[Payment]:
    """Every payment, newest first."""
    return await repository.list_all(db)


async def update_payment_status(
    db: AsyncSession,
    payment_id: UUID,
    status: PaymentStatus | None,
    admin_id: UUID,
) -> Payment:
    """
    Set a payment's verification status.

    Raises:
        PaymentValidationError: If status is missing
        PaymentNotFoundError: If the payment does not exist
    """
    if status is None:
        raise PaymentValidationError("Status is required.")

    payment = await repository.get_by_id(db, payment_id)
    if payment is None:
        raise PaymentNotFoundError(payment_id)

    updated = await repository.update_status(db, payment, status)
    logger.info(f"AUDIT: Admin {admin_id} set payment {payment_id} to {status.value}")
    return updated
