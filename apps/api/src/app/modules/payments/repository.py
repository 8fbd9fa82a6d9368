"""
Payments Repository

Database operations for claimed payment transactions.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Payment, PaymentStatus


async def create(
    db: AsyncSession,
    *,
    email: str,
    trx_id: str,
    amount: int,
    type: str,
    user_info: dict | None = None,
) -> Payment:
    """Create a new pending payment."""
    payment = Payment(
        email=email,
        trx_id=trx_id,
        amount=amount,
        type=type,
        status=PaymentStatus.PENDING,
        user_info=user_info,
    )

    db.add(payment)
    await db.commit()
    await db.refresh(payment)

    return payment


async def get_by_id(db: AsyncSession, id: UUID) -> Payment | None:
    return await db.get(Payment, id)


async def get_by_trx_id(db: AsyncSession, trx_id: str) -> Payment | None:
    result = await db.execute(select(Payment).where(Payment.trx_id == trx_id))
    return result.scalar_one_or_none()


async def list_by_email(db: AsyncSession, email: str, limit: int) -> list[Payment]:
    """Payments for one email, newest first, at most `limit`."""
    result = await db.execute(
        select(Payment)
        .where(Payment.email == email)
        .order_by(Payment.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_all(db: AsyncSession) -> list[Payment]:
    result = await db.execute(select(Payment).order_by(Payment.created_at.desc()))
    return list(result.scalars().all())


async def update_status(db: AsyncSession, payment: Payment, status: PaymentStatus) -> Payment:
    payment.status = status
    await db.commit()
    await db.refresh(payment)
    return payment
