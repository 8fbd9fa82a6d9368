"""
Payment Models

Payment transactions claimed by students (e.g. mobile-money top-ups),
verified manually by an administrator.
"""

import enum

from sqlalchemy import JSON, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel


class PaymentStatus(str, enum.Enum):
    """Verification status of a payment."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Payment(BaseModel):
    """A claimed payment transaction."""

    __tablename__ = "payments"

    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    trx_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="topup")
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    # Denormalized payer details: {"displayName", "email", "uid"}
    user_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, trx_id={self.trx_id}, status={self.status})>"
