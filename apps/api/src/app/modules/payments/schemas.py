"""
Payment Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.modules.payments.models import PaymentStatus
from app.modules.shared import CamelSchema


class PayerInfo(CamelSchema):
    display_name: str | None = Field(None, max_length=200)
    email: str | None = Field(None, max_length=255)
    uid: str | None = Field(None, max_length=128)


class PaymentCreate(CamelSchema):
    """
    Request body for POST /payments/create.

    Presence of email, trxId and amount is checked by the service so the
    client gets a single combined message.
    """

    email: str = Field("", max_length=255)
    trx_id: str = Field("", max_length=100)
    # upper bound of the 32-bit amount column
    amount: int | None = Field(None, le=2_147_483_647)
    type: str = Field("topup", max_length=50)
    user_info: PayerInfo | None = None


class PaymentHistoryRequest(CamelSchema):
    email: str = Field("", max_length=255)


class PaymentStatusUpdate(CamelSchema):
    status: PaymentStatus | None = None


class PaymentSummary(CamelSchema):
    id: UUID
    trx_id: str
    amount: int
    status: PaymentStatus
    created_at: datetime


class PaymentResponse(CamelSchema):
    id: UUID
    email: str
    trx_id: str
    amount: int
    type: str
    status: PaymentStatus
    user_info: PayerInfo | None = None
    created_at: datetime
    updated_at: datetime


class PaymentCreateResponse(CamelSchema):
    message: str
    payment: PaymentSummary


class PaymentHistoryResponse(CamelSchema):
    payments: list[PaymentResponse]


class PaymentListResponse(CamelSchema):
    payments: list[PaymentResponse]
    total: int


class PaymentStatusUpdateResponse(CamelSchema):
    message: str
    payment: PaymentResponse
