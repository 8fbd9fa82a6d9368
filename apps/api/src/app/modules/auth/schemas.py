"""Authentication schemas."""

from uuid import UUID

from pydantic import EmailStr, Field

from app.modules.shared import CamelSchema


class LoginRequest(CamelSchema):
    """Login request schema."""

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=128)


class AdminResponse(CamelSchema):
    """Administrator summary returned on login."""

    id: UUID
    username: str
    email: str


class LoginResponse(CamelSchema):
    """Login response schema."""

    token: str
    token_type: str = "bearer"
    expires_in: int
    admin: AdminResponse


class ForgotPasswordRequest(CamelSchema):
    email: EmailStr


class ResetPasswordRequest(CamelSchema):
    email: EmailStr
    token: str = Field(..., min_length=1, max_length=256)
    new_password: str = Field(..., min_length=6, max_length=128)
